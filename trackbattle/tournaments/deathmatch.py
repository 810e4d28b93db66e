"""
Deathmatch: continuous battles, first to the target score wins.

Rules:
- Nobody is eliminated; every track stays in `remaining_tracks`.
- A win adds one point to the winner's score.
- Until every track could have battled once (fewer battles than tracks)
  pairs are drawn at random.  After that the two tracks with the closest
  scores are preferred, then the pair with the fewest battles between them.
- The tournament ends when the leader reaches `target_score` or after
  `max_battles` battles, whichever comes first.  The leader is champion.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from trackbattle.models import Battle, BattleMatchup, Tournament, TournamentProgress, Track
from trackbattle.tournaments.base import (
    Fixture,
    Shuffle,
    Standing,
    StrategyConfig,
    TournamentStrategy,
    all_pairings,
    percentage,
    sort_standings,
)

logger = logging.getLogger(__name__)

DEFAULT_TARGET_SCORE = 10


def default_max_battles(track_count: int) -> int:
    return max(50, track_count * 5)


@dataclass
class DeathmatchData:
    scores: dict[str, int] = field(default_factory=dict)
    played: dict[str, int] = field(default_factory=dict)
    battles_played: int = 0
    next_pair: list[str] | None = None
    last_battle_id: str | None = None

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> DeathmatchData:
        pair = raw.get("next_pair")
        return cls(
            scores={str(k): int(v) for k, v in (raw.get("scores") or {}).items()},
            played={str(k): int(v) for k, v in (raw.get("played") or {}).items()},
            battles_played=int(raw.get("battles_played", 0)),
            next_pair=[str(t) for t in pair] if pair else None,
            last_battle_id=raw.get("last_battle_id"),
        )

    def leader(self) -> tuple[str, int] | None:
        # dicts keep insertion order, so ties go to the earlier track
        if not self.scores:
            return None
        track_id = max(self.scores, key=lambda t: self.scores[t])
        return track_id, self.scores[track_id]


class DeathmatchStrategy(TournamentStrategy):
    """Open-ended battling until a track reaches the target score."""

    mode = "deathmatch"
    name = "Deathmatch"
    description = "Continuous battles with score tracking. First to reach target score wins."
    config = StrategyConfig(require_minimum_tracks=2)

    def __init__(
        self,
        shuffle: Shuffle | None = None,
        target_score: int = DEFAULT_TARGET_SCORE,
        max_battles: int | None = None,
    ) -> None:
        super().__init__(shuffle)
        if target_score < 1:
            raise ValueError(f"target_score must be at least 1, got {target_score}")
        if max_battles is not None and max_battles < 1:
            raise ValueError(f"max_battles must be at least 1, got {max_battles}")
        self.target_score = target_score
        self.max_battles = max_battles

    def battle_cap(self, track_count: int) -> int:
        return self.max_battles or default_max_battles(track_count)

    # ------------------------------------------------------------------ #
    # Public interface                                                     #
    # ------------------------------------------------------------------ #

    def initialize_tournament(self, tracks: list[Track]) -> TournamentProgress:
        return TournamentProgress(
            total_tracks=len(tracks),
            battles_completed=0,
            battles_remaining=self.battle_cap(len(tracks)),
            current_round=1,
            total_rounds=1,
            eliminated_tracks=[],
            remaining_tracks=list(tracks),
            progress_percentage=0.0,
        )

    def update_progress(self, tournament: Tournament, completed_battle: Battle) -> TournamentProgress:
        winner_id = completed_battle.winner
        if winner_id is None:
            return tournament.progress

        data: DeathmatchData = self.get_strategy_data(tournament)
        loser_id = completed_battle.loser_id
        if len(completed_battle.track_ids) != 2:
            return self._ignore(tournament, completed_battle, "a track cannot battle itself")
        if winner_id not in data.scores or loser_id not in data.scores:
            return self._ignore(tournament, completed_battle, "track is not in this deathmatch")
        if completed_battle.id == data.last_battle_id:
            return self._ignore(tournament, completed_battle, "battle already applied")

        data.scores[winner_id] += 1
        data.played[winner_id] = data.played.get(winner_id, 0) + 1
        data.played[loser_id] = data.played.get(loser_id, 0) + 1
        data.battles_played += 1
        data.last_battle_id = completed_battle.id

        cap = self.battle_cap(tournament.progress.total_tracks)
        progress = tournament.progress.copy()
        progress.battles_completed += 1
        progress.battles_remaining = max(0, cap - progress.battles_completed)
        progress.progress_percentage = max(
            percentage(progress.battles_completed, cap),
            percentage(max(data.scores.values()), self.target_score),
        )

        data.next_pair = self._pick_pair(data)
        self.update_strategy_data(tournament, data)

        if data.scores[winner_id] >= self.target_score:
            logger.info("Deathmatch %s: %s reached %d points",
                        tournament.id, winner_id, data.scores[winner_id])
        return progress

    def get_next_matchup(self, tournament: Tournament) -> BattleMatchup | None:
        if self.is_completed(tournament):
            return None
        data: DeathmatchData = self.get_strategy_data(tournament)
        if not data.next_pair:
            return None

        track_a_id, track_b_id = data.next_pair
        return self._matchup_for(
            tournament,
            Fixture(track_a_id=track_a_id, track_b_id=track_b_id),
            round=data.battles_played + 1,
            metadata={
                "battle_type": "deathmatch",
                "battle_number": data.battles_played + 1,
                "target_score": self.target_score,
                "max_battles": self.battle_cap(tournament.progress.total_tracks),
                "scores": {
                    track_a_id: data.scores.get(track_a_id, 0),
                    track_b_id: data.scores.get(track_b_id, 0),
                },
            },
        )

    def is_completed(self, tournament: Tournament) -> bool:
        data: DeathmatchData = self.get_strategy_data(tournament)
        leader = data.leader()
        if leader is not None and leader[1] >= self.target_score:
            return True
        return tournament.progress.battles_completed >= self.battle_cap(
            tournament.progress.total_tracks
        )

    def build_data(self, tournament: Tournament) -> DeathmatchData:
        data = DeathmatchData(
            scores={t.id: 0 for t in tournament.tracks},
            played={t.id: 0 for t in tournament.tracks},
        )
        data.next_pair = self._pick_pair(data)
        return data

    def load_data(self, raw: dict[str, Any]) -> DeathmatchData:
        return DeathmatchData.from_dict(raw)

    def standings(self, tournament: Tournament) -> list[Standing]:
        data: DeathmatchData = self.get_strategy_data(tournament)
        table = []
        for seed, track in enumerate(tournament.tracks):
            score = data.scores.get(track.id, 0)
            played = data.played.get(track.id, 0)
            table.append(
                Standing(
                    track_id=track.id,
                    seed=seed,
                    played=played,
                    won=score,
                    lost=max(0, played - score),
                    points=score,
                )
            )
        return sort_standings(table)

    def repair(self, tournament: Tournament) -> bool:
        if self.is_completed(tournament):
            return False
        data: DeathmatchData = self.get_strategy_data(tournament)
        pair = data.next_pair or []
        if len(set(pair)) == 2 and all(t in data.scores for t in pair):
            return False
        logger.warning("Deathmatch %s: next pair missing, picking a new one", tournament.id)
        data.next_pair = self._pick_pair(data)
        self.update_strategy_data(tournament, data)
        return data.next_pair is not None

    # ------------------------------------------------------------------ #
    # Internal helpers                                                     #
    # ------------------------------------------------------------------ #

    def _pick_pair(self, data: DeathmatchData) -> list[str] | None:
        track_ids = self._shuffle(list(data.scores))
        if len(track_ids) < 2:
            return None
        if data.battles_played < len(track_ids):
            return track_ids[:2]

        closest = min(
            all_pairings(track_ids),
            key=lambda f: (
                abs(data.scores[f.track_a_id] - data.scores[f.track_b_id]),
                data.played.get(f.track_a_id, 0) + data.played.get(f.track_b_id, 0),
            ),
        )
        return [closest.track_a_id, closest.track_b_id]

    def _champion(self, tournament: Tournament) -> Track | None:
        data: DeathmatchData = self.get_strategy_data(tournament)
        leader = data.leader()
        return tournament.find_track(leader[0]) if leader else None
