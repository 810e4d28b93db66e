"""
Swiss-system tournament.

Rules:
- A fixed number of rounds: max(3, ceil(log2(n)) + 1).
- Each round is paired from the live standings (points, wins, fewest
  losses): every track is matched with the next-ranked track it has not
  met yet, or with the nearest available track when it has met them all.
- With an odd number of tracks the one left over gets a bye: one point and
  a win, no opponent recorded.
- A win is worth 1 point.  Nobody is eliminated; best record wins.

Pairings for round r+1 are only computed once round r is complete, so
results feed straight into the next draw.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any

from trackbattle.models import Battle, BattleMatchup, Tournament, TournamentProgress, Track
from trackbattle.tournaments.base import (
    Fixture,
    Standing,
    StrategyConfig,
    TournamentStrategy,
    percentage,
    sort_standings,
)

logger = logging.getLogger(__name__)

POINTS_PER_WIN = 1


@dataclass
class SwissStanding(Standing):
    opponents: list[str] = field(default_factory=list)
    byes: int = 0

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> SwissStanding:
        base = Standing.from_dict(raw)
        return cls(
            track_id=base.track_id,
            seed=base.seed,
            played=base.played,
            won=base.won,
            lost=base.lost,
            points=base.points,
            opponents=[str(o) for o in raw.get("opponents") or []],
            byes=int(raw.get("byes", 0)),
        )


@dataclass
class SwissRound:
    round_number: int
    pairings: list[Fixture] = field(default_factory=list)
    bye_id: str | None = None
    completed: bool = False

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> SwissRound:
        return cls(
            round_number=int(raw["round_number"]),
            pairings=[Fixture.from_dict(p) for p in raw.get("pairings") or []],
            bye_id=raw.get("bye_id"),
            completed=bool(raw.get("completed", False)),
        )


@dataclass
class SwissData:
    standings: list[SwissStanding] = field(default_factory=list)
    rounds: list[SwissRound] = field(default_factory=list)
    current_round: int = 1
    current_pairing_index: int = 0
    total_rounds: int = 3

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> SwissData:
        return cls(
            standings=[SwissStanding.from_dict(s) for s in raw.get("standings") or []],
            rounds=[SwissRound.from_dict(r) for r in raw.get("rounds") or []],
            current_round=int(raw.get("current_round", 1)),
            current_pairing_index=int(raw.get("current_pairing_index", 0)),
            total_rounds=int(raw.get("total_rounds", 3)),
        )

    def round(self, number: int) -> SwissRound | None:
        return self.rounds[number - 1] if 0 < number <= len(self.rounds) else None


def swiss_rounds(track_count: int) -> int:
    return max(3, math.ceil(math.log2(max(track_count, 1))) + 1)


class SwissStrategy(TournamentStrategy):
    """Score-based pairing over a fixed number of rounds."""

    mode = "swiss"
    name = "Swiss System"
    description = (
        "Tracks are paired based on similar performance. "
        "No elimination, best record after fixed rounds wins."
    )
    config = StrategyConfig(require_minimum_tracks=4)

    # ------------------------------------------------------------------ #
    # Public interface                                                     #
    # ------------------------------------------------------------------ #

    def initialize_tournament(self, tracks: list[Track]) -> TournamentProgress:
        total_rounds = swiss_rounds(len(tracks))
        return TournamentProgress(
            total_tracks=len(tracks),
            battles_completed=0,
            battles_remaining=(len(tracks) // 2) * total_rounds,
            current_round=1,
            total_rounds=total_rounds,
            eliminated_tracks=[],
            remaining_tracks=list(tracks),
            progress_percentage=0.0,
        )

    def update_progress(self, tournament: Tournament, completed_battle: Battle) -> TournamentProgress:
        if completed_battle.winner is None:
            return tournament.progress

        data: SwissData = self.get_strategy_data(tournament)
        if data.current_round > data.total_rounds:
            return self._ignore(tournament, completed_battle, "all rounds already played")

        current = data.round(data.current_round)
        if current is None or data.current_pairing_index >= len(current.pairings):
            return self._ignore(tournament, completed_battle, "no pairing is pending")

        pairing = current.pairings[data.current_pairing_index]
        if not pairing.matches(completed_battle):
            return self._ignore(
                tournament, completed_battle,
                f"expected pairing {pairing.track_a_id} vs {pairing.track_b_id}",
            )

        pairing.record(completed_battle)
        _apply_result(data.standings, completed_battle)
        data.current_pairing_index += 1

        if data.current_pairing_index >= len(current.pairings):
            current.completed = True
            data.current_round += 1
            data.current_pairing_index = 0
            logger.info("Swiss %s: round %d complete", tournament.id, current.round_number)
            if data.current_round <= data.total_rounds:
                data.rounds.append(self._pair_round(data, data.current_round))

        self.update_strategy_data(tournament, data)

        progress = tournament.progress.copy()
        progress.battles_completed += 1
        progress.battles_remaining = _remaining_battles(data)
        progress.progress_percentage = percentage(
            progress.battles_completed,
            progress.battles_completed + progress.battles_remaining,
        )
        progress.current_round = min(data.current_round, data.total_rounds)
        return progress

    def get_next_matchup(self, tournament: Tournament) -> BattleMatchup | None:
        data: SwissData = self.get_strategy_data(tournament)
        if data.current_round > data.total_rounds:
            return None

        current = data.round(data.current_round)
        if current is None or data.current_pairing_index >= len(current.pairings):
            return None

        pairing = current.pairings[data.current_pairing_index]
        return self._matchup_for(
            tournament,
            pairing,
            round=data.current_round,
            metadata={
                "battle_type": "swiss",
                "round_number": data.current_round,
                "total_rounds": data.total_rounds,
                "pairing_index": data.current_pairing_index,
                "total_pairings": len(current.pairings),
                "bye": current.bye_id,
            },
        )

    def is_completed(self, tournament: Tournament) -> bool:
        data: SwissData = self.get_strategy_data(tournament)
        return data.current_round > data.total_rounds

    def build_data(self, tournament: Tournament) -> SwissData:
        data = SwissData(
            standings=[
                SwissStanding(track_id=t.id, seed=i) for i, t in enumerate(tournament.tracks)
            ],
            rounds=[],
            current_round=1,
            current_pairing_index=0,
            total_rounds=swiss_rounds(len(tournament.tracks)),
        )
        data.rounds.append(self._pair_round(data, 1))
        return data

    def load_data(self, raw: dict[str, Any]) -> SwissData:
        return SwissData.from_dict(raw)

    def standings(self, tournament: Tournament) -> list[Standing]:
        data: SwissData = self.get_strategy_data(tournament)
        return sort_standings(data.standings)

    def repair(self, tournament: Tournament) -> bool:
        data: SwissData = self.get_strategy_data(tournament)
        if data.current_round > data.total_rounds or data.round(data.current_round) is not None:
            return False
        logger.warning("Swiss %s: round %d was never paired, pairing it now",
                       tournament.id, data.current_round)
        while len(data.rounds) < data.current_round:
            data.rounds.append(self._pair_round(data, len(data.rounds) + 1))
        self.update_strategy_data(tournament, data)
        return True

    # ------------------------------------------------------------------ #
    # Internal helpers                                                     #
    # ------------------------------------------------------------------ #

    def _pair_round(self, data: SwissData, round_number: int) -> SwissRound:
        pairings, leftover = pair_by_standings(data.standings)
        bye_id = None
        if leftover is not None:
            # A bye counts as a played, won battle without an opponent
            leftover.record_win(POINTS_PER_WIN)
            leftover.byes += 1
            bye_id = leftover.track_id
            logger.info("Swiss round %d: track %s receives a bye", round_number, bye_id)
        return SwissRound(round_number=round_number, pairings=pairings, bye_id=bye_id)

    def _champion(self, tournament: Tournament) -> Track | None:
        data: SwissData = self.get_strategy_data(tournament)
        return self._top_of(tournament, data.standings)


def pair_by_standings(
    standings: list[SwissStanding],
) -> tuple[list[Fixture], SwissStanding | None]:
    """
    Greedy Swiss pairing.  Returns the pairings and the unpaired standing
    (only ever set for an odd number of tracks).
    """
    ranked = sort_standings(standings)
    paired: set[str] = set()
    pairings: list[Fixture] = []

    for i, track in enumerate(ranked):
        if track.track_id in paired:
            continue
        candidates = [s for s in ranked[i + 1:] if s.track_id not in paired]
        if not candidates:
            break
        opponent = next(
            (s for s in candidates if s.track_id not in track.opponents),
            candidates[0],
        )
        if opponent.track_id in track.opponents:
            logger.info("Swiss: %s has met every available track, rematch with %s",
                        track.track_id, opponent.track_id)
        pairings.append(Fixture(track_a_id=track.track_id, track_b_id=opponent.track_id))
        paired.update((track.track_id, opponent.track_id))

    leftover = next((s for s in ranked if s.track_id not in paired), None)
    return pairings, leftover


def _apply_result(standings: list[SwissStanding], battle: Battle) -> None:
    loser_id = battle.loser_id
    for standing in standings:
        if standing.track_id == battle.winner:
            standing.record_win(POINTS_PER_WIN)
            standing.opponents.append(loser_id)
        elif standing.track_id == loser_id:
            standing.record_loss()
            standing.opponents.append(battle.winner)


def _remaining_battles(data: SwissData) -> int:
    remaining = 0
    per_round = len(data.standings) // 2
    for number in range(data.current_round, data.total_rounds + 1):
        paired = data.round(number)
        if paired is None:
            remaining += per_round
        elif number == data.current_round:
            remaining += len(paired.pairings) - data.current_pairing_index
        else:
            remaining += len(paired.pairings)
    return remaining
