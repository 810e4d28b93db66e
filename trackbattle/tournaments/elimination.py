"""
Single-elimination tournament.

Rules:
- Each round the remaining tracks are shuffled and paired in order.
- Lose once → eliminated.
- With an odd number of remaining tracks the last one drawn gets a bye and
  meets the winners in the next round.
- A round's matchups are drawn once and consumed one at a time; the next
  round is drawn when the queue runs dry and more than one track is left.
- N tracks always take exactly N-1 battles.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any

from trackbattle.models import Battle, BattleMatchup, Tournament, TournamentProgress, Track
from trackbattle.tournaments.base import (
    BracketRound,
    StrategyConfig,
    TournamentStrategy,
    advance_bracket,
    draw_bracket_round,
    partition_holds,
    percentage,
)

logger = logging.getLogger(__name__)

_LABEL = "Elimination"


@dataclass
class EliminationData:
    bracket: BracketRound = field(default_factory=BracketRound)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> EliminationData:
        return cls(bracket=BracketRound.from_dict(raw.get("bracket") or {}))


class EliminationStrategy(TournamentStrategy):
    """Classic bracket: losing a battle eliminates the track."""

    mode = "elimination"
    name = "Single Elimination"
    description = "Classic tournament bracket where losing a battle eliminates the track"
    config = StrategyConfig(require_minimum_tracks=2, allow_skipping=True)

    # ------------------------------------------------------------------ #
    # Public interface                                                     #
    # ------------------------------------------------------------------ #

    def initialize_tournament(self, tracks: list[Track]) -> TournamentProgress:
        total = len(tracks)
        return TournamentProgress(
            total_tracks=total,
            battles_completed=0,
            battles_remaining=max(0, total - 1),
            current_round=1,
            total_rounds=math.ceil(math.log2(total)) if total > 1 else 1,
            eliminated_tracks=[],
            remaining_tracks=list(tracks),
            progress_percentage=0.0,
        )

    def update_progress(self, tournament: Tournament, completed_battle: Battle) -> TournamentProgress:
        winner_id = completed_battle.winner
        if winner_id is None:
            return tournament.progress

        loser_id = completed_battle.loser_id
        remaining_ids = tournament.progress.remaining_ids()
        if len(completed_battle.track_ids) != 2:
            return self._ignore(tournament, completed_battle, "a track cannot battle itself")
        if winner_id not in remaining_ids:
            return self._ignore(tournament, completed_battle, "winner is not a remaining track")
        if loser_id not in remaining_ids:
            return self._ignore(tournament, completed_battle, "loser is not a remaining track")

        data: EliminationData = self.get_strategy_data(tournament)
        progress = tournament.progress.copy()

        loser = next(t for t in progress.remaining_tracks if t.id == loser_id)
        progress.remaining_tracks = [t for t in progress.remaining_tracks if t.id != loser_id]
        progress.eliminated_tracks.append(loser)

        remaining_count = len(progress.remaining_tracks)
        progress.battles_completed += 1
        progress.battles_remaining = max(0, remaining_count - 1)
        progress.progress_percentage = percentage(
            progress.battles_completed, progress.total_tracks - 1
        )
        progress.current_round = _round_for(remaining_count, progress.total_rounds)

        data.bracket = advance_bracket(
            data.bracket,
            completed_battle,
            [t.id for t in progress.remaining_tracks],
            self._shuffle,
            _LABEL,
        )
        self.update_strategy_data(tournament, data)

        if not partition_holds(tournament.tracks, progress):
            logger.warning(
                "Tournament %s: eliminated/remaining tracks no longer partition the track list",
                tournament.id,
            )
        return progress

    def get_next_matchup(self, tournament: Tournament) -> BattleMatchup | None:
        remaining_ids = tournament.progress.remaining_ids()
        if len(remaining_ids) < 2:
            return None

        data: EliminationData = self.get_strategy_data(tournament)
        pending = data.bracket.pending(remaining_ids)
        if pending is None:
            return None

        return self._matchup_for(
            tournament,
            pending,
            round=data.bracket.round_number,
            metadata={
                "battle_type": "elimination",
                "matchup_index": data.bracket.index_of(pending),
                "total_matchups": len(data.bracket.matchups),
                "bye": data.bracket.bye_id,
            },
        )

    def is_completed(self, tournament: Tournament) -> bool:
        return len(tournament.progress.remaining_tracks) <= 1

    def build_data(self, tournament: Tournament) -> EliminationData:
        remaining = [t.id for t in tournament.progress.remaining_tracks]
        if len(remaining) < 2:
            return EliminationData()
        return EliminationData(
            bracket=draw_bracket_round(
                remaining, tournament.progress.current_round, self._shuffle, _LABEL
            )
        )

    def load_data(self, raw: dict[str, Any]) -> EliminationData:
        return EliminationData.from_dict(raw)

    def repair(self, tournament: Tournament) -> bool:
        remaining = [t.id for t in tournament.progress.remaining_tracks]
        if len(remaining) < 2:
            return False
        data: EliminationData = self.get_strategy_data(tournament)
        if data.bracket.pending(set(remaining)) is not None:
            return False
        logger.warning("Tournament %s: bracket exhausted early, drawing a new round", tournament.id)
        data.bracket = draw_bracket_round(
            remaining, data.bracket.round_number + 1, self._shuffle, _LABEL
        )
        self.update_strategy_data(tournament, data)
        return True

    # ------------------------------------------------------------------ #
    # Internal helpers                                                     #
    # ------------------------------------------------------------------ #

    def _champion(self, tournament: Tournament) -> Track | None:
        remaining = tournament.progress.remaining_tracks
        return remaining[0] if len(remaining) == 1 else None


def _round_for(remaining_count: int, total_rounds: int) -> int:
    """Bracket round implied by how many tracks are still alive."""
    if remaining_count <= 1:
        return total_rounds
    expected = total_rounds - math.ceil(math.log2(remaining_count)) + 1
    return max(1, min(expected, total_rounds))
