"""
Round Robin tournament.

Every track meets every other track exactly once.  All C(n, 2) fixtures are
generated up front, shuffled once, and then played strictly in that order;
results never re-order the schedule.  A win is worth 3 points, a loss 0.
The champion is the top of the final table (points, then wins, then fewest
losses, then original track order).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from trackbattle.models import Battle, BattleMatchup, Tournament, TournamentProgress, Track
from trackbattle.tournaments.base import (
    Fixture,
    Standing,
    StrategyConfig,
    TournamentStrategy,
    all_pairings,
    initial_standings,
    percentage,
    sort_standings,
)

logger = logging.getLogger(__name__)

POINTS_PER_WIN = 3


@dataclass
class RoundRobinData:
    fixtures: list[Fixture] = field(default_factory=list)
    standings: list[Standing] = field(default_factory=list)
    current_fixture_index: int = 0

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> RoundRobinData:
        return cls(
            fixtures=[Fixture.from_dict(f) for f in raw.get("fixtures") or []],
            standings=[Standing.from_dict(s) for s in raw.get("standings") or []],
            current_fixture_index=int(raw.get("current_fixture_index", 0)),
        )


class RoundRobinStrategy(TournamentStrategy):
    """All tracks face each other once; most points wins."""

    mode = "roundrobin"
    name = "Round Robin"
    description = "All tracks face each other exactly once. Track with most wins becomes champion."
    config = StrategyConfig(require_minimum_tracks=3)

    def initialize_tournament(self, tracks: list[Track]) -> TournamentProgress:
        n = len(tracks)
        return TournamentProgress(
            total_tracks=n,
            battles_completed=0,
            battles_remaining=n * (n - 1) // 2,
            current_round=1,
            total_rounds=1,
            eliminated_tracks=[],
            remaining_tracks=list(tracks),
            progress_percentage=0.0,
        )

    def update_progress(self, tournament: Tournament, completed_battle: Battle) -> TournamentProgress:
        if completed_battle.winner is None:
            return tournament.progress

        data: RoundRobinData = self.get_strategy_data(tournament)
        if data.current_fixture_index >= len(data.fixtures):
            return self._ignore(tournament, completed_battle, "all fixtures already played")

        fixture = data.fixtures[data.current_fixture_index]
        if not fixture.matches(completed_battle):
            return self._ignore(
                tournament, completed_battle,
                f"expected fixture {fixture.track_a_id} vs {fixture.track_b_id}",
            )

        fixture.record(completed_battle)
        data.current_fixture_index += 1
        _apply_result(data.standings, completed_battle)
        self.update_strategy_data(tournament, data)

        progress = tournament.progress.copy()
        progress.battles_completed += 1
        progress.battles_remaining = len(data.fixtures) - data.current_fixture_index
        progress.progress_percentage = percentage(data.current_fixture_index, len(data.fixtures))
        return progress

    def get_next_matchup(self, tournament: Tournament) -> BattleMatchup | None:
        data: RoundRobinData = self.get_strategy_data(tournament)
        if data.current_fixture_index >= len(data.fixtures):
            return None

        fixture = data.fixtures[data.current_fixture_index]
        return self._matchup_for(
            tournament,
            fixture,
            round=1,
            metadata={
                "battle_type": "roundrobin",
                "fixture_index": data.current_fixture_index,
                "total_fixtures": len(data.fixtures),
            },
        )

    def is_completed(self, tournament: Tournament) -> bool:
        data: RoundRobinData = self.get_strategy_data(tournament)
        return data.current_fixture_index >= len(data.fixtures)

    def build_data(self, tournament: Tournament) -> RoundRobinData:
        fixtures = self._shuffle(all_pairings([t.id for t in tournament.tracks]))
        logger.info(
            "Round robin %s: %d fixtures scheduled for %d tracks",
            tournament.id, len(fixtures), len(tournament.tracks),
        )
        return RoundRobinData(
            fixtures=fixtures,
            standings=initial_standings(tournament.tracks),
            current_fixture_index=0,
        )

    def load_data(self, raw: dict[str, Any]) -> RoundRobinData:
        return RoundRobinData.from_dict(raw)

    def standings(self, tournament: Tournament) -> list[Standing]:
        data: RoundRobinData = self.get_strategy_data(tournament)
        return sort_standings(data.standings)

    def _champion(self, tournament: Tournament) -> Track | None:
        data: RoundRobinData = self.get_strategy_data(tournament)
        return self._top_of(tournament, data.standings)


def _apply_result(standings: list[Standing], battle: Battle) -> None:
    for standing in standings:
        if standing.track_id == battle.winner:
            standing.record_win(POINTS_PER_WIN)
        elif standing.track_id == battle.loser_id:
            standing.record_loss()
