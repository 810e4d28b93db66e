"""
Group stage followed by knock-out playoffs.

Phase 1 (groups):
- Tracks are shuffled and split into ceil(n / group_size) groups whose sizes
  differ by at most one, named "Group A", "Group B", ...
- Each group plays an internal round robin (3 points per win).  Groups are
  played one after the other, fixture by fixture, in their drawn order.

Phase 2 (playoffs):
- Starts once every group is complete.  The top `qualifiers_per_group`
  tracks of each group (ties broken by original track order) are pooled;
  everyone else is eliminated.
- The pool plays single-elimination rounds with the same mechanics as the
  elimination mode: shuffled pairings, a bye for an odd count, a new round
  drawn from the survivors once the current one is exhausted.
- The last track standing is the champion.
"""

from __future__ import annotations

import dataclasses
import logging
import math
import string
from dataclasses import dataclass, field
from typing import Any

from trackbattle.models import Battle, BattleMatchup, Tournament, TournamentProgress, Track
from trackbattle.tournaments.base import (
    BracketRound,
    Fixture,
    Shuffle,
    Standing,
    StrategyConfig,
    TournamentStrategy,
    advance_bracket,
    all_pairings,
    draw_bracket_round,
    partition_holds,
    percentage,
    sort_standings,
)

logger = logging.getLogger(__name__)

POINTS_PER_WIN = 3
DEFAULT_GROUP_SIZE = 4
DEFAULT_QUALIFIERS = 2

_LABEL = "Groups playoff"


@dataclass
class Group:
    name: str
    track_ids: list[str] = field(default_factory=list)
    fixtures: list[Fixture] = field(default_factory=list)
    standings: list[Standing] = field(default_factory=list)
    current_fixture_index: int = 0
    completed: bool = False

    @property
    def pending_fixture(self) -> Fixture | None:
        if self.current_fixture_index >= len(self.fixtures):
            return None
        return self.fixtures[self.current_fixture_index]

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Group:
        return cls(
            name=str(raw["name"]),
            track_ids=[str(t) for t in raw.get("track_ids") or []],
            fixtures=[Fixture.from_dict(f) for f in raw.get("fixtures") or []],
            standings=[Standing.from_dict(s) for s in raw.get("standings") or []],
            current_fixture_index=int(raw.get("current_fixture_index", 0)),
            completed=bool(raw.get("completed", False)),
        )


@dataclass
class GroupsData:
    groups: list[Group] = field(default_factory=list)
    current_group_index: int = 0
    playoff_phase: bool = False
    playoff_tracks: list[str] = field(default_factory=list)
    bracket: BracketRound = field(default_factory=BracketRound)
    playoff_matches: list[Fixture] = field(default_factory=list)

    @property
    def current_group(self) -> Group | None:
        if self.current_group_index >= len(self.groups):
            return None
        return self.groups[self.current_group_index]

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> GroupsData:
        return cls(
            groups=[Group.from_dict(g) for g in raw.get("groups") or []],
            current_group_index=int(raw.get("current_group_index", 0)),
            playoff_phase=bool(raw.get("playoff_phase", False)),
            playoff_tracks=[str(t) for t in raw.get("playoff_tracks") or []],
            bracket=BracketRound.from_dict(raw.get("bracket") or {}),
            playoff_matches=[Fixture.from_dict(f) for f in raw.get("playoff_matches") or []],
        )


def group_sizes(track_count: int, group_size: int) -> list[int]:
    """Sizes of ceil(n / group_size) groups, differing by at most one."""
    if track_count <= 0:
        return []
    count = math.ceil(track_count / group_size)
    base, extra = divmod(track_count, count)
    return [base + 1 if i < extra else base for i in range(count)]


def group_name(index: int) -> str:
    letters = string.ascii_uppercase
    if index < len(letters):
        return f"Group {letters[index]}"
    return f"Group {index + 1}"


class GroupsStrategy(TournamentStrategy):
    """Round-robin groups, then a knock-out bracket of the group leaders."""

    mode = "groups"
    name = "Group Stage + Playoffs"
    description = "Tracks compete in groups, top performers advance to elimination playoffs."
    config = StrategyConfig(require_minimum_tracks=6)

    def __init__(
        self,
        shuffle: Shuffle | None = None,
        group_size: int = DEFAULT_GROUP_SIZE,
        qualifiers_per_group: int = DEFAULT_QUALIFIERS,
    ) -> None:
        super().__init__(shuffle)
        if group_size < 2:
            raise ValueError(f"group_size must be at least 2, got {group_size}")
        if qualifiers_per_group < 1:
            raise ValueError(f"qualifiers_per_group must be at least 1, got {qualifiers_per_group}")
        self.group_size = group_size
        self.qualifiers_per_group = min(qualifiers_per_group, group_size - 1)

    # ------------------------------------------------------------------ #
    # Public interface                                                     #
    # ------------------------------------------------------------------ #

    def initialize_tournament(self, tracks: list[Track]) -> TournamentProgress:
        sizes = group_sizes(len(tracks), self.group_size)
        group_battles = sum(size * (size - 1) // 2 for size in sizes)
        pool = sum(self._qualifiers_for(size) for size in sizes)
        return TournamentProgress(
            total_tracks=len(tracks),
            battles_completed=0,
            battles_remaining=group_battles + max(0, pool - 1),
            current_round=1,
            total_rounds=2,
            eliminated_tracks=[],
            remaining_tracks=list(tracks),
            progress_percentage=0.0,
        )

    def update_progress(self, tournament: Tournament, completed_battle: Battle) -> TournamentProgress:
        if completed_battle.winner is None:
            return tournament.progress

        data: GroupsData = self.get_strategy_data(tournament)
        if data.playoff_phase:
            progress = self._update_playoffs(tournament, data, completed_battle)
        else:
            progress = self._update_group_stage(tournament, data, completed_battle)
        if progress is tournament.progress:
            return progress

        self.update_strategy_data(tournament, data)
        progress.battles_completed += 1
        progress.battles_remaining = self._remaining_battles(data)
        progress.progress_percentage = percentage(
            progress.battles_completed,
            progress.battles_completed + progress.battles_remaining,
        )

        if not partition_holds(tournament.tracks, progress):
            logger.warning(
                "Tournament %s: eliminated/remaining tracks no longer partition the track list",
                tournament.id,
            )
        return progress

    def get_next_matchup(self, tournament: Tournament) -> BattleMatchup | None:
        data: GroupsData = self.get_strategy_data(tournament)

        if data.playoff_phase:
            pending = data.bracket.pending(set(data.playoff_tracks))
            if pending is None:
                return None
            return self._matchup_for(
                tournament,
                pending,
                round=data.bracket.round_number,
                metadata={
                    "battle_type": "playoff",
                    "phase": "playoffs",
                    "matchup_index": data.bracket.index_of(pending),
                    "total_matchups": len(data.bracket.matchups),
                    "bye": data.bracket.bye_id,
                },
            )

        group = data.current_group
        if group is None or group.pending_fixture is None:
            return None
        return self._matchup_for(
            tournament,
            group.pending_fixture,
            round=1,
            group=group.name,
            metadata={
                "battle_type": "group",
                "phase": "groups",
                "group_index": data.current_group_index,
                "total_groups": len(data.groups),
                "fixture_index": group.current_fixture_index,
                "total_fixtures": len(group.fixtures),
            },
        )

    def is_completed(self, tournament: Tournament) -> bool:
        data: GroupsData = self.get_strategy_data(tournament)
        return data.playoff_phase and len(data.playoff_tracks) <= 1

    def build_data(self, tournament: Tournament) -> GroupsData:
        seeds = {t.id: i for i, t in enumerate(tournament.tracks)}
        drawn = self._shuffle([t.id for t in tournament.tracks])

        groups: list[Group] = []
        start = 0
        for index, size in enumerate(group_sizes(len(drawn), self.group_size)):
            members = drawn[start:start + size]
            start += size
            groups.append(
                Group(
                    name=group_name(index),
                    track_ids=members,
                    fixtures=self._shuffle(all_pairings(members)),
                    standings=[Standing(track_id=t, seed=seeds[t]) for t in members],
                )
            )
            if not groups[-1].fixtures:
                groups[-1].completed = True
            logger.info("%s: %s", groups[-1].name, ", ".join(members))

        data = GroupsData(groups=groups)
        _skip_completed_groups(data)
        return data

    def load_data(self, raw: dict[str, Any]) -> GroupsData:
        return GroupsData.from_dict(raw)

    def standings(self, tournament: Tournament) -> list[Standing]:
        """Group tables merged, with playoff wins counted at group-stage points."""
        data: GroupsData = self.get_strategy_data(tournament)
        table = {
            s.track_id: dataclasses.replace(s)
            for group in data.groups
            for s in group.standings
        }
        for match in data.playoff_matches:
            winner = table.get(match.winner_id or "")
            loser_id = match.track_b_id if match.winner_id == match.track_a_id else match.track_a_id
            loser = table.get(loser_id)
            if winner is not None:
                winner.record_win(POINTS_PER_WIN)
            if loser is not None:
                loser.record_loss()
        return sort_standings(list(table.values()))

    def repair(self, tournament: Tournament) -> bool:
        data: GroupsData = self.get_strategy_data(tournament)
        if not data.playoff_phase or len(data.playoff_tracks) < 2:
            return False
        if data.bracket.pending(set(data.playoff_tracks)) is not None:
            return False
        logger.warning("Tournament %s: playoff bracket exhausted early, drawing a new round",
                       tournament.id)
        data.bracket = draw_bracket_round(
            data.playoff_tracks, data.bracket.round_number + 1, self._shuffle, _LABEL
        )
        self.update_strategy_data(tournament, data)
        return True

    # ------------------------------------------------------------------ #
    # Internal helpers                                                     #
    # ------------------------------------------------------------------ #

    def _update_group_stage(
        self, tournament: Tournament, data: GroupsData, battle: Battle
    ) -> TournamentProgress:
        group = data.current_group
        if group is None:
            return self._ignore(tournament, battle, "no group has fixtures left")

        fixture = group.pending_fixture
        if fixture is None:
            return self._ignore(tournament, battle, f"{group.name} has no fixture pending")
        if not fixture.matches(battle):
            return self._ignore(
                tournament, battle,
                f"expected {group.name} fixture {fixture.track_a_id} vs {fixture.track_b_id}",
            )

        fixture.record(battle)
        group.current_fixture_index += 1
        for standing in group.standings:
            if standing.track_id == battle.winner:
                standing.record_win(POINTS_PER_WIN)
            elif standing.track_id == battle.loser_id:
                standing.record_loss()

        progress = tournament.progress.copy()
        if group.pending_fixture is None:
            group.completed = True
            _skip_completed_groups(data)
            logger.info("Tournament %s: %s complete", tournament.id, group.name)

        if all(g.completed for g in data.groups):
            self._start_playoffs(tournament, data, progress)
        return progress

    def _start_playoffs(
        self, tournament: Tournament, data: GroupsData, progress: TournamentProgress
    ) -> None:
        qualifiers: list[str] = []
        for group in data.groups:
            cutoff = self._qualifiers_for(len(group.track_ids))
            ranked = sort_standings(group.standings)
            qualifiers.extend(s.track_id for s in ranked[:cutoff])

        qualified = set(qualifiers)
        progress.eliminated_tracks.extend(
            t for t in progress.remaining_tracks if t.id not in qualified
        )
        progress.remaining_tracks = [t for t in progress.remaining_tracks if t.id in qualified]
        progress.current_round = 2

        data.playoff_phase = True
        data.playoff_tracks = qualifiers
        if len(qualifiers) > 1:
            data.bracket = draw_bracket_round(qualifiers, 1, self._shuffle, _LABEL)
        logger.info(
            "Tournament %s: group stage complete, %d track(s) qualified for the playoffs",
            tournament.id, len(qualifiers),
        )

    def _update_playoffs(
        self, tournament: Tournament, data: GroupsData, battle: Battle
    ) -> TournamentProgress:
        if len(battle.track_ids) != 2:
            return self._ignore(tournament, battle, "a track cannot battle itself")
        if battle.winner not in data.playoff_tracks:
            return self._ignore(tournament, battle, "winner is not a playoff track")
        if battle.loser_id not in data.playoff_tracks:
            return self._ignore(tournament, battle, "loser is not a playoff track")

        loser_id = battle.loser_id
        progress = tournament.progress.copy()
        loser = next((t for t in progress.remaining_tracks if t.id == loser_id), None)
        if loser is not None:
            progress.remaining_tracks = [t for t in progress.remaining_tracks if t.id != loser_id]
            progress.eliminated_tracks.append(loser)

        data.playoff_tracks = [t for t in data.playoff_tracks if t != loser_id]
        data.playoff_matches.append(
            Fixture(
                track_a_id=battle.track_a.id,
                track_b_id=battle.track_b.id,
                completed=True,
                winner_id=battle.winner,
                battle_id=battle.id,
            )
        )
        data.bracket = advance_bracket(
            data.bracket, battle, data.playoff_tracks, self._shuffle, _LABEL
        )
        return progress

    def _qualifiers_for(self, group_size: int) -> int:
        return max(1, min(self.qualifiers_per_group, group_size - 1))

    def _remaining_battles(self, data: GroupsData) -> int:
        if data.playoff_phase:
            return max(0, len(data.playoff_tracks) - 1)
        group_left = sum(len(g.fixtures) - g.current_fixture_index for g in data.groups)
        pool = sum(self._qualifiers_for(len(g.track_ids)) for g in data.groups)
        return group_left + max(0, pool - 1)

    def _champion(self, tournament: Tournament) -> Track | None:
        data: GroupsData = self.get_strategy_data(tournament)
        if data.playoff_phase and len(data.playoff_tracks) == 1:
            return tournament.find_track(data.playoff_tracks[0])
        return None


def _skip_completed_groups(data: GroupsData) -> None:
    # Single-track groups have no fixtures and are complete from the start
    while data.current_group is not None and data.current_group.completed:
        data.current_group_index += 1
