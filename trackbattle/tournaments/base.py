"""
Tournament abstractions — shared types and the TournamentStrategy base class.

All tournament modes (Elimination, Round Robin, Swiss, Groups, Deathmatch)
inherit from TournamentStrategy and implement the same contract, so the
manager, the mediator and every interface drive them identically:

    initialize_tournament → (get_next_matchup → update_progress → is_completed)*
                          → complete_tournament

A strategy object is stateless apart from its shuffle function; everything
that must survive a pause or a reload lives in the tournament's
`strategy_data[mode]` entry as a plain dataclass.
"""

from __future__ import annotations

import dataclasses
import logging
import random
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, ClassVar

from trackbattle.models import (
    Battle,
    BattleMatchup,
    Tournament,
    TournamentMode,
    TournamentProgress,
    Track,
)

logger = logging.getLogger(__name__)


# Type alias: returns a permutation of its argument without mutating it.
# Tests pass `list` for a deterministic identity shuffle.
Shuffle = Callable[[list], list]


def random_shuffle(items: list) -> list:
    return random.sample(items, len(items))


@dataclass(frozen=True)
class StrategyConfig:
    require_minimum_tracks: int
    allow_skipping: bool = False
    supports_pausing: bool = True
    supports_resuming: bool = True


@dataclass
class Fixture:
    """One scheduled pairing inside a strategy's private data."""

    track_a_id: str
    track_b_id: str
    completed: bool = False
    winner_id: str | None = None
    battle_id: str | None = None

    def matches(self, battle: Battle) -> bool:
        return battle.involves(self.track_a_id, self.track_b_id)

    def record(self, battle: Battle) -> None:
        self.completed = True
        self.winner_id = battle.winner
        self.battle_id = battle.id

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Fixture:
        return cls(
            track_a_id=str(raw["track_a_id"]),
            track_b_id=str(raw["track_b_id"]),
            completed=bool(raw.get("completed", False)),
            winner_id=raw.get("winner_id"),
            battle_id=raw.get("battle_id"),
        )


@dataclass
class Standing:
    """Running tally for one track across all completed battles."""

    track_id: str
    seed: int = 0  # index in the tournament's original track list
    played: int = 0
    won: int = 0
    lost: int = 0
    points: int = 0

    def record_win(self, points: int) -> None:
        self.played += 1
        self.won += 1
        self.points += points

    def record_loss(self) -> None:
        self.played += 1
        self.lost += 1

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Standing:
        return cls(
            track_id=str(raw["track_id"]),
            seed=int(raw.get("seed", 0)),
            played=int(raw.get("played", 0)),
            won=int(raw.get("won", 0)),
            lost=int(raw.get("lost", 0)),
            points=int(raw.get("points", 0)),
        )


def sort_standings(standings: list[Standing]) -> list[Standing]:
    """Points desc, wins desc, losses asc, then original track order."""
    return sorted(standings, key=lambda s: (-s.points, -s.won, s.lost, s.seed))


def initial_standings(tracks: list[Track]) -> list[Standing]:
    return [Standing(track_id=t.id, seed=i) for i, t in enumerate(tracks)]


def all_pairings(track_ids: list[str]) -> list[Fixture]:
    """Every unordered pair exactly once, in input order."""
    return [
        Fixture(track_a_id=track_ids[i], track_b_id=track_ids[j])
        for i in range(len(track_ids))
        for j in range(i + 1, len(track_ids))
    ]


def percentage(done: int, total: int) -> float:
    if total <= 0:
        return 100.0
    return min(100.0, done / total * 100)


def partition_holds(tracks: list[Track], progress: TournamentProgress) -> bool:
    """
    True when eliminated and remaining tracks split `tracks` exactly:
    no track in both lists, none dropped, none duplicated.
    """
    eliminated = [t.id for t in progress.eliminated_tracks]
    remaining = [t.id for t in progress.remaining_tracks]
    combined = eliminated + remaining
    return len(combined) == len(set(combined)) and set(combined) == {t.id for t in tracks}


# ------------------------------------------------------------------ #
# Bracket helpers (elimination rounds and the groups playoff)         #
# ------------------------------------------------------------------ #

@dataclass
class BracketRound:
    """A single knock-out round: a queue of matchups plus the bye, if any."""

    round_number: int = 0
    matchups: list[Fixture] = field(default_factory=list)
    bye_id: str | None = None

    def pending(self, eligible: set[str]) -> Fixture | None:
        """First undecided matchup whose tracks are both still alive."""
        for matchup in self.matchups:
            if matchup.completed:
                continue
            if matchup.track_a_id in eligible and matchup.track_b_id in eligible:
                return matchup
        return None

    def index_of(self, matchup: Fixture) -> int:
        return self.matchups.index(matchup)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> BracketRound:
        return cls(
            round_number=int(raw.get("round_number", 0)),
            matchups=[Fixture.from_dict(m) for m in raw.get("matchups") or []],
            bye_id=raw.get("bye_id"),
        )


def draw_bracket_round(
    track_ids: list[str],
    round_number: int,
    shuffle: Shuffle,
    label: str,
) -> BracketRound:
    """
    Shuffle the surviving tracks and pair them in order.

    With an odd count the last track after shuffling sits the round out and
    advances automatically.
    """
    drawn = shuffle(list(track_ids))
    bye_id = drawn.pop() if len(drawn) % 2 == 1 else None
    matchups = [
        Fixture(track_a_id=drawn[i], track_b_id=drawn[i + 1])
        for i in range(0, len(drawn), 2)
    ]
    if bye_id is not None:
        logger.info("%s round %d: track %s advances with a bye", label, round_number, bye_id)
    logger.info("%s round %d: %d matchup(s) drawn", label, round_number, len(matchups))
    return BracketRound(round_number=round_number, matchups=matchups, bye_id=bye_id)


def advance_bracket(
    bracket: BracketRound,
    battle: Battle,
    survivors: list[str],
    shuffle: Shuffle,
    label: str,
) -> BracketRound:
    """
    Record `battle` in the current round and draw the next round once no
    playable matchup is left.  `survivors` are the track ids still alive
    after the battle.
    """
    for matchup in bracket.matchups:
        if not matchup.completed and matchup.matches(battle):
            matchup.record(battle)
            break
    else:
        logger.warning(
            "%s: battle %s (%s vs %s) was not in the round %d bracket",
            label, battle.id, battle.track_a.id, battle.track_b.id, bracket.round_number,
        )

    if len(survivors) > 1 and bracket.pending(set(survivors)) is None:
        return draw_bracket_round(survivors, bracket.round_number + 1, shuffle, label)
    return bracket


# ------------------------------------------------------------------ #
# Strategy base class                                                 #
# ------------------------------------------------------------------ #

class TournamentStrategy(ABC):
    """
    Abstract base class for all tournament modes.

    Expected-empty states are never exceptions: no matchup is None, an
    unfinished tournament is False, a battle without a winner leaves the
    progress untouched.  Battles that contradict the strategy's state are
    logged and ignored rather than guessed at.
    """

    mode: ClassVar[TournamentMode]
    name: ClassVar[str]
    description: ClassVar[str]
    config: ClassVar[StrategyConfig]

    def __init__(self, shuffle: Shuffle | None = None) -> None:
        self._shuffle = shuffle or random_shuffle

    # ------------------------------------------------------------------ #
    # Lifecycle                                                            #
    # ------------------------------------------------------------------ #

    @abstractmethod
    def initialize_tournament(self, tracks: list[Track]) -> TournamentProgress:
        """Starting progress for `tracks`; pure, no strategy data involved."""
        ...  # pragma: no cover

    @abstractmethod
    def update_progress(self, tournament: Tournament, completed_battle: Battle) -> TournamentProgress:
        """
        Apply one decided battle.

        Returns a new TournamentProgress (the tournament's own progress object
        is returned unchanged when nothing applies) and advances the strategy
        data as a side effect.
        """
        ...  # pragma: no cover

    @abstractmethod
    def get_next_matchup(self, tournament: Tournament) -> BattleMatchup | None:
        ...  # pragma: no cover

    @abstractmethod
    def is_completed(self, tournament: Tournament) -> bool:
        ...  # pragma: no cover

    def complete_tournament(self, tournament: Tournament, at: datetime | None = None) -> Tournament:
        """Mark the tournament completed, crown the champion, close the progress."""
        champion = self._champion(tournament)
        progress = tournament.progress.copy()
        progress.progress_percentage = 100.0
        progress.battles_remaining = 0

        tournament.status = "completed"
        tournament.completed_at = at or datetime.now()
        tournament.progress = progress
        if champion is not None:
            tournament.champion = champion
        else:
            logger.warning("Tournament %s completed without a champion", tournament.id)
        return tournament

    # ------------------------------------------------------------------ #
    # Validation                                                           #
    # ------------------------------------------------------------------ #

    def validate_tracks(self, tracks: list[Track]) -> bool:
        return len(tracks) >= self.config.require_minimum_tracks

    def can_start_battle(self, tournament: Tournament) -> bool:
        return (
            tournament.status == "active"
            and not self.is_completed(tournament)
            and len(tournament.progress.remaining_tracks) >= 2
        )

    # ------------------------------------------------------------------ #
    # Strategy data                                                        #
    # ------------------------------------------------------------------ #

    def get_strategy_data(self, tournament: Tournament) -> Any:
        """
        Return this mode's data, building it on first access.

        Repeat calls return the same object.  Raw dicts left by a snapshot
        load are hydrated into the typed dataclass in place.
        """
        data = tournament.strategy_data.get(self.mode)
        if data is None:
            data = self.build_data(tournament)
            tournament.strategy_data[self.mode] = data
        elif isinstance(data, dict):
            data = self.load_data(data)
            tournament.strategy_data[self.mode] = data
        return data

    def update_strategy_data(self, tournament: Tournament, data: Any) -> None:
        tournament.strategy_data[self.mode] = data

    @abstractmethod
    def build_data(self, tournament: Tournament) -> Any:
        """Fresh strategy data for a tournament that has none yet."""
        ...  # pragma: no cover

    @abstractmethod
    def load_data(self, raw: dict[str, Any]) -> Any:
        ...  # pragma: no cover

    def dump_data(self, data: Any) -> dict[str, Any]:
        return dataclasses.asdict(data)

    # ------------------------------------------------------------------ #
    # Standings and recovery                                               #
    # ------------------------------------------------------------------ #

    def standings(self, tournament: Tournament) -> list[Standing]:
        """Win/loss table rebuilt from the battle history, one point per win."""
        table = {s.track_id: s for s in initial_standings(tournament.tracks)}
        for battle in tournament.battles:
            if battle.winner is None:
                continue
            winner = table.get(battle.winner)
            loser = table.get(battle.loser_id or "")
            if winner is not None:
                winner.record_win(1)
            if loser is not None:
                loser.record_loss()
        return sort_standings(list(table.values()))

    def repair(self, tournament: Tournament) -> bool:
        """Rebuild a desynchronised matchup queue.  Returns True if anything changed."""
        return False

    # ------------------------------------------------------------------ #
    # Helpers for subclasses                                               #
    # ------------------------------------------------------------------ #

    @abstractmethod
    def _champion(self, tournament: Tournament) -> Track | None:
        ...  # pragma: no cover

    def _matchup_for(
        self,
        tournament: Tournament,
        fixture: Fixture,
        *,
        round: int | None = None,
        group: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> BattleMatchup | None:
        if fixture.track_a_id == fixture.track_b_id:
            return None
        track_a = tournament.find_track(fixture.track_a_id)
        track_b = tournament.find_track(fixture.track_b_id)
        if track_a is None or track_b is None:
            return None
        return BattleMatchup(
            track_a=track_a,
            track_b=track_b,
            round=round,
            group=group,
            metadata=metadata or {},
        )

    def _top_of(self, tournament: Tournament, standings: list[Standing]) -> Track | None:
        ranked = sort_standings(standings)
        if not ranked:
            return None
        return tournament.find_track(ranked[0].track_id)

    def _ignore(self, tournament: Tournament, battle: Battle, reason: str) -> TournamentProgress:
        logger.warning(
            "%s tournament %s: ignoring battle %s (%s vs %s): %s",
            self.mode, tournament.id, battle.id, battle.track_a.id, battle.track_b.id, reason,
        )
        return tournament.progress
