"""
Tournament event dataclasses — the shared language between TournamentManager
and any consumer (CLI display, web API, tests).

All events are immutable.  dataclasses.asdict() serialises them to
JSON-compatible dicts apart from the timestamps.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

StatusChange = Literal["paused", "resumed", "continued", "deleted"]


@dataclass(frozen=True)
class TournamentStartEvent:
    """Fired once after a tournament is created."""

    tournament_id: str
    mode: str
    track_names: list[str]          # in original track order
    total_rounds: int
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass(frozen=True)
class BattleAppliedEvent:
    """Fired after a completed battle has been applied to the active tournament."""

    tournament_id: str
    battle_id: str
    winner_id: str
    loser_id: str
    battles_completed: int
    battles_remaining: int
    progress_percentage: float


@dataclass(frozen=True)
class TournamentStatusEvent:
    """Fired on pause, resume, continue and delete."""

    tournament_id: str
    change: StatusChange
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass(frozen=True)
class TournamentCompleteEvent:
    """Fired once the tournament has a champion (or ran out of battles)."""

    tournament_id: str
    champion_id: str | None
    champion_name: str | None
    battles_completed: int
    timestamp: datetime = field(default_factory=datetime.now)


# Union type for type-safe pattern matching in consumers
TournamentEvent = (
    TournamentStartEvent
    | BattleAppliedEvent
    | TournamentStatusEvent
    | TournamentCompleteEvent
)
