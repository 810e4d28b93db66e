"""
Tournament package.

create_strategy() is the single entry point for instantiating any mode.

To add a new mode:
  1. Create trackbattle/tournaments/<name>.py implementing TournamentStrategy
  2. Add it to _STRATEGIES and a case in create_strategy()
"""

from __future__ import annotations

import logging
from typing import Any

from trackbattle.tournaments.base import (
    Fixture,
    Shuffle,
    Standing,
    StrategyConfig,
    TournamentStrategy,
    random_shuffle,
    sort_standings,
)
from trackbattle.tournaments.deathmatch import DeathmatchStrategy
from trackbattle.tournaments.elimination import EliminationStrategy
from trackbattle.tournaments.events import (
    BattleAppliedEvent,
    TournamentCompleteEvent,
    TournamentEvent,
    TournamentStartEvent,
    TournamentStatusEvent,
)
from trackbattle.tournaments.groups import GroupsStrategy
from trackbattle.tournaments.round_robin import RoundRobinStrategy
from trackbattle.tournaments.swiss import SwissStrategy

__all__ = [
    # Base types
    "Fixture",
    "Shuffle",
    "Standing",
    "StrategyConfig",
    "TournamentStrategy",
    "random_shuffle",
    "sort_standings",
    # Events
    "TournamentEvent",
    "TournamentStartEvent",
    "BattleAppliedEvent",
    "TournamentStatusEvent",
    "TournamentCompleteEvent",
    # Implementations
    "EliminationStrategy",
    "RoundRobinStrategy",
    "SwissStrategy",
    "GroupsStrategy",
    "DeathmatchStrategy",
    # Factory
    "DEFAULT_MODE",
    "create_strategy",
    "get_available_modes",
    "get_mode_info",
    "is_known_mode",
]

logger = logging.getLogger(__name__)

DEFAULT_MODE = "elimination"

_STRATEGIES: dict[str, type[TournamentStrategy]] = {
    "elimination": EliminationStrategy,
    "roundrobin": RoundRobinStrategy,
    "swiss": SwissStrategy,
    "groups": GroupsStrategy,
    "deathmatch": DeathmatchStrategy,
}


def is_known_mode(mode: str | None) -> bool:
    return mode in _STRATEGIES


def create_strategy(
    mode: str | None,
    parameters: dict[str, Any] | None = None,
    shuffle: Shuffle | None = None,
) -> TournamentStrategy:
    """
    Instantiate the strategy for `mode`.

    Args:
        mode:       "elimination" | "roundrobin" | "swiss" | "groups" | "deathmatch".
                    Anything else falls back to elimination with a warning.
        parameters: mode_config of the tournament.  Only groups (group_size,
                    qualifiers_per_group) and deathmatch (target_score,
                    max_battles) read it; unknown keys are ignored.
        shuffle:    permutation function used for every draw.

    Raises:
        ValueError: a mode parameter is out of range.
    """
    params = parameters or {}
    match mode:
        case "elimination":
            return EliminationStrategy(shuffle=shuffle)
        case "roundrobin":
            return RoundRobinStrategy(shuffle=shuffle)
        case "swiss":
            return SwissStrategy(shuffle=shuffle)
        case "groups":
            return GroupsStrategy(
                shuffle=shuffle,
                group_size=int(params.get("group_size", 4)),
                qualifiers_per_group=int(params.get("qualifiers_per_group", 2)),
            )
        case "deathmatch":
            max_battles = params.get("max_battles")
            return DeathmatchStrategy(
                shuffle=shuffle,
                target_score=int(params.get("target_score", 10)),
                max_battles=int(max_battles) if max_battles is not None else None,
            )
        case _:
            logger.warning("Unknown tournament mode %r, falling back to %s", mode, DEFAULT_MODE)
            return EliminationStrategy(shuffle=shuffle)


def get_available_modes() -> list[dict[str, Any]]:
    """Every mode with its display name, description and minimum track count."""
    return [
        {
            "mode": mode,
            "name": cls.name,
            "description": cls.description,
            "min_tracks": cls.config.require_minimum_tracks,
            "allow_skipping": cls.config.allow_skipping,
        }
        for mode, cls in _STRATEGIES.items()
    ]


def get_mode_info(mode: str) -> dict[str, str]:
    cls = _STRATEGIES.get(mode, _STRATEGIES[DEFAULT_MODE])
    return {"name": cls.name, "description": cls.description}
