"""
Configuration loading from config.yaml.

Uses typed dataclasses throughout so the rest of the app gets IDE
completion and type-checker support without touching raw dicts.
"""

from __future__ import annotations

import logging
import logging.handlers
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from trackbattle.tournaments import get_available_modes

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class TournamentDefaults:
    default_mode: str = "elimination"
    group_size: int = 4
    qualifiers_per_group: int = 2
    target_score: int = 10
    max_battles: int | None = None   # None = max(50, tracks * 5)


@dataclass
class StorageConfig:
    path: str = "./data/tournaments.json"
    max_age_days: int = 30   # snapshots older than this are discarded on load


@dataclass
class LoggingConfig:
    level: str = "INFO"
    file: str = "./logs/trackbattle.log"


@dataclass
class Config:
    tournament: TournamentDefaults = field(default_factory=TournamentDefaults)
    storage: StorageConfig = field(default_factory=StorageConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    playlist_path: str | None = None

    @property
    def storage_path(self) -> Path:
        return Path(self.storage.path)

    def mode_parameters(self, mode: str) -> dict[str, Any]:
        return mode_parameters(self.tournament, mode)


def mode_parameters(defaults: TournamentDefaults, mode: str) -> dict[str, Any]:
    """The mode_config a new tournament of `mode` starts with."""
    match mode:
        case "groups":
            return {
                "group_size": defaults.group_size,
                "qualifiers_per_group": defaults.qualifiers_per_group,
            }
        case "deathmatch":
            params: dict[str, Any] = {"target_score": defaults.target_score}
            if defaults.max_battles is not None:
                params["max_battles"] = defaults.max_battles
            return params
        case _:
            return {}


def load_config(path: str | Path = "config.yaml") -> Config:
    """
    Load and validate config.yaml.

    Raises:
        FileNotFoundError: config.yaml is missing.
        ValueError: required fields are absent or invalid.
    """
    cfg_path = Path(path)
    if not cfg_path.exists():
        raise FileNotFoundError(
            f"Config file not found: {cfg_path.resolve()}\n"
            "Copy config.example.yaml to config.yaml and adjust it."
        )

    with cfg_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    if not isinstance(raw, dict):
        raise ValueError("Invalid config.yaml structure: top level must be a mapping")

    try:
        tournament_raw = raw.get("tournament") or {}
        max_battles = tournament_raw.get("max_battles")
        tournament_cfg = TournamentDefaults(
            default_mode=str(tournament_raw.get("default_mode", "elimination")),
            group_size=int(tournament_raw.get("group_size", 4)),
            qualifiers_per_group=int(tournament_raw.get("qualifiers_per_group", 2)),
            target_score=int(tournament_raw.get("target_score", 10)),
            max_battles=int(max_battles) if max_battles is not None else None,
        )

        storage_raw = raw.get("storage") or {}
        storage_cfg = StorageConfig(
            path=str(storage_raw.get("path", "./data/tournaments.json")),
            max_age_days=int(storage_raw.get("max_age_days", 30)),
        )

        logging_raw = raw.get("logging") or {}
        logging_cfg = LoggingConfig(
            level=str(logging_raw.get("level", "INFO")).upper(),
            file=str(logging_raw.get("file", "./logs/trackbattle.log")),
        )

        playlist = raw.get("playlist")
        config = Config(
            tournament=tournament_cfg,
            storage=storage_cfg,
            logging=logging_cfg,
            playlist_path=str(playlist) if playlist else None,
        )
        _validate(config)
        return config

    except (KeyError, TypeError, AttributeError) as exc:
        raise ValueError(f"Invalid config.yaml structure: {exc}") from exc


def _validate(config: Config) -> None:
    valid_modes = tuple(m["mode"] for m in get_available_modes())
    t = config.tournament
    if t.default_mode not in valid_modes:
        raise ValueError(
            f"tournament.default_mode must be one of {valid_modes}, got '{t.default_mode}'"
        )
    if t.group_size < 2:
        raise ValueError("tournament.group_size must be >= 2")
    if t.qualifiers_per_group < 1:
        raise ValueError("tournament.qualifiers_per_group must be >= 1")
    if t.target_score < 1:
        raise ValueError("tournament.target_score must be >= 1")
    if t.max_battles is not None and t.max_battles < 1:
        raise ValueError("tournament.max_battles must be >= 1")
    if config.storage.max_age_days < 1:
        raise ValueError("storage.max_age_days must be >= 1")
    if config.logging.level not in _LOG_LEVELS:
        raise ValueError(
            f"logging.level must be one of {_LOG_LEVELS}, got '{config.logging.level}'"
        )


def configure_logging(cfg: LoggingConfig, console: bool = True) -> None:
    """
    Route log records to a rotating file and, optionally, the console.

    The interactive CLI passes console=False so log lines do not interleave
    with its prompts.
    """
    log_file = Path(cfg.file)
    log_file.parent.mkdir(parents=True, exist_ok=True)

    handlers: list[logging.Handler] = [
        logging.handlers.RotatingFileHandler(
            log_file, maxBytes=2 * 1024 * 1024, backupCount=3,  # 2 MB × 3 files
            encoding="utf-8",
        ),
    ]
    if console:
        handlers.append(logging.StreamHandler())

    logging.basicConfig(
        level=getattr(logging, cfg.level, logging.INFO),
        format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
        handlers=handlers,
        force=True,
    )
