"""Snapshot persistence for tournaments.

Stores every tournament plus the active tournament id in a single local
JSON file.  A snapshot is all-or-nothing: a corrupt or stale file is
discarded as a whole.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Callable

logger = logging.getLogger(__name__)

_DEFAULT_PATH = Path("./data/tournaments.json")


@dataclass
class Snapshot:
    tournaments: list[dict[str, Any]] = field(default_factory=list)
    active_tournament_id: str | None = None
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "tournaments": self.tournaments,
            "active_tournament_id": self.active_tournament_id,
            "timestamp": self.timestamp.isoformat(),
        }


class SnapshotStore:
    def __init__(
        self,
        path: str | Path = _DEFAULT_PATH,
        max_age_days: int = 30,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.path = Path(path)
        self.max_age = timedelta(days=max_age_days)
        self._clock = clock

    def save(self, snapshot: Snapshot) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(snapshot.to_dict(), indent=2), encoding="utf-8")

    def load(self) -> Snapshot | None:
        if not self.path.exists():
            return None
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            timestamp = datetime.fromisoformat(raw["timestamp"])
            snapshot = Snapshot(
                tournaments=list(raw.get("tournaments") or []),
                active_tournament_id=raw.get("active_tournament_id"),
                timestamp=timestamp,
            )
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as exc:
            logger.warning("Discarding unreadable snapshot %s: %s", self.path, exc)
            return None

        age = self._clock() - snapshot.timestamp
        if age > self.max_age:
            logger.warning(
                "Discarding snapshot %s: %d days old (limit %d)",
                self.path, age.days, self.max_age.days,
            )
            return None
        return snapshot

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)
