"""
Core value types — tracks, battles, tournament progress and the tournament
record itself.

Tracks are immutable; the engine only ever classifies them (remaining,
eliminated, qualified).  Tournament and TournamentProgress are mutable and
owned by TournamentManager; strategies update them through the
TournamentStrategy interface only.

Every type round-trips through to_dict()/from_dict() using JSON-safe values
so the snapshot store can persist them with json.dumps().
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal

from trackbattle.errors import BattleAlreadyCompletedError, InvalidVoteError

TournamentStatus = Literal["active", "paused", "completed"]
TournamentMode = Literal["elimination", "deathmatch", "groups", "roundrobin", "swiss"]


@dataclass(frozen=True)
class Track:
    """A playable track.  Only `id` matters to the engine."""

    id: str
    name: str
    artists: tuple[str, ...] = ()
    album: str = ""
    duration_ms: int = 0
    preview_url: str | None = None

    @property
    def has_preview(self) -> bool:
        return bool(self.preview_url)

    @property
    def display_name(self) -> str:
        if not self.artists:
            return self.name
        return f"{self.name} — {', '.join(self.artists)}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "artists": list(self.artists),
            "album": self.album,
            "duration_ms": self.duration_ms,
            "preview_url": self.preview_url,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Track:
        return cls(
            id=str(raw["id"]),
            name=str(raw.get("name", raw["id"])),
            artists=tuple(str(a) for a in raw.get("artists") or ()),
            album=str(raw.get("album") or ""),
            duration_ms=int(raw.get("duration_ms") or 0),
            preview_url=raw.get("preview_url"),
        )


@dataclass(frozen=True)
class BattleVote:
    id: str
    track_id: str
    timestamp: datetime
    user_id: str = "anonymous"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "track_id": self.track_id,
            "timestamp": self.timestamp.isoformat(),
            "user_id": self.user_id,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> BattleVote:
        return cls(
            id=str(raw["id"]),
            track_id=str(raw["track_id"]),
            timestamp=datetime.fromisoformat(raw["timestamp"]),
            user_id=str(raw.get("user_id", "anonymous")),
        )


@dataclass
class Battle:
    """Two tracks, one vote.  `winner` holds the winning track id once decided."""

    id: str
    track_a: Track
    track_b: Track
    winner: str | None = None
    votes: list[BattleVote] = field(default_factory=list)
    created_at: datetime = field(default_factory=datetime.now)
    completed_at: datetime | None = None

    @property
    def track_ids(self) -> frozenset[str]:
        return frozenset((self.track_a.id, self.track_b.id))

    @property
    def loser_id(self) -> str | None:
        if self.winner is None:
            return None
        return self.track_b.id if self.winner == self.track_a.id else self.track_a.id

    def involves(self, track_a_id: str, track_b_id: str) -> bool:
        """True when this battle is between exactly these two tracks (any order)."""
        return self.track_ids == frozenset((track_a_id, track_b_id))

    def record_vote(
        self,
        vote_id: str,
        track_id: str,
        user_id: str = "anonymous",
        at: datetime | None = None,
    ) -> BattleVote:
        """Decide the battle.  A battle accepts exactly one vote."""
        if self.winner is not None:
            raise BattleAlreadyCompletedError(f"Battle {self.id} is already completed")
        if track_id not in self.track_ids:
            raise InvalidVoteError(
                f"Invalid vote: track {track_id!r} is not part of battle {self.id}"
            )
        timestamp = at or datetime.now()
        vote = BattleVote(id=vote_id, track_id=track_id, timestamp=timestamp, user_id=user_id)
        self.votes.append(vote)
        self.winner = track_id
        self.completed_at = timestamp
        return vote

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "track_a": self.track_a.to_dict(),
            "track_b": self.track_b.to_dict(),
            "winner": self.winner,
            "votes": [v.to_dict() for v in self.votes],
            "created_at": self.created_at.isoformat(),
            "completed_at": _iso(self.completed_at),
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Battle:
        return cls(
            id=str(raw["id"]),
            track_a=Track.from_dict(raw["track_a"]),
            track_b=Track.from_dict(raw["track_b"]),
            winner=raw.get("winner"),
            votes=[BattleVote.from_dict(v) for v in raw.get("votes") or []],
            created_at=_parse_dt(raw.get("created_at")) or datetime.now(),
            completed_at=_parse_dt(raw.get("completed_at")),
        )


@dataclass
class TournamentProgress:
    """
    Aggregate progress snapshot.

    For bracket modes `eliminated_tracks` and `remaining_tracks` partition the
    tournament's tracks.  Non-eliminating modes keep every track in
    `remaining_tracks` and never eliminate.
    """

    total_tracks: int
    battles_completed: int = 0
    battles_remaining: int = 0
    current_round: int = 1
    total_rounds: int = 1
    eliminated_tracks: list[Track] = field(default_factory=list)
    remaining_tracks: list[Track] = field(default_factory=list)
    progress_percentage: float = 0.0

    def copy(self) -> TournamentProgress:
        """Shallow copy with fresh track lists so callers can mutate safely."""
        return dataclasses.replace(
            self,
            eliminated_tracks=list(self.eliminated_tracks),
            remaining_tracks=list(self.remaining_tracks),
        )

    def remaining_ids(self) -> set[str]:
        return {t.id for t in self.remaining_tracks}

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_tracks": self.total_tracks,
            "battles_completed": self.battles_completed,
            "battles_remaining": self.battles_remaining,
            "current_round": self.current_round,
            "total_rounds": self.total_rounds,
            "eliminated_tracks": [t.to_dict() for t in self.eliminated_tracks],
            "remaining_tracks": [t.to_dict() for t in self.remaining_tracks],
            "progress_percentage": self.progress_percentage,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> TournamentProgress:
        return cls(
            total_tracks=int(raw["total_tracks"]),
            battles_completed=int(raw.get("battles_completed", 0)),
            battles_remaining=int(raw.get("battles_remaining", 0)),
            current_round=int(raw.get("current_round", 1)),
            total_rounds=int(raw.get("total_rounds", 1)),
            eliminated_tracks=[Track.from_dict(t) for t in raw.get("eliminated_tracks") or []],
            remaining_tracks=[Track.from_dict(t) for t in raw.get("remaining_tracks") or []],
            progress_percentage=float(raw.get("progress_percentage", 0.0)),
        )


@dataclass
class BattleMatchup:
    """A proposed pair for the next battle, optionally tagged with round/group."""

    track_a: Track
    track_b: Track
    round: int | None = None
    group: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def track_ids(self) -> frozenset[str]:
        return frozenset((self.track_a.id, self.track_b.id))

    def matches(self, battle: Battle) -> bool:
        return self.track_ids == battle.track_ids

    def to_dict(self) -> dict[str, Any]:
        return {
            "track_a": self.track_a.to_dict(),
            "track_b": self.track_b.to_dict(),
            "round": self.round,
            "group": self.group,
            "metadata": dict(self.metadata),
        }


@dataclass
class Tournament:
    id: str
    name: str
    playlist_id: str
    mode: TournamentMode
    tracks: list[Track]
    progress: TournamentProgress
    status: TournamentStatus = "active"
    mode_config: dict[str, Any] = field(default_factory=dict)
    battles: list[Battle] = field(default_factory=list)
    champion: Track | None = None
    created_at: datetime = field(default_factory=datetime.now)
    completed_at: datetime | None = None
    last_battle_at: datetime | None = None
    # mode tag → that strategy's private data; touched only by the strategy
    strategy_data: dict[str, Any] = field(default_factory=dict)

    def find_track(self, track_id: str) -> Track | None:
        for track in self.tracks:
            if track.id == track_id:
                return track
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "playlist_id": self.playlist_id,
            "status": self.status,
            "mode": self.mode,
            "mode_config": dict(self.mode_config),
            "tracks": [t.to_dict() for t in self.tracks],
            "battles": [b.to_dict() for b in self.battles],
            "champion": self.champion.to_dict() if self.champion else None,
            "created_at": self.created_at.isoformat(),
            "completed_at": _iso(self.completed_at),
            "last_battle_at": _iso(self.last_battle_at),
            "progress": self.progress.to_dict(),
            "strategy_data": {
                mode: dataclasses.asdict(data) if dataclasses.is_dataclass(data) else data
                for mode, data in self.strategy_data.items()
            },
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Tournament:
        """
        Rebuild a tournament from a snapshot entry.

        `mode` and `strategy_data` are passed through as found (possibly
        missing or raw dicts); TournamentManager migrates and hydrates them.
        """
        tracks = [Track.from_dict(t) for t in raw.get("tracks") or []]
        progress_raw = raw.get("progress")
        if progress_raw:
            progress = TournamentProgress.from_dict(progress_raw)
        else:
            progress = TournamentProgress(
                total_tracks=len(tracks),
                battles_remaining=max(0, len(tracks) - 1),
                remaining_tracks=list(tracks),
            )
        champion_raw = raw.get("champion")
        return cls(
            id=str(raw["id"]),
            name=str(raw.get("name", "")),
            playlist_id=str(raw.get("playlist_id", "")),
            mode=raw.get("mode"),  # type: ignore[arg-type]
            tracks=tracks,
            progress=progress,
            status=raw.get("status", "active"),
            mode_config=dict(raw.get("mode_config") or {}),
            battles=[Battle.from_dict(b) for b in raw.get("battles") or []],
            champion=Track.from_dict(champion_raw) if champion_raw else None,
            created_at=_parse_dt(raw.get("created_at")) or datetime.now(),
            completed_at=_parse_dt(raw.get("completed_at")),
            last_battle_at=_parse_dt(raw.get("last_battle_at")),
            strategy_data=dict(raw.get("strategy_data") or {}),
        )


@dataclass
class TournamentCreateRequest:
    playlist_id: str
    playlist_name: str
    tracks: list[Track]
    mode: str = "elimination"
    mode_config: dict[str, Any] = field(default_factory=dict)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _parse_dt(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None
