"""
Local track supply: a playlist described in YAML.

    id: road-trip
    name: Road Trip
    tracks:
      - id: t1
        name: Song One
        artists: [Artist A]
        album: First Album
        duration_ms: 201000
        preview_url: https://example.com/t1.mp3
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import yaml

from trackbattle.models import Track


@dataclass
class Playlist:
    id: str
    name: str
    tracks: list[Track] = field(default_factory=list)

    @property
    def tracks_with_preview(self) -> list[Track]:
        return [t for t in self.tracks if t.has_preview]


def load_playlist(path: str | Path) -> Playlist:
    """
    Load a playlist file.

    Raises:
        FileNotFoundError: the file is missing.
        ValueError: a track has no id or name, or an id appears twice.
    """
    playlist_path = Path(path)
    if not playlist_path.exists():
        raise FileNotFoundError(f"Playlist file not found: {playlist_path.resolve()}")

    with playlist_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    if not isinstance(raw, dict):
        raise ValueError(f"Invalid playlist {playlist_path}: top level must be a mapping")

    tracks: list[Track] = []
    seen: set[str] = set()
    for index, entry in enumerate(raw.get("tracks") or []):
        if not isinstance(entry, dict) or not entry.get("id") or not entry.get("name"):
            raise ValueError(f"Invalid playlist {playlist_path}: track #{index + 1} needs an id and a name")
        if isinstance(entry.get("artists"), str):
            entry = {**entry, "artists": [entry["artists"]]}
        track = Track.from_dict(entry)
        if track.id in seen:
            raise ValueError(f"Invalid playlist {playlist_path}: duplicate track id {track.id!r}")
        seen.add(track.id)
        tracks.append(track)

    return Playlist(
        id=str(raw.get("id") or playlist_path.stem),
        name=str(raw.get("name") or playlist_path.stem),
        tracks=tracks,
    )
