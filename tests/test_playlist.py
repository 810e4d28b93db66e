import tempfile
import unittest
from pathlib import Path

from trackbattle.playlist import load_playlist

EXAMPLE = Path(__file__).resolve().parent.parent / "playlist.example.yaml"


class LoadPlaylistTests(unittest.TestCase):
    def setUp(self) -> None:
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        self.dir = Path(tmp.name)

    def _write(self, text: str, name: str = "mix.yaml") -> Path:
        path = self.dir / name
        path.write_text(text, encoding="utf-8")
        return path

    def test_example_playlist_loads(self) -> None:
        playlist = load_playlist(EXAMPLE)
        self.assertEqual(playlist.id, "example-mix")
        self.assertEqual(len(playlist.tracks), 8)
        self.assertEqual(playlist.tracks[0].id, "trk-01")
        self.assertEqual(playlist.tracks[2].artists, ("Ember", "Ash Lane"))
        self.assertTrue(all(t.has_preview for t in playlist.tracks_with_preview))

    def test_missing_file_raises(self) -> None:
        with self.assertRaises(FileNotFoundError):
            load_playlist(self.dir / "absent.yaml")

    def test_name_and_id_default_to_file_stem(self) -> None:
        playlist = load_playlist(self._write("tracks:\n  - {id: a, name: A}\n", "road-trip.yaml"))
        self.assertEqual((playlist.id, playlist.name), ("road-trip", "road-trip"))

    def test_single_artist_string(self) -> None:
        playlist = load_playlist(self._write("tracks:\n  - {id: a, name: A, artists: Solo}\n"))
        self.assertEqual(playlist.tracks[0].artists, ("Solo",))
        self.assertEqual(playlist.tracks[0].display_name, "A — Solo")

    def test_track_without_name_rejected(self) -> None:
        with self.assertRaises(ValueError):
            load_playlist(self._write("tracks:\n  - {id: a}\n"))

    def test_duplicate_ids_rejected(self) -> None:
        with self.assertRaises(ValueError):
            load_playlist(self._write("tracks:\n  - {id: a, name: A}\n  - {id: a, name: B}\n"))

    def test_empty_file_has_no_tracks(self) -> None:
        self.assertEqual(load_playlist(self._write("")).tracks, [])
