"""Tests for SwissStrategy — round count, pairing, byes and termination."""

from __future__ import annotations

import unittest

from trackbattle.tournaments.swiss import (
    SwissData,
    SwissStanding,
    SwissStrategy,
    pair_by_standings,
    swiss_rounds,
)

from tests._helpers import apply, make_battle, make_tracks, new_tournament, play_next, play_out


def make_strategy() -> SwissStrategy:
    return SwissStrategy(shuffle=list)


class TestRoundCount:
    def test_minimum_three_rounds(self):
        assert swiss_rounds(4) == 3
        assert swiss_rounds(2) == 3

    def test_log_scaled_rounds(self):
        assert swiss_rounds(5) == 4
        assert swiss_rounds(8) == 4
        assert swiss_rounds(9) == 5
        assert swiss_rounds(16) == 5

    def test_initial_progress(self):
        progress = make_strategy().initialize_tournament(make_tracks(6))
        assert progress.total_rounds == 4
        assert progress.battles_remaining == 12
        assert progress.current_round == 1

    def test_minimum_four_tracks(self):
        assert not make_strategy().validate_tracks(make_tracks(3))
        assert make_strategy().validate_tracks(make_tracks(4))


class TestPairing:
    def test_first_round_pairs_adjacent_seeds(self):
        strategy = make_strategy()
        tournament = new_tournament(strategy, make_tracks(4))
        data: SwissData = strategy.get_strategy_data(tournament)
        pairs = [(p.track_a_id, p.track_b_id) for p in data.rounds[0].pairings]
        assert pairs == [("t1", "t2"), ("t3", "t4")]

    def test_avoids_rematch_when_possible(self):
        standings = [
            SwissStanding(track_id="a", seed=0, played=1, won=1, points=1, opponents=["b"]),
            SwissStanding(track_id="b", seed=1, played=1, lost=1, opponents=["a"]),
            SwissStanding(track_id="c", seed=2, played=1, won=1, points=1, opponents=["d"]),
            SwissStanding(track_id="d", seed=3, played=1, lost=1, opponents=["c"]),
        ]
        pairings, leftover = pair_by_standings(standings)
        pairs = [(p.track_a_id, p.track_b_id) for p in pairings]
        assert pairs == [("a", "c"), ("b", "d")]
        assert leftover is None

    def test_falls_back_to_rematch(self):
        standings = [
            SwissStanding(track_id="a", seed=0, opponents=["b"]),
            SwissStanding(track_id="b", seed=1, opponents=["a"]),
        ]
        pairings, leftover = pair_by_standings(standings)
        assert [(p.track_a_id, p.track_b_id) for p in pairings] == [("a", "b")]
        assert leftover is None

    def test_odd_count_leaves_lowest_ranked_over(self):
        standings = [SwissStanding(track_id=t, seed=i) for i, t in enumerate("abcde")]
        pairings, leftover = pair_by_standings(standings)
        assert len(pairings) == 2
        assert leftover.track_id == "e"


class SwissProgressTests(unittest.TestCase):
    def test_four_tracks_full_run(self):
        strategy = make_strategy()
        tournament = new_tournament(strategy, make_tracks(4))
        self.assertEqual(play_out(strategy, tournament), 6)

        data: SwissData = strategy.get_strategy_data(tournament)
        self.assertEqual(len(data.rounds), 3)
        self.assertTrue(all(r.completed for r in data.rounds))
        self.assertEqual(tournament.progress.current_round, 3)
        self.assertEqual(tournament.progress.battles_remaining, 0)

        standings = strategy.standings(tournament)
        self.assertEqual([s.track_id for s in standings], ["t1", "t2", "t3", "t4"])
        self.assertEqual([s.points for s in standings], [3, 2, 1, 0])

        strategy.complete_tournament(tournament)
        self.assertEqual(tournament.champion.id, "t1")

    def test_no_rematches_in_four_track_run(self):
        strategy = make_strategy()
        tournament = new_tournament(strategy, make_tracks(4))
        play_out(strategy, tournament)
        pairs = [b.track_ids for b in tournament.battles]
        self.assertEqual(len(pairs), len(set(pairs)))

    def test_termination_counts(self):
        for n in (4, 5, 7, 8):
            strategy = make_strategy()
            tournament = new_tournament(strategy, make_tracks(n))
            played = play_out(strategy, tournament, pick=lambda m: m.track_b)
            self.assertEqual(played, swiss_rounds(n) * (n // 2))

    def test_bye_scores_a_win_without_opponent(self):
        strategy = make_strategy()
        tournament = new_tournament(strategy, make_tracks(5))
        data: SwissData = strategy.get_strategy_data(tournament)
        self.assertEqual(data.rounds[0].bye_id, "t5")

        bye = next(s for s in data.standings if s.track_id == "t5")
        self.assertEqual((bye.points, bye.won, bye.played, bye.byes), (1, 1, 1, 1))
        self.assertEqual(bye.opponents, [])
        self.assertEqual(tournament.progress.battles_completed, 0)

    def test_round_advances_after_last_pairing(self):
        strategy = make_strategy()
        tournament = new_tournament(strategy, make_tracks(4))
        play_next(strategy, tournament)
        data: SwissData = strategy.get_strategy_data(tournament)
        self.assertEqual((data.current_round, data.current_pairing_index), (1, 1))

        play_next(strategy, tournament)
        self.assertEqual((data.current_round, data.current_pairing_index), (2, 0))
        self.assertEqual(len(data.rounds), 2)
        self.assertEqual(tournament.progress.current_round, 2)

    def test_wrong_pairing_is_ignored(self):
        strategy = make_strategy()
        tracks = make_tracks(4)
        tournament = new_tournament(strategy, tracks)
        with self.assertLogs("trackbattle", level="WARNING"):
            apply(strategy, tournament, make_battle(tracks[0], tracks[2], winner=tracks[0]))
        self.assertEqual(tournament.progress.battles_completed, 0)

    def test_null_winner_is_a_no_op(self):
        strategy = make_strategy()
        tracks = make_tracks(4)
        tournament = new_tournament(strategy, tracks)
        before = tournament.progress
        self.assertIs(strategy.update_progress(tournament, make_battle(tracks[0], tracks[1])), before)

    def test_no_matchup_after_last_round(self):
        strategy = make_strategy()
        tournament = new_tournament(strategy, make_tracks(4))
        play_out(strategy, tournament)
        self.assertTrue(strategy.is_completed(tournament))
        self.assertIsNone(strategy.get_next_matchup(tournament))

    def test_data_round_trips_through_dump_and_load(self):
        strategy = make_strategy()
        tournament = new_tournament(strategy, make_tracks(5))
        play_next(strategy, tournament)
        data = strategy.get_strategy_data(tournament)

        restored = strategy.load_data(strategy.dump_data(data))
        self.assertEqual(restored, data)
