"""Tests for RoundRobinStrategy — fixture generation, strict order, standings."""

from __future__ import annotations

import itertools
import unittest

from trackbattle.tournaments.round_robin import RoundRobinStrategy

from tests._helpers import apply, make_battle, make_tracks, new_tournament, play_next, play_out


def make_strategy() -> RoundRobinStrategy:
    return RoundRobinStrategy(shuffle=list)


class TestFixtures:
    def test_four_tracks_produce_six_unique_pairs(self):
        strategy = make_strategy()
        tournament = new_tournament(strategy, make_tracks(4))
        data = strategy.get_strategy_data(tournament)
        pairs = {frozenset((f.track_a_id, f.track_b_id)) for f in data.fixtures}
        expected = {frozenset(p) for p in itertools.combinations(["t1", "t2", "t3", "t4"], 2)}
        assert len(data.fixtures) == 6
        assert pairs == expected

    def test_initial_progress(self):
        progress = make_strategy().initialize_tournament(make_tracks(5))
        assert progress.battles_remaining == 10
        assert progress.total_rounds == 1
        assert progress.eliminated_tracks == []

    def test_minimum_three_tracks(self):
        assert not make_strategy().validate_tracks(make_tracks(2))
        assert make_strategy().validate_tracks(make_tracks(3))

    def test_shuffled_order_is_kept(self):
        strategy = RoundRobinStrategy(shuffle=lambda items: list(reversed(items)))
        tournament = new_tournament(strategy, make_tracks(3))
        matchup = strategy.get_next_matchup(tournament)
        assert {matchup.track_a.id, matchup.track_b.id} == {"t2", "t3"}


class RoundRobinProgressTests(unittest.TestCase):
    def test_standings_after_full_schedule(self):
        strategy = make_strategy()
        tournament = new_tournament(strategy, make_tracks(4))
        self.assertEqual(play_out(strategy, tournament), 6)

        standings = strategy.standings(tournament)
        self.assertEqual(sum(s.played for s in standings), 12)
        self.assertEqual([s.track_id for s in standings], ["t1", "t2", "t3", "t4"])
        self.assertEqual([s.points for s in standings], [9, 6, 3, 0])

    def test_termination_after_n_choose_two(self):
        for n in (3, 5, 6):
            strategy = make_strategy()
            tournament = new_tournament(strategy, make_tracks(n))
            self.assertEqual(play_out(strategy, tournament), n * (n - 1) // 2)
            self.assertIsNone(strategy.get_next_matchup(tournament))

    def test_nobody_is_eliminated(self):
        strategy = make_strategy()
        tracks = make_tracks(4)
        tournament = new_tournament(strategy, tracks)
        play_out(strategy, tournament, pick=lambda m: m.track_b)
        self.assertEqual(tournament.progress.remaining_tracks, tracks)
        self.assertEqual(tournament.progress.eliminated_tracks, [])

    def test_out_of_order_battle_is_ignored(self):
        strategy = make_strategy()
        tracks = make_tracks(4)
        tournament = new_tournament(strategy, tracks)

        with self.assertLogs("trackbattle", level="WARNING"):
            apply(strategy, tournament, make_battle(tracks[2], tracks[3], winner=tracks[2]))
        self.assertEqual(tournament.progress.battles_completed, 0)
        self.assertEqual(strategy.get_strategy_data(tournament).current_fixture_index, 0)

    def test_fixture_accepts_either_track_order(self):
        strategy = make_strategy()
        tracks = make_tracks(3)
        tournament = new_tournament(strategy, tracks)
        apply(strategy, tournament, make_battle(tracks[1], tracks[0], winner=tracks[1]))
        self.assertEqual(tournament.progress.battles_completed, 1)

    def test_progress_percentage(self):
        strategy = make_strategy()
        tournament = new_tournament(strategy, make_tracks(4))
        play_next(strategy, tournament)
        play_next(strategy, tournament)
        play_next(strategy, tournament)
        self.assertAlmostEqual(tournament.progress.progress_percentage, 50.0)
        self.assertEqual(tournament.progress.battles_remaining, 3)

    def test_tie_broken_by_track_order(self):
        strategy = make_strategy()
        tracks = make_tracks(3)
        tournament = new_tournament(strategy, tracks)
        # t1 beats t2, t3 beats t1, t2 beats t3: everyone on 3 points
        winners = iter(["t1", "t3", "t2"])
        play_out(
            strategy, tournament,
            pick=lambda m: m.track_a if m.track_a.id == next(winners) else m.track_b,
        )
        strategy.complete_tournament(tournament)
        self.assertEqual(tournament.champion.id, "t1")

    def test_champion_is_top_of_table(self):
        strategy = make_strategy()
        tournament = new_tournament(strategy, make_tracks(4))
        play_out(strategy, tournament, pick=lambda m: m.track_b)
        strategy.complete_tournament(tournament)
        self.assertEqual(tournament.champion.id, "t4")
