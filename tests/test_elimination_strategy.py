"""
Tests for EliminationStrategy — bracket draws, byes, the remaining /
eliminated partition and termination after N-1 battles.  Every strategy is
built with shuffle=list so draws follow track order.
"""

from __future__ import annotations

import unittest

from trackbattle.tournaments.base import partition_holds
from trackbattle.tournaments.elimination import EliminationData, EliminationStrategy

from tests._helpers import apply, make_battle, make_tracks, new_tournament, play_next, play_out


def make_strategy() -> EliminationStrategy:
    return EliminationStrategy(shuffle=list)


# --------------------------------------------------------------------------- #
# Initial state                                                                #
# --------------------------------------------------------------------------- #

class TestInitialize:
    def test_progress_for_four_tracks(self):
        tracks = make_tracks(4)
        progress = make_strategy().initialize_tournament(tracks)
        assert progress.total_tracks == 4
        assert progress.battles_completed == 0
        assert progress.battles_remaining == 3
        assert progress.total_rounds == 2
        assert progress.current_round == 1
        assert progress.eliminated_tracks == []
        assert progress.remaining_tracks == tracks
        assert progress.progress_percentage == 0.0

    def test_remaining_tracks_is_a_copy(self):
        tracks = make_tracks(3)
        progress = make_strategy().initialize_tournament(tracks)
        assert progress.remaining_tracks is not tracks

    def test_total_rounds_rounds_up(self):
        assert make_strategy().initialize_tournament(make_tracks(5)).total_rounds == 3
        assert make_strategy().initialize_tournament(make_tracks(2)).total_rounds == 1

    def test_minimum_two_tracks(self):
        strategy = make_strategy()
        assert strategy.validate_tracks(make_tracks(2))
        assert not strategy.validate_tracks(make_tracks(1))


# --------------------------------------------------------------------------- #
# Bracket                                                                      #
# --------------------------------------------------------------------------- #

class TestBracket:
    def test_first_round_pairs_in_drawn_order(self):
        strategy = make_strategy()
        tournament = new_tournament(strategy, make_tracks(4))
        data = strategy.get_strategy_data(tournament)
        pairs = [(m.track_a_id, m.track_b_id) for m in data.bracket.matchups]
        assert pairs == [("t1", "t2"), ("t3", "t4")]
        assert data.bracket.bye_id is None

    def test_odd_count_gives_last_drawn_track_a_bye(self):
        strategy = make_strategy()
        tournament = new_tournament(strategy, make_tracks(5))
        data = strategy.get_strategy_data(tournament)
        assert data.bracket.bye_id == "t5"
        assert len(data.bracket.matchups) == 2
        matchup = strategy.get_next_matchup(tournament)
        assert matchup.metadata["bye"] == "t5"

    def test_next_round_drawn_when_queue_empties(self):
        strategy = make_strategy()
        tournament = new_tournament(strategy, make_tracks(4))
        play_next(strategy, tournament)
        play_next(strategy, tournament)

        data = strategy.get_strategy_data(tournament)
        assert data.bracket.round_number == 2
        matchup = strategy.get_next_matchup(tournament)
        assert {matchup.track_a.id, matchup.track_b.id} == {"t1", "t3"}
        assert matchup.round == 2

    def test_get_next_matchup_is_pure(self):
        strategy = make_strategy()
        tournament = new_tournament(strategy, make_tracks(4))
        first = strategy.get_next_matchup(tournament)
        second = strategy.get_next_matchup(tournament)
        assert first.track_ids == second.track_ids

    def test_matchup_never_contains_eliminated_track(self):
        strategy = make_strategy()
        tournament = new_tournament(strategy, make_tracks(7))
        while not strategy.is_completed(tournament):
            matchup = strategy.get_next_matchup(tournament)
            remaining = tournament.progress.remaining_ids()
            assert matchup.track_a.id in remaining
            assert matchup.track_b.id in remaining
            assert matchup.track_a.id != matchup.track_b.id
            play_next(strategy, tournament)

    def test_strategy_data_is_built_once(self):
        strategy = make_strategy()
        tournament = new_tournament(strategy, make_tracks(4))
        assert strategy.get_strategy_data(tournament) is strategy.get_strategy_data(tournament)


# --------------------------------------------------------------------------- #
# Progress updates                                                             #
# --------------------------------------------------------------------------- #

class EliminationProgressTests(unittest.TestCase):
    def test_loser_moves_to_eliminated(self):
        strategy = make_strategy()
        tracks = make_tracks(4)
        tournament = new_tournament(strategy, tracks)
        play_next(strategy, tournament)

        progress = tournament.progress
        self.assertEqual([t.id for t in progress.eliminated_tracks], ["t2"])
        self.assertNotIn("t2", progress.remaining_ids())
        self.assertEqual(progress.battles_completed, 1)
        self.assertEqual(progress.battles_remaining, 2)
        self.assertEqual(progress.current_round, 1)

    def test_partition_holds_after_every_battle(self):
        strategy = make_strategy()
        tracks = make_tracks(9)
        tournament = new_tournament(strategy, tracks)
        while not strategy.is_completed(tournament):
            play_next(strategy, tournament, pick=lambda m: m.track_b)
            self.assertTrue(partition_holds(tracks, tournament.progress))

    def test_n_tracks_take_n_minus_one_battles(self):
        for n in (2, 3, 4, 5, 8, 11):
            strategy = make_strategy()
            tournament = new_tournament(strategy, make_tracks(n))
            self.assertEqual(play_out(strategy, tournament), n - 1)

    def test_battle_count_increases_by_one(self):
        strategy = make_strategy()
        tournament = new_tournament(strategy, make_tracks(6))
        previous = 0
        while not strategy.is_completed(tournament):
            play_next(strategy, tournament)
            self.assertEqual(tournament.progress.battles_completed, previous + 1)
            previous += 1

    def test_null_winner_leaves_progress_unchanged(self):
        strategy = make_strategy()
        tracks = make_tracks(4)
        tournament = new_tournament(strategy, tracks)
        before = tournament.progress
        result = strategy.update_progress(tournament, make_battle(tracks[0], tracks[1]))
        self.assertIs(result, before)
        self.assertEqual(result.battles_completed, 0)

    def test_battle_with_eliminated_track_is_ignored(self):
        strategy = make_strategy()
        tracks = make_tracks(4)
        tournament = new_tournament(strategy, tracks)
        play_next(strategy, tournament)   # t1 eliminates t2

        with self.assertLogs("trackbattle", level="WARNING"):
            apply(strategy, tournament, make_battle(tracks[1], tracks[2], winner=tracks[1]))
        self.assertEqual(tournament.progress.battles_completed, 1)
        self.assertIn("t3", tournament.progress.remaining_ids())

    def test_out_of_queue_battle_between_remaining_tracks_is_accepted(self):
        strategy = make_strategy()
        tracks = make_tracks(4)
        tournament = new_tournament(strategy, tracks)
        apply(strategy, tournament, make_battle(tracks[0], tracks[2], winner=tracks[0]))
        self.assertEqual(tournament.progress.battles_completed, 1)
        self.assertNotIn("t3", tournament.progress.remaining_ids())
        self.assertTrue(partition_holds(tracks, tournament.progress))

    def test_completion_crowns_sole_survivor(self):
        strategy = make_strategy()
        tracks = make_tracks(4)
        tournament = new_tournament(strategy, tracks)
        play_out(strategy, tournament)

        self.assertEqual(len(tournament.progress.remaining_tracks), 1)
        self.assertEqual(len(tournament.progress.eliminated_tracks), 3)
        strategy.complete_tournament(tournament)
        self.assertEqual(tournament.status, "completed")
        self.assertEqual(tournament.champion.id, "t1")
        self.assertEqual(tournament.progress.progress_percentage, 100.0)
        self.assertEqual(tournament.progress.battles_remaining, 0)
        self.assertIsNotNone(tournament.completed_at)

    def test_repair_redraws_exhausted_bracket(self):
        strategy = make_strategy()
        tournament = new_tournament(strategy, make_tracks(4))
        data: EliminationData = strategy.get_strategy_data(tournament)
        for matchup in data.bracket.matchups:
            matchup.completed = True
        self.assertIsNone(strategy.get_next_matchup(tournament))

        with self.assertLogs("trackbattle", level="WARNING"):
            self.assertTrue(strategy.repair(tournament))
        self.assertIsNotNone(strategy.get_next_matchup(tournament))
        self.assertFalse(strategy.repair(tournament))

    def test_standings_count_wins_from_history(self):
        strategy = make_strategy()
        tournament = new_tournament(strategy, make_tracks(4))
        play_out(strategy, tournament)
        standings = strategy.standings(tournament)
        self.assertEqual(standings[0].track_id, "t1")
        self.assertEqual(standings[0].won, 2)
        self.assertEqual(sum(s.played for s in standings), 6)
