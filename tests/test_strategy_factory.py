"""Tests for the create_strategy() factory and mode metadata."""

from __future__ import annotations

import unittest

from trackbattle.tournaments import (
    DeathmatchStrategy,
    EliminationStrategy,
    GroupsStrategy,
    RoundRobinStrategy,
    SwissStrategy,
    create_strategy,
    get_available_modes,
    get_mode_info,
    is_known_mode,
)

from tests._helpers import make_tracks, new_tournament


_MODES = [
    ("elimination", EliminationStrategy, 2),
    ("roundrobin", RoundRobinStrategy, 3),
    ("swiss", SwissStrategy, 4),
    ("groups", GroupsStrategy, 6),
    ("deathmatch", DeathmatchStrategy, 2),
]


class TestCreateStrategy:
    def test_returns_mode_class(self):
        for mode, cls, _ in _MODES:
            strategy = create_strategy(mode)
            assert isinstance(strategy, cls)
            assert strategy.mode == mode

    def test_minimum_track_counts(self):
        for mode, _, minimum in _MODES:
            strategy = create_strategy(mode)
            assert strategy.config.require_minimum_tracks == minimum
            assert strategy.validate_tracks(make_tracks(minimum))
            assert not strategy.validate_tracks(make_tracks(minimum - 1))


class FactoryTests(unittest.TestCase):
    def test_unknown_mode_falls_back_to_elimination(self):
        with self.assertLogs("trackbattle", level="WARNING") as logs:
            strategy = create_strategy("ladder")
        self.assertIsInstance(strategy, EliminationStrategy)
        self.assertIn("ladder", logs.output[0])

    def test_missing_mode_falls_back_to_elimination(self):
        with self.assertLogs("trackbattle", level="WARNING"):
            self.assertIsInstance(create_strategy(None), EliminationStrategy)

    def test_groups_parameters(self):
        strategy = create_strategy("groups", {"group_size": 5, "qualifiers_per_group": 3})
        self.assertEqual(strategy.group_size, 5)
        self.assertEqual(strategy.qualifiers_per_group, 3)

    def test_deathmatch_parameters(self):
        strategy = create_strategy("deathmatch", {"target_score": 4, "max_battles": 20})
        self.assertEqual(strategy.target_score, 4)
        self.assertEqual(strategy.max_battles, 20)

    def test_unrelated_parameters_are_ignored(self):
        strategy = create_strategy("swiss", {"target_score": 4})
        self.assertIsInstance(strategy, SwissStrategy)

    def test_out_of_range_parameter_raises(self):
        with self.assertRaises(ValueError):
            create_strategy("groups", {"group_size": 1})

    def test_shuffle_is_passed_through(self):
        calls = []

        def recording_shuffle(items):
            calls.append(list(items))
            return list(items)

        strategy = create_strategy("elimination", shuffle=recording_shuffle)
        new_tournament(strategy, make_tracks(4))
        self.assertEqual(calls, [["t1", "t2", "t3", "t4"]])


class ModeInfoTests(unittest.TestCase):
    def test_available_modes_lists_all_five(self):
        modes = get_available_modes()
        self.assertEqual(
            [m["mode"] for m in modes],
            ["elimination", "roundrobin", "swiss", "groups", "deathmatch"],
        )
        by_mode = {m["mode"]: m for m in modes}
        self.assertEqual(by_mode["swiss"]["name"], "Swiss System")
        self.assertEqual(by_mode["groups"]["min_tracks"], 6)
        self.assertTrue(by_mode["elimination"]["allow_skipping"])

    def test_mode_info(self):
        info = get_mode_info("deathmatch")
        self.assertEqual(info["name"], "Deathmatch")
        self.assertIn("target score", info["description"])

    def test_mode_info_for_unknown_mode(self):
        self.assertEqual(get_mode_info("ladder")["name"], EliminationStrategy.name)

    def test_is_known_mode(self):
        self.assertTrue(is_known_mode("roundrobin"))
        self.assertFalse(is_known_mode("round_robin"))
        self.assertFalse(is_known_mode(None))


class StrategyDataTests(unittest.TestCase):
    def test_every_mode_builds_data_once(self):
        for mode in ("elimination", "roundrobin", "swiss", "groups", "deathmatch"):
            strategy = create_strategy(mode, shuffle=list)
            tournament = new_tournament(strategy, make_tracks(8))
            first = strategy.get_strategy_data(tournament)
            self.assertIs(strategy.get_strategy_data(tournament), first, mode)

    def test_every_mode_hydrates_dumped_data(self):
        for mode in ("elimination", "roundrobin", "swiss", "groups", "deathmatch"):
            strategy = create_strategy(mode, shuffle=list)
            tournament = new_tournament(strategy, make_tracks(8))
            data = strategy.get_strategy_data(tournament)
            tournament.strategy_data[mode] = strategy.dump_data(data)
            self.assertEqual(strategy.get_strategy_data(tournament), data, mode)
