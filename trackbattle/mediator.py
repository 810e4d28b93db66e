"""
BattleTournamentMediator — the seam between the voting flow and the
tournament engine.

The voting flow asks for the next pair, runs a battle, and hands the decided
battle back.  The mediator remembers the last matchup it handed out and
rejects any battle that is not between exactly those two tracks.
"""

from __future__ import annotations

import logging

from trackbattle.errors import MatchupMismatchError
from trackbattle.manager import TournamentManager
from trackbattle.models import Battle, BattleMatchup, Tournament

logger = logging.getLogger(__name__)


class BattleTournamentMediator:
    def __init__(self, manager: TournamentManager) -> None:
        self._manager = manager
        self._expected: BattleMatchup | None = None

    @property
    def manager(self) -> TournamentManager:
        return self._manager

    @property
    def expected_matchup(self) -> BattleMatchup | None:
        return self._expected

    def has_active_tournament(self) -> bool:
        tournament = self._manager.active_tournament
        return tournament is not None and tournament.status == "active"

    def next_matchup(self) -> BattleMatchup | None:
        """
        The pair the active tournament wants next, or None.

        When an unfinished tournament has nothing to offer its queue is
        repaired once and asked again.
        """
        tournament = self._manager.active_tournament
        if tournament is None or tournament.status != "active":
            self._expected = None
            return None

        matchup = self._manager.get_next_matchup(tournament)
        if matchup is None and self._manager.strategy_for(tournament).can_start_battle(tournament):
            logger.warning("Tournament %s has no matchup available, repairing", tournament.id)
            if self._manager.repair_tournament(tournament):
                matchup = self._manager.get_next_matchup(tournament)

        self._expected = matchup
        return matchup

    def check_battle(self, battle: Battle) -> None:
        """
        Raise unless `battle` is between the two tracks of the last matchup
        handed out.  Works on undecided battles, so callers can check before
        recording a vote.

        Raises:
            MatchupMismatchError: no matchup was handed out, or it names
                different tracks.
        """
        actual = (battle.track_a.id, battle.track_b.id)
        if self._expected is None:
            raise MatchupMismatchError(None, actual)
        if not self._expected.matches(battle):
            raise MatchupMismatchError(
                (self._expected.track_a.id, self._expected.track_b.id), actual
            )

    def submit_battle(self, battle: Battle) -> Tournament | None:
        """
        Forward a decided battle to the manager.

        Raises:
            MatchupMismatchError: the battle is not between the two tracks of
                the last matchup handed out (or none was handed out).
        """
        if not self.has_active_tournament():
            return None

        self.check_battle(battle)

        # A matchup is only valid until the next battle is applied
        self._expected = None
        return self._manager.on_battle_completed(battle)

    def reset(self) -> None:
        self._expected = None
