"""
BattleSession — creates battles, records votes and keeps per-track stats.

With an active tournament the pair comes from the mediator; otherwise two
tracks are drawn at random from `available_tracks` for a free battle.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Iterable

from trackbattle.errors import (
    BattleAlreadyCompletedError,
    InsufficientTracksError,
    NoActiveBattleError,
    TournamentNotActiveError,
)
from trackbattle.mediator import BattleTournamentMediator
from trackbattle.models import Battle, BattleMatchup, Track
from trackbattle.tournaments import Shuffle, random_shuffle

logger = logging.getLogger(__name__)


@dataclass
class TrackStats:
    track_id: str
    wins: int = 0
    losses: int = 0
    last_battle: datetime | None = None

    @property
    def total(self) -> int:
        return self.wins + self.losses

    @property
    def win_rate(self) -> float:
        return self.wins / self.total * 100 if self.total else 0.0

    @property
    def score(self) -> int:
        return max(0, 1000 + 50 * self.wins - 25 * self.losses + 10 * self.total)

    def to_dict(self) -> dict:
        return {
            "track_id": self.track_id,
            "wins": self.wins,
            "losses": self.losses,
            "total": self.total,
            "win_rate": self.win_rate,
            "score": self.score,
            "last_battle": self.last_battle.isoformat() if self.last_battle else None,
        }


class BattleSession:
    def __init__(
        self,
        mediator: BattleTournamentMediator,
        available_tracks: Iterable[Track] = (),
        shuffle: Shuffle | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._mediator = mediator
        self.available_tracks: list[Track] = list(available_tracks)
        self._shuffle = shuffle or random_shuffle
        self._clock = clock
        self.current_battle: Battle | None = None
        self.current_matchup: BattleMatchup | None = None
        self.history: list[Battle] = []
        self.track_stats: dict[str, TrackStats] = {}

    def start_new_battle(self) -> Battle:
        """
        Raises:
            InsufficientTracksError: no tournament matchup and fewer than two
                free tracks to draw from.
        """
        if self.current_battle is not None and self.current_battle.winner is not None:
            self.current_battle = None

        matchup = self._mediator.next_matchup() if self._mediator.has_active_tournament() else None
        if matchup is not None:
            track_a, track_b = matchup.track_a, matchup.track_b
        else:
            if len(self.available_tracks) < 2:
                raise InsufficientTracksError("battle", 2, len(self.available_tracks))
            track_a, track_b = self._shuffle(list(self.available_tracks))[:2]

        self.current_matchup = matchup
        self.current_battle = Battle(
            id=uuid.uuid4().hex,
            track_a=track_a,
            track_b=track_b,
            created_at=self._clock(),
        )
        logger.debug("Battle %s: %s vs %s", self.current_battle.id, track_a.id, track_b.id)
        return self.current_battle

    def vote_for_track(self, track_id: str, user_id: str = "anonymous") -> Battle:
        """
        Decide the current battle and forward it to the tournament.

        Raises:
            NoActiveBattleError: no battle has been started.
            InvalidVoteError: `track_id` is not part of the battle.
            BattleAlreadyCompletedError: the battle already has a winner.
            MatchupMismatchError: the battle no longer matches the tournament.
            TournamentNotActiveError: the battle belongs to a tournament that
                has been paused or switched away from since it started.

        Every check runs before the vote is recorded, so a rejected vote
        leaves the battle undecided.
        """
        battle = self.current_battle
        if battle is None:
            raise NoActiveBattleError("No battle in progress")
        if battle.winner is not None:
            raise BattleAlreadyCompletedError(f"Battle {battle.id} is already completed")

        if self.current_matchup is not None:
            if not self._mediator.has_active_tournament():
                raise TournamentNotActiveError(
                    f"Battle {battle.id} belongs to a tournament that is not active"
                )
            self._mediator.check_battle(battle)

        battle.record_vote(uuid.uuid4().hex, track_id, user_id=user_id, at=self._clock())
        if self.current_matchup is not None:
            self._mediator.submit_battle(battle)

        self._record_stats(battle)
        self.history.append(battle)
        return battle

    def skip_battle(self) -> None:
        if self.current_battle is not None:
            logger.debug("Skipped battle %s", self.current_battle.id)
        self.current_battle = None
        self.current_matchup = None

    def leaderboard(self) -> list[TrackStats]:
        return sorted(self.track_stats.values(), key=lambda s: (-s.score, s.track_id))

    def _record_stats(self, battle: Battle) -> None:
        at = battle.completed_at or self._clock()
        winner = self.track_stats.setdefault(battle.winner, TrackStats(battle.winner))
        loser_id = battle.loser_id
        loser = self.track_stats.setdefault(loser_id, TrackStats(loser_id))
        winner.wins += 1
        loser.losses += 1
        winner.last_battle = loser.last_battle = at
