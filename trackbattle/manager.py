"""
TournamentManager — owns every tournament and drives the lifecycle.

    create_tournament → (get_next_matchup → on_battle_completed)* → completed
                      ↘ pause_tournament ⇄ resume_tournament

All mode-specific decisions are delegated to the strategy resolved through
create_strategy().  The manager is the only writer of Tournament records;
collaborators (snapshot store, event listener, clock, shuffle) are passed
in explicitly so tests can substitute each of them.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Any, Callable

from trackbattle.config import TournamentDefaults, mode_parameters
from trackbattle.errors import (
    InsufficientTracksError,
    TournamentCompletedError,
    TournamentNotFoundError,
    ValidationError,
)
from trackbattle.models import Battle, BattleMatchup, Tournament, TournamentCreateRequest
from trackbattle.store import Snapshot, SnapshotStore
from trackbattle.tournaments import (
    DEFAULT_MODE,
    BattleAppliedEvent,
    Shuffle,
    Standing,
    TournamentCompleteEvent,
    TournamentEvent,
    TournamentStartEvent,
    TournamentStatusEvent,
    TournamentStrategy,
    create_strategy,
    get_available_modes,
    is_known_mode,
)

logger = logging.getLogger(__name__)

EventListener = Callable[[TournamentEvent], None]


class TournamentManager:
    def __init__(
        self,
        store: SnapshotStore | None = None,
        shuffle: Shuffle | None = None,
        listener: EventListener | None = None,
        clock: Callable[[], datetime] = datetime.now,
        defaults: TournamentDefaults | None = None,
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        self._store = store
        self._shuffle = shuffle
        self._listener = listener
        self._clock = clock
        self._defaults = defaults or TournamentDefaults()
        self._new_id = id_factory or (lambda: uuid.uuid4().hex)
        self._tournaments: dict[str, Tournament] = {}
        self._active_id: str | None = None

    # ------------------------------------------------------------------ #
    # Views                                                                #
    # ------------------------------------------------------------------ #

    @property
    def tournaments(self) -> list[Tournament]:
        return list(self._tournaments.values())

    @property
    def active_tournament(self) -> Tournament | None:
        if self._active_id is None:
            return None
        return self._tournaments.get(self._active_id)

    @property
    def active_tournaments(self) -> list[Tournament]:
        """Every tournament that is not completed (active or paused)."""
        return [t for t in self._tournaments.values() if t.status != "completed"]

    @property
    def completed_tournaments(self) -> list[Tournament]:
        return [t for t in self._tournaments.values() if t.status == "completed"]

    def get_tournament(self, tournament_id: str) -> Tournament:
        try:
            return self._tournaments[tournament_id]
        except KeyError:
            raise TournamentNotFoundError(tournament_id) from None

    def strategy_for(self, tournament: Tournament) -> TournamentStrategy:
        return create_strategy(tournament.mode, tournament.mode_config, self._shuffle)

    # ------------------------------------------------------------------ #
    # Lifecycle                                                            #
    # ------------------------------------------------------------------ #

    def create_tournament(self, request: TournamentCreateRequest) -> Tournament:
        """
        Create a tournament and make it the active one.

        Raises:
            InsufficientTracksError: fewer tracks than the mode requires.
            ValidationError: duplicate track ids or invalid mode parameters.
        """
        mode = request.mode
        if not is_known_mode(mode):
            logger.warning("Unknown tournament mode %r, creating %s instead", mode, DEFAULT_MODE)
            mode = DEFAULT_MODE

        mode_config = {**mode_parameters(self._defaults, mode), **request.mode_config}
        try:
            strategy = create_strategy(mode, mode_config, self._shuffle)
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc

        track_ids = [t.id for t in request.tracks]
        if len(track_ids) != len(set(track_ids)):
            raise ValidationError("Track ids must be unique within a tournament")
        if not strategy.validate_tracks(request.tracks):
            raise InsufficientTracksError(
                mode, strategy.config.require_minimum_tracks, len(request.tracks)
            )

        now = self._clock()
        tournament = Tournament(
            id=self._new_id(),
            name=f"{request.playlist_name} - {strategy.name}",
            playlist_id=request.playlist_id,
            mode=mode,
            tracks=list(request.tracks),
            progress=strategy.initialize_tournament(request.tracks),
            mode_config=mode_config,
            created_at=now,
        )
        # Built now so the first get_next_matchup has no side effects
        strategy.get_strategy_data(tournament)

        self._tournaments[tournament.id] = tournament
        self._active_id = tournament.id
        logger.info(
            "Created %s tournament %s with %d tracks",
            mode, tournament.id, len(tournament.tracks),
        )
        self._emit(
            TournamentStartEvent(
                tournament_id=tournament.id,
                mode=mode,
                track_names=[t.name for t in tournament.tracks],
                total_rounds=tournament.progress.total_rounds,
                timestamp=now,
            )
        )
        self.save()
        return tournament

    def continue_tournament(self, tournament_id: str) -> Tournament:
        """
        Make an unfinished tournament the active one.  A paused tournament
        stays paused until resume_tournament() is called.
        """
        tournament = self.get_tournament(tournament_id)
        if tournament.status == "completed":
            raise TournamentCompletedError(f"Tournament {tournament_id} is already completed")

        self._active_id = tournament.id
        self._emit(TournamentStatusEvent(tournament.id, "continued", self._clock()))
        self.save()
        return tournament

    def on_battle_completed(self, battle: Battle) -> Tournament | None:
        """
        Apply a decided battle to the active tournament.

        No-op without an active tournament, without a winner, while paused,
        after completion, for a battle id that was already applied, or for a
        battle the strategy rejects (nothing is recorded for it).
        """
        tournament = self.active_tournament
        if tournament is None:
            logger.warning("Battle %s completed with no active tournament", battle.id)
            return None
        if battle.winner is None:
            return tournament
        if tournament.status != "active":
            logger.warning(
                "Ignoring battle %s: tournament %s is %s",
                battle.id, tournament.id, tournament.status,
            )
            return tournament
        if any(b.id == battle.id for b in tournament.battles):
            logger.warning(
                "Ignoring battle %s: already applied to tournament %s", battle.id, tournament.id
            )
            return tournament

        strategy = self.strategy_for(tournament)
        applied_before = tournament.progress.battles_completed

        progress = strategy.update_progress(tournament, battle)
        if progress.battles_completed <= applied_before:
            # Rejected by the strategy (already logged); history stays as it was
            return tournament

        tournament.progress = progress
        tournament.battles.append(battle)
        tournament.last_battle_at = battle.completed_at or self._clock()
        self._emit(
            BattleAppliedEvent(
                tournament_id=tournament.id,
                battle_id=battle.id,
                winner_id=battle.winner,
                loser_id=battle.loser_id or "",
                battles_completed=progress.battles_completed,
                battles_remaining=progress.battles_remaining,
                progress_percentage=progress.progress_percentage,
            )
        )

        if strategy.is_completed(tournament):
            tournament = strategy.complete_tournament(tournament, at=self._clock())
            self._tournaments[tournament.id] = tournament
            champion = tournament.champion
            logger.info(
                "Tournament %s completed, champion: %s",
                tournament.id, champion.name if champion else "none",
            )
            self._emit(
                TournamentCompleteEvent(
                    tournament_id=tournament.id,
                    champion_id=champion.id if champion else None,
                    champion_name=champion.name if champion else None,
                    battles_completed=tournament.progress.battles_completed,
                    timestamp=tournament.completed_at or self._clock(),
                )
            )

        self.save()
        return tournament

    def pause_tournament(self, tournament_id: str | None = None) -> Tournament:
        tournament = self._resolve(tournament_id)
        if tournament.status == "completed":
            raise TournamentCompletedError(f"Tournament {tournament.id} is already completed")
        if tournament.status == "paused":
            return tournament

        tournament.status = "paused"
        logger.info("Paused tournament %s", tournament.id)
        self._emit(TournamentStatusEvent(tournament.id, "paused", self._clock()))
        self.save()
        return tournament

    def resume_tournament(self, tournament_id: str | None = None) -> Tournament:
        tournament = self._resolve(tournament_id)
        if tournament.status == "completed":
            raise TournamentCompletedError(f"Tournament {tournament.id} is already completed")

        tournament.status = "active"
        self._active_id = tournament.id
        logger.info("Resumed tournament %s", tournament.id)
        self._emit(TournamentStatusEvent(tournament.id, "resumed", self._clock()))
        self.save()
        return tournament

    def delete_tournament(self, tournament_id: str) -> None:
        tournament = self.get_tournament(tournament_id)
        del self._tournaments[tournament.id]
        if self._active_id == tournament.id:
            self._active_id = None
        logger.info("Deleted tournament %s", tournament.id)
        self._emit(TournamentStatusEvent(tournament.id, "deleted", self._clock()))
        self.save()

    def reset(self) -> None:
        self._tournaments.clear()
        self._active_id = None
        if self._store is not None:
            self._store.clear()

    # ------------------------------------------------------------------ #
    # Queries                                                              #
    # ------------------------------------------------------------------ #

    def get_next_matchup(self, tournament: Tournament | None = None) -> BattleMatchup | None:
        tournament = tournament or self.active_tournament
        if tournament is None or tournament.status == "completed":
            return None
        return self.strategy_for(tournament).get_next_matchup(tournament)

    def get_available_modes(self) -> list[dict[str, Any]]:
        return get_available_modes()

    def repair_tournament(self, tournament: Tournament) -> bool:
        """Regenerate a stuck matchup queue.  Returns True if anything changed."""
        if tournament.status == "completed":
            return False
        repaired = self.strategy_for(tournament).repair(tournament)
        if repaired:
            self.save()
        return repaired

    def standings(self, tournament: Tournament) -> list[Standing]:
        return self.strategy_for(tournament).standings(tournament)

    def tournament_stats(self, tournament: Tournament) -> dict[str, Any]:
        return tournament_stats(tournament, self._clock())

    # ------------------------------------------------------------------ #
    # Persistence                                                          #
    # ------------------------------------------------------------------ #

    def save(self) -> None:
        if self._store is None:
            return
        self._store.save(
            Snapshot(
                tournaments=[t.to_dict() for t in self._tournaments.values()],
                active_tournament_id=self._active_id,
                timestamp=self._clock(),
            )
        )

    def load(self) -> int:
        """
        Replace the in-memory state with the stored snapshot.

        Legacy tournaments are migrated: a missing or unknown mode becomes
        elimination and missing strategy data is rebuilt immediately.
        Returns the number of tournaments loaded.
        """
        if self._store is None:
            return 0
        snapshot = self._store.load()
        if snapshot is None:
            return 0

        self._tournaments.clear()
        self._active_id = None
        for raw in snapshot.tournaments:
            try:
                tournament = Tournament.from_dict(raw)
                self._migrate(tournament)
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning("Skipping unreadable tournament in snapshot: %s", exc)
                continue
            self._tournaments[tournament.id] = tournament

        active = self._tournaments.get(snapshot.active_tournament_id or "")
        if active is not None and active.status != "completed":
            self._active_id = active.id

        logger.info("Loaded %d tournament(s) from snapshot", len(self._tournaments))
        return len(self._tournaments)

    # ------------------------------------------------------------------ #
    # Internal helpers                                                     #
    # ------------------------------------------------------------------ #

    def _migrate(self, tournament: Tournament) -> None:
        if not tournament.mode:
            logger.warning("Tournament %s has no mode, treating it as %s",
                           tournament.id, DEFAULT_MODE)
            tournament.mode = DEFAULT_MODE
        elif not is_known_mode(tournament.mode):
            logger.warning("Tournament %s has unknown mode %r, treating it as %s",
                           tournament.id, tournament.mode, DEFAULT_MODE)
            tournament.mode = DEFAULT_MODE

        strategy = self.strategy_for(tournament)
        if tournament.mode not in tournament.strategy_data:
            logger.warning("Tournament %s has no %s data, rebuilding it",
                           tournament.id, tournament.mode)
        try:
            strategy.get_strategy_data(tournament)
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Tournament %s: unreadable %s data (%s), rebuilding it",
                           tournament.id, tournament.mode, exc)
            tournament.strategy_data.pop(tournament.mode, None)
            strategy.get_strategy_data(tournament)

    def _resolve(self, tournament_id: str | None) -> Tournament:
        if tournament_id is not None:
            return self.get_tournament(tournament_id)
        tournament = self.active_tournament
        if tournament is None:
            raise ValidationError("No active tournament")
        return tournament

    def _emit(self, event: TournamentEvent) -> None:
        if self._listener is not None:
            self._listener(event)


def tournament_stats(tournament: Tournament, now: datetime | None = None) -> dict[str, Any]:
    """Duration and pace figures for one tournament."""
    end = tournament.completed_at or now or datetime.now()
    duration = max(0.0, (end - tournament.created_at).total_seconds())
    progress = tournament.progress
    battles = progress.battles_completed
    days = max(duration / 86400, 1.0)
    return {
        "duration_seconds": duration,
        "average_battle_seconds": duration / battles if battles else 0.0,
        "battles_per_day": battles / days,
        "battles_completed": battles,
        "battles_remaining": progress.battles_remaining,
        "completion_percentage": progress.progress_percentage,
        "tracks_eliminated": len(progress.eliminated_tracks),
        "tracks_remaining": len(progress.remaining_tracks),
    }
