"""
FastAPI application — JSON API over the tournament manager and the battle
session.

Exposes:
  GET    /api/modes                            Every tournament mode
  GET    /api/tournaments                      All tournaments (summaries)
  POST   /api/tournaments                      Create a tournament
  GET    /api/tournaments/{id}                 Full tournament record
  DELETE /api/tournaments/{id}                 Delete a tournament
  POST   /api/tournaments/{id}/continue        Make it the active tournament
  POST   /api/tournaments/{id}/pause           Pause it
  POST   /api/tournaments/{id}/resume          Resume it
  GET    /api/tournaments/{id}/matchup         Next matchup (read only)
  GET    /api/tournaments/{id}/standings       Ranked standings
  GET    /api/tournaments/{id}/stats           Duration and pace figures
  POST   /api/battles/start                    Start a battle
  POST   /api/battles/vote                     Vote for a track in it
  POST   /api/battles/skip                     Discard it
  GET    /api/battles/leaderboard              Per-track battle stats

Validation errors map to 400, unknown tournaments to 404.
"""

from __future__ import annotations

import dataclasses
import logging
from pathlib import Path
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from trackbattle.battles import BattleSession
from trackbattle.config import configure_logging, load_config
from trackbattle.errors import TournamentNotFoundError, ValidationError
from trackbattle.manager import TournamentManager
from trackbattle.mediator import BattleTournamentMediator
from trackbattle.models import Tournament, TournamentCreateRequest, Track
from trackbattle.playlist import load_playlist
from trackbattle.store import SnapshotStore

logger = logging.getLogger(__name__)


def create_app(manager: TournamentManager, session: BattleSession) -> FastAPI:
    app = FastAPI(title="Track Battle")

    @app.exception_handler(ValidationError)
    async def _validation_error(request: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(TournamentNotFoundError)
    async def _not_found(request: Request, exc: TournamentNotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    # ----------------------------------------------------------------------- #
    # Tournaments                                                              #
    # ----------------------------------------------------------------------- #

    @app.get("/api/modes")
    def get_modes():
        return manager.get_available_modes()

    @app.get("/api/tournaments")
    def list_tournaments():
        active = manager.active_tournament
        return {
            "active_tournament_id": active.id if active else None,
            "tournaments": [_summary(t) for t in manager.tournaments],
        }

    @app.post("/api/tournaments")
    def create_tournament(payload: dict):
        raw_tracks = payload.get("tracks")
        try:
            if raw_tracks:
                tracks = [Track.from_dict(t) for t in raw_tracks]
            else:
                tracks = list(session.available_tracks)
        except (KeyError, TypeError, ValueError) as exc:
            raise HTTPException(status_code=400, detail=f"Invalid track: {exc}") from exc

        mode_config = payload.get("mode_config") or {}
        if not isinstance(mode_config, dict):
            raise HTTPException(status_code=400, detail="mode_config must be an object")

        request = TournamentCreateRequest(
            playlist_id=str(payload.get("playlist_id", "local")),
            playlist_name=str(payload.get("playlist_name", "Playlist")),
            tracks=tracks,
            mode=str(payload.get("mode", "elimination")),
            mode_config=mode_config,
        )
        tournament = manager.create_tournament(request)
        session.skip_battle()
        return _summary(tournament)

    @app.get("/api/tournaments/{tournament_id}")
    def get_tournament(tournament_id: str):
        return manager.get_tournament(tournament_id).to_dict()

    @app.delete("/api/tournaments/{tournament_id}")
    def delete_tournament(tournament_id: str):
        manager.delete_tournament(tournament_id)
        return {"deleted": tournament_id}

    @app.post("/api/tournaments/{tournament_id}/continue")
    def continue_tournament(tournament_id: str):
        tournament = manager.continue_tournament(tournament_id)
        session.skip_battle()
        return _summary(tournament)

    @app.post("/api/tournaments/{tournament_id}/pause")
    def pause_tournament(tournament_id: str):
        return _summary(manager.pause_tournament(tournament_id))

    @app.post("/api/tournaments/{tournament_id}/resume")
    def resume_tournament(tournament_id: str):
        tournament = manager.resume_tournament(tournament_id)
        session.skip_battle()
        return _summary(tournament)

    @app.get("/api/tournaments/{tournament_id}/matchup")
    def get_matchup(tournament_id: str):
        matchup = manager.get_next_matchup(manager.get_tournament(tournament_id))
        return {"matchup": matchup.to_dict() if matchup else None}

    @app.get("/api/tournaments/{tournament_id}/standings")
    def get_standings(tournament_id: str):
        tournament = manager.get_tournament(tournament_id)
        rows = []
        for rank, entry in enumerate(manager.standings(tournament), 1):
            track = tournament.find_track(entry.track_id)
            rows.append({
                "rank": rank,
                "track_name": track.name if track else entry.track_id,
                **dataclasses.asdict(entry),
            })
        return rows

    @app.get("/api/tournaments/{tournament_id}/stats")
    def get_stats(tournament_id: str):
        return manager.tournament_stats(manager.get_tournament(tournament_id))

    # ----------------------------------------------------------------------- #
    # Battles                                                                  #
    # ----------------------------------------------------------------------- #

    @app.post("/api/battles/start")
    def start_battle():
        battle = session.start_new_battle()
        matchup = session.current_matchup
        return {
            "battle": battle.to_dict(),
            "matchup": matchup.to_dict() if matchup else None,
        }

    @app.post("/api/battles/vote")
    def vote(payload: dict):
        track_id = str(payload.get("track_id", "")).strip()
        if not track_id:
            raise HTTPException(status_code=400, detail="track_id is required")
        user_id = str(payload.get("user_id") or "anonymous")

        battle = session.vote_for_track(track_id, user_id=user_id)
        active = manager.active_tournament
        return {
            "battle": battle.to_dict(),
            "tournament": _summary(active) if active else None,
        }

    @app.post("/api/battles/skip")
    def skip_battle():
        session.skip_battle()
        return {"skipped": True}

    @app.get("/api/battles/leaderboard")
    def leaderboard():
        return [s.to_dict() for s in session.leaderboard()]

    return app


def _summary(tournament: Tournament) -> dict[str, Any]:
    progress = tournament.progress
    return {
        "id": tournament.id,
        "name": tournament.name,
        "mode": tournament.mode,
        "status": tournament.status,
        "champion": tournament.champion.to_dict() if tournament.champion else None,
        "created_at": tournament.created_at.isoformat(),
        "completed_at": tournament.completed_at.isoformat() if tournament.completed_at else None,
        "progress": {
            "total_tracks": progress.total_tracks,
            "battles_completed": progress.battles_completed,
            "battles_remaining": progress.battles_remaining,
            "current_round": progress.current_round,
            "total_rounds": progress.total_rounds,
            "eliminated": len(progress.eliminated_tracks),
            "remaining": len(progress.remaining_tracks),
            "progress_percentage": progress.progress_percentage,
        },
    }


def build_app(config_path: str | Path = "config.yaml") -> FastAPI:
    """Wire config, snapshot store, manager and battle session into an app."""
    config = load_config(config_path)
    configure_logging(config.logging)

    manager = TournamentManager(
        store=SnapshotStore(config.storage.path, config.storage.max_age_days),
        defaults=config.tournament,
    )
    manager.load()

    tracks: list[Track] = []
    if config.playlist_path:
        tracks = load_playlist(config.playlist_path).tracks
        logger.info("Loaded %d track(s) from %s", len(tracks), config.playlist_path)

    session = BattleSession(BattleTournamentMediator(manager), available_tracks=tracks)
    return create_app(manager, session)
