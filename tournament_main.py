"""
Track Battle — interactive tournament entry point.

Usage:
    python tournament_main.py [config.yaml]

Wires together:
    config → snapshot → playlist → continue-or-create →
    battle loop (matchup → vote) → CLI display

Ctrl+C pauses the active tournament; it is saved and can be continued on
the next run.
"""

from __future__ import annotations

import sys
from pathlib import Path

from trackbattle.battles import BattleSession
from trackbattle.cli.display import (
    console,
    display_matchup,
    display_standings,
    display_tournament_event,
)
from trackbattle.cli.selector import ask_vote, select_mode, select_tournament
from trackbattle.config import Config, configure_logging, load_config
from trackbattle.errors import TournamentError, ValidationError
from trackbattle.manager import TournamentManager
from trackbattle.mediator import BattleTournamentMediator
from trackbattle.models import Tournament, TournamentCreateRequest
from trackbattle.playlist import load_playlist
from trackbattle.store import SnapshotStore


def _start_tournament(manager: TournamentManager, config: Config) -> Tournament:
    unfinished = manager.active_tournaments
    chosen = select_tournament(unfinished)
    if chosen is not None:
        tournament = manager.continue_tournament(chosen.id)
        if tournament.status == "paused":
            tournament = manager.resume_tournament(tournament.id)
        return tournament

    if not config.playlist_path:
        console.print("[red]Error:[/] no playlist configured (set `playlist` in config.yaml).")
        sys.exit(1)
    playlist = load_playlist(config.playlist_path)

    mode = select_mode(
        manager.get_available_modes(), len(playlist.tracks), config.tournament.default_mode
    )
    return manager.create_tournament(
        TournamentCreateRequest(
            playlist_id=playlist.id,
            playlist_name=playlist.name,
            tracks=playlist.tracks,
            mode=mode,
        )
    )


def _battle_loop(manager: TournamentManager, session: BattleSession, tournament: Tournament) -> None:
    allow_skipping = manager.strategy_for(tournament).config.allow_skipping

    while tournament.status == "active":
        try:
            battle = session.start_new_battle()
        except ValidationError as exc:
            console.print(f"[red]Error:[/] {exc}")
            return
        if session.current_matchup is None:
            console.print("[yellow]No matchup available for this tournament right now.[/]")
            return

        display_matchup(session.current_matchup, tournament)
        choice = ask_vote(allow_skipping)
        match choice:
            case "a" | "b":
                track = battle.track_a if choice == "a" else battle.track_b
                try:
                    session.vote_for_track(track.id)
                except ValidationError as exc:
                    console.print(f"[red]Vote rejected:[/] {exc}")
                    session.skip_battle()
            case "skip":
                session.skip_battle()
            case "pause":
                manager.pause_tournament(tournament.id)
                return
            case "quit":
                return

        tournament = manager.get_tournament(tournament.id)

    if tournament.status == "completed":
        display_standings(tournament, manager.standings(tournament), title="Final Standings")


def _main(config_path: Path) -> None:
    try:
        config = load_config(config_path)
    except FileNotFoundError as exc:
        console.print(f"[red]Error:[/] {exc}")
        sys.exit(1)
    except ValueError as exc:
        console.print(f"[red]Config error:[/] {exc}")
        sys.exit(1)

    configure_logging(config.logging, console=False)

    manager = TournamentManager(
        store=SnapshotStore(config.storage.path, config.storage.max_age_days),
        listener=display_tournament_event,
        defaults=config.tournament,
    )
    manager.load()
    session = BattleSession(BattleTournamentMediator(manager))

    try:
        tournament = _start_tournament(manager, config)
    except (FileNotFoundError, ValueError, TournamentError) as exc:
        console.print(f"[red]Error:[/] {exc}")
        sys.exit(1)

    try:
        _battle_loop(manager, session, tournament)
    except KeyboardInterrupt:
        console.print("\n[yellow]Pausing tournament…[/]")
        active = manager.active_tournament
        if active is not None and active.status == "active":
            manager.pause_tournament(active.id)


def main() -> None:
    config_path = Path(sys.argv[1]) if len(sys.argv) > 1 else Path("config.yaml")
    _main(config_path)


if __name__ == "__main__":
    main()
