"""
Rich-based CLI consumer for TournamentEvent objects, plus renderers for
matchups, progress and standings.
"""

from __future__ import annotations

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from trackbattle.models import BattleMatchup, Tournament
from trackbattle.tournaments import Standing
from trackbattle.tournaments.events import (
    BattleAppliedEvent,
    TournamentCompleteEvent,
    TournamentEvent,
    TournamentStartEvent,
    TournamentStatusEvent,
)

console = Console(legacy_windows=False)


def display_tournament_event(event: TournamentEvent) -> None:
    """Dispatch a TournamentEvent to the appropriate display function."""
    match event:
        case TournamentStartEvent():
            _tournament_start(event)
        case BattleAppliedEvent():
            _battle_applied(event)
        case TournamentStatusEvent():
            _status_change(event)
        case TournamentCompleteEvent():
            _tournament_complete(event)


def display_matchup(matchup: BattleMatchup, tournament: Tournament) -> None:
    context = []
    if matchup.group:
        context.append(matchup.group)
    if matchup.round is not None:
        context.append(f"Round {matchup.round}")
    context.append(f"{tournament.progress.progress_percentage:.0f}% complete")

    table = Table(show_header=False, border_style="dim", show_lines=False, expand=False)
    table.add_column("", style="dim", width=3, justify="right")
    table.add_column("Track", min_width=30)
    table.add_column("Album", style="dim")
    table.add_row("1", f"[bold]{matchup.track_a.display_name}[/]", matchup.track_a.album)
    table.add_row("2", f"[bold]{matchup.track_b.display_name}[/]", matchup.track_b.album)

    console.print()
    console.rule(f"[bold]{tournament.name}[/]  [dim]{'  •  '.join(context)}[/]", style="bright_blue")
    console.print(table)


def display_standings(tournament: Tournament, standings: list[Standing], title: str = "Standings") -> None:
    table = Table(
        title=title,
        show_header=True,
        header_style="bold",
        border_style="dim",
        show_lines=False,
    )
    table.add_column("#", style="dim", width=3, justify="right")
    table.add_column("Track", min_width=24)
    table.add_column("P", justify="center", width=4)
    table.add_column("W", justify="center", width=4)
    table.add_column("L", justify="center", width=4)
    table.add_column("Pts", justify="right", width=5)

    champion_id = tournament.champion.id if tournament.champion else None
    for i, entry in enumerate(standings, 1):
        track = tournament.find_track(entry.track_id)
        style = "bold yellow" if entry.track_id == champion_id else ""
        table.add_row(
            str(i),
            track.display_name if track else entry.track_id,
            str(entry.played),
            str(entry.won),
            str(entry.lost),
            str(entry.points),
            style=style,
        )

    console.print()
    console.print(table)


def display_tournament_list(tournaments: list[Tournament]) -> None:
    table = Table(
        title="Unfinished Tournaments",
        show_header=True,
        header_style="bold",
        border_style="dim",
        show_lines=False,
    )
    table.add_column("#", style="dim", width=3, justify="right")
    table.add_column("Name", min_width=24)
    table.add_column("Mode")
    table.add_column("Status")
    table.add_column("Progress", justify="right")

    for i, t in enumerate(tournaments, 1):
        status = "[yellow]paused[/]" if t.status == "paused" else "[green]active[/]"
        table.add_row(str(i), t.name, t.mode, status, f"{t.progress.progress_percentage:.0f}%")

    console.print()
    console.print(table)


# --------------------------------------------------------------------------- #
# Display functions                                                            #
# --------------------------------------------------------------------------- #

def _tournament_start(event: TournamentStartEvent) -> None:
    names = "  •  ".join(event.track_names)
    console.print()
    console.print(
        Panel(
            f"[bold]{event.mode.title()} Tournament[/]\n\n"
            f"[dim]Tracks ({len(event.track_names)}):[/]\n{names}\n\n"
            f"[dim]Rounds: {event.total_rounds}  •  "
            f"{event.timestamp.strftime('%Y-%m-%d %H:%M:%S')}[/]",
            title="[bold green] Track Battle Tournament [/]",
            border_style="green",
            expand=False,
        )
    )


def _battle_applied(event: BattleAppliedEvent) -> None:
    console.print(
        f"  [green]✓[/] [bold]{event.winner_id}[/] beats {event.loser_id}  "
        f"[dim]({event.battles_completed} played, {event.battles_remaining} left, "
        f"{event.progress_percentage:.0f}%)[/]"
    )


def _status_change(event: TournamentStatusEvent) -> None:
    colour = {"paused": "yellow", "deleted": "red"}.get(event.change, "green")
    console.print(f"  [{colour}]Tournament {event.change}.[/]")


def _tournament_complete(event: TournamentCompleteEvent) -> None:
    console.print()
    console.print(
        Panel(
            f"[bold yellow]★  {event.champion_name or 'No champion'}[/]\n\n"
            f"[dim]{event.battles_completed} battles  •  "
            f"{event.timestamp.strftime('%Y-%m-%d %H:%M:%S')}[/]",
            title="[bold green] Tournament Champion [/]",
            border_style="yellow",
            expand=False,
        )
    )
