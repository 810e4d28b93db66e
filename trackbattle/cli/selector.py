"""
Interactive prompts for the tournament CLI: pick a mode, pick an
unfinished tournament to continue, and cast a vote.
"""

from __future__ import annotations

from typing import Any, Literal

from rich.console import Console
from rich.prompt import IntPrompt, Prompt
from rich.table import Table

from trackbattle.cli.display import display_tournament_list
from trackbattle.models import Tournament

console = Console(legacy_windows=False)

VoteChoice = Literal["a", "b", "skip", "pause", "quit"]


def select_mode(modes: list[dict[str, Any]], track_count: int, default_mode: str) -> str:
    """
    List every mode and let the user pick one the playlist is large enough
    for.  Returns the mode tag.
    """
    table = Table(show_header=True, header_style="bold", border_style="dim", show_lines=False)
    table.add_column("#", style="dim", width=3, justify="right")
    table.add_column("Mode", min_width=22)
    table.add_column("Min", justify="right", width=4)
    table.add_column("Description", style="dim")

    playable: list[str] = []
    for m in modes:
        if m["min_tracks"] > track_count:
            table.add_row("-", f"[dim]{m['name']}[/]", str(m["min_tracks"]), m["description"])
            continue
        playable.append(m["mode"])
        table.add_row(str(len(playable)), m["name"], str(m["min_tracks"]), m["description"])

    if not playable:
        raise ValueError(f"A playlist of {track_count} track(s) is too small for any mode.")

    console.print()
    console.print(table)

    default = playable.index(default_mode) + 1 if default_mode in playable else 1
    choice = IntPrompt.ask(
        "\nSelect mode",
        choices=[str(i) for i in range(1, len(playable) + 1)],
        default=default,
    )
    return playable[choice - 1]


def select_tournament(tournaments: list[Tournament]) -> Tournament | None:
    """Offer unfinished tournaments; None means start a new one."""
    if not tournaments:
        return None

    display_tournament_list(tournaments)
    console.print("  [dim]Enter a number to continue it, or press Enter for a new tournament.[/]")

    choices = [str(i) for i in range(1, len(tournaments) + 1)]
    while True:
        raw = Prompt.ask("  Continue", default="", show_default=False)
        if raw.strip() == "":
            return None
        if raw in choices:
            return tournaments[int(raw) - 1]
        console.print(f"  [red]Invalid choice. Enter a number between 1 and {len(tournaments)}.[/]")


def ask_vote(allow_skipping: bool) -> VoteChoice:
    options = "[bold]1[/]/[bold]2[/] vote"
    choices = ["1", "2", "p", "q"]
    if allow_skipping:
        options += ", [bold]s[/] skip"
        choices.append("s")
    options += ", [bold]p[/] pause, [bold]q[/] quit"
    console.print(f"  [dim]{options}[/]")

    raw = Prompt.ask("  Winner", choices=choices, show_choices=False)
    return {"1": "a", "2": "b", "s": "skip", "p": "pause", "q": "quit"}[raw]
