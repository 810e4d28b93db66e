"""
Exception hierarchy shared by the tournament engine, the battle session and
the entry points.

ValidationError subclasses are caller mistakes that leave state untouched;
the CLI prints them inline and the web API maps them to HTTP 400.
"""

from __future__ import annotations


class TournamentError(Exception):
    """Root of every error raised by trackbattle."""


class ValidationError(TournamentError, ValueError):
    """The requested operation was rejected; nothing was changed."""


class InsufficientTracksError(ValidationError):
    def __init__(self, mode: str, required: int, given: int) -> None:
        self.mode = mode
        self.required = required
        self.given = given
        super().__init__(
            f"{mode} tournament requires at least {required} tracks, got {given}"
        )


class MatchupMismatchError(ValidationError):
    """A completed battle does not match the matchup the tournament expected."""

    def __init__(
        self,
        expected: tuple[str, str] | None,
        actual: tuple[str, str],
    ) -> None:
        self.expected = expected
        self.actual = actual
        if expected is None:
            message = f"No tournament matchup expected, got battle {actual[0]} vs {actual[1]}"
        else:
            message = (
                f"Battle {actual[0]} vs {actual[1]} does not match the expected "
                f"matchup {expected[0]} vs {expected[1]}"
            )
        super().__init__(message)


class InvalidVoteError(ValidationError):
    """Vote cast for a track that is not part of the current battle."""


class BattleAlreadyCompletedError(ValidationError):
    """Battles are decided by a single vote and cannot be re-voted."""


class NoActiveBattleError(ValidationError):
    """Vote or skip requested while no battle is in progress."""


class TournamentCompletedError(ValidationError):
    """The tournament has a champion; no further transitions are allowed."""


class TournamentNotActiveError(ValidationError):
    """A tournament battle was decided while its tournament is paused or gone."""


class TournamentNotFoundError(TournamentError, LookupError):
    def __init__(self, tournament_id: str) -> None:
        self.tournament_id = tournament_id
        super().__init__(f"Tournament not found: {tournament_id!r}")
