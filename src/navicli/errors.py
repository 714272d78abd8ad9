"""Error taxonomy shared by services, the app, and the CLI entrypoint.

Network and resolution failures are recovered locally by the playback
controller, engine faults are caught at every engine-touching task boundary,
and `ConfigInvalid` is fatal before any UI is shown.
"""

from __future__ import annotations


class NaviCliError(Exception):
    """Base class for all navicli domain errors."""


class NetworkFailure(NaviCliError):
    """Catalog fetch or search failed at the transport/server level."""


class ResolutionFailure(NaviCliError):
    """A playable URL could not be produced for a track id."""


class ResolutionTimeout(ResolutionFailure):
    """URL resolution did not complete inside its time budget."""


class EngineFault(NaviCliError):
    """The audio engine raised, timed out, or reported an error."""


class ConfigInvalid(NaviCliError):
    """Required configuration is missing or malformed."""

    def __init__(self, problems: list[str], *, path: str | None = None) -> None:
        self.problems = list(problems)
        self.path = path
        where = f" ({path})" if path else ""
        super().__init__(f"Invalid configuration{where}: " + "; ".join(problems))


def format_user_error(
    *, what_failed: str, likely_cause: str, next_step: str, detail: str | None = None
) -> str:
    message = f"{what_failed}\nLikely cause: {likely_cause}\nNext step: {next_step}"
    if detail:
        message = f"{message}\nDetails: {detail}"
    return message
