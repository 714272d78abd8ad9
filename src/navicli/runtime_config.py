"""Runtime configuration normalization helpers.

These helpers keep CLI flag interpretation deterministic across entrypoints.
"""

from __future__ import annotations

ENGINE_NAMES = ("mpv", "vlc", "fake")
DEFAULT_ENGINE = "mpv"


def resolve_log_level(*, verbose: bool, quiet: bool) -> str:
    """Resolve effective log level from CLI flags.

    Precedence is deterministic: --quiet overrides --verbose.
    """
    if quiet:
        return "WARNING"
    if verbose:
        return "DEBUG"
    return "INFO"


def normalize_engine_name(value: str | None) -> str | None:
    """Normalize a configured engine name; None when unsupported."""
    if value is None:
        return None
    normalized = value.strip().lower()
    if normalized in ENGINE_NAMES:
        return normalized
    return None


def resolve_engine_name(*, cli_value: str | None, config_value: str | None) -> str:
    """CLI flag wins over config; falls back to the default engine."""
    return (
        normalize_engine_name(cli_value)
        or normalize_engine_name(config_value)
        or DEFAULT_ENGINE
    )
