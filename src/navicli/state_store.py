"""JSON persistence for runtime state that outlives a session.

Loading is tolerant: a missing, unreadable, or corrupt file degrades to
defaults with an optional user-facing notice instead of aborting startup.
"""

from __future__ import annotations

import json
import logging
import math
from contextlib import suppress
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any
from uuid import uuid4

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AppState:
    """Persisted engine volume/mute and the last search query.

    `volume` is None until the user has changed it, so the configured initial
    volume applies on first run.
    """

    volume: float | None = None
    muted: bool = False
    last_search: str | None = None


def _coerce_state(data: dict[str, Any]) -> AppState:
    volume_raw = data.get("volume")
    volume: float | None = None
    if isinstance(volume_raw, (int, float)) and not isinstance(volume_raw, bool):
        if math.isfinite(float(volume_raw)):
            volume = max(0.0, min(float(volume_raw), 100.0))
    muted = data.get("muted")
    last_search = data.get("last_search")
    return AppState(
        volume=volume,
        muted=muted if isinstance(muted, bool) else False,
        last_search=last_search
        if isinstance(last_search, str) and last_search.strip()
        else None,
    )


def _reset_notice(cause: str, path: Path, step: str) -> str:
    return (
        "Saved player settings were reset to defaults.\n"
        f"Likely cause: {cause}\n"
        f"Next step: {step} '{path}' and restart."
    )


def load_state_with_notice(path: Path) -> tuple[AppState, str | None]:
    """Load state and return an optional user-facing notice."""
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        logger.info("No state file at %s; using defaults.", path)
        return AppState(), None
    except OSError as exc:
        logger.warning("Failed to read state file %s: %s; using defaults.", path, exc)
        return AppState(), _reset_notice(
            "state file is unreadable.", path, "verify access to"
        )

    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("State file at %s is invalid JSON; using defaults.", path)
        return AppState(), _reset_notice(
            "state file is corrupt or partially written.", path, "remove or repair"
        )

    if not isinstance(data, dict):
        logger.warning("State file at %s is not a JSON object; using defaults.", path)
        return AppState(), _reset_notice(
            "state file format is not recognized.", path, "remove"
        )

    return _coerce_state(data), None


def load_state(path: Path) -> AppState:
    state, _notice = load_state_with_notice(path)
    return state


def save_state(path: Path, state: AppState) -> None:
    """Persist state atomically via write-then-replace."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(f"{path.name}.{uuid4().hex}.tmp")
    payload = json.dumps(asdict(state), indent=2, sort_keys=True)
    try:
        tmp_path.write_text(payload, encoding="utf-8")
        tmp_path.replace(path)
    finally:
        with suppress(OSError):
            tmp_path.unlink()
