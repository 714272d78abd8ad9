"""Cross-module event models for service-to-UI communication.

Services never touch widgets. They emit these dataclasses through an
`emit_event` coroutine callback, and the app applies them on its single
redraw consumer.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from navicli.services.catalog_client import Track
    from navicli.services.progress_poller import ProgressSnapshot
    from navicli.services.session_state import SessionSnapshot

NoticeLevel = Literal["info", "warning", "error"]


@dataclass(frozen=True)
class SessionChanged:
    """Playback session moved to a new state."""

    snapshot: SessionSnapshot


@dataclass(frozen=True)
class ProgressUpdated:
    """Periodic transport sample produced by the progress poller."""

    progress: ProgressSnapshot


@dataclass(frozen=True)
class CatalogChanged:
    """Visible catalog (full list, search result, or page) changed."""

    tracks: tuple[Track, ...]
    page: int
    total_pages: int


@dataclass(frozen=True)
class VolumeChanged:
    """Engine volume or mute changed through a controller command."""

    volume: float
    muted: bool


@dataclass(frozen=True)
class Notice:
    """One-line user-facing message for the status panel."""

    message: str
    level: NoticeLevel = "info"
