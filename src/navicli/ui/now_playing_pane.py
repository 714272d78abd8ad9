"""Now-playing panel: current track details and the session's progress bar."""

from __future__ import annotations

from rich.text import Text
from textual.widgets import Static

from navicli.services.catalog_client import Track
from navicli.services.progress_poller import (
    BAR_EMPTY,
    BAR_FILLED,
    PROGRESS_BAR_WIDTH,
    render_progress_bar,
)
from navicli.services.session_state import SessionSnapshot
from navicli.utils.time_format import format_duration, format_size_mb

LOADING_BAR = BAR_FILLED * 3 + BAR_EMPTY * (PROGRESS_BAR_WIDTH - 3) + " Loading..."
PAUSED_BAR = BAR_FILLED * 8 + BAR_EMPTY * (PROGRESS_BAR_WIDTH - 8) + " 0%"

_TITLE_STYLES = {
    "loading": "bold yellow",
    "playing": "bold green",
    "paused": "bold yellow",
    "failed": "bold red",
}
_STATUS_SUFFIX = {
    "loading": " (Loading...)",
    "paused": " (PAUSED)",
    "failed": " (Failed)",
}


def render_welcome(track_count: int, *, search_key: str = "/") -> Text:
    text = Text()
    text.append("Current:\n", style="bold")
    text.append("Welcome to NaviCLI\n\n", style="bold green")
    text.append("[play] Ready\n", style="dim")
    text.append("[source] Navidrome\n\n", style="dim")
    for line in (
        "Press SPACE to play/pause",
        "Press N/P or ←/→ for next/prev",
        f"Press {search_key} to search, [ / ] to page",
        "Press Q to exit",
        "Select a track to start",
    ):
        text.append(line + "\n", style="grey70")
    text.append(f"\n// {track_count} songs\n", style="dim")
    text.append("// Auto-play next enabled", style="dim")
    return text


def render_session(snapshot: SessionSnapshot, bar: str | None = None) -> Text:
    """Render the panel for a session snapshot; idle sessions render nothing."""
    track = snapshot.track
    if track is None or snapshot.index is None:
        return Text()
    status = snapshot.status
    text = Text()
    text.append(f"Current {snapshot.index + 1}:\n", style="bold")
    text.append(track.title or track.id, style=_TITLE_STYLES.get(status, "bold"))
    suffix = _STATUS_SUFFIX.get(status)
    if suffix:
        text.append(suffix, style="dim")
    text.append("\n\n")
    text.append(_details(track), style="dim")
    text.append("\n\n")
    text.append(f"{track.artist} - {track.album}\n", style="grey70")
    if status == "loading":
        text.append(LOADING_BAR, style="yellow")
    elif status == "failed":
        text.append("Play Failed", style="bold red")
    elif status == "paused":
        text.append(PAUSED_BAR, style="dim")
    else:
        text.append(bar or render_progress_bar(0.0), style="green")
    return text


def _details(track: Track) -> str:
    return (
        f"[play] {format_duration(track.duration_s)}\n"
        f"[source] {format_size_mb(track.size_bytes)}"
    )


class NowPlayingPane(Static):
    def __init__(self, **kwargs) -> None:
        super().__init__("", **kwargs)
        self._snapshot: SessionSnapshot | None = None
        self._bar: str | None = None

    def show_welcome(self, track_count: int, *, search_key: str = "/") -> None:
        self._snapshot = None
        self.update(render_welcome(track_count, search_key=search_key))

    def show_session(self, snapshot: SessionSnapshot) -> None:
        if snapshot.track is None:
            return
        if self._snapshot is None or snapshot.index != self._snapshot.index:
            self._bar = None
        self._snapshot = snapshot
        self.update(render_session(snapshot, self._bar))

    def show_bar(self, index: int | None, bar: str) -> None:
        """Apply a progress sample, dropping samples for a previous track."""
        snapshot = self._snapshot
        if snapshot is None or snapshot.index != index or snapshot.status != "playing":
            return
        self._bar = bar
        self.update(render_session(snapshot, bar))

    def show_message(self, message: str, *, style: str = "yellow") -> None:
        self.update(Text(message, style=style))
