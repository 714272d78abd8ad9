"""Single-line transport/volume display plus the notice line."""

from __future__ import annotations

from rich.text import Text
from textual.app import ComposeResult
from textual.widget import Widget
from textual.widgets import Static

from navicli.events import NoticeLevel
from navicli.services.progress_poller import ProgressSnapshot
from navicli.utils.time_format import format_position_pair

IDLE_TEXT = "Nothing loaded. Select a track to start."

_NOTICE_STYLES: dict[str, str] = {
    "info": "grey70",
    "warning": "yellow",
    "error": "bold red",
}


def render_progress_line(progress: ProgressSnapshot) -> Text:
    text = Text()
    if progress.kind == "idle":
        text.append(IDLE_TEXT, style="dim")
        return text
    if progress.kind == "paused":
        text.append("00:00:00 ", style="dim")
    else:
        text.append(
            format_position_pair(progress.position_s, progress.duration_s) + " ",
            style="dim",
        )
    text.append("[v-] ", style="dim")
    text.append(progress.volume_text, style="bold" if progress.kind == "playing" else "dim")
    text.append(" [v+]", style="dim")
    return text


class ProgressPane(Widget):
    DEFAULT_CSS = """
    ProgressPane {
        height: 2;
    }

    #progress-line, #notice-line {
        height: 1;
        overflow: hidden;
    }
    """

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._line = Static(IDLE_TEXT, id="progress-line")
        self._notice = Static("", id="notice-line")

    def compose(self) -> ComposeResult:
        yield self._line
        yield self._notice

    def update_progress(self, progress: ProgressSnapshot) -> None:
        self._line.update(render_progress_line(progress))

    def set_notice(self, message: str | None, level: NoticeLevel = "info") -> None:
        if not message:
            self._notice.update("")
            return
        first_line = message.strip().splitlines()[0]
        self._notice.update(Text(first_line, style=_NOTICE_STYLES[level]))
