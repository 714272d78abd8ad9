"""Track table for the visible catalog page."""

from __future__ import annotations

from collections.abc import Sequence

from rich.text import Text
from textual.coordinate import Coordinate
from textual.widgets import DataTable

from navicli.services.catalog_client import Track
from navicli.utils.time_format import format_duration

COLUMNS = ("#", "Title", "Artist", "Album", "Time")
MAX_SIDE_COLUMN = 25


class CatalogTable(DataTable):
    """Rows are keyed by catalog index so selection maps back unambiguously."""

    BINDINGS = [
        ("right", "app.next_track", "Next"),
        ("left", "app.previous_track", "Previous"),
    ]

    def __init__(self, **kwargs) -> None:
        super().__init__(cursor_type="row", zebra_stripes=False, **kwargs)
        self._start_index = 0
        self._playing_index: int | None = None

    def on_mount(self) -> None:
        self.add_columns(*COLUMNS)

    @property
    def start_index(self) -> int:
        return self._start_index

    def load_rows(self, tracks: Sequence[Track], *, start_index: int) -> None:
        """Replace all rows with one page of tracks starting at `start_index`."""
        self.clear()
        self._start_index = start_index
        for offset, track in enumerate(tracks):
            index = start_index + offset
            self.add_row(*self._cells(index, track), key=str(index))
        if tracks:
            self.move_cursor(row=0)

    def mark_playing(self, index: int | None) -> None:
        """Highlight the row of the playing track when it is on this page."""
        previous = self._playing_index
        self._playing_index = index
        for candidate in (previous, index):
            if candidate is None:
                continue
            row = candidate - self._start_index
            if 0 <= row < self.row_count:
                self.update_cell_at(
                    Coordinate(row, 0), self._number_cell(candidate)
                )

    def _cells(self, index: int, track: Track) -> tuple[Text | str, ...]:
        return (
            self._number_cell(index),
            track.title,
            _clip(track.artist),
            _clip(track.album),
            format_duration(track.duration_s),
        )

    def _number_cell(self, index: int) -> Text:
        marker = "▶ " if index == self._playing_index else ""
        return Text(f"{marker}{index + 1}:", style="green", justify="right")


def _clip(value: str) -> str:
    if len(value) <= MAX_SIDE_COLUMN:
        return value
    return value[: MAX_SIDE_COLUMN - 1] + "…"
