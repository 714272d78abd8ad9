"""Search modal and the flag that tracks whether it is open."""

from __future__ import annotations

import threading

from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Label


class SearchModeFlag:
    """Whether the search prompt owns input.

    Guarded by its own lock so checking it never contends with the playback
    session lock.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._active = False

    def enter(self) -> bool:
        """Set the flag; False when search mode was already active."""
        with self._lock:
            if self._active:
                return False
            self._active = True
            return True

    def leave(self) -> None:
        with self._lock:
            self._active = False

    @property
    def active(self) -> bool:
        with self._lock:
            return self._active


class SearchModal(ModalScreen[str | None]):
    """Prompt for a title/artist/album query."""

    BINDINGS = [
        ("escape", "cancel", "Cancel"),
    ]

    def __init__(self, *, initial: str = "") -> None:
        super().__init__()
        self._initial = initial
        self._input: Input | None = None

    def compose(self) -> ComposeResult:
        self._input = Input(
            value=self._initial,
            placeholder="title, artist or album",
            id="search-input",
        )
        yield Vertical(
            Label("Search"),
            self._input,
            Horizontal(
                Button("Search", id="ok"),
                Button("Cancel", id="cancel"),
            ),
            id="modal-body",
        )

    def on_mount(self) -> None:
        if self._input is not None:
            self._input.focus()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "ok":
            self.action_submit()
        elif event.button.id == "cancel":
            self.action_cancel()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        del event
        self.action_submit()

    def action_submit(self) -> None:
        value = self._input.value if self._input is not None else ""
        self.dismiss(value if value.strip() else None)

    def action_cancel(self) -> None:
        self.dismiss(None)
