"""Textual TUI app for navicli."""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from contextlib import suppress
from dataclasses import replace
from pathlib import Path

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Vertical
from textual.events import Key
from textual.widgets import DataTable, Footer, Header

from . import __version__
from .config import SAMPLE_CONFIG, AppConfig, load_config
from .doctor import render_report, run_doctor
from .errors import ConfigInvalid, NetworkFailure, format_user_error
from .events import (
    CatalogChanged,
    Notice,
    ProgressUpdated,
    SessionChanged,
    VolumeChanged,
)
from .logging_utils import setup_logging
from .paths import log_dir, state_path
from .runtime_config import ENGINE_NAMES, resolve_engine_name, resolve_log_level
from .services.audio_engine import AudioEngine
from .services.catalog_client import CatalogService, CatalogSource, SubsonicClient
from .services.catalog_view import CatalogView
from .services.fake_engine import FakeAudioEngine
from .services.mpv_engine import MpvAudioEngine
from .services.playback_controller import PlaybackController
from .services.progress_poller import ProgressPoller
from .services.track_end_notifier import TrackEndNotifier
from .services.vlc_engine import VLCAudioEngine
from .state_store import AppState, load_state_with_notice, save_state
from .ui.catalog_table import CatalogTable
from .ui.modals.error import ErrorModal
from .ui.modals.search import SearchModal, SearchModeFlag
from .ui.now_playing_pane import NowPlayingPane
from .ui.progress_pane import ProgressPane
from .utils.async_utils import run_blocking

logger = logging.getLogger(__name__)
STATE_SAVE_DEBOUNCE_S = 1.0


class NaviCliApp(App):
    TITLE = "navicli"
    CSS = """
    Screen {
        layout: vertical;
    }

    #now-playing {
        height: 14;
        border: solid $accent;
        padding: 0 1;
    }

    #catalog-table {
        height: 1fr;
    }

    #progress-pane {
        border: solid $accent;
        padding: 0 1;
        height: 4;
    }

    ModalScreen {
        align: center middle;
    }

    #modal-body {
        padding: 1 2;
        border: solid white;
        width: 60%;
        height: auto;
    }
    """
    BINDINGS = [
        Binding("ctrl+c", "quit", "Quit", priority=True),
        ("q", "quit", "Quit"),
        Binding("escape", "quit", "Quit", show=False),
        ("space", "toggle_pause", "Play/Pause"),
        ("n", "next_track", "Next"),
        ("p", "previous_track", "Previous"),
        ("+", "volume_up", "Vol +"),
        Binding("=", "volume_up", "Vol +", show=False),
        ("-", "volume_down", "Vol -"),
        Binding("_", "volume_down", "Vol -", show=False),
        ("[", "previous_page", "Page -"),
        ("]", "next_page", "Page +"),
    ]

    def __init__(
        self,
        config: AppConfig,
        *,
        engine_name: str | None = None,
        engine: AudioEngine | None = None,
        catalog: CatalogSource | None = None,
        auto_init: bool = True,
        persist_state: bool = True,
    ) -> None:
        super().__init__()
        self.config = config
        self.engine_name = resolve_engine_name(
            cli_value=engine_name, config_value=config.player.engine
        )
        self.engine = engine or build_engine(self.engine_name, config)
        self.catalog = catalog or build_catalog(config)
        self.view = CatalogView(page_size=config.player.page_size)
        self.controller = PlaybackController(
            engine=self.engine,
            resolver=self.catalog,
            catalog_provider=lambda: self.view.tracks,
            emit_event=self._emit_event,
        )
        self.view.bind_player(self.controller.play_at)
        self.notifier = TrackEndNotifier(
            on_track_end=self.controller.on_track_end,
            on_engine_error=self.controller.report_engine_fault,
        )
        self.engine.set_event_handler(self.notifier.handle_engine_event)
        self.poller = ProgressPoller(
            engine=self.engine,
            snapshot_provider=self.controller.snapshot,
            emit_event=self._emit_event,
        )
        self.state = AppState()
        self.search_mode = SearchModeFlag()
        self._auto_init = auto_init
        self._persist_state = persist_state
        self._redraw_queue: asyncio.Queue[object] = asyncio.Queue()
        self._redraw_task: asyncio.Task[None] | None = None
        self._init_task: asyncio.Task[None] | None = None
        self._state_save_task: asyncio.Task[None] | None = None
        self._state_dirty = False
        self._catalog_error: str | None = None
        # Held directly: query_one only searches the active (possibly modal) screen.
        self.now_playing = NowPlayingPane(id="now-playing")
        self.table = CatalogTable(id="catalog-table")
        self.progress_pane = ProgressPane(id="progress-pane")

    def compose(self) -> ComposeResult:
        yield Header()
        yield Vertical(self.now_playing, self.table, self.progress_pane, id="main")
        yield Footer()

    def on_mount(self) -> None:
        self._redraw_task = asyncio.create_task(self._redraw_loop())
        # Textual reads ctrl+c as a key; SIGTERM still needs a handler.
        with suppress(NotImplementedError, RuntimeError):
            asyncio.get_running_loop().add_signal_handler(signal.SIGTERM, self.exit)
        self.now_playing.show_message("Loading catalog...")
        self.table.focus()
        if self._auto_init:
            self._init_task = asyncio.create_task(self.initialize())

    async def initialize(self) -> None:
        """Restore state, start services, and load the catalog."""
        state, notice = await run_blocking(load_state_with_notice, state_path())
        self.state = state
        if notice:
            await self._emit_event(Notice(notice, level="warning"))
        volume = (
            state.volume if state.volume is not None else self.config.player.initial_volume
        )
        try:
            await self.controller.start(volume=volume, muted=state.muted)
        except Exception as exc:
            logger.exception("Failed to start %s engine: %s", self.engine_name, exc)
            await self.push_screen(
                ErrorModal(
                    format_user_error(
                        what_failed=f"Audio engine '{self.engine_name}' did not start.",
                        likely_cause="The engine is not installed or cannot open audio output.",
                        next_step="Run navicli --doctor, or pick another --engine.",
                        detail=str(exc) or exc.__class__.__name__,
                    ),
                    title="Audio engine unavailable",
                )
            )
        await self.notifier.start()
        await self.poller.start()
        await self.reload_catalog()
        if self._catalog_error is None:
            self.now_playing.show_welcome(
                self.view.count, search_key=self.config.keys.search
            )

    async def on_unmount(self) -> None:
        if self._init_task is not None and not self._init_task.done():
            self._init_task.cancel()
            with suppress(asyncio.CancelledError):
                await self._init_task
        await self.poller.stop()
        await self.notifier.stop()
        await self.controller.shutdown()
        if self._redraw_task is not None:
            self._redraw_task.cancel()
            with suppress(asyncio.CancelledError):
                await self._redraw_task
            self._redraw_task = None
        await self._flush_state()

    async def reload_catalog(self) -> bool:
        """Refetch the full catalog; redraws only when it changed."""
        try:
            tracks = await self.catalog.fetch_catalog()
        except NetworkFailure as exc:
            logger.warning("Catalog load failed: %s", exc)
            self._catalog_error = str(exc)
            self.now_playing.show_message(
                f"load music failed: {exc}", style="bold red"
            )
            await self._emit_event(Notice(f"load music failed: {exc}", level="error"))
            return False
        self._catalog_error = None
        if not self.view.replace(tracks):
            return False
        logger.info("Catalog loaded: %d tracks", self.view.count)
        await self._emit_catalog()
        return True

    def on_key(self, event: Key) -> None:
        # Remappable keys are matched on the typed character.
        keys = self.config.keys
        if event.character is None or self.search_mode.active:
            return
        if event.character == keys.search:
            event.stop()
            self.action_search()
        elif event.character == keys.reload:
            event.stop()
            self.run_worker(self.reload_catalog(), exclusive=True, group="reload")
        elif event.character == keys.mute:
            event.stop()
            self.run_worker(self.controller.toggle_mute(), group="volume")

    async def on_data_table_row_selected(self, event: DataTable.RowSelected) -> None:
        await self.view.select_row(event.cursor_row)

    def action_toggle_pause(self) -> None:
        self.run_worker(self.controller.toggle_pause(), group="transport")

    async def action_next_track(self) -> None:
        await self.controller.next_track()

    async def action_previous_track(self) -> None:
        await self.controller.previous_track()

    def action_volume_up(self) -> None:
        self.run_worker(self.controller.change_volume(5), group="volume")

    def action_volume_down(self) -> None:
        self.run_worker(self.controller.change_volume(-5), group="volume")

    async def action_next_page(self) -> None:
        if self.view.next_page():
            await self._emit_catalog()

    async def action_previous_page(self) -> None:
        if self.view.previous_page():
            await self._emit_catalog()

    def action_search(self) -> None:
        if not self.search_mode.enter():
            return
        self.push_screen(
            SearchModal(initial=self.state.last_search or ""),
            callback=self._apply_search,
        )

    def _apply_search(self, query: str | None) -> None:
        self.search_mode.leave()
        if not query:
            return
        outcome = self.view.search(query)
        self.state = replace(self.state, last_search=query)
        self._schedule_state_save()
        if outcome.applied:
            self._redraw_queue.put_nowait(self._catalog_event())
            self._redraw_queue.put_nowait(Notice(outcome.message or ""))
        elif outcome.message:
            self._redraw_queue.put_nowait(Notice(outcome.message, level="warning"))

    async def _emit_event(self, event: object) -> None:
        self._redraw_queue.put_nowait(event)

    async def _emit_catalog(self) -> None:
        await self._emit_event(self._catalog_event())

    def _catalog_event(self) -> CatalogChanged:
        return CatalogChanged(
            tracks=self.view.page_rows(),
            page=self.view.current_page,
            total_pages=self.view.total_pages,
        )

    async def drain_redraws(self) -> None:
        """Wait until every queued display update has been applied."""
        await self._redraw_queue.join()

    async def _redraw_loop(self) -> None:
        while True:
            event = await self._redraw_queue.get()
            try:
                self._apply_event(event)
            except Exception:
                logger.exception("Failed to apply display update %r", event)
            finally:
                self._redraw_queue.task_done()

    def _apply_event(self, event: object) -> None:
        if isinstance(event, SessionChanged):
            snapshot = event.snapshot
            self.now_playing.show_session(snapshot)
            active = snapshot.index if snapshot.status != "failed" else None
            self.table.mark_playing(active)
        elif isinstance(event, ProgressUpdated):
            progress = event.progress
            self.progress_pane.update_progress(progress)
            if progress.kind == "playing":
                self.now_playing.show_bar(progress.index, progress.bar)
        elif isinstance(event, CatalogChanged):
            table = self.table
            start = (event.page - 1) * self.view.page_size
            table.load_rows(event.tracks, start_index=start)
            self.sub_title = (
                f"{self.view.count} tracks · page {event.page}/{max(1, event.total_pages)}"
            )
        elif isinstance(event, VolumeChanged):
            self.state = replace(self.state, volume=event.volume, muted=event.muted)
            self._schedule_state_save()
        elif isinstance(event, Notice):
            self.progress_pane.set_notice(event.message, event.level)

    def _schedule_state_save(self) -> None:
        if not self._persist_state:
            return
        self._state_dirty = True
        if self._state_save_task is not None:
            self._state_save_task.cancel()
        self._state_save_task = asyncio.create_task(self._save_state_debounced())

    async def _save_state_debounced(self) -> None:
        try:
            await asyncio.sleep(STATE_SAVE_DEBOUNCE_S)
        except asyncio.CancelledError:
            return
        await self._write_state()

    async def _flush_state(self) -> None:
        task = self._state_save_task
        self._state_save_task = None
        if task is not None and not task.done():
            task.cancel()
        if self._state_dirty:
            await self._write_state()

    async def _write_state(self) -> None:
        self._state_dirty = False
        try:
            await run_blocking(save_state, state_path(), self.state)
        except OSError as exc:
            logger.warning("Failed to save state: %s", exc)


def build_engine(name: str, config: AppConfig) -> AudioEngine:
    logger.info("Audio engine selected: %s", name)
    if name == "vlc":
        return VLCAudioEngine()
    if name == "fake":
        return FakeAudioEngine()
    return MpvAudioEngine(mpv_path=config.player.mpv_path)


def build_catalog(config: AppConfig) -> CatalogService:
    client = SubsonicClient(
        config.server.url, config.server.username, config.server.password
    )
    return CatalogService(client)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="navicli", description="Terminal music player for Navidrome/Subsonic."
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    parser.add_argument("--verbose", action="store_true", help="Enable verbose output")
    parser.add_argument(
        "--quiet", action="store_true", help="Only show warnings and errors"
    )
    parser.add_argument("--log-file", help="Write logs to a file path")
    parser.add_argument("--config", help="Path to config.toml")
    parser.add_argument(
        "--engine",
        choices=ENGINE_NAMES,
        help="Audio engine to use (default: player.engine from config, else mpv).",
    )
    parser.add_argument(
        "--doctor",
        action="store_true",
        help="Check config, server, and audio engines, then exit.",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logger = logging.getLogger(__name__)
    config_path = Path(args.config).expanduser() if args.config else None
    try:
        setup_logging(
            log_dir=log_dir(),
            level=resolve_log_level(verbose=args.verbose, quiet=args.quiet),
            console=args.doctor,
            log_file=Path(args.log_file) if args.log_file else None,
        )
    except OSError as exc:
        print(f"Cannot open log file: {exc}", file=sys.stderr)
        return 1

    if args.doctor:
        report = run_doctor(args.engine, config_path=config_path)
        print(render_report(report))
        return report.exit_code

    try:
        config = load_config(config_path)
    except ConfigInvalid as exc:
        logger.error("Config invalid: %s", exc)
        print(f"{exc}\n\nExample config.toml:\n{SAMPLE_CONFIG}", file=sys.stderr)
        return 1

    try:
        logger.info("Starting navicli TUI")
        NaviCliApp(config, engine_name=args.engine).run()
        return 0
    except Exception as exc:  # pragma: no cover - top-level safety net
        logger.exception("Fatal error: %s", exc)
        print(
            "navicli stopped unexpectedly. Re-run with --verbose and check the log file.",
            file=sys.stderr,
        )
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
