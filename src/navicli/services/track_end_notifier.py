"""Bridge from out-of-band engine events to controller commands."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from contextlib import suppress

from navicli.services.audio_engine import EngineError, EngineEvent, TrackEnded

logger = logging.getLogger(__name__)


class TrackEndNotifier:
    """Serializes engine events onto one consumer task.

    Only a natural end of media (`TrackEnded("eof")`) advances playback; the
    `stop` end emitted when the controller replaces a track is ignored.
    """

    def __init__(
        self,
        *,
        on_track_end: Callable[[], Awaitable[object]],
        on_engine_error: Callable[[str], Awaitable[object]],
    ) -> None:
        self._on_track_end = on_track_end
        self._on_engine_error = on_engine_error
        self._queue: asyncio.Queue[EngineEvent] = asyncio.Queue()
        self._task: asyncio.Task[None] | None = None

    async def handle_engine_event(self, event: EngineEvent) -> None:
        self._queue.put_nowait(event)

    async def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        task = self._task
        self._task = None
        if task is None:
            return
        task.cancel()
        with suppress(asyncio.CancelledError):
            await task

    async def drain(self) -> None:
        """Wait until every queued event has been dispatched."""
        await self._queue.join()

    async def _run(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                await self.dispatch(event)
            except Exception:
                logger.exception("Failed to handle engine event %r", event)
            finally:
                self._queue.task_done()

    async def dispatch(self, event: EngineEvent) -> None:
        if isinstance(event, TrackEnded):
            if event.reason == "eof":
                logger.info("Track ended; advancing.")
                await self._on_track_end()
            elif event.reason == "error":
                await self._on_engine_error("Playback ended with an engine error.")
            else:
                logger.debug("Ignoring track end (%s).", event.reason)
        elif isinstance(event, EngineError):
            await self._on_engine_error(event.message)
