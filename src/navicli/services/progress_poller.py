"""Periodic transport sampling for the progress line.

The poller only reads: it takes a session snapshot and issues read-only
engine property queries. It never mutates session state, so a slow or stuck
engine can at worst cost one skipped tick.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from contextlib import suppress
from dataclasses import dataclass
from typing import Literal

from navicli.events import ProgressUpdated
from navicli.services.audio_engine import (
    PROP_DURATION,
    PROP_MUTE,
    PROP_TIME_POS,
    PROP_VOLUME,
    AudioEngine,
    coerce_float,
)
from navicli.services.catalog_client import Track
from navicli.services.session_state import SessionSnapshot

logger = logging.getLogger(__name__)

POLL_INTERVAL_S = 1.0
QUERY_TIMEOUT_S = 0.2
PROGRESS_BAR_WIDTH = 30
BAR_FILLED = "▓"
BAR_EMPTY = "░"

ProgressKind = Literal["idle", "paused", "playing"]


@dataclass(frozen=True)
class ProgressSnapshot:
    kind: ProgressKind
    index: int | None = None
    track: Track | None = None
    position_s: float = 0.0
    duration_s: float = 0.0
    progress: float = 0.0
    volume_text: str = "100%"

    @property
    def bar(self) -> str:
        return render_progress_bar(self.progress)


def compute_progress(position_s: float, duration_s: float) -> float | None:
    """Fraction of the track played, clamped to 0..1; None for unusable samples."""
    if duration_s <= 0 or position_s < 0:
        return None
    return max(0.0, min(position_s / duration_s, 1.0))


def render_progress_bar(progress: float, width: int = PROGRESS_BAR_WIDTH) -> str:
    progress = max(0.0, min(progress, 1.0))
    filled = int(progress * width)
    return BAR_FILLED * filled + BAR_EMPTY * (width - filled) + f" {progress * 100:.1f}%"


def format_volume(volume: float, muted: bool) -> str:
    if muted:
        return "MUTE"
    return f"{int(round(volume))}%"


class ProgressPoller:
    def __init__(
        self,
        *,
        engine: AudioEngine,
        snapshot_provider: Callable[[], Awaitable[SessionSnapshot]],
        emit_event: Callable[[object], Awaitable[None]],
        interval_s: float = POLL_INTERVAL_S,
        query_timeout_s: float = QUERY_TIMEOUT_S,
    ) -> None:
        self._engine = engine
        self._snapshot_provider = snapshot_provider
        self._emit_event = emit_event
        self._interval_s = interval_s
        self._query_timeout_s = query_timeout_s
        self._stop_event = asyncio.Event()
        self._task: asyncio.Task[None] | None = None

    async def start(self) -> None:
        if self._task is not None:
            return
        self._stop_event.clear()
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        self._stop_event.set()
        task = self._task
        self._task = None
        if task is None:
            return
        task.cancel()
        with suppress(asyncio.CancelledError):
            await task

    async def tick(self) -> ProgressSnapshot | None:
        """Sample once and emit the result; returns None when the tick is skipped."""
        session = await self._snapshot_provider()
        if session.loading:
            return None
        if not self._engine.is_active():
            progress = ProgressSnapshot(kind="idle")
        elif not session.playing:
            if session.track is None:
                return None
            volume_text = await self._read_volume_text()
            progress = ProgressSnapshot(
                kind="paused",
                index=session.index,
                track=session.track,
                volume_text=volume_text,
            )
        else:
            try:
                sample = await asyncio.wait_for(
                    self._read_transport(), timeout=self._query_timeout_s
                )
            except asyncio.TimeoutError:
                logger.debug("Progress query timed out; skipping tick.")
                return None
            except Exception as exc:
                logger.debug("Progress query failed: %s", exc)
                return None
            position, duration, volume, muted = sample
            if position is None or duration is None:
                return None
            fraction = compute_progress(position, duration)
            if fraction is None:
                return None
            progress = ProgressSnapshot(
                kind="playing",
                index=session.index,
                track=session.track,
                position_s=position,
                duration_s=duration,
                progress=fraction,
                volume_text=format_volume(volume, muted),
            )
        await self._emit_event(ProgressUpdated(progress))
        return progress

    async def _run(self) -> None:
        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self._interval_s)
                break
            except asyncio.TimeoutError:
                pass
            try:
                await self.tick()
            except Exception:
                logger.exception("Progress tick failed")

    async def _read_transport(
        self,
    ) -> tuple[float | None, float | None, float, bool]:
        position = await self._engine.get_property(PROP_TIME_POS)
        duration = await self._engine.get_property(PROP_DURATION)
        volume, muted = await self._read_volume()
        return (
            None if position is None else coerce_float(position),
            None if duration is None else coerce_float(duration),
            volume,
            muted,
        )

    async def _read_volume(self) -> tuple[float, bool]:
        try:
            volume = coerce_float(await self._engine.get_property(PROP_VOLUME), 100.0)
        except Exception:
            volume = 100.0
        try:
            muted = bool(await self._engine.get_property(PROP_MUTE))
        except Exception:
            muted = False
        return volume, muted

    async def _read_volume_text(self) -> str:
        try:
            volume, muted = await asyncio.wait_for(
                self._read_volume(), timeout=self._query_timeout_s
            )
        except asyncio.TimeoutError:
            return format_volume(100.0, False)
        return format_volume(volume, muted)
