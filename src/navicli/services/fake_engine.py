"""Fake audio engine for deterministic testing and offline runs."""

from __future__ import annotations

import asyncio
from contextlib import suppress
from dataclasses import dataclass
from typing import Any

from .audio_engine import (
    PROP_DURATION,
    PROP_MUTE,
    PROP_PAUSE,
    PROP_TIME_POS,
    PROP_VOLUME,
    EngineEvent,
    EngineEventHandler,
    TrackEnded,
    coerce_float,
)


@dataclass
class _TransportState:
    url: str | None = None
    paused: bool = False
    position_s: float = 0.0
    duration_s: float = 0.0
    volume: float = 100.0
    muted: bool = False


class FakeAudioEngine:
    """In-memory engine that simulates transport progress.

    Every command is appended to `commands` so tests can assert exactly which
    engine calls a scenario produced.
    """

    def __init__(
        self,
        *,
        tick_interval_ms: int = 250,
        default_duration_s: float = 180.0,
        durations: dict[str, float] | None = None,
    ) -> None:
        self._tick_interval_ms = tick_interval_ms
        self._default_duration_s = default_duration_s
        self._durations = dict(durations or {})
        self._state = _TransportState()
        self._handler: EngineEventHandler | None = None
        self._lock = asyncio.Lock()
        self._stop_event = asyncio.Event()
        self._task: asyncio.Task[None] | None = None
        self._started = False
        self.commands: list[tuple[str, Any]] = []

    def set_event_handler(self, handler: EngineEventHandler) -> None:
        self._handler = handler

    def is_active(self) -> bool:
        return self._started

    async def start(self) -> None:
        if self._task is not None:
            return
        self._started = True
        self._stop_event.clear()
        self._task = asyncio.create_task(self._ticker_loop())

    async def shutdown(self) -> None:
        self.commands.append(("quit", None))
        self._started = False
        if self._task is None:
            return
        self._stop_event.set()
        self._task.cancel()
        with suppress(asyncio.CancelledError):
            await self._task
        self._task = None

    async def play(self, url: str) -> None:
        self.commands.append(("play", url))
        async with self._lock:
            self._state.url = url
            self._state.paused = False
            self._state.position_s = 0.0
            self._state.duration_s = self._durations.get(url, self._default_duration_s)

    async def stop(self) -> None:
        self.commands.append(("stop", None))
        async with self._lock:
            had_media = self._state.url is not None
            self._state.url = None
            self._state.paused = False
            self._state.position_s = 0.0
        if had_media:
            await self._emit(TrackEnded("stop"))

    async def toggle_pause(self) -> None:
        self.commands.append(("toggle_pause", None))
        async with self._lock:
            if self._state.url is None:
                return
            self._state.paused = not self._state.paused

    async def set_property(self, name: str, value: Any) -> None:
        self.commands.append(("set_property", (name, value)))
        async with self._lock:
            if name == PROP_VOLUME:
                self._state.volume = _clamp_float(coerce_float(value), 0.0, 100.0)
            elif name == PROP_MUTE:
                self._state.muted = bool(value)
            elif name == PROP_PAUSE:
                self._state.paused = bool(value)
            else:
                raise ValueError(f"Property {name!r} is not writable")

    async def get_property(self, name: str) -> Any:
        async with self._lock:
            if name == PROP_VOLUME:
                return self._state.volume
            if name == PROP_MUTE:
                return self._state.muted
            if name == PROP_PAUSE:
                return self._state.paused
            if name == PROP_TIME_POS:
                return self._state.position_s if self._state.url else None
            if name == PROP_DURATION:
                return self._state.duration_s if self._state.url else None
        raise ValueError(f"Unknown property {name!r}")

    async def _ticker_loop(self) -> None:
        try:
            while not self._stop_event.is_set():
                await asyncio.sleep(self._tick_interval_ms / 1000)
                await self._tick()
        except asyncio.CancelledError:
            pass

    async def _tick(self) -> None:
        async with self._lock:
            if self._state.url is None or self._state.paused:
                return
            duration = self._state.duration_s
            if duration <= 0:
                return
            next_pos = self._state.position_s + self._tick_interval_ms / 1000
            ended = next_pos >= duration
            if ended:
                self._state.url = None
                next_pos = 0.0
            self._state.position_s = next_pos
        if ended:
            await self._emit(TrackEnded("eof"))

    async def _emit(self, event: EngineEvent) -> None:
        if self._handler is None:
            return
        await self._handler(event)


def _clamp_float(value: float, min_value: float, max_value: float) -> float:
    return max(min_value, min(value, max_value))
