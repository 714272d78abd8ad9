"""VLC audio engine using python-vlc."""

from __future__ import annotations

import asyncio
import queue
import threading
from collections.abc import Coroutine
from dataclasses import dataclass
from typing import Any, cast

from .audio_engine import (
    PROP_DURATION,
    PROP_MUTE,
    PROP_PAUSE,
    PROP_TIME_POS,
    PROP_VOLUME,
    EngineError,
    EngineEvent,
    EngineEventHandler,
    TrackEnded,
    coerce_float,
)

SHUTDOWN_JOIN_TIMEOUT_S = 2.0


@dataclass
class _Command:
    name: str
    args: tuple[Any, ...]
    future: asyncio.Future[Any] | None


class VLCAudioEngine:
    """Audio engine backed by a dedicated VLC thread."""

    def __init__(self, *, poll_interval_ms: int = 200) -> None:
        self._poll_interval = poll_interval_ms / 1000
        self._handler: EngineEventHandler | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._queue: queue.Queue[_Command] = queue.Queue()
        self._thread: threading.Thread | None = None
        self._stop_event = threading.Event()

    def set_event_handler(self, handler: EngineEventHandler) -> None:
        self._handler = handler

    def is_active(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    async def start(self) -> None:
        if self._thread is not None:
            return
        self._loop = asyncio.get_running_loop()
        ready_future: asyncio.Future[None] = self._loop.create_future()
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._thread_main,
            args=(ready_future,),
            name="VLCEngineThread",
            daemon=True,
        )
        self._thread.start()
        await ready_future

    async def shutdown(self) -> None:
        thread = self._thread
        if thread is None:
            return
        self._stop_event.set()
        self._queue.put(_Command("wake", (), None))
        thread.join(timeout=SHUTDOWN_JOIN_TIMEOUT_S)
        if thread.is_alive():
            raise RuntimeError(
                f"VLC engine thread did not stop within {SHUTDOWN_JOIN_TIMEOUT_S} seconds"
            )
        self._thread = None

    async def play(self, url: str) -> None:
        await self._submit("play", url)

    async def stop(self) -> None:
        await self._submit("stop")

    async def toggle_pause(self) -> None:
        await self._submit("toggle_pause")

    async def set_property(self, name: str, value: Any) -> None:
        await self._submit("set_property", name, value)

    async def get_property(self, name: str) -> Any:
        return await self._submit("get_property", name)

    async def _submit(self, name: str, *args: Any) -> Any:
        if self._loop is None or not self.is_active():
            raise RuntimeError("VLC engine not started.")
        future: asyncio.Future[Any] = self._loop.create_future()
        self._queue.put(_Command(name, args, future))
        return await future

    def _thread_main(self, ready_future: asyncio.Future[None]) -> None:
        try:
            import vlc

            instance = vlc.Instance("--no-video")
            player = instance.media_player_new()
        except Exception as exc:  # pragma: no cover - depends on VLC install
            self._notify_future_exception(
                ready_future,
                RuntimeError("VLC engine unavailable. Ensure VLC/libVLC is installed."),
            )
            self._emit_event(EngineError(str(exc)))
            return

        self._notify_future_result(ready_future, None)
        last_state = "idle"

        while not self._stop_event.is_set():
            try:
                cmd = self._queue.get(timeout=self._poll_interval)
            except queue.Empty:
                cmd = None

            if cmd is not None and cmd.name != "wake":
                try:
                    result = self._handle_command(cmd, instance, player)
                    self._notify_future_result(cmd.future, result)
                except Exception as exc:  # pragma: no cover - engine safety net
                    self._notify_future_exception(cmd.future, exc)

            state = _state_name(player)
            if state != last_state:
                last_state = state
                if state == "ended":
                    self._emit_event(TrackEnded("eof"))
                elif state == "error":
                    self._emit_event(EngineError("VLC reported a playback error"))

        player.stop()

    def _handle_command(self, cmd: _Command, instance: Any, player: Any) -> Any:
        name = cmd.name
        if name == "play":
            (url,) = cmd.args
            player.set_media(instance.media_new(url))
            if player.play() == -1:
                raise RuntimeError(f"VLC could not start playback of {url}")
            return None
        if name == "toggle_pause":
            player.pause()
            return None
        if name == "stop":
            player.stop()
            return None
        if name == "set_property":
            prop, value = cmd.args
            if prop == PROP_VOLUME:
                player.audio_set_volume(int(round(coerce_float(value))))
            elif prop == PROP_MUTE:
                player.audio_set_mute(bool(value))
            elif prop == PROP_PAUSE:
                player.set_pause(1 if value else 0)
            else:
                raise ValueError(f"Property {prop!r} is not writable")
            return None
        if name == "get_property":
            (prop,) = cmd.args
            return _read_property(player, prop)
        raise ValueError(f"Unknown command {name}")

    def _emit_event(self, event: EngineEvent) -> None:
        if self._handler is None or self._loop is None:
            return
        coro = self._handler(event)
        asyncio.run_coroutine_threadsafe(
            cast(Coroutine[Any, Any, None], coro), self._loop
        )

    def _notify_future_result(
        self, future: asyncio.Future[Any] | None, value: Any
    ) -> None:
        if future is None or self._loop is None:
            return
        self._loop.call_soon_threadsafe(self._resolve_future_result, future, value)

    def _notify_future_exception(
        self, future: asyncio.Future[Any] | None, exc: Exception
    ) -> None:
        if future is None or self._loop is None:
            return
        self._loop.call_soon_threadsafe(self._resolve_future_exception, future, exc)

    @staticmethod
    def _resolve_future_result(future: asyncio.Future[Any], value: Any) -> None:
        if not future.done():
            future.set_result(value)

    @staticmethod
    def _resolve_future_exception(
        future: asyncio.Future[Any], exc: BaseException
    ) -> None:
        if not future.done():
            future.set_exception(exc)


def _read_property(player: Any, prop: str) -> Any:
    if prop == PROP_VOLUME:
        return float(max(player.audio_get_volume(), 0))
    if prop == PROP_MUTE:
        return bool(player.audio_get_mute())
    if prop == PROP_PAUSE:
        return _state_name(player) == "paused"
    if prop == PROP_TIME_POS:
        ms = player.get_time()
        return ms / 1000 if ms is not None and ms >= 0 else None
    if prop == PROP_DURATION:
        ms = player.get_length()
        return ms / 1000 if ms is not None and ms > 0 else None
    raise ValueError(f"Unknown property {prop!r}")


def _state_name(player: Any) -> str:
    try:
        state = player.get_state()
    except Exception:
        return "error"
    # python-vlc enums stringify as "State.Playing"; newer builds expose .name.
    name = getattr(state, "name", None) or str(state).rsplit(".", 1)[-1]
    return str(name).lower() or "idle"
