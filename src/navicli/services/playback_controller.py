"""Playback orchestration between user intent, the catalog, and the engine.

`PlaybackController` is the only writer of session state and the only
component that issues mutating commands to the audio engine. Commands are safe
to call concurrently: a play request enters `Loading(i)` synchronously and the
slow part (URL resolution, engine hand-off) runs in a supervised background
task, so callers never block on the network or the engine.

Concurrent play/advance requests while a load is in flight are dropped
(first-writer-wins until the load finishes). Track-end handling goes through
the same guarded path, so an end-of-track signal during a manual skip cannot
double-advance.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Sequence
from contextlib import suppress
from dataclasses import dataclass
from typing import Any, Callable, Protocol, TypeVar

from navicli.errors import (
    EngineFault,
    ResolutionTimeout,
    format_user_error,
)
from navicli.events import Notice, SessionChanged, VolumeChanged
from navicli.services.audio_engine import (
    PROP_MUTE,
    PROP_PAUSE,
    PROP_VOLUME,
    AudioEngine,
    coerce_float,
)
from navicli.services.catalog_client import RESOLVE_TIMEOUT_S, Track
from navicli.services.session_state import PlaybackSession, SessionSnapshot

logger = logging.getLogger(__name__)

T = TypeVar("T")

SETTLE_DELAY_S = 0.05
ENGINE_COMMAND_TIMEOUT_S = 2.0
PROPERTY_TIMEOUT_S = 0.2
SHUTDOWN_GRACE_S = 2.0
VOLUME_STEP = 5.0


class UrlResolver(Protocol):
    async def resolve_play_url(self, track_id: str) -> str: ...


@dataclass(frozen=True)
class QueueItem:
    """Single entry of the engine play queue."""

    track_id: str
    uri: str
    title: str
    artist: str
    duration_s: int


@dataclass(frozen=True)
class LoadResult:
    """Outcome of one supervised load task."""

    index: int
    ok: bool
    error: str | None = None


class PlaybackController:
    """Owns playback state transitions and engine commands."""

    def __init__(
        self,
        *,
        engine: AudioEngine,
        resolver: UrlResolver,
        catalog_provider: Callable[[], Sequence[Track]],
        emit_event: Callable[[object], Awaitable[None]],
        resolve_timeout_s: float = RESOLVE_TIMEOUT_S,
        settle_delay_s: float = SETTLE_DELAY_S,
        command_timeout_s: float = ENGINE_COMMAND_TIMEOUT_S,
        property_timeout_s: float = PROPERTY_TIMEOUT_S,
        shutdown_grace_s: float = SHUTDOWN_GRACE_S,
    ) -> None:
        self._engine = engine
        self._resolver = resolver
        self._catalog_provider = catalog_provider
        self._emit_event = emit_event
        self._resolve_timeout_s = resolve_timeout_s
        self._settle_delay_s = settle_delay_s
        self._command_timeout_s = command_timeout_s
        self._property_timeout_s = property_timeout_s
        self._shutdown_grace_s = shutdown_grace_s
        self._session = PlaybackSession()
        self._queue: tuple[QueueItem, ...] = ()
        self._engine_loaded = False
        self._load_task: asyncio.Task[LoadResult] | None = None

    @property
    def engine(self) -> AudioEngine:
        return self._engine

    @property
    def queue(self) -> tuple[QueueItem, ...]:
        return self._queue

    async def snapshot(self) -> SessionSnapshot:
        return await self._session.snapshot()

    async def start(
        self, *, volume: float | None = None, muted: bool | None = None
    ) -> None:
        """Start the engine and apply persisted volume/mute before any playback."""
        await self._engine.start()
        if volume is not None:
            await self._engine_call(
                "set volume",
                self._engine.set_property(PROP_VOLUME, _clamp_volume(volume)),
            )
        if muted is not None:
            await self._engine_call(
                "set mute", self._engine.set_property(PROP_MUTE, bool(muted))
            )

    async def shutdown(self) -> None:
        """Cancel pending load and tell the engine to quit within the grace period."""
        task = self._load_task
        if task is not None and not task.done():
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task
        try:
            await asyncio.wait_for(
                self._engine.shutdown(), timeout=self._shutdown_grace_s
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Audio engine did not quit within %.1fs; abandoning it.",
                self._shutdown_grace_s,
            )
        except Exception as exc:
            logger.warning("Audio engine shutdown failed: %s", exc)

    async def play_at(self, index: int) -> bool:
        """Request playback of catalog `index`; False when rejected."""
        tracks = self._catalog_provider()
        if not 0 <= index < len(tracks):
            return False
        track = tracks[index]
        if not await self._session.begin_load(index, track):
            logger.debug("Play request for %d dropped: load in flight.", index)
            return False
        logger.info("Loading track %d (%s - %s)", index, track.artist, track.title)
        self._load_task = asyncio.create_task(self._supervise_load(index, track))
        await self._emit_session()
        return True

    async def advance(self, delta: int) -> bool:
        """Move `delta` tracks from the current index, wrapping in both directions."""
        count = len(self._catalog_provider())
        if count == 0:
            return False
        snapshot = await self._session.snapshot()
        if snapshot.loading:
            logger.debug("Advance(%+d) dropped: load in flight.", delta)
            return False
        if snapshot.index is None:
            target = 0 if delta >= 0 else count - 1
        else:
            target = (snapshot.index + delta) % count
        return await self.play_at(target)

    async def next_track(self) -> bool:
        return await self.advance(1)

    async def previous_track(self) -> bool:
        return await self.advance(-1)

    async def on_track_end(self) -> bool:
        return await self.advance(1)

    async def wait_for_load(self) -> LoadResult | None:
        """Wait for the in-flight (or most recent) load to settle."""
        task = self._load_task
        if task is None:
            return None
        return await asyncio.shield(task)

    async def toggle_pause(self) -> bool:
        """Flip pause for the loaded track with exactly one engine toggle.

        The engine's `pause` property is read first; when it disagrees with the
        session (an external change the session never saw), the session adopts
        the engine's transport state before toggling.
        """
        snapshot = await self._session.snapshot()
        if snapshot.status not in {"playing", "paused"}:
            return False
        playing = snapshot.playing
        engine_paused = await self._read_property(PROP_PAUSE)
        if engine_paused is not None and bool(engine_paused) == playing:
            logger.warning(
                "Session/engine transport desync (session playing=%s, engine paused=%s).",
                playing,
                engine_paused,
            )
            playing = not bool(engine_paused)
        try:
            await self._engine_call("toggle pause", self._engine.toggle_pause())
        except EngineFault as exc:
            await self.report_engine_fault(str(exc))
            return False
        if await self._session.set_playing(not playing) is None:
            return False
        await self._emit_session()
        return True

    async def change_volume(self, delta: float = VOLUME_STEP) -> float | None:
        current = await self._read_property(PROP_VOLUME)
        if current is None:
            return None
        return await self.set_volume(coerce_float(current) + delta)

    async def set_volume(self, volume: float) -> float | None:
        volume = _clamp_volume(volume)
        try:
            await self._engine_call(
                "set volume", self._engine.set_property(PROP_VOLUME, volume)
            )
        except EngineFault as exc:
            await self.report_engine_fault(str(exc))
            return None
        muted = await self._read_property(PROP_MUTE)
        await self._emit_event(VolumeChanged(volume, bool(muted)))
        return volume

    async def toggle_mute(self) -> bool | None:
        current = await self._read_property(PROP_MUTE)
        if current is None:
            return None
        muted = not bool(current)
        try:
            await self._engine_call(
                "set mute", self._engine.set_property(PROP_MUTE, muted)
            )
        except EngineFault as exc:
            await self.report_engine_fault(str(exc))
            return None
        volume = await self._read_property(PROP_VOLUME)
        await self._emit_event(VolumeChanged(coerce_float(volume, 100.0), muted))
        return muted

    async def report_engine_fault(self, detail: str) -> None:
        """Convert an engine fault into `Failed` plus a user-visible message."""
        message = format_user_error(
            what_failed="Audio engine command failed.",
            likely_cause="The audio engine stopped responding or rejected the command.",
            next_step="Retry, skip to another track, or restart navicli.",
            detail=detail,
        )
        logger.warning("Engine fault: %s", detail)
        await self._session.mark_failed(message)
        await self._emit_session()
        await self._emit_event(Notice(detail, level="error"))

    async def _supervise_load(self, index: int, track: Track) -> LoadResult:
        try:
            result = await self._load(index, track)
        except asyncio.CancelledError:
            await self._session.fail_load(index, "Playback request cancelled.")
            raise
        except Exception as exc:
            logger.exception("Engine fault while starting track %d", index)
            result = LoadResult(
                index,
                ok=False,
                error=format_user_error(
                    what_failed="Failed to start playback.",
                    likely_cause="Audio engine could not open or play the stream.",
                    next_step="Check the engine setup, then retry or skip.",
                    detail=str(exc) or exc.__class__.__name__,
                ),
            )
        if result.ok:
            if await self._session.finish_load(index):
                snapshot = await self._session.snapshot()
                if snapshot.error is None:
                    logger.info("Playing track %d", index)
                await self._emit_session()
        elif await self._session.fail_load(index, result.error or "Play Failed"):
            await self._emit_session()
            await self._emit_event(
                Notice(f"Play failed: {track.title or track.id}", level="error")
            )
        return result

    async def _load(self, index: int, track: Track) -> LoadResult:
        try:
            url = await asyncio.wait_for(
                self._resolver.resolve_play_url(track.id),
                timeout=self._resolve_timeout_s,
            )
        except (asyncio.TimeoutError, ResolutionTimeout) as exc:
            logger.warning("URL resolution timed out for track %s", track.id)
            return LoadResult(
                index,
                ok=False,
                error=format_user_error(
                    what_failed="Failed to resolve the stream URL.",
                    likely_cause="The server did not answer in time.",
                    next_step="Check connectivity, then retry or skip.",
                    detail=str(exc) or None,
                ),
            )
        except Exception as exc:
            logger.warning("URL resolution failed for track %s: %s", track.id, exc)
            return LoadResult(
                index,
                ok=False,
                error=format_user_error(
                    what_failed="Failed to resolve the stream URL.",
                    likely_cause="The server rejected the request or is unreachable.",
                    next_step="Check server settings and credentials, then retry.",
                    detail=str(exc) or exc.__class__.__name__,
                ),
            )
        if not url:
            logger.warning("Server returned an empty stream URL for track %s", track.id)
            return LoadResult(
                index,
                ok=False,
                error=format_user_error(
                    what_failed="Failed to resolve the stream URL.",
                    likely_cause="The server returned an empty stream URL.",
                    next_step="Check server settings and credentials, then retry.",
                    detail=f"Empty URL for track {track.id}",
                ),
            )
        self._queue = (
            QueueItem(
                track_id=track.id,
                uri=url,
                title=track.title,
                artist=track.artist,
                duration_s=track.duration_s,
            ),
        )
        if self._engine_loaded:
            await self._engine_call("stop", self._engine.stop())
            self._engine_loaded = False
            # Give the engine time to release the previous stream.
            await asyncio.sleep(self._settle_delay_s)
        await self._engine_call("play", self._engine.play(url))
        self._engine_loaded = True
        return LoadResult(index, ok=True)

    async def _engine_call(
        self, what: str, awaitable: Awaitable[T], timeout: float | None = None
    ) -> T:
        budget = self._command_timeout_s if timeout is None else timeout
        try:
            return await asyncio.wait_for(awaitable, timeout=budget)
        except asyncio.TimeoutError as exc:
            raise EngineFault(f"{what}: no engine response within {budget:g}s") from exc
        except EngineFault:
            raise
        except Exception as exc:
            raise EngineFault(f"{what}: {exc}") from exc

    async def _read_property(self, name: str) -> Any | None:
        if not self._engine.is_active():
            return None
        try:
            return await self._engine_call(
                f"read {name}",
                self._engine.get_property(name),
                timeout=self._property_timeout_s,
            )
        except EngineFault as exc:
            logger.debug("Property read failed: %s", exc)
            return None

    async def _emit_session(self) -> None:
        await self._emit_event(SessionChanged(await self._session.snapshot()))


def _clamp_volume(volume: float) -> float:
    return max(0.0, min(float(volume), 100.0))
