"""Authoritative, lock-guarded record of what is loaded and playing.

`PlaybackSession` is owned by the playback controller. Fields are never
exposed directly; every mutation goes through a short critical section that
enforces the session invariants atomically:

- at most one load is in flight (`begin_load` rejects while `loading`);
- `playing` and `loading` are never both true.

No engine or network I/O may happen while the lock is held.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Literal

from navicli.services.catalog_client import Track

SessionStatus = Literal["idle", "loading", "playing", "paused", "failed"]


@dataclass(frozen=True)
class SessionSnapshot:
    """Immutable copy of session fields, safe to hand across tasks."""

    index: int | None = None
    track: Track | None = None
    playing: bool = False
    loading: bool = False
    error: str | None = None

    @property
    def status(self) -> SessionStatus:
        if self.loading:
            return "loading"
        if self.error is not None:
            return "failed"
        if self.playing:
            return "playing"
        if self.track is not None:
            return "paused"
        return "idle"


class PlaybackSession:
    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._index: int | None = None
        self._track: Track | None = None
        self._playing = False
        self._loading = False
        self._error: str | None = None
        self._pending_error: str | None = None

    async def snapshot(self) -> SessionSnapshot:
        async with self._lock:
            return self._snapshot_locked()

    async def begin_load(self, index: int, track: Track) -> bool:
        """Enter `Loading(index)`; returns False when a load is already in flight."""
        async with self._lock:
            if self._loading:
                return False
            self._loading = True
            self._playing = False
            self._index = index
            self._track = track
            self._error = None
            self._pending_error = None
            return True

    async def finish_load(self, index: int) -> bool:
        """Settle the in-flight load of `index` once the engine accepted it.

        A fault recorded while the load was running turns it into `Failed`.
        """
        async with self._lock:
            if not self._loading or self._index != index:
                return False
            self._loading = False
            self._error = self._pending_error
            self._pending_error = None
            self._playing = self._error is None
            return True

    async def fail_load(self, index: int, message: str) -> bool:
        async with self._lock:
            if not self._loading or self._index != index:
                return False
            self._loading = False
            self._playing = False
            self._error = message
            self._pending_error = None
            return True

    async def set_playing(self, playing: bool) -> SessionSnapshot | None:
        """Flip transport state of a loaded track; None when not applicable."""
        async with self._lock:
            if self._loading or self._track is None or self._error is not None:
                return None
            self._playing = playing
            return self._snapshot_locked()

    async def mark_failed(self, message: str) -> SessionSnapshot:
        """Record an engine fault; during a load it is held until `finish_load`."""
        async with self._lock:
            if self._loading:
                self._pending_error = message
            else:
                self._playing = False
                self._error = message
            return self._snapshot_locked()

    def _snapshot_locked(self) -> SessionSnapshot:
        return SessionSnapshot(
            index=self._index,
            track=self._track,
            playing=self._playing,
            loading=self._loading,
            error=self._error,
        )
