"""mpv audio engine driven over mpv's JSON IPC socket.

An `mpv --idle` subprocess is started once and kept for the process lifetime.
Commands are JSON lines tagged with a `request_id`; a single reader task
resolves the matching futures and turns `end-file` events into `TrackEnded`.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import shutil
import sys
import tempfile
import time
from contextlib import suppress
from pathlib import Path
from typing import Any

from .audio_engine import (
    PROP_DURATION,
    PROP_TIME_POS,
    EndReason,
    EngineError,
    EngineEvent,
    EngineEventHandler,
    TrackEnded,
)

logger = logging.getLogger(__name__)

_END_REASONS: dict[str, EndReason] = {
    "eof": "eof",
    "stop": "stop",
    "quit": "stop",
    "redirect": "stop",
    "error": "error",
}
_OPTIONAL_PROPERTIES = frozenset({PROP_TIME_POS, PROP_DURATION})


class MpvCommandError(RuntimeError):
    """mpv replied to a command with a non-success status."""

    def __init__(self, command: tuple[Any, ...], error: str) -> None:
        super().__init__(f"mpv command {command[0]!r} failed: {error}")
        self.command = command
        self.error = error


def default_ipc_path() -> Path:
    return Path(tempfile.gettempdir()) / f"navicli-mpv-{os.getpid()}.sock"


class MpvAudioEngine:
    def __init__(
        self,
        *,
        mpv_path: str | None = None,
        ipc_path: Path | None = None,
        connect_timeout_s: float = 3.0,
        command_timeout_s: float = 2.0,
        quit_grace_s: float = 2.0,
    ) -> None:
        self._mpv_path = mpv_path
        self._ipc_path = ipc_path or default_ipc_path()
        self._connect_timeout_s = connect_timeout_s
        self._command_timeout_s = command_timeout_s
        self._quit_grace_s = quit_grace_s
        self._handler: EngineEventHandler | None = None
        self._proc: asyncio.subprocess.Process | None = None
        self._reader: asyncio.StreamReader | None = None
        self._writer: asyncio.StreamWriter | None = None
        self._reader_task: asyncio.Task[None] | None = None
        self._pending: dict[int, asyncio.Future[Any]] = {}
        self._next_request_id = 0
        self._closing = False

    def set_event_handler(self, handler: EngineEventHandler) -> None:
        self._handler = handler

    def is_active(self) -> bool:
        return (
            self._proc is not None
            and self._proc.returncode is None
            and self._writer is not None
            and not self._closing
        )

    async def start(self) -> None:
        if self._proc is not None:
            return
        if sys.platform == "win32":
            raise RuntimeError("mpv engine needs a unix IPC socket; use --engine vlc.")
        binary = self._mpv_path or shutil.which("mpv")
        if binary is None:
            raise RuntimeError("mpv binary not found on PATH.")
        with suppress(FileNotFoundError):
            self._ipc_path.unlink()
        self._closing = False
        self._proc = await asyncio.create_subprocess_exec(
            binary,
            "--idle=yes",
            "--no-video",
            "--no-terminal",
            "--msg-level=all=warn",
            f"--input-ipc-server={self._ipc_path}",
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.DEVNULL,
        )
        await self._connect()
        self._reader_task = asyncio.create_task(self._read_loop())
        logger.info("mpv engine started (pid=%s ipc=%s)", self._proc.pid, self._ipc_path)

    async def _connect(self) -> None:
        deadline = time.monotonic() + self._connect_timeout_s
        last_error: Exception | None = None
        while time.monotonic() < deadline:
            if self._proc is not None and self._proc.returncode is not None:
                break
            try:
                self._reader, self._writer = await asyncio.open_unix_connection(
                    str(self._ipc_path)
                )
                return
            except OSError as exc:
                last_error = exc
                await asyncio.sleep(0.05)
        await self._terminate_process()
        raise RuntimeError(
            f"Could not connect to mpv IPC socket {self._ipc_path}: {last_error!r}"
        )

    async def shutdown(self) -> None:
        if self._proc is None:
            return
        self._closing = True
        if self._writer is not None:
            with suppress(Exception):
                self._send({"command": ["quit"]})
                await self._writer.drain()
        try:
            await asyncio.wait_for(self._proc.wait(), timeout=self._quit_grace_s)
        except asyncio.TimeoutError:
            logger.warning("mpv did not quit within %.1fs; terminating.", self._quit_grace_s)
            await self._terminate_process()
        if self._reader_task is not None:
            self._reader_task.cancel()
            with suppress(asyncio.CancelledError):
                await self._reader_task
            self._reader_task = None
        if self._writer is not None:
            self._writer.close()
            self._writer = None
        self._fail_pending(RuntimeError("mpv engine shut down"))
        self._proc = None
        with suppress(OSError):
            self._ipc_path.unlink()

    async def play(self, url: str) -> None:
        await self._request("loadfile", url, "replace")
        # mpv keeps `pause` across files; a new track always starts playing.
        await self._request("set_property", "pause", False)

    async def stop(self) -> None:
        await self._request("stop")

    async def toggle_pause(self) -> None:
        await self._request("cycle", "pause")

    async def set_property(self, name: str, value: Any) -> None:
        await self._request("set_property", name, value)

    async def get_property(self, name: str) -> Any:
        try:
            return await self._request("get_property", name)
        except MpvCommandError as exc:
            if name in _OPTIONAL_PROPERTIES and exc.error == "property unavailable":
                return None
            raise

    async def _request(self, *command: Any) -> Any:
        if not self.is_active():
            raise RuntimeError("mpv engine not started.")
        loop = asyncio.get_running_loop()
        self._next_request_id += 1
        request_id = self._next_request_id
        future: asyncio.Future[Any] = loop.create_future()
        self._pending[request_id] = future
        try:
            self._send({"command": list(command), "request_id": request_id})
            assert self._writer is not None
            await self._writer.drain()
            reply = await asyncio.wait_for(future, timeout=self._command_timeout_s)
        finally:
            self._pending.pop(request_id, None)
        error = reply.get("error")
        if error != "success":
            raise MpvCommandError(command, str(error))
        return reply.get("data")

    def _send(self, payload: dict[str, Any]) -> None:
        if self._writer is None:
            raise RuntimeError("mpv IPC socket not connected.")
        self._writer.write((json.dumps(payload) + "\n").encode("utf-8"))

    async def _read_loop(self) -> None:
        assert self._reader is not None
        try:
            while True:
                line = await self._reader.readline()
                if not line:
                    break
                try:
                    message = json.loads(line.decode("utf-8", errors="replace"))
                except json.JSONDecodeError:
                    logger.debug("Ignoring malformed mpv IPC line: %r", line)
                    continue
                event = self._dispatch_message(message)
                if event is not None:
                    await self._emit(event)
        except asyncio.CancelledError:
            raise
        except OSError as exc:
            logger.warning("mpv IPC read failed: %s", exc)
        self._fail_pending(RuntimeError("mpv IPC connection closed"))
        if not self._closing:
            self._writer = None
            await self._emit(EngineError("mpv exited unexpectedly"))

    def _dispatch_message(self, message: Any) -> EngineEvent | None:
        """Resolve command replies and map engine events; returns event to emit."""
        if not isinstance(message, dict):
            return None
        request_id = message.get("request_id")
        if isinstance(request_id, int) and "error" in message:
            future = self._pending.get(request_id)
            if future is not None and not future.done():
                future.set_result(message)
            return None
        if message.get("event") == "end-file":
            reason = _END_REASONS.get(str(message.get("reason", "eof")), "stop")
            if reason == "error":
                logger.warning("mpv end-file error: %s", message.get("file_error"))
            return TrackEnded(reason)
        return None

    def _fail_pending(self, exc: Exception) -> None:
        for future in self._pending.values():
            if not future.done():
                future.set_exception(exc)
        self._pending.clear()

    async def _terminate_process(self) -> None:
        if self._proc is None or self._proc.returncode is not None:
            return
        self._proc.terminate()
        try:
            await asyncio.wait_for(self._proc.wait(), timeout=1.0)
        except asyncio.TimeoutError:
            self._proc.kill()

    async def _emit(self, event: EngineEvent) -> None:
        if self._handler is None:
            return
        await self._handler(event)
