"""Audio engine contract and event payloads.

`PlaybackController` depends on this protocol to stay engine-agnostic. Concrete
implementations (fake/mpv/VLC) translate engine-specific behavior into these
shared commands, property names, and events.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Literal, Protocol

EndReason = Literal["eof", "stop", "error"]

PROP_VOLUME = "volume"
PROP_MUTE = "mute"
PROP_PAUSE = "pause"
PROP_TIME_POS = "time-pos"
PROP_DURATION = "duration"


@dataclass(frozen=True)
class EngineEvent:
    """Marker base type for engine-originated events."""

    pass


@dataclass(frozen=True)
class TrackEnded(EngineEvent):
    """Loaded media finished; `reason` distinguishes natural end from stop."""

    reason: EndReason = "eof"


@dataclass(frozen=True)
class EngineError(EngineEvent):
    """Engine-reported runtime error outside of a command call."""

    message: str


EngineEventHandler = Callable[[EngineEvent], Awaitable[None]]


class AudioEngine(Protocol):
    """Audio decode/output engine consumed by the playback controller.

    `toggle_pause` flips transport state inside the engine; callers that care
    about the actual state read the `pause` property.
    """

    def set_event_handler(self, handler: EngineEventHandler) -> None: ...

    def is_active(self) -> bool: ...

    async def start(self) -> None: ...

    async def shutdown(self) -> None: ...

    async def play(self, url: str) -> None: ...

    async def stop(self) -> None: ...

    async def toggle_pause(self) -> None: ...

    async def set_property(self, name: str, value: Any) -> None: ...

    async def get_property(self, name: str) -> Any: ...


def coerce_float(value: Any, default: float = 0.0) -> float:
    if isinstance(value, bool) or value is None:
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default
