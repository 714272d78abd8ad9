"""Tests for the in-memory fake engine."""

from __future__ import annotations

import asyncio

import pytest

from navicli.services.audio_engine import TrackEnded
from navicli.services.fake_engine import FakeAudioEngine


def test_fake_engine_tracks_transport_properties() -> None:
    async def run() -> None:
        engine = FakeAudioEngine(tick_interval_ms=10_000, durations={"u1": 42.0})
        await engine.start()
        assert engine.is_active() is True
        assert await engine.get_property("time-pos") is None
        await engine.play("u1")
        assert await engine.get_property("duration") == 42.0
        assert await engine.get_property("time-pos") == 0.0
        await engine.toggle_pause()
        assert await engine.get_property("pause") is True
        await engine.set_property("volume", 150)
        assert await engine.get_property("volume") == 100.0
        with pytest.raises(ValueError):
            await engine.set_property("duration", 1)
        await engine.shutdown()
        assert engine.is_active() is False

    asyncio.run(run())


def test_fake_engine_emits_eof_then_stop_is_distinct() -> None:
    events: list[object] = []

    async def run() -> None:
        engine = FakeAudioEngine(tick_interval_ms=10, durations={"short": 0.02})

        async def handler(event: object) -> None:
            events.append(event)

        engine.set_event_handler(handler)
        await engine.start()
        await engine.play("short")
        for _ in range(50):
            if events:
                break
            await asyncio.sleep(0.01)
        await engine.play("long")
        await engine.stop()
        await engine.shutdown()

    asyncio.run(run())
    assert events == [TrackEnded("eof"), TrackEnded("stop")]
