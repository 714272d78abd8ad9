"""Tests for engine event dispatch and automatic advance."""

from __future__ import annotations

import asyncio

from helpers import StubCatalog, make_tracks, stream_url

from navicli.services.audio_engine import EngineError, TrackEnded
from navicli.services.fake_engine import FakeAudioEngine
from navicli.services.playback_controller import PlaybackController
from navicli.services.track_end_notifier import TrackEndNotifier


def _recording_notifier() -> tuple[TrackEndNotifier, list[object]]:
    calls: list[object] = []

    async def on_track_end() -> None:
        calls.append("advance")

    async def on_engine_error(message: str) -> None:
        calls.append(("error", message))

    return (
        TrackEndNotifier(on_track_end=on_track_end, on_engine_error=on_engine_error),
        calls,
    )


def test_dispatch_routes_by_end_reason() -> None:
    notifier, calls = _recording_notifier()

    async def run() -> None:
        await notifier.dispatch(TrackEnded("eof"))
        await notifier.dispatch(TrackEnded("stop"))
        await notifier.dispatch(TrackEnded("error"))
        await notifier.dispatch(EngineError("decoder crashed"))

    asyncio.run(run())
    assert calls == [
        "advance",
        ("error", "Playback ended with an engine error."),
        ("error", "decoder crashed"),
    ]


def test_queued_events_are_handled_in_order() -> None:
    notifier, calls = _recording_notifier()

    async def run() -> None:
        await notifier.start()
        await notifier.handle_engine_event(TrackEnded("eof"))
        await notifier.handle_engine_event(EngineError("late error"))
        await notifier.handle_engine_event(TrackEnded("eof"))
        await notifier.drain()
        await notifier.stop()

    asyncio.run(run())
    assert calls == ["advance", ("error", "late error"), "advance"]


def test_handler_failure_does_not_stop_consumer() -> None:
    calls: list[str] = []

    async def on_track_end() -> None:
        calls.append("advance")
        if len(calls) == 1:
            raise RuntimeError("boom")

    async def on_engine_error(message: str) -> None:
        calls.append(message)

    notifier = TrackEndNotifier(
        on_track_end=on_track_end, on_engine_error=on_engine_error
    )

    async def run() -> None:
        await notifier.start()
        await notifier.handle_engine_event(TrackEnded("eof"))
        await notifier.handle_engine_event(TrackEnded("eof"))
        await notifier.drain()
        await notifier.stop()

    asyncio.run(run())
    assert calls == ["advance", "advance"]


def test_natural_end_advances_to_next_track() -> None:
    tracks = make_tracks(3)
    engine = FakeAudioEngine(
        tick_interval_ms=10,
        durations={stream_url("t0"): 0.03, stream_url("t1"): 60.0},
    )

    async def run() -> None:
        async def emit_event(event: object) -> None:
            return None

        controller = PlaybackController(
            engine=engine,
            resolver=StubCatalog(tracks),
            catalog_provider=lambda: tracks,
            emit_event=emit_event,
            settle_delay_s=0.0,
        )
        notifier = TrackEndNotifier(
            on_track_end=controller.on_track_end,
            on_engine_error=controller.report_engine_fault,
        )
        engine.set_event_handler(notifier.handle_engine_event)
        await controller.start()
        await notifier.start()

        await controller.play_at(0)
        await controller.wait_for_load()
        for _ in range(50):
            await asyncio.sleep(0.02)
            snapshot = await controller.snapshot()
            if snapshot.index == 1 and snapshot.playing:
                break
        await notifier.drain()
        snapshot = await controller.snapshot()
        assert snapshot.index == 1
        assert snapshot.playing is True
        await notifier.stop()
        await controller.shutdown()

    asyncio.run(run())
    plays = [arg for name, arg in engine.commands if name == "play"]
    assert plays == [stream_url("t0"), stream_url("t1")]
