"""Tests for lock-guarded session transitions."""

from __future__ import annotations

import asyncio

from helpers import make_tracks

from navicli.services.session_state import PlaybackSession, SessionSnapshot

TRACKS = make_tracks(3)


def test_initial_snapshot_is_idle() -> None:
    snapshot = asyncio.run(PlaybackSession().snapshot())
    assert snapshot == SessionSnapshot()
    assert snapshot.status == "idle"


def test_begin_load_rejects_second_request() -> None:
    async def run() -> None:
        session = PlaybackSession()
        assert await session.begin_load(0, TRACKS[0]) is True
        assert await session.begin_load(1, TRACKS[1]) is False
        snapshot = await session.snapshot()
        assert snapshot.index == 0
        assert snapshot.loading is True
        assert snapshot.playing is False

    asyncio.run(run())


def test_concurrent_begin_load_admits_exactly_one() -> None:
    async def run() -> list[bool]:
        session = PlaybackSession()
        return list(
            await asyncio.gather(
                *(session.begin_load(i, TRACKS[i]) for i in range(3))
            )
        )

    results = asyncio.run(run())
    assert results.count(True) == 1


def test_finish_load_only_for_in_flight_index() -> None:
    async def run() -> None:
        session = PlaybackSession()
        await session.begin_load(1, TRACKS[1])
        assert await session.finish_load(0) is False
        assert await session.finish_load(1) is True
        snapshot = await session.snapshot()
        assert snapshot.status == "playing"
        assert snapshot.loading is False
        assert await session.finish_load(1) is False

    asyncio.run(run())


def test_fail_load_records_error_and_keeps_index() -> None:
    async def run() -> None:
        session = PlaybackSession()
        await session.begin_load(2, TRACKS[2])
        assert await session.fail_load(2, "nope") is True
        snapshot = await session.snapshot()
        assert snapshot.status == "failed"
        assert snapshot.index == 2
        assert snapshot.error == "nope"
        assert await session.begin_load(0, TRACKS[0]) is True
        assert (await session.snapshot()).error is None

    asyncio.run(run())


def test_set_playing_requires_loaded_track() -> None:
    async def run() -> None:
        session = PlaybackSession()
        assert await session.set_playing(True) is None
        await session.begin_load(0, TRACKS[0])
        assert await session.set_playing(True) is None
        await session.finish_load(0)
        paused = await session.set_playing(False)
        assert paused is not None and paused.status == "paused"

    asyncio.run(run())


def test_mark_failed_outside_load_clears_playing() -> None:
    async def run() -> None:
        session = PlaybackSession()
        await session.begin_load(0, TRACKS[0])
        await session.finish_load(0)
        snapshot = await session.mark_failed("engine gone")
        assert snapshot.status == "failed"
        assert snapshot.playing is False

    asyncio.run(run())


def test_fault_during_load_turns_finish_into_failure() -> None:
    async def run() -> None:
        session = PlaybackSession()
        await session.begin_load(1, TRACKS[1])
        snapshot = await session.mark_failed("end-file error")
        assert snapshot.status == "loading"
        assert snapshot.error is None

        assert await session.finish_load(1) is True
        snapshot = await session.snapshot()
        assert snapshot.status == "failed"
        assert snapshot.playing is False
        assert snapshot.error == "end-file error"

        await session.begin_load(2, TRACKS[2])
        await session.finish_load(2)
        assert (await session.snapshot()).status == "playing"

    asyncio.run(run())
