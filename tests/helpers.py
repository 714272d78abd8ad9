"""Shared builders for service tests."""

from __future__ import annotations

import asyncio
from collections.abc import Iterable

from navicli.errors import ResolutionFailure
from navicli.services.catalog_client import Track

STREAM_BASE = "http://music.test/rest/stream?id="


def make_tracks(count: int) -> list[Track]:
    return [
        Track(
            id=f"t{i}",
            title=f"Song {i}",
            artist=f"Artist {i}",
            album=f"Album {i}",
            duration_s=180 + i,
            size_bytes=3 * 1024 * 1024,
        )
        for i in range(count)
    ]


def stream_url(track_id: str) -> str:
    return f"{STREAM_BASE}{track_id}"


class StubCatalog:
    """In-memory catalog source with controllable resolution behavior."""

    def __init__(
        self,
        tracks: Iterable[Track] = (),
        *,
        delay_s: float = 0.0,
        hang: bool = False,
        fail_ids: Iterable[str] = (),
    ) -> None:
        self.tracks = list(tracks)
        self.delay_s = delay_s
        self.hang = hang
        self.fail_ids = set(fail_ids)
        self.resolve_calls: list[str] = []
        self.fetch_calls = 0

    async def fetch_catalog(self) -> list[Track]:
        self.fetch_calls += 1
        return list(self.tracks)

    async def resolve_play_url(self, track_id: str) -> str:
        self.resolve_calls.append(track_id)
        if self.hang:
            await asyncio.Event().wait()
        if self.delay_s:
            await asyncio.sleep(self.delay_s)
        if track_id in self.fail_ids:
            raise ResolutionFailure(f"server refused {track_id}")
        return stream_url(track_id)
