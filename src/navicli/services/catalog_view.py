"""In-memory catalog list backing the track table.

Search is destructive: a non-empty match set replaces the visible list until
the catalog is reloaded, and the playback controller indexes into whatever list
is visible at the time of the request.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass

from navicli.services.catalog_client import SONG_PAGE_SIZE, Track

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = SONG_PAGE_SIZE


@dataclass(frozen=True)
class SearchOutcome:
    query: str
    matches: int
    applied: bool
    message: str | None = None


class CatalogView:
    def __init__(
        self,
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
        play_at: Callable[[int], Awaitable[bool]] | None = None,
    ) -> None:
        if page_size <= 0:
            raise ValueError("page_size must be positive")
        self._page_size = page_size
        self._play_at = play_at
        self._tracks: tuple[Track, ...] = ()
        self._page = 1

    def bind_player(self, play_at: Callable[[int], Awaitable[bool]]) -> None:
        self._play_at = play_at

    @property
    def tracks(self) -> tuple[Track, ...]:
        return self._tracks

    @property
    def count(self) -> int:
        return len(self._tracks)

    @property
    def page_size(self) -> int:
        return self._page_size

    @property
    def current_page(self) -> int:
        return self._page

    @property
    def total_pages(self) -> int:
        return math.ceil(len(self._tracks) / self._page_size)

    def replace(self, tracks: Sequence[Track]) -> bool:
        """Swap in a new list; returns False when it equals the current one."""
        new_tracks = tuple(tracks)
        if new_tracks == self._tracks:
            return False
        self._tracks = new_tracks
        self._page = max(1, min(self._page, self.total_pages))
        return True

    def page_rows(self) -> tuple[Track, ...]:
        start = (self._page - 1) * self._page_size
        return self._tracks[start : start + self._page_size]

    def index_for_row(self, row: int) -> int | None:
        """Map a 0-based visible row on the current page to a catalog index."""
        if row < 0 or row >= self._page_size:
            return None
        index = (self._page - 1) * self._page_size + row
        if index >= len(self._tracks):
            return None
        return index

    def set_page(self, page: int) -> bool:
        if page < 1 or page > max(1, self.total_pages) or page == self._page:
            return False
        self._page = page
        return True

    def next_page(self) -> bool:
        return self.set_page(self._page + 1)

    def previous_page(self) -> bool:
        return self.set_page(self._page - 1)

    def search(self, query: str) -> SearchOutcome:
        if not query.strip():
            return SearchOutcome(query=query, matches=0, applied=False)
        needle = query.lower()
        matches = [
            track
            for track in self._tracks
            if needle in track.title.lower()
            or needle in track.artist.lower()
            or needle in track.album.lower()
        ]
        if not matches:
            return SearchOutcome(
                query=query,
                matches=0,
                applied=False,
                message=f"No results found for: {query}",
            )
        self._tracks = tuple(matches)
        self._page = 1
        logger.info("Search %r matched %d tracks", query, len(matches))
        return SearchOutcome(
            query=query,
            matches=len(matches),
            applied=True,
            message=f"Found {len(matches)} results for: {query}",
        )

    async def select_row(self, row: int) -> bool:
        index = self.index_for_row(row)
        if index is None or self._play_at is None:
            return False
        return await self._play_at(index)
