"""Tests for the paged catalog list and destructive search."""

from __future__ import annotations

import asyncio

import pytest
from helpers import make_tracks

from navicli.services.catalog_client import Track
from navicli.services.catalog_view import CatalogView


def _view(count: int, page_size: int = 4) -> CatalogView:
    view = CatalogView(page_size=page_size)
    view.replace(make_tracks(count))
    return view


def test_rejects_non_positive_page_size() -> None:
    with pytest.raises(ValueError):
        CatalogView(page_size=0)


def test_total_pages_rounds_up() -> None:
    assert _view(0).total_pages == 0
    assert _view(4).total_pages == 1
    assert _view(9).total_pages == 3


def test_page_rows_and_row_mapping() -> None:
    view = _view(10)
    assert [track.id for track in view.page_rows()] == ["t0", "t1", "t2", "t3"]
    assert view.next_page() is True
    assert view.current_page == 2
    assert view.index_for_row(0) == 4
    assert view.index_for_row(3) == 7
    assert view.next_page() is True
    assert [track.id for track in view.page_rows()] == ["t8", "t9"]
    assert view.index_for_row(2) is None
    assert view.index_for_row(-1) is None


def test_paging_stops_at_bounds() -> None:
    view = _view(5)
    assert view.previous_page() is False
    assert view.next_page() is True
    assert view.next_page() is False
    assert view.set_page(0) is False
    assert view.current_page == 2


def test_replace_detects_identical_lists_and_clamps_page() -> None:
    view = _view(10)
    assert view.replace(make_tracks(10)) is False
    view.set_page(3)
    assert view.replace(make_tracks(5)) is True
    assert view.current_page == 2
    assert view.replace([]) is True
    assert view.current_page == 1


def test_search_matches_title_artist_and_album_case_insensitively() -> None:
    view = CatalogView(page_size=10)
    view.replace(
        [
            Track("a", "Blue Monday", "New Order", "Power"),
            Track("b", "Song", "Blue Oyster Cult", "Agents"),
            Track("c", "Other", "Someone", "Kind of BLUE"),
            Track("d", "Nope", "Nobody", "Nothing"),
        ]
    )
    view.next_page()
    outcome = view.search("BLUE")
    assert outcome.applied is True
    assert outcome.matches == 3
    assert outcome.message == "Found 3 results for: BLUE"
    assert [track.id for track in view.tracks] == ["a", "b", "c"]
    assert view.current_page == 1


def test_search_keeps_surrounding_whitespace_in_query() -> None:
    view = CatalogView(page_size=10)
    view.replace(
        [
            Track("a", "Songbird", "Someone", "Album"),
            Track("b", "Song 1", "Someone", "Album"),
        ]
    )
    outcome = view.search("song ")
    assert outcome.matches == 1
    assert outcome.message == "Found 1 results for: song "
    assert [track.id for track in view.tracks] == ["b"]


def test_search_without_matches_keeps_list() -> None:
    view = _view(6)
    view.next_page()
    outcome = view.search("zzz")
    assert outcome.applied is False
    assert outcome.message == "No results found for: zzz"
    assert view.count == 6
    assert view.current_page == 2


def test_blank_search_is_ignored() -> None:
    view = _view(3)
    outcome = view.search("   ")
    assert outcome.applied is False
    assert outcome.message is None
    assert view.count == 3


def test_search_narrows_repeatedly_until_reload() -> None:
    view = _view(12)
    view.search("Song 1")
    assert [track.id for track in view.tracks] == ["t1", "t10", "t11"]
    view.search("Song 11")
    assert [track.id for track in view.tracks] == ["t11"]
    view.replace(make_tracks(12))
    assert view.count == 12


def test_select_row_plays_catalog_index_for_current_page() -> None:
    requested: list[int] = []

    async def play_at(index: int) -> bool:
        requested.append(index)
        return True

    view = _view(10)
    view.bind_player(play_at)
    view.next_page()

    async def run() -> None:
        assert await view.select_row(1) is True
        assert await view.select_row(9) is False

    asyncio.run(run())
    assert requested == [5]


def test_select_row_without_player_is_noop() -> None:
    view = _view(3)
    assert asyncio.run(view.select_row(0)) is False
