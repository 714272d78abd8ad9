"""Subsonic catalog client and its async facade.

`SubsonicClient` is a thin blocking wrapper over the Subsonic REST API
(Navidrome and compatible servers). `CatalogService` is what the rest of the
app talks to: it offloads blocking calls, bounds URL resolution with a timeout,
and maps every failure onto the `NetworkFailure`/`ResolutionFailure` taxonomy
so callers never see raw transport exceptions.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
import secrets
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol
from urllib.parse import urlencode

import requests

from navicli.errors import NetworkFailure, ResolutionFailure, ResolutionTimeout
from navicli.utils.async_utils import run_blocking

logger = logging.getLogger(__name__)

API_VERSION = "1.16.1"
CLIENT_NAME = "navicli"
SONG_PAGE_SIZE = 500
RESOLVE_TIMEOUT_S = 10.0


@dataclass(frozen=True)
class Track:
    """Catalog entry as returned by the server. Identity is `id`."""

    id: str
    title: str
    artist: str
    album: str
    duration_s: int = 0
    size_bytes: int = 0

    @property
    def size_mb(self) -> float:
        return self.size_bytes / 1024 / 1024


class SubsonicError(RuntimeError):
    """Server answered with a Subsonic `failed` status or a malformed body."""

    def __init__(self, message: str, *, code: int | None = None) -> None:
        super().__init__(message)
        self.code = code


def track_from_json(data: Any) -> Track | None:
    """Build a `Track` from a Subsonic song child, skipping unusable entries."""
    if not isinstance(data, dict):
        return None
    track_id = data.get("id")
    if track_id is None or str(track_id) == "":
        return None
    return Track(
        id=str(track_id),
        title=str(data.get("title") or ""),
        artist=str(data.get("artist") or ""),
        album=str(data.get("album") or ""),
        duration_s=_int_or_zero(data.get("duration")),
        size_bytes=_int_or_zero(data.get("size")),
    )


def _int_or_zero(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    try:
        return max(0, int(value))
    except (TypeError, ValueError):
        return 0


class SubsonicClient:
    def __init__(
        self,
        base_url: str,
        username: str,
        password: str,
        *,
        client_name: str = CLIENT_NAME,
        timeout_s: float = 15.0,
        session: requests.Session | None = None,
        salt_factory: Callable[[], str] | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._username = username
        self._password = password
        self._client_name = client_name
        self._timeout_s = timeout_s
        self._salt_factory = salt_factory or (lambda: secrets.token_hex(6))
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": f"{client_name}/{API_VERSION}"})

    def _auth_params(self) -> dict[str, str]:
        salt = self._salt_factory()
        token = hashlib.md5((self._password + salt).encode("utf-8")).hexdigest()
        return {
            "u": self._username,
            "t": token,
            "s": salt,
            "v": API_VERSION,
            "c": self._client_name,
        }

    def _get(self, endpoint: str, **params: Any) -> dict[str, Any]:
        query = {**self._auth_params(), "f": "json", **params}
        r = self.session.get(
            f"{self.base_url}/rest/{endpoint}", params=query, timeout=self._timeout_s
        )
        r.raise_for_status()
        payload = r.json()
        body = payload.get("subsonic-response") if isinstance(payload, dict) else None
        if not isinstance(body, dict):
            raise SubsonicError(f"Malformed response from {endpoint}")
        if body.get("status") != "ok":
            error = body.get("error") if isinstance(body.get("error"), dict) else {}
            raise SubsonicError(
                str(error.get("message") or f"{endpoint} failed"),
                code=error.get("code"),
            )
        return body

    def ping(self) -> None:
        self._get("ping")

    def list_songs(self, *, page_size: int = SONG_PAGE_SIZE) -> list[Track]:
        """Return every song on the server, paging through `search3`."""
        songs: list[Track] = []
        offset = 0
        while True:
            body = self._get(
                "search3",
                query="",
                artistCount=0,
                albumCount=0,
                songCount=page_size,
                songOffset=offset,
            )
            result = body.get("searchResult3")
            page = result.get("song") if isinstance(result, dict) else None
            if not isinstance(page, list):
                page = []
            for entry in page:
                track = track_from_json(entry)
                if track is not None:
                    songs.append(track)
            if len(page) < page_size:
                break
            offset += page_size
        logger.debug("Fetched %d songs from %s", len(songs), self.base_url)
        return songs

    def stream_url(self, track_id: str) -> str:
        """Return a signed stream URL the audio engine can open directly."""
        if not track_id:
            raise ValueError("track_id is required")
        query = urlencode({"id": track_id, **self._auth_params()})
        return f"{self.base_url}/rest/stream?{query}"


class CatalogSource(Protocol):
    """What the app needs from a catalog backend."""

    async def fetch_catalog(self) -> list[Track]: ...

    async def resolve_play_url(self, track_id: str) -> str: ...


class CatalogService:
    """Async catalog access with failures mapped to domain errors."""

    def __init__(
        self, client: SubsonicClient, *, resolve_timeout_s: float = RESOLVE_TIMEOUT_S
    ) -> None:
        self._client = client
        self._resolve_timeout_s = resolve_timeout_s

    async def fetch_catalog(self) -> list[Track]:
        try:
            return await run_blocking(self._client.list_songs)
        except (requests.RequestException, SubsonicError, ValueError) as exc:
            logger.warning("Catalog fetch failed: %s", exc)
            raise NetworkFailure(str(exc)) from exc

    async def resolve_play_url(self, track_id: str) -> str:
        try:
            url = await asyncio.wait_for(
                run_blocking(self._client.stream_url, track_id),
                timeout=self._resolve_timeout_s,
            )
        except asyncio.TimeoutError as exc:
            raise ResolutionTimeout(
                f"No URL for track {track_id} within {self._resolve_timeout_s:g}s"
            ) from exc
        except Exception as exc:
            raise ResolutionFailure(str(exc) or exc.__class__.__name__) from exc
        if not url:
            raise ResolutionFailure(f"Empty URL for track {track_id}")
        return url
