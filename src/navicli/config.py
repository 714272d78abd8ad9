"""TOML configuration loading.

The config file is read once at startup. Search order: an explicit
`--config` path, `$HOME/.config/config.toml`, the platform user config dir,
then `./config.toml`. Any problem is collected and raised as one
`ConfigInvalid` so the user sees everything to fix in a single run.
"""

from __future__ import annotations

import logging
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

from .errors import ConfigInvalid
from .paths import CONFIG_FILE_NAME, home_config_path, user_config_path
from .runtime_config import DEFAULT_ENGINE, ENGINE_NAMES, normalize_engine_name
from .services.catalog_client import SONG_PAGE_SIZE

logger = logging.getLogger(__name__)

DEFAULT_INITIAL_VOLUME = 50.0

SAMPLE_CONFIG = """\
[server]
url = "https://music.example.com"
username = "alice"
password = "secret"

[player]
engine = "mpv"
"""


@dataclass(frozen=True)
class ServerConfig:
    url: str
    username: str
    password: str = field(repr=False)


@dataclass(frozen=True)
class PlayerConfig:
    engine: str = DEFAULT_ENGINE
    page_size: int = SONG_PAGE_SIZE
    initial_volume: float = DEFAULT_INITIAL_VOLUME
    mpv_path: str | None = None


@dataclass(frozen=True)
class KeyBindings:
    """User-remappable keys; everything else is fixed."""

    search: str = "/"
    reload: str = "r"
    mute: str = "m"


@dataclass(frozen=True)
class AppConfig:
    server: ServerConfig
    player: PlayerConfig = field(default_factory=PlayerConfig)
    keys: KeyBindings = field(default_factory=KeyBindings)
    path: Path | None = None


def candidate_paths(explicit: Path | None = None) -> list[Path]:
    if explicit is not None:
        return [explicit]
    paths: list[Path] = []
    home = home_config_path()
    if home is not None:
        paths.append(home)
    paths.append(user_config_path())
    paths.append(Path.cwd() / CONFIG_FILE_NAME)
    return paths


def find_config(explicit: Path | None = None) -> Path:
    candidates = candidate_paths(explicit)
    for path in candidates:
        if path.is_file():
            return path
    searched = ", ".join(str(path) for path in candidates)
    raise ConfigInvalid([f"no config file found (searched: {searched})"])


def load_config(path: Path | None = None) -> AppConfig:
    """Locate, read, and validate the config file."""
    config_path = find_config(path)
    try:
        with config_path.open("rb") as handle:
            data = tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigInvalid([f"invalid TOML: {exc}"], path=str(config_path)) from exc
    except OSError as exc:
        raise ConfigInvalid(
            [f"cannot read file: {exc.strerror or exc}"], path=str(config_path)
        ) from exc
    config = parse_config(data, path=config_path)
    logger.info("Loaded config from %s", config_path)
    return config


def parse_config(data: dict[str, Any], *, path: Path | None = None) -> AppConfig:
    problems: list[str] = []
    server = _table(data, "server", problems)
    player = _table(data, "player", problems)
    keys = _table(data, "keys", problems)

    url = _required_str(server, "server.url", "url", problems)
    username = _required_str(server, "server.username", "username", problems)
    password = _required_str(
        server, "server.password", "password", problems, strip=False
    )
    if url:
        parsed = urlparse(url)
        if parsed.scheme not in {"http", "https"} or not parsed.netloc:
            problems.append("server.url must be an http(s) URL")

    engine_raw = player.get("engine", DEFAULT_ENGINE)
    engine = (
        normalize_engine_name(engine_raw) if isinstance(engine_raw, str) else None
    )
    if engine is None:
        problems.append(f"player.engine must be one of: {', '.join(ENGINE_NAMES)}")

    page_size = player.get("page_size", SONG_PAGE_SIZE)
    if isinstance(page_size, bool) or not isinstance(page_size, int) or page_size <= 0:
        problems.append("player.page_size must be a positive integer")

    initial_volume = player.get("initial_volume", DEFAULT_INITIAL_VOLUME)
    if (
        isinstance(initial_volume, bool)
        or not isinstance(initial_volume, (int, float))
        or not 0 <= initial_volume <= 100
    ):
        problems.append("player.initial_volume must be a number between 0 and 100")

    mpv_path = player.get("mpv_path")
    if mpv_path is not None and not isinstance(mpv_path, str):
        problems.append("player.mpv_path must be a string")

    bindings: dict[str, str] = {}
    for name in ("search", "reload", "mute"):
        if name not in keys:
            continue
        value = keys[name]
        if not isinstance(value, str) or not value.strip():
            problems.append(f"keys.{name} must be a non-empty string")
            continue
        bindings[name] = value.strip()

    if problems:
        raise ConfigInvalid(problems, path=str(path) if path else None)

    return AppConfig(
        server=ServerConfig(url=url.rstrip("/"), username=username, password=password),
        player=PlayerConfig(
            engine=engine or DEFAULT_ENGINE,
            page_size=page_size,
            initial_volume=float(initial_volume),
            mpv_path=mpv_path,
        ),
        keys=KeyBindings(**bindings),
        path=path,
    )


def _table(data: dict[str, Any], name: str, problems: list[str]) -> dict[str, Any]:
    value = data.get(name, {})
    if not isinstance(value, dict):
        problems.append(f"[{name}] must be a table")
        return {}
    return value


def _required_str(
    table: dict[str, Any],
    label: str,
    key: str,
    problems: list[str],
    *,
    strip: bool = True,
) -> str:
    value = table.get(key)
    if not isinstance(value, str) or not value.strip():
        problems.append(f"{label} is required")
        return ""
    return value.strip() if strip else value
