"""Path helpers for per-user app config and logs."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

from platformdirs import AppDirs

DEFAULT_APP_NAME = "navicli"
CONFIG_FILE_NAME = "config.toml"


@lru_cache(maxsize=4)
def get_app_dirs(app_name: str = DEFAULT_APP_NAME) -> AppDirs:
    """Return platform-specific app directories."""
    return AppDirs(app_name)


def _ensure_dir(path: Path) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    return path


def data_dir(app_name: str = DEFAULT_APP_NAME) -> Path:
    """Return the per-user data directory, creating it if needed."""
    return _ensure_dir(Path(get_app_dirs(app_name).user_data_dir))


def config_dir(app_name: str = DEFAULT_APP_NAME) -> Path:
    """Return the per-user config directory, creating it if needed."""
    return _ensure_dir(Path(get_app_dirs(app_name).user_config_dir))


def log_dir(app_name: str = DEFAULT_APP_NAME) -> Path:
    """Return the per-user log directory, creating it if needed."""
    return _ensure_dir(data_dir(app_name) / "logs")


def state_path(app_name: str = DEFAULT_APP_NAME) -> Path:
    """Return the JSON state file path."""
    return config_dir(app_name) / "state.json"


def home_config_path() -> Path | None:
    """Return `$HOME/.config/config.toml`, or None when HOME is unset."""
    home = os.environ.get("HOME")
    if not home:
        return None
    return Path(home) / ".config" / CONFIG_FILE_NAME


def user_config_path(app_name: str = DEFAULT_APP_NAME) -> Path:
    # Not created on lookup; a missing config dir just means no file there.
    return Path(get_app_dirs(app_name).user_config_dir) / CONFIG_FILE_NAME
