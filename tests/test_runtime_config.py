"""Tests for runtime flag normalization helpers."""

from __future__ import annotations

from navicli.runtime_config import (
    DEFAULT_ENGINE,
    normalize_engine_name,
    resolve_engine_name,
    resolve_log_level,
)


def test_resolve_log_level_precedence() -> None:
    assert resolve_log_level(verbose=False, quiet=False) == "INFO"
    assert resolve_log_level(verbose=True, quiet=False) == "DEBUG"
    assert resolve_log_level(verbose=False, quiet=True) == "WARNING"
    assert resolve_log_level(verbose=True, quiet=True) == "WARNING"


def test_normalize_engine_name() -> None:
    assert normalize_engine_name(" VLC ") == "vlc"
    assert normalize_engine_name("mpv") == "mpv"
    assert normalize_engine_name("gstreamer") is None
    assert normalize_engine_name(None) is None


def test_resolve_engine_name_prefers_cli_then_config() -> None:
    assert resolve_engine_name(cli_value="fake", config_value="vlc") == "fake"
    assert resolve_engine_name(cli_value=None, config_value="vlc") == "vlc"
    assert resolve_engine_name(cli_value="bogus", config_value=None) == DEFAULT_ENGINE
    assert DEFAULT_ENGINE == "mpv"
