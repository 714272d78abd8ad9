"""Tests for platform-specific paths."""

from __future__ import annotations

from pathlib import Path

import navicli.paths as paths


class FakeAppDirs:
    """Minimal AppDirs stand-in used to control path roots during tests."""

    def __init__(self, data_dir: Path, config_dir: Path) -> None:
        self.user_data_dir = str(data_dir)
        self.user_config_dir = str(config_dir)


def _use_fake_dirs(monkeypatch, data_dir: Path, config_dir: Path) -> None:
    def fake_app_dirs(app_name: str) -> FakeAppDirs:
        assert app_name == "navicli"
        return FakeAppDirs(data_dir, config_dir)

    monkeypatch.setattr(paths, "AppDirs", fake_app_dirs)
    paths.get_app_dirs.cache_clear()


def test_paths_use_platformdirs_and_create_dirs(tmp_path, monkeypatch) -> None:
    data_dir = tmp_path / "data"
    config_dir = tmp_path / "config"
    _use_fake_dirs(monkeypatch, data_dir, config_dir)

    assert paths.data_dir() == data_dir
    assert paths.config_dir() == config_dir
    assert paths.log_dir() == data_dir / "logs"
    assert paths.state_path() == config_dir / "state.json"

    assert data_dir.exists()
    assert config_dir.exists()
    assert (data_dir / "logs").exists()
    paths.get_app_dirs.cache_clear()


def test_user_config_path_does_not_create_dir(tmp_path, monkeypatch) -> None:
    config_dir = tmp_path / "config"
    _use_fake_dirs(monkeypatch, tmp_path / "data", config_dir)

    assert paths.user_config_path() == config_dir / "config.toml"
    assert not config_dir.exists()
    paths.get_app_dirs.cache_clear()


def test_home_config_path_follows_home(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("HOME", str(tmp_path))
    assert paths.home_config_path() == tmp_path / ".config" / "config.toml"
    monkeypatch.delenv("HOME")
    assert paths.home_config_path() is None
