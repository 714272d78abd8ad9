"""Tests for state storage."""

from __future__ import annotations

from pathlib import Path

import pytest

from navicli.state_store import (
    AppState,
    load_state,
    load_state_with_notice,
    save_state,
)


def test_state_roundtrip(tmp_path) -> None:
    path = tmp_path / "state.json"
    state = AppState(volume=35.0, muted=True, last_search="radiohead")

    save_state(path, state)
    loaded = load_state(path)
    assert loaded == state


def test_state_missing_file_defaults_without_notice(tmp_path) -> None:
    state, notice = load_state_with_notice(tmp_path / "missing.json")
    assert state == AppState()
    assert state.volume is None
    assert notice is None


def test_state_corrupt_json_defaults(tmp_path, caplog) -> None:
    path = tmp_path / "state.json"
    path.write_text("{bad json", encoding="utf-8")

    state, notice = load_state_with_notice(path)
    assert state == AppState()
    assert notice is not None and "reset to defaults" in notice
    assert any("invalid JSON" in record.message for record in caplog.records)


def test_state_non_object_defaults(tmp_path) -> None:
    path = tmp_path / "state.json"
    path.write_text("[1, 2, 3]", encoding="utf-8")
    state, notice = load_state_with_notice(path)
    assert state == AppState()
    assert notice is not None


def test_state_coerces_bad_fields(tmp_path) -> None:
    path = tmp_path / "state.json"
    path.write_text(
        '{"volume": 250, "muted": "yes", "last_search": "   "}', encoding="utf-8"
    )
    state = load_state(path)
    assert state == AppState(volume=100.0, muted=False, last_search=None)

    path.write_text('{"volume": true}', encoding="utf-8")
    assert load_state(path).volume is None


def test_state_save_replace_failure_keeps_previous_file(tmp_path, monkeypatch) -> None:
    path = tmp_path / "state.json"
    original = AppState(volume=40.0)
    save_state(path, original)
    updated = AppState(volume=90.0, muted=True)

    def fail_replace(self: Path, target: Path) -> None:
        del target
        if self.suffix == ".tmp":
            raise OSError("replace failed")
        return None

    monkeypatch.setattr(Path, "replace", fail_replace)

    with pytest.raises(OSError):
        save_state(path, updated)

    loaded = load_state(path)
    assert loaded == original
    assert not list(tmp_path.glob("*.tmp"))
