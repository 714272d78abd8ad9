"""Basic smoke tests."""

import navicli


def test_version_defined() -> None:
    assert isinstance(navicli.__version__, str)
