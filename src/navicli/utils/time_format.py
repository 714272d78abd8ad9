"""Time and size formatting helpers for the UI."""

from __future__ import annotations

import math


def format_duration(seconds: float) -> str:
    """Format whole seconds as MM:SS (minutes are not wrapped into hours)."""
    total = _coerce_seconds(seconds)
    minutes, secs = divmod(total, 60)
    return f"{minutes:02d}:{secs:02d}"


def format_position_pair(position_s: float, duration_s: float) -> str:
    """Format `position/duration`, using a placeholder for unknown duration."""
    position = format_duration(position_s)
    if _coerce_seconds(duration_s) <= 0:
        return f"{position}/--:--"
    return f"{position}/{format_duration(duration_s)}"


def format_size_mb(size_bytes: int) -> str:
    return f"{max(0, size_bytes) / 1024 / 1024:.1f} MB"


def _coerce_seconds(value: float) -> int:
    try:
        numeric = float(value)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(numeric):
        return 0
    return max(0, int(numeric))
