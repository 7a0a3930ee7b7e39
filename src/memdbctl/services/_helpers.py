"""Shared service-layer helper functions."""

from __future__ import annotations

from datetime import UTC, datetime


def now_iso() -> str:
    """Current UTC time as ISO 8601 with microseconds (sorts lexically)."""
    return datetime.now(UTC).isoformat(timespec="microseconds")

