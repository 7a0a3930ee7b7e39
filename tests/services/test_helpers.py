"""Tests for shared service helpers."""

from __future__ import annotations

from datetime import datetime

from memdbctl.services._helpers import now_iso


class TestNowIso:
    def test_parses_as_aware_datetime(self) -> None:
        parsed = datetime.fromisoformat(now_iso())
        assert parsed.utcoffset() is not None

    def test_has_microseconds(self) -> None:
        assert "." in now_iso()

