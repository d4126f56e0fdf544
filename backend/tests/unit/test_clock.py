"""
Unit Tests for Clocks
"""

from datetime import datetime, timedelta, timezone

from review_engine.services.clock import FixedClock, SystemClock


class TestClocks:
    """Tests for SystemClock and FixedClock."""

    def test_system_clock_is_utc(self):
        now = SystemClock().now()
        assert now.tzinfo is not None
        assert now.utcoffset() == timedelta(0)

    def test_fixed_clock_naive_is_utc(self):
        clock = FixedClock(datetime(2024, 1, 1))
        assert clock.now() == datetime(2024, 1, 1, tzinfo=timezone.utc)

    def test_fixed_clock_advance(self):
        clock = FixedClock(datetime(2024, 1, 1, tzinfo=timezone.utc))

        clock.advance(days=6, hours=2)

        assert clock.now() == datetime(2024, 1, 7, 2, tzinfo=timezone.utc)

    def test_fixed_clock_set(self):
        clock = FixedClock(datetime(2024, 1, 1, tzinfo=timezone.utc))
        clock.set(datetime(2025, 5, 5))
        assert clock.now() == datetime(2025, 5, 5, tzinfo=timezone.utc)
