"""
Clock Abstraction

Every time-sensitive operation of the review engine takes "now" from a Clock
instead of reading the system time itself, so schedules, due checks and
streaks can be tested deterministically.

Usage:
    from review_engine.services.clock import FixedClock, SystemClock

    clock = SystemClock()
    clock.now()  # timezone-aware UTC datetime

    clock = FixedClock(datetime(2024, 1, 1, tzinfo=timezone.utc))
    clock.advance(days=6)
"""

from datetime import datetime, timedelta, timezone
from typing import Protocol


class Clock(Protocol):
    """Source of the current time. Must return timezone-aware UTC datetimes."""

    def now(self) -> datetime: ...


class SystemClock:
    """Wall clock in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock:
    """
    Manually controlled clock for tests and replays.

    Naive datetimes are interpreted as UTC.
    """

    def __init__(self, current: datetime):
        if current.tzinfo is None:
            current = current.replace(tzinfo=timezone.utc)
        self._current = current

    def now(self) -> datetime:
        return self._current

    def set(self, current: datetime) -> None:
        if current.tzinfo is None:
            current = current.replace(tzinfo=timezone.utc)
        self._current = current

    def advance(self, days: float = 0, hours: float = 0, minutes: float = 0) -> datetime:
        """Move the clock forward and return the new time."""
        self._current = self._current + timedelta(days=days, hours=hours, minutes=minutes)
        return self._current
