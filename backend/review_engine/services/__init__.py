"""Services package for the review engine."""

from review_engine.services.clock import Clock, FixedClock, SystemClock

__all__ = ["Clock", "FixedClock", "SystemClock"]
