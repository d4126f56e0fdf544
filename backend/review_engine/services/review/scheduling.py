"""
SM-2 Scheduling

Computes the next review interval and ease factor from a 1-5 confidence
rating. Pure and deterministic: the caller supplies "now".

Algorithm:
    ease' = max(1.3, ease + 0.1 - (5 - c) * (0.08 + (5 - c) * 0.02))

    c < 3                  -> interval 1 (failed recall restarts)
    prior repetitions == 0 -> interval 1
    prior repetitions == 1 -> interval 6
    otherwise              -> round(prior_interval * ease'), half-up

Usage:
    from review_engine.services.review.scheduling import compute_next_schedule

    result = compute_next_schedule(4, prior_interval=6, prior_ease_factor=2.5,
                                   prior_repetitions=2, now=clock.now())
    result.interval_days  # 15
"""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta

from review_engine.errors import InvalidInputError

MIN_EASE_FACTOR = 1.3
INITIAL_EASE_FACTOR = 2.5
INITIAL_INTERVAL_DAYS = 1
SECOND_INTERVAL_DAYS = 6
MIN_CONFIDENCE = 1
MAX_CONFIDENCE = 5
PASSING_CONFIDENCE = 3


@dataclass(frozen=True)
class ScheduleResult:
    """Next schedule produced by one rating."""

    interval_days: int
    ease_factor: float
    next_review_date: datetime


def round_half_up(value: float) -> int:
    """Round to the nearest integer, .5 going up (round() would give 14 for 14.5)."""
    return int(math.floor(value + 0.5))


def validate_confidence(confidence: int) -> int:
    """Reject ratings outside 1-5, including bools and non-integers."""
    if isinstance(confidence, bool) or not isinstance(confidence, int):
        raise InvalidInputError(
            f"Confidence must be an integer between {MIN_CONFIDENCE} and {MAX_CONFIDENCE}",
            details={"confidence": repr(confidence)},
        )
    if not MIN_CONFIDENCE <= confidence <= MAX_CONFIDENCE:
        raise InvalidInputError(
            f"Confidence must be between {MIN_CONFIDENCE} and {MAX_CONFIDENCE}",
            details={"confidence": confidence},
        )
    return confidence


def next_ease_factor(confidence: int, ease_factor: float) -> float:
    """Apply the SM-2 ease update, floored at 1.3."""
    penalty = 5 - confidence
    return max(MIN_EASE_FACTOR, ease_factor + 0.1 - penalty * (0.08 + penalty * 0.02))


def compute_next_schedule(
    confidence: int,
    prior_interval: int,
    prior_ease_factor: float,
    prior_repetitions: int,
    now: datetime,
) -> ScheduleResult:
    """
    Compute the schedule that follows a rating.

    Args:
        confidence: Rating in 1-5.
        prior_interval: Interval before this rating, >= 1 day.
        prior_ease_factor: Ease factor before this rating, >= 1.3.
        prior_repetitions: Reviews recorded before this rating, >= 0.
        now: Time of the rating.

    Returns:
        ScheduleResult with the new interval, ease factor and due date.

    Raises:
        InvalidInputError: If any input is outside its domain.
    """
    validate_confidence(confidence)
    if prior_interval < 1:
        raise InvalidInputError(
            "Prior interval must be at least 1 day",
            details={"prior_interval": prior_interval},
        )
    if prior_ease_factor < MIN_EASE_FACTOR:
        raise InvalidInputError(
            f"Prior ease factor must be at least {MIN_EASE_FACTOR}",
            details={"prior_ease_factor": prior_ease_factor},
        )
    if prior_repetitions < 0:
        raise InvalidInputError(
            "Prior repetitions cannot be negative",
            details={"prior_repetitions": prior_repetitions},
        )

    ease_factor = next_ease_factor(confidence, prior_ease_factor)

    if confidence < PASSING_CONFIDENCE:
        interval = INITIAL_INTERVAL_DAYS
    elif prior_repetitions == 0:
        interval = INITIAL_INTERVAL_DAYS
    elif prior_repetitions == 1:
        interval = SECOND_INTERVAL_DAYS
    else:
        interval = max(1, round_half_up(prior_interval * ease_factor))

    return ScheduleResult(
        interval_days=interval,
        ease_factor=ease_factor,
        next_review_date=now + timedelta(days=interval),
    )


def initial_schedule(confidence: int, now: datetime) -> ScheduleResult:
    """Schedule for a newly tracked problem rated `confidence`."""
    return compute_next_schedule(
        confidence,
        prior_interval=INITIAL_INTERVAL_DAYS,
        prior_ease_factor=INITIAL_EASE_FACTOR,
        prior_repetitions=0,
        now=now,
    )
