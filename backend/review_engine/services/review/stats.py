"""
Review Statistics

Aggregate review statistics for a learner: record counts, mastery
distribution, review streaks and recent daily activity.

Streaks and daily activity are computed from the append-only review event
log, not from the records' last review timestamps: a record only remembers
its latest review, so a day with ten reviews of the same problem would look
like one review and older days would vanish once re-reviewed.

Days are UTC calendar days.

Usage:
    aggregator = StatsAggregator(store, clock=SystemClock())
    snapshot = await aggregator.get_stats("user-1")
    snapshot.streak_days
"""

import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Iterable

import pandas as pd

from review_engine.config.settings import settings
from review_engine.db.models_review import ReviewEvent
from review_engine.models.review import DailyProgress, MasteryBreakdown, StatsSnapshot
from review_engine.services.clock import Clock, SystemClock
from review_engine.services.review.store import ReviewRecordStore

logger = logging.getLogger(__name__)


def calculate_current_streak(review_days: Iterable[date], today: date) -> int:
    """
    Count consecutive review days ending today.

    A day without reviews today does not break the streak yet: counting
    starts from yesterday instead. The first earlier day without reviews
    ends the count.

    Args:
        review_days: Days with at least one review (any order, duplicates ok).
        today: Reference day.

    Returns:
        Number of consecutive review days.
    """
    days = set(review_days)
    if not days:
        return 0

    current = today if today in days else today - timedelta(days=1)
    streak = 0
    while current in days:
        streak += 1
        current -= timedelta(days=1)
    return streak


def calculate_longest_streak(review_days: Iterable[date]) -> int:
    """Length of the longest run of consecutive review days ever."""
    sorted_days = sorted(set(review_days))
    if not sorted_days:
        return 0

    longest = 1
    current = 1
    for i in range(1, len(sorted_days)):
        if sorted_days[i] == sorted_days[i - 1] + timedelta(days=1):
            current += 1
            longest = max(longest, current)
        else:
            current = 1
    return longest


def start_of_day(day: date) -> datetime:
    """Midnight UTC at the start of `day`."""
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def events_dataframe(events: list[ReviewEvent]) -> pd.DataFrame:
    """One row per event with its UTC day and confidence."""
    if not events:
        return pd.DataFrame(columns=["reviewed_at", "day", "confidence"])

    df = pd.DataFrame(
        [{"reviewed_at": e.reviewed_at, "confidence": e.confidence} for e in events]
    )
    df["reviewed_at"] = pd.to_datetime(df["reviewed_at"], utc=True)
    df["day"] = df["reviewed_at"].dt.date
    return df


def compute_weekly_progress(
    events_df: pd.DataFrame, since: datetime, days: int
) -> list[DailyProgress]:
    """
    Per-day review counts for the most recent active days.

    Args:
        events_df: Output of events_dataframe.
        since: Only events at or after this time are considered.
        days: Number of active days to return.

    Returns:
        Up to `days` DailyProgress entries for days with reviews, oldest first.
    """
    if events_df.empty:
        return []

    recent = events_df[events_df["reviewed_at"] >= pd.Timestamp(since)]
    if recent.empty:
        return []

    daily = (
        recent.groupby("day")
        .agg(count=("confidence", "size"), average_confidence=("confidence", "mean"))
        .sort_index()
        .tail(days)
    )
    return [
        DailyProgress(
            day=day,
            count=int(row["count"]),
            average_confidence=round(float(row["average_confidence"]), 1),
        )
        for day, row in daily.iterrows()
    ]


class StatsAggregator:
    """Read-only review statistics over the record store and event log."""

    def __init__(self, store: ReviewRecordStore, clock: Clock = None):
        self.store = store
        self.clock = clock or SystemClock()

    async def get_stats(self, user_id: str) -> StatsSnapshot:
        """
        Build a statistics snapshot for a learner.

        Returns:
            StatsSnapshot. A learner without records gets all zeros.
        """
        now = self.clock.now().astimezone(timezone.utc)
        today = now.date()

        total = await self.store.count(user_id)
        due = await self.store.count_due(user_id, now)
        by_mastery = await self.store.count_by_mastery(user_id)
        mean_confidence = await self.store.mean_average_confidence(user_id)
        events_df = events_dataframe(await self.store.list_events(user_id))

        review_days = set(events_df["day"]) if not events_df.empty else set()
        week_start = start_of_day(today - timedelta(days=6))
        lookback_start = start_of_day(
            today - timedelta(days=settings.STATS_ACTIVITY_LOOKBACK_DAYS - 1)
        )

        if events_df.empty:
            reviews_today = 0
            reviews_this_week = 0
        else:
            reviews_today = int((events_df["day"] == today).sum())
            reviews_this_week = int(
                (events_df["reviewed_at"] >= pd.Timestamp(week_start)).sum()
            )

        snapshot = StatsSnapshot(
            total_problems=total,
            due_for_review=due,
            mastery_breakdown=MasteryBreakdown(**by_mastery),
            average_confidence=round(mean_confidence, 1) if mean_confidence is not None else 0.0,
            streak_days=calculate_current_streak(review_days, today),
            longest_streak=calculate_longest_streak(review_days),
            reviews_today=reviews_today,
            reviews_this_week=reviews_this_week,
            weekly_progress=compute_weekly_progress(
                events_df, lookback_start, settings.STATS_WEEKLY_DAYS
            ),
        )

        logger.debug(
            f"Stats for {user_id}: {total} problems, {due} due, streak {snapshot.streak_days}"
        )
        return snapshot
