"""
Unit Tests for Review Statistics

Tests the streak helpers directly and the StatsAggregator against the
in-memory store:
- Current streak with and without a review today
- Longest streak
- Weekly progress from the event log
- Snapshot counts and mastery breakdown
"""

from datetime import date, timedelta

import pytest

from review_engine.models.review import ReviewSubmitRequest
from review_engine.services.clock import FixedClock
from review_engine.services.review.review_service import ReviewService
from review_engine.services.review.stats import (
    StatsAggregator,
    calculate_current_streak,
    calculate_longest_streak,
)
from tests.factories import START_TIME, USER_ID, make_add_request

TODAY = date(2024, 3, 10)


def _days_ago(*offsets: int) -> list[date]:
    return [TODAY - timedelta(days=n) for n in offsets]


class TestCurrentStreak:
    """Tests for calculate_current_streak."""

    def test_no_reviews(self):
        assert calculate_current_streak([], TODAY) == 0

    def test_three_days_ending_yesterday(self):
        """No review today yet does not break the streak."""
        assert calculate_current_streak(_days_ago(3, 2, 1), TODAY) == 3

    def test_gap_stops_the_count(self):
        """A missed day ends the streak even though today is exempt."""
        assert calculate_current_streak(_days_ago(3, 1), TODAY) == 1

    def test_including_today(self):
        assert calculate_current_streak(_days_ago(0, 1, 2), TODAY) == 3

    def test_only_today(self):
        assert calculate_current_streak(_days_ago(0), TODAY) == 1

    def test_last_review_two_days_ago(self):
        """Missing both today and yesterday means no current streak."""
        assert calculate_current_streak(_days_ago(2, 3, 4), TODAY) == 0

    def test_duplicates_and_order_ignored(self):
        assert calculate_current_streak(_days_ago(1, 2, 1, 2, 1), TODAY) == 2


class TestLongestStreak:
    """Tests for calculate_longest_streak."""

    def test_empty(self):
        assert calculate_longest_streak([]) == 0

    def test_single_day(self):
        assert calculate_longest_streak(_days_ago(5)) == 1

    def test_longest_run_in_the_past(self):
        days = _days_ago(20, 19, 18, 17, 10, 9, 1, 0)
        assert calculate_longest_streak(days) == 4


class TestStatsAggregator:
    """Tests for StatsAggregator.get_stats against the event log."""

    @pytest.fixture
    def aggregator(self, store, clock):
        return StatsAggregator(store, clock=clock)

    @pytest.mark.asyncio
    async def test_empty_user(self, aggregator):
        stats = await aggregator.get_stats(USER_ID)

        assert stats.total_problems == 0
        assert stats.due_for_review == 0
        assert stats.average_confidence == 0.0
        assert stats.streak_days == 0
        assert stats.weekly_progress == []
        assert stats.mastery_breakdown.learning == 0

    @pytest.mark.asyncio
    async def test_streak_from_events_on_consecutive_days(self, store):
        """Reviews on D-3, D-2 and D-1 give a streak of 3 on day D."""
        clock = FixedClock(START_TIME - timedelta(days=3))
        service = ReviewService(store, clock=clock)
        await service.add_to_review(make_add_request("two-sum"))
        clock.advance(days=1)
        await service.record_review(ReviewSubmitRequest(user_id=USER_ID, problem_id="two-sum", confidence=4))
        clock.advance(days=1)
        await service.add_to_review(make_add_request("three-sum"))
        clock.advance(days=1)

        stats = await StatsAggregator(store, clock=clock).get_stats(USER_ID)

        assert stats.streak_days == 3
        assert stats.longest_streak == 3
        assert stats.reviews_today == 0

    @pytest.mark.asyncio
    async def test_streak_stops_at_gap(self, store):
        """Reviews on D-3 and D-1 give a streak of 1 on day D."""
        clock = FixedClock(START_TIME - timedelta(days=3))
        service = ReviewService(store, clock=clock)
        await service.add_to_review(make_add_request("two-sum"))
        clock.advance(days=2)
        await service.add_to_review(make_add_request("three-sum"))
        clock.advance(days=1)

        stats = await StatsAggregator(store, clock=clock).get_stats(USER_ID)

        assert stats.streak_days == 1

    @pytest.mark.asyncio
    async def test_many_reviews_same_day_count_once_for_streak(self, aggregator, review_service):
        for problem_id in ["a", "b", "c"]:
            await review_service.add_to_review(make_add_request(problem_id))

        stats = await aggregator.get_stats(USER_ID)

        assert stats.streak_days == 1
        assert stats.reviews_today == 3
        assert stats.reviews_this_week == 3

    @pytest.mark.asyncio
    async def test_import_does_not_affect_streak(self, aggregator, store, registry, clock, seed_solved):
        from review_engine.services.review.import_bridge import ImportBridge

        await seed_solved([{"problem_id": "two-sum"}, {"problem_id": "lru-cache"}])
        await ImportBridge(store, registry, clock=clock).import_from_solved(USER_ID)

        stats = await aggregator.get_stats(USER_ID)

        assert stats.total_problems == 2
        assert stats.streak_days == 0
        assert stats.reviews_today == 0

    @pytest.mark.asyncio
    async def test_snapshot_counts(self, aggregator, review_service, clock):
        await review_service.add_to_review(make_add_request("a", confidence=2))
        await review_service.add_to_review(make_add_request("b", confidence=4))
        await review_service.add_to_review(make_add_request("c", confidence=5))
        clock.advance(days=1)

        stats = await aggregator.get_stats(USER_ID)

        assert stats.total_problems == 3
        assert stats.due_for_review == 3
        assert stats.mastery_breakdown.learning == 1
        assert stats.mastery_breakdown.practicing == 2
        assert stats.mastery_breakdown.mastered == 0
        assert stats.mastery_breakdown.forgotten == 0
        assert stats.average_confidence == pytest.approx(3.7)
        assert stats.streak_days == 1

    @pytest.mark.asyncio
    async def test_weekly_progress(self, store):
        """Active days with counts and mean confidence, oldest first."""
        clock = FixedClock(START_TIME - timedelta(days=9))
        service = ReviewService(store, clock=clock)

        # Nine active days: D-9 .. D-1
        await service.add_to_review(make_add_request("two-sum", confidence=3))
        for _ in range(8):
            clock.advance(days=1)
            await service.record_review(
                ReviewSubmitRequest(user_id=USER_ID, problem_id="two-sum", confidence=4)
            )
        await service.add_to_review(make_add_request("three-sum", confidence=2))
        clock.advance(days=1)

        stats = await StatsAggregator(store, clock=clock).get_stats(USER_ID)

        assert len(stats.weekly_progress) == 7
        days = [p.day for p in stats.weekly_progress]
        assert days == sorted(days)
        assert days[-1] == (START_TIME - timedelta(days=1)).date()
        assert days[0] == (START_TIME - timedelta(days=7)).date()
        assert stats.weekly_progress[-1].count == 2
        assert stats.weekly_progress[-1].average_confidence == 3.0
        assert stats.streak_days == 9
        assert stats.reviews_this_week == 7

    @pytest.mark.asyncio
    async def test_weekly_progress_ignores_old_activity(self, store):
        clock = FixedClock(START_TIME - timedelta(days=45))
        service = ReviewService(store, clock=clock)
        await service.add_to_review(make_add_request("two-sum"))
        clock.advance(days=45)

        stats = await StatsAggregator(store, clock=clock).get_stats(USER_ID)

        assert stats.weekly_progress == []
        assert stats.longest_streak == 1
