"""
Unit Tests for ReviewService

Tests adding problems and recording reviews against an in-memory SQLite
store, plus compare-and-set retry behavior against a mocked store.
"""

import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from review_engine.enums.review import MasteryLevel, ReviewEventKind
from review_engine.errors import AlreadyExistsError, NotFoundError, ReviewConflictError
from review_engine.models.review import ReviewSubmitRequest
from review_engine.services.review.review_service import ReviewService, build_new_record
from tests.factories import START_TIME, USER_ID, make_add_request


def _submit(confidence: int, problem_id: str = "two-sum", **fields) -> ReviewSubmitRequest:
    return ReviewSubmitRequest(
        user_id=USER_ID, problem_id=problem_id, confidence=confidence, **fields
    )


class TestAddToReview:
    """Tests for add_to_review."""

    @pytest.mark.asyncio
    async def test_add_with_confidence_three(self, review_service):
        """Initial rating 3: interval 1, ease 2.36, learning."""
        record = await review_service.add_to_review(make_add_request(confidence=3))

        assert record.interval_days == 1
        assert record.ease_factor == pytest.approx(2.36)
        assert record.mastery_level == MasteryLevel.LEARNING
        assert record.total_reviews == 1
        assert record.repetitions == 0
        assert record.average_confidence == 3.0
        assert record.next_review_date == START_TIME + timedelta(days=1)

    @pytest.mark.asyncio
    async def test_add_with_high_confidence_is_practicing(self, review_service):
        record = await review_service.add_to_review(make_add_request(confidence=4))
        assert record.mastery_level == MasteryLevel.PRACTICING

    @pytest.mark.asyncio
    async def test_add_appends_added_event(self, review_service):
        """The initial rating is logged as an "added" event."""
        await review_service.add_to_review(make_add_request())

        history = await review_service.get_review_history(USER_ID, "two-sum")

        assert len(history) == 1
        assert history[0].kind == ReviewEventKind.ADDED
        assert history[0].confidence == 3

    @pytest.mark.asyncio
    async def test_add_twice_raises_already_exists(self, review_service):
        """Adding a tracked problem fails instead of overwriting it."""
        await review_service.add_to_review(make_add_request(confidence=2))

        with pytest.raises(AlreadyExistsError) as exc_info:
            await review_service.add_to_review(make_add_request(confidence=5))

        assert exc_info.value.status_code == 409
        record = await review_service.get_record(USER_ID, "two-sum")
        assert record.confidence == 2

    @pytest.mark.asyncio
    async def test_add_normalizes_difficulty_and_topics(self, review_service):
        record = await review_service.add_to_review(
            make_add_request(difficulty="MEDIUM", topics=[" tree ", "dfs", "tree"])
        )
        assert record.difficulty.value == "Medium"
        assert record.topics == ["tree", "dfs"]


class TestRecordReview:
    """Tests for record_review."""

    @pytest.mark.asyncio
    async def test_review_untracked_problem(self, review_service):
        """Reviewing an untracked problem raises NotFoundError."""
        with pytest.raises(NotFoundError) as exc_info:
            await review_service.record_review(_submit(4, problem_id="missing"))
        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_review_updates_all_derived_fields(self, review_service, clock):
        await review_service.add_to_review(make_add_request(confidence=3))
        clock.advance(days=1)

        result = await review_service.record_review(_submit(5))

        record = result.record
        assert record.confidence == 5
        assert record.repetitions == 1
        assert record.total_reviews == 2
        assert record.average_confidence == pytest.approx(4.0)
        assert record.interval_days == 1
        assert record.ease_factor == pytest.approx(2.46)
        assert record.last_reviewed_at == clock.now()
        assert record.next_review_date == clock.now() + timedelta(days=1)
        assert record.mastery_level == MasteryLevel.PRACTICING
        assert result.previous_mastery_level == MasteryLevel.LEARNING
        assert result.mastery_changed is True

    @pytest.mark.asyncio
    async def test_failed_recall_is_forgotten(self, review_service, clock):
        await review_service.add_to_review(make_add_request(confidence=4))
        clock.advance(days=1)

        result = await review_service.record_review(_submit(1))

        assert result.record.mastery_level == MasteryLevel.FORGOTTEN
        assert result.record.interval_days == 1

    @pytest.mark.asyncio
    async def test_notes_and_insights_replace_when_supplied(self, review_service):
        await review_service.add_to_review(make_add_request(notes="first pass"))

        result = await review_service.record_review(
            _submit(4, mistake_patterns=["off by one"], key_insights=["use a hash map"])
        )
        assert result.record.notes == "first pass"
        assert result.record.mistake_patterns == ["off by one"]

        result = await review_service.record_review(_submit(4, notes="second pass"))
        assert result.record.notes == "second pass"
        assert result.record.key_insights == ["use a hash map"]

    @pytest.mark.asyncio
    async def test_review_persists(self, review_service):
        await review_service.add_to_review(make_add_request())
        await review_service.record_review(_submit(4))

        stored = await review_service.get_record(USER_ID, "two-sum")

        assert stored.total_reviews == 2
        assert stored.confidence == 4

    @pytest.mark.asyncio
    async def test_concurrent_reviews_are_serialized(self, review_service):
        """Two reviews of the same problem both count, none is lost."""
        await review_service.add_to_review(make_add_request(confidence=3))

        await asyncio.gather(
            review_service.record_review(_submit(4)),
            review_service.record_review(_submit(5)),
        )

        record = await review_service.get_record(USER_ID, "two-sum")
        assert record.total_reviews == 3
        assert record.repetitions == 2
        assert record.average_confidence == pytest.approx(4.0)
        assert len(await review_service.get_review_history(USER_ID, "two-sum")) == 3

    @pytest.mark.asyncio
    async def test_end_to_end_reaches_mastered(self, review_service, clock):
        """
        Ratings 3, 5, 5, 5 one review at a time.

        Running mean: 3/1 = 3.0, 8/2 = 4.0, 13/3 = 4.33, 18/4 = 4.5. The
        fourth rating reaches 4.5 with total_reviews 4 >= 3, so the record
        becomes mastered exactly there.
        """
        ratings = [3, 5, 5, 5]
        record = await review_service.add_to_review(make_add_request(confidence=ratings[0]))
        assert record.mastery_level == MasteryLevel.LEARNING

        expected_levels = [
            MasteryLevel.PRACTICING,
            MasteryLevel.PRACTICING,
            MasteryLevel.MASTERED,
        ]
        expected_intervals = [1, 6, 16]

        for index, confidence in enumerate(ratings[1:], start=1):
            clock.advance(days=record.interval_days)
            result = await review_service.record_review(_submit(confidence))
            record = result.record

            running_mean = sum(ratings[: index + 1]) / (index + 1)
            assert record.total_reviews == index + 1
            assert record.average_confidence == pytest.approx(running_mean)
            assert record.mastery_level == expected_levels[index - 1]
            assert record.interval_days == expected_intervals[index - 1]

        assert record.ease_factor == pytest.approx(2.66)
        assert result.mastery_changed is True


class TestCompareAndSetRetry:
    """Tests for compare-and-set retries with a mocked store."""

    @pytest.fixture
    def mock_store(self):
        """Store whose record always reads back at version 1."""
        store = MagicMock()

        async def get(user_id, problem_id):
            return build_new_record(
                user_id=user_id,
                problem_id=problem_id,
                title="Two Sum",
                difficulty="Easy",
                topics=[],
                confidence=3,
                now=START_TIME,
            )

        store.get = AsyncMock(side_effect=get)
        store.commit_review = AsyncMock(return_value=True)
        return store

    @pytest.mark.asyncio
    async def test_retries_after_lost_update(self, mock_store, clock):
        """A lost compare-and-set reloads the record and tries again."""
        mock_store.commit_review = AsyncMock(side_effect=[False, True])
        service = ReviewService(mock_store, clock=clock, max_retries=3)

        result = await service.record_review(_submit(4))

        assert mock_store.commit_review.await_count == 2
        assert mock_store.get.await_count == 2
        assert result.record.total_reviews == 2

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self, mock_store, clock):
        """Exhausted retries raise ReviewConflictError."""
        mock_store.commit_review = AsyncMock(return_value=False)
        service = ReviewService(mock_store, clock=clock, max_retries=3)

        with pytest.raises(ReviewConflictError) as exc_info:
            await service.record_review(_submit(4))

        assert mock_store.commit_review.await_count == 3
        assert exc_info.value.error_code == "review_conflict"

    @pytest.mark.asyncio
    async def test_commit_uses_read_version(self, mock_store, clock):
        service = ReviewService(mock_store, clock=clock)

        await service.record_review(_submit(4))

        kwargs = mock_store.commit_review.await_args.kwargs
        assert kwargs["expected_version"] == 1
        assert kwargs["event"].kind == "reviewed"
        assert kwargs["values"]["total_reviews"] == 2
