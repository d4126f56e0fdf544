"""
Review Service

Owns every write to review records: starting to track a problem and
recording a review. Reads of a single record and its history live here too.

Review processing:
1. Load the record (NotFoundError if the problem is not tracked)
2. Compute the next schedule from the rating (SM-2)
3. Update the running mean and reclassify mastery
4. Commit record update + review event in one transaction, guarded by the
   record version (compare-and-set)

Reviews of the same (user, problem) are serialized in-process by a keyed
lock; the version guard catches writers in other processes, in which case
the review is recomputed from the fresh record and retried.

Usage:
    from review_engine.services.review import ReviewService

    service = ReviewService(store, clock=SystemClock())
    record = await service.add_to_review(ReviewAddRequest(...))
    result = await service.record_review(ReviewSubmitRequest(
        user_id="user-1", problem_id="two-sum", confidence=4
    ))
"""

import logging
from datetime import datetime
from typing import Any, Optional

from review_engine.config.settings import settings
from review_engine.db.models_review import ReviewEvent, ReviewRecord
from review_engine.enums.review import Difficulty, MasteryLevel, ReviewEventKind
from review_engine.errors import AlreadyExistsError, NotFoundError, ReviewConflictError
from review_engine.models.review import (
    ReviewAddRequest,
    ReviewEventResponse,
    ReviewRecordResponse,
    ReviewResult,
    ReviewSubmitRequest,
)
from review_engine.services.clock import Clock, SystemClock
from review_engine.services.review.locks import KeyedLock
from review_engine.services.review.mastery import classify_mastery, initial_mastery
from review_engine.services.review.scheduling import (
    compute_next_schedule,
    initial_schedule,
    validate_confidence,
)
from review_engine.services.review.store import ReviewRecordStore

logger = logging.getLogger(__name__)


def build_new_record(
    user_id: str,
    problem_id: str,
    title: str,
    difficulty: Difficulty,
    topics: list[str],
    confidence: int,
    now: datetime,
    notes: Optional[str] = None,
) -> ReviewRecord:
    """
    Create an unsaved record whose initial rating counts as its first review.

    Shared by explicit adds and the solved problem import.
    """
    validate_confidence(confidence)
    schedule = initial_schedule(confidence, now)
    return ReviewRecord(
        user_id=user_id,
        problem_id=problem_id,
        title=title,
        difficulty=Difficulty(difficulty).value,
        topics=list(topics),
        confidence=confidence,
        ease_factor=schedule.ease_factor,
        interval_days=schedule.interval_days,
        repetitions=0,
        created_at=now,
        last_reviewed_at=now,
        next_review_date=schedule.next_review_date,
        total_reviews=1,
        confidence_sum=confidence,
        average_confidence=float(confidence),
        mastery_level=initial_mastery(confidence).value,
        notes=notes,
        mistake_patterns=[],
        key_insights=[],
        version=1,
    )


def compute_review_update(
    record: ReviewRecord, request: ReviewSubmitRequest, now: datetime
) -> dict[str, Any]:
    """
    Column values after applying one rating to `record`.

    Every derived field is recomputed together so the record never shows a
    new interval with a stale due date or mastery level.
    """
    confidence = request.confidence
    schedule = compute_next_schedule(
        confidence,
        prior_interval=record.interval_days,
        prior_ease_factor=record.ease_factor,
        prior_repetitions=record.repetitions,
        now=now,
    )

    total_reviews = record.total_reviews + 1
    confidence_sum = record.confidence_sum + confidence
    average_confidence = confidence_sum / total_reviews

    values: dict[str, Any] = {
        "confidence": confidence,
        "ease_factor": schedule.ease_factor,
        "interval_days": schedule.interval_days,
        "repetitions": record.repetitions + 1,
        "last_reviewed_at": now,
        "next_review_date": schedule.next_review_date,
        "total_reviews": total_reviews,
        "confidence_sum": confidence_sum,
        "average_confidence": average_confidence,
        "mastery_level": classify_mastery(
            average_confidence, total_reviews, confidence
        ).value,
    }
    if request.notes is not None:
        values["notes"] = request.notes
    if request.mistake_patterns is not None:
        values["mistake_patterns"] = list(request.mistake_patterns)
    if request.key_insights is not None:
        values["key_insights"] = list(request.key_insights)
    return values


def build_event(
    record: ReviewRecord, kind: ReviewEventKind, reviewed_at: datetime
) -> ReviewEvent:
    """Snapshot of a record right after a rating, for the event log."""
    return ReviewEvent(
        user_id=record.user_id,
        problem_id=record.problem_id,
        kind=kind.value,
        confidence=record.confidence,
        reviewed_at=reviewed_at,
        interval_days=record.interval_days,
        ease_factor=record.ease_factor,
        mastery_level=record.mastery_level,
    )


class ReviewService:
    """
    Write side of the review engine.

    Provides:
    - Start tracking a problem with an initial rating
    - Record a review with SM-2 scheduling and mastery reclassification
    - Single record and per-problem history lookups
    """

    def __init__(
        self,
        store: ReviewRecordStore,
        clock: Clock = None,
        record_locks: KeyedLock = None,
        max_retries: int = None,
    ):
        """
        Initialize the review service.

        Args:
            store: Review record store.
            clock: Time source (defaults to the UTC system clock).
            record_locks: Per-(user, problem) locks; share one instance
                between services that run in the same process.
            max_retries: Compare-and-set attempts before giving up
                (defaults to settings.REVIEW_CAS_MAX_RETRIES).
        """
        self.store = store
        self.clock = clock or SystemClock()
        self.record_locks = record_locks or KeyedLock()
        self.max_retries = (
            settings.REVIEW_CAS_MAX_RETRIES if max_retries is None else max_retries
        )

    async def add_to_review(self, request: ReviewAddRequest) -> ReviewRecordResponse:
        """
        Start tracking a problem.

        Appends an "added" event, since the initial rating is learner activity.

        Raises:
            AlreadyExistsError: If the problem is already tracked.
        """
        existing = await self.store.get(request.user_id, request.problem_id)
        if existing is not None:
            raise AlreadyExistsError(
                f"Problem {request.problem_id} is already tracked",
                details={"user_id": request.user_id, "problem_id": request.problem_id},
            )

        now = self.clock.now()
        record = build_new_record(
            user_id=request.user_id,
            problem_id=request.problem_id,
            title=request.title,
            difficulty=request.difficulty,
            topics=request.topics,
            confidence=request.confidence,
            now=now,
            notes=request.notes,
        )
        event = build_event(record, ReviewEventKind.ADDED, now)

        # A concurrent add can still win the unique key; insert raises AlreadyExistsError
        record = await self.store.insert(record, event)

        logger.info(
            f"Added {request.problem_id} for {request.user_id}: "
            f"confidence={request.confidence}, next review {record.next_review_date.date()}"
        )
        return ReviewRecordResponse.model_validate(record)

    async def record_review(self, request: ReviewSubmitRequest) -> ReviewResult:
        """
        Apply a confidence rating to a tracked problem.

        Raises:
            NotFoundError: If the problem is not tracked.
            ReviewConflictError: If the record kept changing concurrently.
        """
        validate_confidence(request.confidence)
        key = (request.user_id, request.problem_id)

        async with self.record_locks.hold(key):
            for attempt in range(1, self.max_retries + 1):
                record = await self.store.get(request.user_id, request.problem_id)
                if record is None:
                    raise NotFoundError(
                        f"Problem {request.problem_id} is not tracked for review",
                        details={
                            "user_id": request.user_id,
                            "problem_id": request.problem_id,
                        },
                    )

                now = self.clock.now()
                previous_mastery = MasteryLevel(record.mastery_level)
                values = compute_review_update(record, request, now)
                event = ReviewEvent(
                    user_id=request.user_id,
                    problem_id=request.problem_id,
                    kind=ReviewEventKind.REVIEWED.value,
                    confidence=request.confidence,
                    reviewed_at=now,
                    interval_days=values["interval_days"],
                    ease_factor=values["ease_factor"],
                    mastery_level=values["mastery_level"],
                )

                committed = await self.store.commit_review(
                    request.user_id,
                    request.problem_id,
                    expected_version=record.version,
                    values=values,
                    event=event,
                )
                if committed:
                    for column, value in values.items():
                        setattr(record, column, value)
                    record.version += 1

                    new_mastery = MasteryLevel(record.mastery_level)
                    logger.info(
                        f"Reviewed {request.problem_id} for {request.user_id}: "
                        f"confidence={request.confidence}, interval={record.interval_days}d, "
                        f"ease={record.ease_factor:.2f}, mastery={new_mastery.value}"
                    )
                    return ReviewResult(
                        record=ReviewRecordResponse.model_validate(record),
                        previous_mastery_level=previous_mastery,
                        mastery_changed=new_mastery != previous_mastery,
                    )

                logger.warning(
                    f"Review of {request.problem_id} for {request.user_id} lost a concurrent "
                    f"update (attempt {attempt}/{self.max_retries})"
                )

        raise ReviewConflictError(
            f"Could not record review of {request.problem_id}: record kept changing",
            details={"attempts": self.max_retries},
        )

    async def get_record(self, user_id: str, problem_id: str) -> ReviewRecordResponse:
        """
        Get one tracked problem.

        Raises:
            NotFoundError: If the problem is not tracked.
        """
        record = await self.store.get(user_id, problem_id)
        if record is None:
            raise NotFoundError(
                f"Problem {problem_id} is not tracked for review",
                details={"user_id": user_id, "problem_id": problem_id},
            )
        return ReviewRecordResponse.model_validate(record)

    async def get_review_history(
        self, user_id: str, problem_id: str, limit: int = None
    ) -> list[ReviewEventResponse]:
        """Most recent ratings of one problem, newest first."""
        if limit is None:
            limit = settings.REVIEW_HISTORY_DEFAULT_LIMIT
        events = await self.store.list_history(user_id, problem_id, limit)
        return [ReviewEventResponse.model_validate(event) for event in events]
