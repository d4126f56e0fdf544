"""
Pydantic Models for the Review Engine

Request and result models exchanged with callers of the review API. The
matching SQLAlchemy tables live in review_engine/db/models_review.py.

Requests use StrictRequest: unknown fields are rejected and strings are
stripped before validation, so a blank problem_id fails the same way a
missing one does.
"""

from datetime import date, datetime
from typing import Any, Optional

from pydantic import Field, field_validator

from review_engine.enums.review import Difficulty, MasteryLevel, ReviewEventKind
from review_engine.models.base import StrictRequest, StrictResponse


def normalize_difficulty(value: Any) -> Any:
    """Map registry spellings such as "EASY" onto Difficulty members."""
    if isinstance(value, str):
        return Difficulty(value)
    return value


def normalize_topics(topics: Optional[list[str]]) -> list[str]:
    """Strip topic tags and drop duplicates, keeping first-seen order."""
    seen: list[str] = []
    for topic in topics or []:
        cleaned = topic.strip()
        if not cleaned:
            raise ValueError("topics must be non-empty strings")
        if cleaned not in seen:
            seen.append(cleaned)
    return seen


# ===========================================
# Requests
# ===========================================


class ReviewAddRequest(StrictRequest):
    """
    Start tracking a problem with an initial confidence rating.

    The initial rating counts as the first review: total_reviews starts at
    1 and the first schedule is computed from it.
    """

    user_id: str = Field(..., min_length=1)
    problem_id: str = Field(..., min_length=1, description="Problem slug")
    title: str = Field(..., min_length=1)
    difficulty: Difficulty
    topics: list[str] = Field(default_factory=list)
    confidence: int = Field(3, ge=1, le=5, strict=True)
    notes: Optional[str] = None

    @field_validator("difficulty", mode="before")
    @classmethod
    def validate_difficulty(cls, v: Any) -> Any:
        return normalize_difficulty(v)

    @field_validator("topics")
    @classmethod
    def validate_topics(cls, v: list[str]) -> list[str]:
        return normalize_topics(v)


class ReviewSubmitRequest(StrictRequest):
    """
    Submit a 1-5 confidence rating for a tracked problem.

    notes, mistake_patterns and key_insights replace the stored values when
    supplied and leave them untouched when omitted.
    """

    user_id: str = Field(..., min_length=1)
    problem_id: str = Field(..., min_length=1)
    confidence: int = Field(..., ge=1, le=5, strict=True)
    notes: Optional[str] = None
    mistake_patterns: Optional[list[str]] = None
    key_insights: Optional[list[str]] = None


# ===========================================
# Records
# ===========================================


class ReviewRecordResponse(StrictResponse):
    """
    Snapshot of one tracked problem.

    Built directly from the ORM row; internal columns (confidence_sum,
    version) are not exposed.
    """

    user_id: str
    problem_id: str
    title: str
    difficulty: Difficulty
    topics: list[str] = Field(default_factory=list)

    confidence: int
    ease_factor: float
    interval_days: int
    repetitions: int

    created_at: datetime
    last_reviewed_at: datetime
    next_review_date: datetime

    total_reviews: int
    average_confidence: float
    mastery_level: MasteryLevel

    notes: Optional[str] = None
    mistake_patterns: Optional[list[str]] = None
    key_insights: Optional[list[str]] = None

    @field_validator("difficulty", mode="before")
    @classmethod
    def validate_difficulty(cls, v: Any) -> Any:
        return normalize_difficulty(v)


class ReviewResult(StrictResponse):
    """Outcome of a review submission."""

    record: ReviewRecordResponse
    previous_mastery_level: MasteryLevel
    mastery_changed: bool


class ReviewEventResponse(StrictResponse):
    """One entry of a problem's review history."""

    problem_id: str
    kind: ReviewEventKind
    confidence: int
    reviewed_at: datetime
    interval_days: int
    ease_factor: float
    mastery_level: MasteryLevel


class DueReviewsResponse(StrictResponse):
    """
    Due queue for a user.

    items is truncated to the requested limit; total_due counts every due,
    non-mastered record.
    """

    items: list[ReviewRecordResponse]
    total_due: int


# ===========================================
# Analytics
# ===========================================


class MasteryBreakdown(StrictResponse):
    """Number of records at each mastery level."""

    learning: int = 0
    practicing: int = 0
    mastered: int = 0
    forgotten: int = 0


class DailyProgress(StrictResponse):
    """Review activity on one UTC calendar day."""

    day: date
    count: int
    average_confidence: float


class StatsSnapshot(StrictResponse):
    """
    Aggregate review statistics for a user.

    Streaks and daily activity come from the review event log, so several
    problems reviewed on the same day all count.
    """

    total_problems: int
    due_for_review: int
    mastery_breakdown: MasteryBreakdown
    average_confidence: float = Field(description="Mean of record averages, 1 decimal")
    streak_days: int
    longest_streak: int = 0
    reviews_today: int = 0
    reviews_this_week: int = 0
    weekly_progress: list[DailyProgress] = Field(default_factory=list)


class WeakTopic(StrictResponse):
    """A topic whose struggling records have a low average confidence."""

    topic: str
    count: int
    average_confidence: float


# ===========================================
# Solved problem import
# ===========================================


class SolvedProblemInfo(StrictResponse):
    """A problem the user has solved, as reported by the external registry."""

    problem_id: str
    title: str
    difficulty: Difficulty
    topics: list[str] = Field(default_factory=list)
    solved_at: Optional[datetime] = None

    @field_validator("difficulty", mode="before")
    @classmethod
    def validate_difficulty(cls, v: Any) -> Any:
        return normalize_difficulty(v)

    @field_validator("topics", mode="before")
    @classmethod
    def validate_topics(cls, v: Any) -> Any:
        if v is None:
            return []
        if not isinstance(v, list) or not all(isinstance(t, str) for t in v):
            raise ValueError("topics must be a list of strings")
        return normalize_topics([t for t in v if t.strip()])


class ImportResult(StrictResponse):
    """Outcome of a bulk import from the solved problem registry."""

    imported: int
    skipped: int
    total_solved: int


class RecommendedProblem(StrictResponse):
    """An untracked solved problem ranked by interview importance."""

    problem_id: str
    title: str
    difficulty: Difficulty
    topics: list[str] = Field(default_factory=list)
    importance: int
