"""
SQLAlchemy Database Models for the Review System

Tables:
- review_records: One spaced repetition record per (user, problem)
- review_events: Append-only log of review submissions
- solved_problems: Problems a user has solved on the external judge

ARCHITECTURE NOTE:
    This file contains SQLALCHEMY models for database persistence.
    There is a corresponding Pydantic file: review_engine/models/review.py

    Data flows: Service Layer → Pydantic → SQLAlchemy → Database
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    JSON,
    DateTime,
    Float,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

from review_engine.db.base import Base


def _utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware datetime stored as UTC.

    PostgreSQL keeps the offset natively; SQLite drops it and hands back
    naive values. Binding converts to UTC and loading re-attaches UTC so
    services always compare aware datetimes.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def process_result_value(self, value, dialect):
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


# ===========================================
# Review Records
# ===========================================


class ReviewRecord(Base):
    """
    Spaced repetition state of one problem for one user.

    Scheduling uses an SM-2 variant. All derived fields are rewritten
    together by a single review commit guarded by `version`.

    Attributes:
        id: Primary key.
        user_id: Owner of the record.
        problem_id: Problem identifier (slug) on the external judge.
        title: Display title of the problem.
        difficulty: Easy, Medium or Hard.
        topics: Topic tags, a record may belong to several.

        Scheduling:
        confidence: Most recent 1-5 rating.
        ease_factor: SM-2 ease factor, never below 1.3.
        interval_days: Days between last review and next review, >= 1.
        repetitions: Review events recorded after creation.
        last_reviewed_at: Timestamp of most recent rating.
        next_review_date: last_reviewed_at + interval_days.

        Stats:
        total_reviews: Every rating including the initial one.
        confidence_sum: Exact sum of every rating.
        average_confidence: confidence_sum / total_reviews.
        mastery_level: learning, practicing, mastered or forgotten.

        Notes:
        notes: Free text.
        mistake_patterns: Common mistakes made on this problem.
        key_insights: Important learnings.

        version: Compare-and-set token, incremented on every review.
    """

    __tablename__ = "review_records"
    __table_args__ = (
        UniqueConstraint("user_id", "problem_id", name="uq_review_records_user_problem"),
        Index("ix_review_records_user_due", "user_id", "next_review_date"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[str] = mapped_column(String(128), index=True)
    problem_id: Mapped[str] = mapped_column(String(255))

    # Problem metadata
    title: Mapped[str] = mapped_column(String(500))
    difficulty: Mapped[str] = mapped_column(String(20))
    topics: Mapped[list] = mapped_column(JSON, default=list)

    # Scheduling state
    confidence: Mapped[int] = mapped_column(Integer)
    ease_factor: Mapped[float] = mapped_column(Float)
    interval_days: Mapped[int] = mapped_column(Integer)
    repetitions: Mapped[int] = mapped_column(Integer, default=0)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=_utc_now)
    last_reviewed_at: Mapped[datetime] = mapped_column(UTCDateTime())
    next_review_date: Mapped[datetime] = mapped_column(UTCDateTime())

    # Performance tracking
    total_reviews: Mapped[int] = mapped_column(Integer, default=1)
    confidence_sum: Mapped[int] = mapped_column(Integer)
    average_confidence: Mapped[float] = mapped_column(Float)
    mastery_level: Mapped[str] = mapped_column(String(20), index=True)

    # Notes and insights
    notes: Mapped[Optional[str]] = mapped_column(Text)
    mistake_patterns: Mapped[Optional[list]] = mapped_column(JSON)
    key_insights: Mapped[Optional[list]] = mapped_column(JSON)

    version: Mapped[int] = mapped_column(Integer, default=1)


class ReviewEvent(Base):
    """
    Append-only log entry for a single rating submission.

    Source of truth for streaks, daily activity and per-problem history.
    The mutable record only keeps the latest timestamp, which undercounts
    days once several problems are reviewed on the same day.

    Attributes:
        id: Primary key.
        user_id: Who submitted the rating.
        problem_id: Which problem was rated.
        kind: "added" for the initial rating, "reviewed" afterwards.
        confidence: The submitted 1-5 rating.
        reviewed_at: When the rating was submitted.
        interval_days: Interval scheduled by this rating.
        ease_factor: Ease factor after this rating.
        mastery_level: Mastery level after this rating.
    """

    __tablename__ = "review_events"
    __table_args__ = (
        Index("ix_review_events_user_time", "user_id", "reviewed_at"),
        Index("ix_review_events_user_problem", "user_id", "problem_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[str] = mapped_column(String(128))
    problem_id: Mapped[str] = mapped_column(String(255))
    kind: Mapped[str] = mapped_column(String(20))
    confidence: Mapped[int] = mapped_column(Integer)
    reviewed_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=_utc_now)
    interval_days: Mapped[int] = mapped_column(Integer)
    ease_factor: Mapped[float] = mapped_column(Float)
    mastery_level: Mapped[str] = mapped_column(String(20))


# ===========================================
# Solved Problems (external registry)
# ===========================================


class SolvedProblem(Base):
    """
    A problem the user has already solved on the external judge.

    Populated by the sync that talks to the judge; the review engine only
    reads it for bulk import and recommendations.
    """

    __tablename__ = "solved_problems"
    __table_args__ = (
        UniqueConstraint("user_id", "problem_id", name="uq_solved_problems_user_problem"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[str] = mapped_column(String(128), index=True)
    problem_id: Mapped[str] = mapped_column(String(255))
    title: Mapped[str] = mapped_column(String(500))
    difficulty: Mapped[str] = mapped_column(String(20))
    topics: Mapped[list] = mapped_column(JSON, default=list)
    solved_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=_utc_now)
