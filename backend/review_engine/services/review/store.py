"""
Review Record Store

Persistence boundary for review records and the review event log. The
engine only talks to the abstract ReviewRecordStore; SqlReviewRecordStore is
the SQLAlchemy implementation used in production and in tests (aiosqlite).

Every operation opens its own session, so operations on different records
never share a transaction. Driver failures are translated into the engine's
typed errors:
    - IntegrityError (unique user/problem key) -> AlreadyExistsError
    - connection, timeout and OS errors        -> StoreUnavailableError

Usage:
    from review_engine.db import async_session_maker
    from review_engine.services.review.store import SqlReviewRecordStore

    store = SqlReviewRecordStore(async_session_maker)
    record = await store.get("user-1", "two-sum")
"""

import logging
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, AsyncIterator, Mapping, Optional

from sqlalchemy import case, func, select, update
from sqlalchemy.exc import (
    DisconnectionError,
    IntegrityError,
    InterfaceError,
    OperationalError,
    TimeoutError as PoolTimeoutError,
)
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from review_engine.db.models_review import ReviewEvent, ReviewRecord
from review_engine.enums.review import MasteryLevel
from review_engine.errors import AlreadyExistsError, StoreUnavailableError

logger = logging.getLogger(__name__)

# Failures that mean "could not reach the store", as opposed to bad data
STORE_UNAVAILABLE_ERRORS = (
    OperationalError,
    InterfaceError,
    DisconnectionError,
    PoolTimeoutError,
    OSError,
)


class ReviewRecordStore(ABC):
    """Abstract persistence of review records and review events."""

    @abstractmethod
    async def get(self, user_id: str, problem_id: str) -> Optional[ReviewRecord]:
        """Get one record, or None if the problem is not tracked."""

    @abstractmethod
    async def insert(
        self, record: ReviewRecord, event: Optional[ReviewEvent] = None
    ) -> ReviewRecord:
        """
        Insert a new record, optionally with its first event, atomically.

        Raises:
            AlreadyExistsError: If (user_id, problem_id) is already tracked.
        """

    @abstractmethod
    async def commit_review(
        self,
        user_id: str,
        problem_id: str,
        expected_version: int,
        values: dict[str, Any],
        event: ReviewEvent,
    ) -> bool:
        """
        Apply a review update and append its event in one transaction.

        The update only applies if the stored version still equals
        expected_version; the version is then incremented.

        Returns:
            True if committed, False if the record changed concurrently.
        """

    @abstractmethod
    async def find_due(
        self,
        user_id: str,
        now: datetime,
        limit: int,
        priority: Mapping[str, int],
    ) -> list[ReviewRecord]:
        """Due, non-mastered records ordered by mastery priority then urgency."""

    @abstractmethod
    async def count(self, user_id: str) -> int:
        """Number of tracked problems."""

    @abstractmethod
    async def count_due(self, user_id: str, now: datetime) -> int:
        """Number of due, non-mastered records."""

    @abstractmethod
    async def count_by_mastery(self, user_id: str) -> dict[str, int]:
        """Record counts grouped by mastery level (levels with no records omitted)."""

    @abstractmethod
    async def mean_average_confidence(self, user_id: str) -> Optional[float]:
        """Mean of the per-record average confidences, None without records."""

    @abstractmethod
    async def find_by_mastery(
        self, user_id: str, levels: list[MasteryLevel]
    ) -> list[ReviewRecord]:
        """Records whose mastery level is one of `levels`."""

    @abstractmethod
    async def list_problem_ids(self, user_id: str) -> set[str]:
        """Problem ids of every tracked record."""

    @abstractmethod
    async def list_events(
        self, user_id: str, since: Optional[datetime] = None
    ) -> list[ReviewEvent]:
        """Review events of a user, oldest first, optionally from `since` on."""

    @abstractmethod
    async def list_history(
        self, user_id: str, problem_id: str, limit: int
    ) -> list[ReviewEvent]:
        """Most recent events for one problem, newest first."""


class SqlReviewRecordStore(ReviewRecordStore):
    """
    SQLAlchemy implementation of ReviewRecordStore.

    Records returned are detached from their session (the session factory
    uses expire_on_commit=False), so callers can read them freely.
    """

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self._session_maker = session_maker

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        """Open a session and translate driver errors into engine errors."""
        try:
            async with self._session_maker() as session:
                yield session
        except IntegrityError as e:
            raise AlreadyExistsError(
                "Problem is already tracked for review",
                details={"reason": str(e.orig)},
            ) from e
        except STORE_UNAVAILABLE_ERRORS as e:
            logger.error(f"Review record store unavailable: {e}")
            raise StoreUnavailableError("Review record store is unavailable") from e

    async def get(self, user_id: str, problem_id: str) -> Optional[ReviewRecord]:
        async with self._session() as session:
            result = await session.execute(
                select(ReviewRecord).where(
                    ReviewRecord.user_id == user_id,
                    ReviewRecord.problem_id == problem_id,
                )
            )
            return result.scalar_one_or_none()

    async def insert(
        self, record: ReviewRecord, event: Optional[ReviewEvent] = None
    ) -> ReviewRecord:
        async with self._session() as session:
            session.add(record)
            if event is not None:
                session.add(event)
            await session.commit()
            return record

    async def commit_review(
        self,
        user_id: str,
        problem_id: str,
        expected_version: int,
        values: dict[str, Any],
        event: ReviewEvent,
    ) -> bool:
        async with self._session() as session:
            async with session.begin():
                result = await session.execute(
                    update(ReviewRecord)
                    .where(
                        ReviewRecord.user_id == user_id,
                        ReviewRecord.problem_id == problem_id,
                        ReviewRecord.version == expected_version,
                    )
                    .values(**values, version=expected_version + 1)
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount != 1:
                    return False
                session.add(event)
            return True

    async def find_due(
        self,
        user_id: str,
        now: datetime,
        limit: int,
        priority: Mapping[str, int],
    ) -> list[ReviewRecord]:
        mastery_rank = case(
            dict(priority),
            value=ReviewRecord.mastery_level,
            else_=len(priority),
        )
        query = (
            select(ReviewRecord)
            .where(self._due_filter(user_id, now))
            .order_by(
                mastery_rank.asc(),
                ReviewRecord.average_confidence.asc(),
                ReviewRecord.next_review_date.asc(),
                ReviewRecord.problem_id.asc(),
            )
            .limit(limit)
        )
        async with self._session() as session:
            result = await session.execute(query)
            return list(result.scalars().all())

    async def count(self, user_id: str) -> int:
        async with self._session() as session:
            result = await session.execute(
                select(func.count(ReviewRecord.id)).where(ReviewRecord.user_id == user_id)
            )
            return result.scalar() or 0

    async def count_due(self, user_id: str, now: datetime) -> int:
        async with self._session() as session:
            result = await session.execute(
                select(func.count(ReviewRecord.id)).where(self._due_filter(user_id, now))
            )
            return result.scalar() or 0

    async def count_by_mastery(self, user_id: str) -> dict[str, int]:
        async with self._session() as session:
            result = await session.execute(
                select(ReviewRecord.mastery_level, func.count(ReviewRecord.id))
                .where(ReviewRecord.user_id == user_id)
                .group_by(ReviewRecord.mastery_level)
            )
            return {level: count for level, count in result.all()}

    async def mean_average_confidence(self, user_id: str) -> Optional[float]:
        async with self._session() as session:
            result = await session.execute(
                select(func.avg(ReviewRecord.average_confidence)).where(
                    ReviewRecord.user_id == user_id
                )
            )
            value = result.scalar()
            return float(value) if value is not None else None

    async def find_by_mastery(
        self, user_id: str, levels: list[MasteryLevel]
    ) -> list[ReviewRecord]:
        async with self._session() as session:
            result = await session.execute(
                select(ReviewRecord)
                .where(
                    ReviewRecord.user_id == user_id,
                    ReviewRecord.mastery_level.in_([level.value for level in levels]),
                )
                .order_by(ReviewRecord.problem_id)
            )
            return list(result.scalars().all())

    async def list_problem_ids(self, user_id: str) -> set[str]:
        async with self._session() as session:
            result = await session.execute(
                select(ReviewRecord.problem_id).where(ReviewRecord.user_id == user_id)
            )
            return set(result.scalars().all())

    async def list_events(
        self, user_id: str, since: Optional[datetime] = None
    ) -> list[ReviewEvent]:
        query = select(ReviewEvent).where(ReviewEvent.user_id == user_id)
        if since is not None:
            query = query.where(ReviewEvent.reviewed_at >= since)
        query = query.order_by(ReviewEvent.reviewed_at.asc(), ReviewEvent.id.asc())
        async with self._session() as session:
            result = await session.execute(query)
            return list(result.scalars().all())

    async def list_history(
        self, user_id: str, problem_id: str, limit: int
    ) -> list[ReviewEvent]:
        async with self._session() as session:
            result = await session.execute(
                select(ReviewEvent)
                .where(
                    ReviewEvent.user_id == user_id,
                    ReviewEvent.problem_id == problem_id,
                )
                .order_by(ReviewEvent.reviewed_at.desc(), ReviewEvent.id.desc())
                .limit(limit)
            )
            return list(result.scalars().all())

    @staticmethod
    def _due_filter(user_id: str, now: datetime):
        return (
            (ReviewRecord.user_id == user_id)
            & (ReviewRecord.next_review_date <= now)
            & (ReviewRecord.mastery_level != MasteryLevel.MASTERED.value)
        )
