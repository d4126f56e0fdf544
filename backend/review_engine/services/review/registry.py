"""
Solved Problem Registry

Read-only view of the problems a user has solved on the external judge. The
sync that fills it lives outside the review engine; the engine only lists
solved problems for bulk import and recommendations.
"""

import logging
from abc import ABC, abstractmethod

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from review_engine.db.models_review import SolvedProblem
from review_engine.errors import StoreUnavailableError
from review_engine.models.review import SolvedProblemInfo
from review_engine.services.review.store import STORE_UNAVAILABLE_ERRORS

logger = logging.getLogger(__name__)


class SolvedProblemRegistry(ABC):
    """Source of the problems a user has already solved."""

    @abstractmethod
    async def list_solved(self, user_id: str) -> list[SolvedProblemInfo]:
        """All solved problems of a user, in registry order."""


class SqlSolvedProblemRegistry(SolvedProblemRegistry):
    """Registry backed by the solved_problems table."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self._session_maker = session_maker

    async def list_solved(self, user_id: str) -> list[SolvedProblemInfo]:
        try:
            async with self._session_maker() as session:
                result = await session.execute(
                    select(SolvedProblem)
                    .where(SolvedProblem.user_id == user_id)
                    .order_by(SolvedProblem.solved_at.desc(), SolvedProblem.id.desc())
                )
                rows = list(result.scalars().all())
        except STORE_UNAVAILABLE_ERRORS as e:
            logger.error(f"Solved problem registry unavailable: {e}")
            raise StoreUnavailableError("Solved problem registry is unavailable") from e

        problems = []
        for row in rows:
            try:
                problems.append(SolvedProblemInfo.model_validate(row))
            except ValidationError as e:
                # Skip the row, keep importing the rest
                logger.warning(
                    f"Skipping solved problem {row.problem_id} for {user_id}: {e.error_count()} invalid fields"
                )
        return problems
