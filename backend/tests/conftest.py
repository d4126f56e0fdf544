"""
Shared Test Fixtures and Configuration

This module provides pytest fixtures used across the unit tests: an
in-memory SQLite database, the SQL store and registry on top of it, a fixed
clock, and a mock Redis client.
"""

import os
import sys
from datetime import timedelta
from pathlib import Path
from typing import Any, AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from dotenv import load_dotenv

# Add the backend directory to the path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

# Load .env file from project root BEFORE any review_engine import
_project_root = Path(__file__).parent.parent.parent
_env_file = _project_root / ".env"
if _env_file.exists():
    load_dotenv(_env_file)

# The engine is created at import time; point it at SQLite and keep the
# tests away from a real Redis regardless of .env
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["REVIEW_CACHE_ENABLED"] = "false"
os.environ["DEBUG"] = "false"

from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from review_engine.db.base import init_db  # noqa: E402
from review_engine.db.models_review import SolvedProblem  # noqa: E402
from review_engine.services.clock import FixedClock  # noqa: E402
from review_engine.services.review.registry import SqlSolvedProblemRegistry  # noqa: E402
from review_engine.services.review.review_service import ReviewService  # noqa: E402
from review_engine.services.review.store import SqlReviewRecordStore  # noqa: E402

from tests.factories import START_TIME, USER_ID  # noqa: E402


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest_asyncio.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine, None]:
    """
    Create a fresh in-memory SQLite database with all tables.

    StaticPool keeps a single connection so every session sees the same
    in-memory database.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(db_engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(db_engine, expire_on_commit=False)


@pytest.fixture
def store(session_maker: async_sessionmaker) -> SqlReviewRecordStore:
    return SqlReviewRecordStore(session_maker)


@pytest.fixture
def registry(session_maker: async_sessionmaker) -> SqlSolvedProblemRegistry:
    return SqlSolvedProblemRegistry(session_maker)


@pytest.fixture
def clock() -> FixedClock:
    """Clock fixed at 2024-03-01 12:00 UTC."""
    return FixedClock(START_TIME)


@pytest.fixture
def review_service(store: SqlReviewRecordStore, clock: FixedClock) -> ReviewService:
    return ReviewService(store, clock=clock)


@pytest.fixture
def seed_solved(session_maker: async_sessionmaker):
    """
    Insert rows into the solved_problems table.

    Usage:
        await seed_solved([{"problem_id": "two-sum", "difficulty": "EASY"}])
    """

    async def _seed(problems: list[dict[str, Any]], user_id: str = USER_ID) -> None:
        async with session_maker() as session:
            for i, problem in enumerate(problems):
                session.add(
                    SolvedProblem(
                        user_id=user_id,
                        problem_id=problem["problem_id"],
                        title=problem.get("title", problem["problem_id"]),
                        difficulty=problem.get("difficulty", "Medium"),
                        topics=problem.get("topics", []),
                        # Newest first in registry order
                        solved_at=START_TIME - timedelta(days=i + 1),
                    )
                )
            await session.commit()

    return _seed


# ============================================================================
# Mock Fixtures
# ============================================================================


@pytest.fixture
def mock_redis() -> MagicMock:
    """
    Create a mock Redis client for unit testing.

    This allows testing Redis-dependent code without a real Redis server.
    """
    mock = MagicMock()
    mock.get = AsyncMock(return_value=None)
    mock.set = AsyncMock(return_value=True)
    mock.setex = AsyncMock(return_value=True)
    mock.delete = AsyncMock(return_value=1)
    mock.keys = AsyncMock(return_value=[])
    return mock
