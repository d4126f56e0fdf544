"""
Database Base Configuration

Sets up the async SQLAlchemy engine and session management.

Usage:
    from review_engine.db.base import async_session_maker, Base

    async with async_session_maker() as session:
        result = await session.execute(...)
"""

from typing import Any

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from review_engine.config import settings, yaml_config


# Get pool configuration from yaml config
db_config: dict[str, Any] = yaml_config.get("database", {})
pool_size: int = db_config.get("pool_size", 5)
max_overflow: int = db_config.get("max_overflow", 10)
pool_timeout: int = db_config.get("pool_timeout", 30)


def create_engine_for_url(url: str, echo: bool = False) -> AsyncEngine:
    """
    Create an async engine for the given URL.

    SQLite (aiosqlite) does not use a sized connection pool, so pool
    options are only applied to server databases.
    """
    if url.startswith("sqlite"):
        return create_async_engine(url, echo=echo)

    return create_async_engine(
        url,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_timeout=pool_timeout,
        echo=echo,
    )


# Create async engine
engine = create_engine_for_url(settings.DB_URL, echo=settings.DEBUG)

# Create async session factory
async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


# Import models AFTER Base is defined to avoid circular imports.
# This ensures all models are registered with Base.metadata.
from review_engine.db import models  # noqa: F401, E402


async def init_db(target_engine: AsyncEngine = None) -> None:
    """
    Initialize database tables.

    Creates tables that don't exist yet. Accepts an explicit engine so
    tests and scripts can initialize a database other than the default.
    """
    async with (target_engine or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
