"""
Application Configuration

This module provides type-safe configuration loading using Pydantic settings.
Environment variables are loaded from .env file and validated.

Usage:
    from review_engine.config import settings

    # Access settings
    db_url = settings.DB_URL
    redis_url = settings.REDIS_URL
"""

from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "Problem Review Engine"
    DEBUG: bool = False

    # PostgreSQL
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "reviewer"
    POSTGRES_PASSWORD: str = ""
    POSTGRES_DB: str = "problem_review"

    # Full SQLAlchemy URL override (e.g. "sqlite+aiosqlite:///./review.db").
    # When empty, the PostgreSQL settings above are used.
    DATABASE_URL: str = ""

    @property
    def POSTGRES_URL(self) -> str:
        """Async PostgreSQL connection URL."""
        return f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    @property
    def DB_URL(self) -> str:
        """Async connection URL actually used by the engine."""
        return self.DATABASE_URL or self.POSTGRES_URL

    # Redis (read-through cache owned by the API boundary)
    REDIS_URL: str = "redis://localhost:6379/0"
    REVIEW_CACHE_ENABLED: bool = True

    # Review scheduling
    REVIEW_DEFAULT_DUE_LIMIT: int = 20
    REVIEW_ADD_DEFAULT_CONFIDENCE: int = 3
    REVIEW_IMPORT_SEED_CONFIDENCE: int = 4  # Solved problems are assumed well known
    REVIEW_CAS_MAX_RETRIES: int = 3
    REVIEW_HISTORY_DEFAULT_LIMIT: int = 10

    # Weak topic detection
    WEAK_TOPIC_MIN_COUNT: int = 2  # Fewer records is single-sample noise
    WEAK_TOPIC_DEFAULT_LIMIT: int = 10

    # Recommendations
    RECOMMEND_DEFAULT_LIMIT: int = 10
    RECOMMEND_CORE_TOPICS: list[str] = [
        "dynamic-programming",
        "two-pointers",
        "sliding-window",
        "binary-search",
        "dfs",
        "bfs",
        "backtracking",
        "tree",
        "graph",
    ]

    # Stats
    STATS_WEEKLY_DAYS: int = 7
    STATS_ACTIVITY_LOOKBACK_DAYS: int = 30

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()


@lru_cache()
def load_yaml_config() -> dict[str, Any]:
    """Load application configuration from config/default.yaml."""
    config_path = Path(__file__).parent.parent.parent.parent / "config" / "default.yaml"

    if not config_path.exists():
        return {}

    with open(config_path) as f:
        return yaml.safe_load(f) or {}


yaml_config: dict[str, Any] = load_yaml_config()
