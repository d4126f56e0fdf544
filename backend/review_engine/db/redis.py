"""
Redis Connection and Caching Utilities

Provides Redis connection pooling and a small JSON cache used by the review
API boundary for read-through caching.

Usage:
    from review_engine.db.redis import get_redis, RedisCache

    # Get Redis connection
    redis = await get_redis()
    await redis.set("key", "value")

    # Namespaced JSON cache
    cache = RedisCache(prefix="review")
    await cache.set("user-1:stats", {"total_problems": 3})
    await cache.clear_pattern("user-1:*")
"""

import json
from typing import Any, Optional

import redis.asyncio as redis

from review_engine.config import settings, yaml_config


# Get Redis configuration from yaml config
redis_config: dict[str, Any] = yaml_config.get("redis", {})
DEFAULT_CACHE_TTL: int = redis_config.get("cache_ttl", 60)
MAX_CONNECTIONS: int = redis_config.get("max_connections", 10)


# Connection pool (lazily initialized)
_redis_pool: Optional[redis.ConnectionPool] = None


async def get_redis_pool() -> redis.ConnectionPool:
    """Get or create the Redis connection pool."""
    global _redis_pool
    if _redis_pool is None:
        _redis_pool = redis.ConnectionPool.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            max_connections=MAX_CONNECTIONS,
        )
    return _redis_pool


async def get_redis() -> redis.Redis:
    """
    Get a Redis connection from the pool.

    Usage:
        redis = await get_redis()
        await redis.set("key", "value")
    """
    pool = await get_redis_pool()
    return redis.Redis(connection_pool=pool)


async def close_redis_pool() -> None:
    """Close the Redis connection pool."""
    global _redis_pool
    if _redis_pool is not None:
        await _redis_pool.disconnect()
        _redis_pool = None


class RedisCache:
    """
    Redis-based JSON cache with a key prefix.

    Values are stored as JSON strings with a TTL. Keys are namespaced as
    "{prefix}:{key}" so a whole namespace can be evicted by pattern.
    """

    def __init__(self, prefix: str = "cache", ttl: int = DEFAULT_CACHE_TTL) -> None:
        self.prefix = prefix
        self.ttl = ttl

    def _full_key(self, key: str) -> str:
        return f"{self.prefix}:{key}"

    async def get(self, key: str) -> Optional[Any]:
        """Get a value from cache."""
        r = await get_redis()
        value = await r.get(self._full_key(key))
        if value:
            return json.loads(value)
        return None

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        """Set a value in cache."""
        r = await get_redis()
        await r.setex(self._full_key(key), ttl or self.ttl, json.dumps(value))

    async def delete(self, key: str) -> None:
        """Delete a value from cache."""
        r = await get_redis()
        await r.delete(self._full_key(key))

    async def clear_pattern(self, pattern: str) -> int:
        """
        Clear all keys matching a pattern.

        Returns:
            Number of keys deleted.
        """
        r = await get_redis()
        keys = await r.keys(self._full_key(pattern))
        if keys:
            return await r.delete(*keys)
        return 0
