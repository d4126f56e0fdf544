"""
Review API

Single entry point for callers of the review engine (CLI, a web layer, a
background job). Responsibilities that sit at the boundary live here and
nowhere in the engine components:
- Input validation: raw arguments become request models, and pydantic
  ValidationErrors become InvalidInputError
- Read-through caching of the due queue, stats, weak topics and
  recommendations in Redis
- Cache eviction of all of a user's keys right after every successful write

The cache TTL (redis.cache_ttl in config/default.yaml) is only a backstop;
correctness comes from eviction. A Redis outage is logged and reads fall
through to the store.

Usage:
    from review_engine.services.review.api import create_review_api

    api = create_review_api()
    await api.add_to_review("user-1", "two-sum", "Two Sum", "Easy", ["array"])
    due = await api.get_due_for_review("user-1")
"""

import logging
from typing import Any, Awaitable, Callable, Optional, TypeVar

from pydantic import TypeAdapter, ValidationError
from redis.exceptions import RedisError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from review_engine.config.settings import settings
from review_engine.db.redis import RedisCache
from review_engine.errors import InvalidInputError
from review_engine.models.review import (
    DueReviewsResponse,
    ImportResult,
    RecommendedProblem,
    ReviewAddRequest,
    ReviewEventResponse,
    ReviewRecordResponse,
    ReviewResult,
    ReviewSubmitRequest,
    StatsSnapshot,
    WeakTopic,
)
from review_engine.services.clock import Clock, SystemClock
from review_engine.services.review.due_selector import DueSelector
from review_engine.services.review.import_bridge import ImportBridge
from review_engine.services.review.registry import (
    SolvedProblemRegistry,
    SqlSolvedProblemRegistry,
)
from review_engine.services.review.review_service import ReviewService
from review_engine.services.review.stats import StatsAggregator
from review_engine.services.review.store import ReviewRecordStore, SqlReviewRecordStore
from review_engine.services.review.weak_areas import WeakAreaAnalyzer

logger = logging.getLogger(__name__)

T = TypeVar("T")

CACHE_PREFIX = "review"
CACHE_ERRORS = (RedisError, OSError)

_due_adapter = TypeAdapter(DueReviewsResponse)
_stats_adapter = TypeAdapter(StatsSnapshot)
_weak_adapter = TypeAdapter(list[WeakTopic])
_recommended_adapter = TypeAdapter(list[RecommendedProblem])


def _validation_details(error: ValidationError) -> dict:
    return {
        "errors": [
            {"field": ".".join(str(part) for part in e["loc"]), "message": e["msg"]}
            for e in error.errors()
        ]
    }


def _validate(model: type[T], **fields: Any) -> T:
    """Build a request model from raw arguments, omitting unset (None) values."""
    payload = {key: value for key, value in fields.items() if value is not None}
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise InvalidInputError(
            f"Invalid {model.__name__}", details=_validation_details(e)
        ) from e


def _require_ids(**ids: Optional[str]) -> None:
    for name, value in ids.items():
        if not isinstance(value, str) or not value.strip():
            raise InvalidInputError(f"{name} is required", details={"field": name})


def _require_limit(limit: Optional[int]) -> None:
    if limit is not None and (isinstance(limit, bool) or not isinstance(limit, int) or limit < 1):
        raise InvalidInputError("limit must be a positive integer", details={"limit": limit})


class ReviewAPI:
    """
    Boundary of the review engine.

    Wires the engine components over one store, registry and clock, and owns
    the read cache.
    """

    def __init__(
        self,
        store: ReviewRecordStore,
        registry: SolvedProblemRegistry,
        clock: Clock = None,
        cache: Optional[RedisCache] = None,
    ):
        self.clock = clock or SystemClock()
        self.cache = cache
        self.reviews = ReviewService(store, clock=self.clock)
        self.due_selector = DueSelector(store, clock=self.clock)
        self.stats = StatsAggregator(store, clock=self.clock)
        self.weak_areas = WeakAreaAnalyzer(store)
        self.importer = ImportBridge(store, registry, clock=self.clock)

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    async def add_to_review(
        self,
        user_id: str,
        problem_id: str,
        title: str,
        difficulty: str,
        topics: Optional[list[str]] = None,
        confidence: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> ReviewRecordResponse:
        """Start tracking a problem (confidence defaults to REVIEW_ADD_DEFAULT_CONFIDENCE)."""
        request = _validate(
            ReviewAddRequest,
            user_id=user_id,
            problem_id=problem_id,
            title=title,
            difficulty=difficulty,
            topics=topics,
            confidence=(
                confidence if confidence is not None else settings.REVIEW_ADD_DEFAULT_CONFIDENCE
            ),
            notes=notes,
        )
        record = await self.reviews.add_to_review(request)
        await self._evict_user(request.user_id)
        return record

    async def record_review(
        self,
        user_id: str,
        problem_id: str,
        confidence: int,
        notes: Optional[str] = None,
        mistake_patterns: Optional[list[str]] = None,
        key_insights: Optional[list[str]] = None,
    ) -> ReviewResult:
        """Submit a 1-5 confidence rating for a tracked problem."""
        request = _validate(
            ReviewSubmitRequest,
            user_id=user_id,
            problem_id=problem_id,
            confidence=confidence,
            notes=notes,
            mistake_patterns=mistake_patterns,
            key_insights=key_insights,
        )
        result = await self.reviews.record_review(request)
        await self._evict_user(request.user_id)
        return result

    async def import_solved_problems(self, user_id: str) -> ImportResult:
        """Start tracking every solved problem that is not tracked yet."""
        _require_ids(user_id=user_id)
        result = await self.importer.import_from_solved(user_id)
        if result.imported:
            await self._evict_user(user_id)
        return result

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def get_due_for_review(
        self, user_id: str, limit: Optional[int] = None
    ) -> DueReviewsResponse:
        _require_ids(user_id=user_id)
        _require_limit(limit)
        if limit is None:
            limit = settings.REVIEW_DEFAULT_DUE_LIMIT
        return await self._read_through(
            f"{user_id}:due:{limit}",
            _due_adapter,
            lambda: self.due_selector.select_due(user_id, limit),
        )

    async def get_review_stats(self, user_id: str) -> StatsSnapshot:
        _require_ids(user_id=user_id)
        return await self._read_through(
            f"{user_id}:stats",
            _stats_adapter,
            lambda: self.stats.get_stats(user_id),
        )

    async def get_weak_topics(
        self, user_id: str, limit: Optional[int] = None
    ) -> list[WeakTopic]:
        _require_ids(user_id=user_id)
        _require_limit(limit)
        if limit is None:
            limit = settings.WEAK_TOPIC_DEFAULT_LIMIT
        return await self._read_through(
            f"{user_id}:weak:{limit}",
            _weak_adapter,
            lambda: self.weak_areas.get_weak_topics(user_id, limit),
        )

    async def get_recommended_for_review(
        self, user_id: str, limit: Optional[int] = None
    ) -> list[RecommendedProblem]:
        _require_ids(user_id=user_id)
        _require_limit(limit)
        if limit is None:
            limit = settings.RECOMMEND_DEFAULT_LIMIT
        return await self._read_through(
            f"{user_id}:recommended:{limit}",
            _recommended_adapter,
            lambda: self.importer.get_recommended_for_review(user_id, limit),
        )

    async def get_record(self, user_id: str, problem_id: str) -> ReviewRecordResponse:
        _require_ids(user_id=user_id, problem_id=problem_id)
        return await self.reviews.get_record(user_id, problem_id)

    async def get_review_history(
        self, user_id: str, problem_id: str, limit: Optional[int] = None
    ) -> list[ReviewEventResponse]:
        _require_ids(user_id=user_id, problem_id=problem_id)
        _require_limit(limit)
        return await self.reviews.get_review_history(user_id, problem_id, limit)

    # -------------------------------------------------------------------------
    # Cache
    # -------------------------------------------------------------------------

    async def _read_through(
        self,
        key: str,
        adapter: TypeAdapter,
        compute: Callable[[], Awaitable[T]],
    ) -> T:
        """Return the cached value for `key`, or compute and cache it."""
        if self.cache is not None:
            try:
                cached = await self.cache.get(key)
            except CACHE_ERRORS as e:
                logger.warning(f"Review cache read failed for {key}: {e}")
                cached = None
            if cached is not None:
                try:
                    return adapter.validate_python(cached)
                except ValidationError:
                    logger.warning(f"Discarding malformed cache entry {key}")

        value = await compute()

        if self.cache is not None:
            try:
                await self.cache.set(key, adapter.dump_python(value, mode="json"))
            except CACHE_ERRORS as e:
                logger.warning(f"Review cache write failed for {key}: {e}")
        return value

    async def _evict_user(self, user_id: str) -> None:
        """Drop every cached read of a user after a write."""
        if self.cache is None:
            return
        try:
            deleted = await self.cache.clear_pattern(f"{user_id}:*")
            logger.debug(f"Evicted {deleted} cached reads for {user_id}")
        except CACHE_ERRORS as e:
            # Stale entries expire with the TTL
            logger.warning(f"Review cache eviction failed for {user_id}: {e}")


def create_review_api(
    session_maker: async_sessionmaker[AsyncSession] = None,
    clock: Clock = None,
    use_cache: bool = None,
) -> ReviewAPI:
    """
    Build a ReviewAPI over the SQL store and registry.

    Args:
        session_maker: Session factory (defaults to the application's).
        clock: Time source (defaults to the UTC system clock).
        use_cache: Enable the Redis read cache (defaults to REVIEW_CACHE_ENABLED).
    """
    if session_maker is None:
        from review_engine.db.base import async_session_maker

        session_maker = async_session_maker
    if use_cache is None:
        use_cache = settings.REVIEW_CACHE_ENABLED

    return ReviewAPI(
        store=SqlReviewRecordStore(session_maker),
        registry=SqlSolvedProblemRegistry(session_maker),
        clock=clock,
        cache=RedisCache(prefix=CACHE_PREFIX) if use_cache else None,
    )
