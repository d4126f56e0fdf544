"""Pydantic models for the review engine."""

from review_engine.models.base import StrictRequest, StrictResponse
from review_engine.models.review import (
    DailyProgress,
    DueReviewsResponse,
    ImportResult,
    MasteryBreakdown,
    RecommendedProblem,
    ReviewAddRequest,
    ReviewEventResponse,
    ReviewRecordResponse,
    ReviewResult,
    ReviewSubmitRequest,
    SolvedProblemInfo,
    StatsSnapshot,
    WeakTopic,
)

__all__ = [
    "StrictRequest",
    "StrictResponse",
    "DailyProgress",
    "DueReviewsResponse",
    "ImportResult",
    "MasteryBreakdown",
    "RecommendedProblem",
    "ReviewAddRequest",
    "ReviewEventResponse",
    "ReviewRecordResponse",
    "ReviewResult",
    "ReviewSubmitRequest",
    "SolvedProblemInfo",
    "StatsSnapshot",
    "WeakTopic",
]
