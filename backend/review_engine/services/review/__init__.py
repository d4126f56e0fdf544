"""
Review Engine Services

Spaced repetition review of solved coding problems.

Modules:
- scheduling: SM-2 interval and ease factor computation
- mastery: Mastery level classification
- store: Review record and event persistence
- registry: Solved problem registry (external)
- review_service: Add problems and record reviews
- due_selector: Due queue in priority order
- stats: Streaks, activity and mastery distribution
- weak_areas: Weak topic detection
- import_bridge: Solved problem import and recommendations
- api: Validated, cached entry point for callers

Usage:
    from review_engine.services.review import create_review_api

    api = create_review_api()
    result = await api.record_review("user-1", "two-sum", confidence=4)
"""

from review_engine.services.review.api import ReviewAPI, create_review_api
from review_engine.services.review.due_selector import DueSelector
from review_engine.services.review.import_bridge import ImportBridge, calculate_importance
from review_engine.services.review.locks import KeyedLock
from review_engine.services.review.mastery import classify_mastery, initial_mastery
from review_engine.services.review.registry import (
    SolvedProblemRegistry,
    SqlSolvedProblemRegistry,
)
from review_engine.services.review.review_service import ReviewService
from review_engine.services.review.scheduling import ScheduleResult, compute_next_schedule
from review_engine.services.review.stats import StatsAggregator
from review_engine.services.review.store import ReviewRecordStore, SqlReviewRecordStore
from review_engine.services.review.weak_areas import WeakAreaAnalyzer

__all__ = [
    "ReviewAPI",
    "create_review_api",
    "DueSelector",
    "ImportBridge",
    "calculate_importance",
    "KeyedLock",
    "classify_mastery",
    "initial_mastery",
    "SolvedProblemRegistry",
    "SqlSolvedProblemRegistry",
    "ReviewService",
    "ScheduleResult",
    "compute_next_schedule",
    "StatsAggregator",
    "ReviewRecordStore",
    "SqlReviewRecordStore",
    "WeakAreaAnalyzer",
]
