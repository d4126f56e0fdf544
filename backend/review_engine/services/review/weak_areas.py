"""
Weak Area Analysis

Finds topics the learner keeps struggling with: topics shared by several
records that are still at the learning or forgotten mastery level, ranked by
how low their average confidence is.

Records are exploded by topic with pandas, so a record tagged with three
topics counts towards all three.

Usage:
    analyzer = WeakAreaAnalyzer(store)
    weak = await analyzer.get_weak_topics("user-1", limit=5)
"""

import logging

import pandas as pd

from review_engine.config.settings import settings
from review_engine.db.models_review import ReviewRecord
from review_engine.enums.review import MasteryLevel
from review_engine.models.review import WeakTopic
from review_engine.services.review.store import ReviewRecordStore

logger = logging.getLogger(__name__)

STRUGGLING_LEVELS = [MasteryLevel.LEARNING, MasteryLevel.FORGOTTEN]


class WeakAreaAnalyzer:
    """Read-only weak topic detection over review records."""

    def __init__(self, store: ReviewRecordStore, min_count: int = None):
        self.store = store
        self.min_count = settings.WEAK_TOPIC_MIN_COUNT if min_count is None else min_count

    async def get_weak_topics(self, user_id: str, limit: int = None) -> list[WeakTopic]:
        """
        Topics with the lowest average confidence among struggling records.

        Args:
            user_id: Learner to analyze.
            limit: Maximum topics to return (defaults to WEAK_TOPIC_DEFAULT_LIMIT).

        Returns:
            WeakTopic list, weakest first. Topics backed by fewer than
            `min_count` struggling records are left out.
        """
        if limit is None:
            limit = settings.WEAK_TOPIC_DEFAULT_LIMIT
        records = await self.store.find_by_mastery(user_id, STRUGGLING_LEVELS)
        if not records:
            return []

        ranked = self._rank_topics(self._records_dataframe(records))
        weak = [
            WeakTopic(
                topic=row["topic"],
                count=int(row["count"]),
                average_confidence=round(float(row["average_confidence"]), 1),
            )
            for row in ranked.head(limit).to_dict("records")
        ]

        logger.debug(f"Found {len(weak)} weak topics for {user_id}")
        return weak

    @staticmethod
    def _records_dataframe(records: list[ReviewRecord]) -> pd.DataFrame:
        return pd.DataFrame(
            [
                {
                    "problem_id": r.problem_id,
                    "topics": r.topics or [],
                    "average_confidence": r.average_confidence,
                }
                for r in records
            ]
        )

    def _rank_topics(self, records_df: pd.DataFrame) -> pd.DataFrame:
        """
        Group records by topic and sort weakest first.

        Ties on the average go to the topic with more records, then to the
        topic name, so the order is stable across runs.
        """
        # One row per record-topic pair; records without topics become NaN
        exploded = records_df.explode("topics").dropna(subset=["topics"])
        if exploded.empty:
            return pd.DataFrame(columns=["topic", "count", "average_confidence"])

        grouped = (
            exploded.groupby("topics")
            .agg(
                count=("problem_id", "size"),
                average_confidence=("average_confidence", "mean"),
            )
            .reset_index()
            .rename(columns={"topics": "topic"})
        )
        grouped = grouped[grouped["count"] >= self.min_count]

        return grouped.sort_values(
            ["average_confidence", "count", "topic"],
            ascending=[True, False, True],
        )
