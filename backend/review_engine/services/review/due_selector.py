"""
Due Queue Selection

Picks the problems a learner should review now. A record is due when its
next review date has passed and it is not mastered.

Ordering, most urgent first:
    1. mastery: forgotten, then learning, then practicing
    2. lower average confidence
    3. earlier next review date
    4. problem id (stable tie-break)
"""

import logging

from review_engine.config.settings import settings
from review_engine.enums.review import MasteryLevel
from review_engine.models.review import DueReviewsResponse, ReviewRecordResponse
from review_engine.services.clock import Clock, SystemClock
from review_engine.services.review.store import ReviewRecordStore

logger = logging.getLogger(__name__)

MASTERY_PRIORITY: dict[str, int] = {
    MasteryLevel.FORGOTTEN.value: 0,
    MasteryLevel.LEARNING.value: 1,
    MasteryLevel.PRACTICING.value: 2,
}


class DueSelector:
    """Read-only due queue over the review record store."""

    def __init__(self, store: ReviewRecordStore, clock: Clock = None):
        self.store = store
        self.clock = clock or SystemClock()

    async def select_due(self, user_id: str, limit: int = None) -> DueReviewsResponse:
        """
        Get due records in priority order.

        Args:
            user_id: Learner whose queue to build.
            limit: Maximum items (defaults to REVIEW_DEFAULT_DUE_LIMIT).

        Returns:
            DueReviewsResponse with up to `limit` items and the full due count.
        """
        if limit is None:
            limit = settings.REVIEW_DEFAULT_DUE_LIMIT
        now = self.clock.now()

        records = await self.store.find_due(user_id, now, limit, MASTERY_PRIORITY)
        total_due = await self.store.count_due(user_id, now)

        logger.debug(f"{total_due} reviews due for {user_id}, returning {len(records)}")
        return DueReviewsResponse(
            items=[ReviewRecordResponse.model_validate(r) for r in records],
            total_due=total_due,
        )

    async def count_due(self, user_id: str) -> int:
        return await self.store.count_due(user_id, self.clock.now())
