"""
Solved Problem Import

Bridges the external solved problem registry and the review engine:
- Bulk import of every solved problem that is not tracked yet
- Ranking of untracked solved problems by interview importance

Imported records are seeded with confidence 4 (the learner already solved
the problem once). Import is idempotent: existing records are never
overwritten, and a problem added concurrently by add_to_review is counted
as skipped. Imports for the same user run one at a time.
"""

import logging
from typing import Iterable

from review_engine.config.settings import settings
from review_engine.enums.review import Difficulty
from review_engine.errors import AlreadyExistsError
from review_engine.models.review import ImportResult, RecommendedProblem, SolvedProblemInfo
from review_engine.services.clock import Clock, SystemClock
from review_engine.services.review.locks import KeyedLock
from review_engine.services.review.registry import SolvedProblemRegistry
from review_engine.services.review.review_service import build_new_record
from review_engine.services.review.store import ReviewRecordStore

logger = logging.getLogger(__name__)

DIFFICULTY_WEIGHTS: dict[Difficulty, int] = {
    Difficulty.EASY: 5,
    Difficulty.MEDIUM: 8,
    Difficulty.HARD: 10,
}
CORE_TOPIC_WEIGHT = 3
OTHER_TOPIC_WEIGHT = 1


def normalize_topic(topic: str) -> str:
    """Canonical topic key: lowercase, spaces as hyphens ("Binary Search" -> "binary-search")."""
    return "-".join(topic.strip().lower().split())


def calculate_importance(
    difficulty: Difficulty, topics: Iterable[str], core_topics: Iterable[str] = None
) -> int:
    """
    Interview importance of a problem.

    importance = difficulty weight + sum of topic weights, where core
    interview topics weigh 3 and every other topic weighs 1.
    """
    if core_topics is None:
        core_topics = settings.RECOMMEND_CORE_TOPICS
    core = {normalize_topic(t) for t in core_topics}
    score = DIFFICULTY_WEIGHTS[Difficulty(difficulty)]
    for topic in topics:
        score += CORE_TOPIC_WEIGHT if normalize_topic(topic) in core else OTHER_TOPIC_WEIGHT
    return score


class ImportBridge:
    """Import and recommendation of solved problems."""

    def __init__(
        self,
        store: ReviewRecordStore,
        registry: SolvedProblemRegistry,
        clock: Clock = None,
        import_locks: KeyedLock = None,
        seed_confidence: int = None,
    ):
        self.store = store
        self.registry = registry
        self.clock = clock or SystemClock()
        self.import_locks = import_locks or KeyedLock()
        self.seed_confidence = (
            settings.REVIEW_IMPORT_SEED_CONFIDENCE if seed_confidence is None else seed_confidence
        )

    async def import_from_solved(self, user_id: str) -> ImportResult:
        """
        Start tracking every solved problem that is not tracked yet.

        Seeded ratings are not learner activity, so no review events are
        appended and streaks are unaffected.

        Returns:
            ImportResult with imported, skipped and total solved counts.
        """
        async with self.import_locks.hold(user_id):
            solved = await self.registry.list_solved(user_id)
            tracked = await self.store.list_problem_ids(user_id)

            imported = 0
            skipped = 0
            for problem in solved:
                if problem.problem_id in tracked:
                    skipped += 1
                    continue

                record = build_new_record(
                    user_id=user_id,
                    problem_id=problem.problem_id,
                    title=problem.title,
                    difficulty=problem.difficulty,
                    topics=problem.topics,
                    confidence=self.seed_confidence,
                    now=self.clock.now(),
                )
                try:
                    await self.store.insert(record)
                except AlreadyExistsError:
                    # Added concurrently after the tracked ids were read
                    skipped += 1
                    continue

                tracked.add(problem.problem_id)
                imported += 1

        logger.info(
            f"Imported {imported} solved problems for {user_id} "
            f"({skipped} already tracked, {len(solved)} solved)"
        )
        return ImportResult(imported=imported, skipped=skipped, total_solved=len(solved))

    async def get_recommended_for_review(
        self, user_id: str, limit: int = None
    ) -> list[RecommendedProblem]:
        """
        Rank untracked solved problems by interview importance.

        Ties keep registry order.
        """
        if limit is None:
            limit = settings.RECOMMEND_DEFAULT_LIMIT
        solved = await self.registry.list_solved(user_id)
        tracked = await self.store.list_problem_ids(user_id)

        candidates = [
            self._to_recommendation(p) for p in solved if p.problem_id not in tracked
        ]
        candidates.sort(key=lambda r: r.importance, reverse=True)
        return candidates[:limit]

    @staticmethod
    def _to_recommendation(problem: SolvedProblemInfo) -> RecommendedProblem:
        return RecommendedProblem(
            problem_id=problem.problem_id,
            title=problem.title,
            difficulty=problem.difficulty,
            topics=problem.topics,
            importance=calculate_importance(problem.difficulty, problem.topics),
        )
