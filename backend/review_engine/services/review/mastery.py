"""
Mastery Classification

Maps the running review statistics of a record onto a MasteryLevel. Always
called with the values that already include the latest rating.

Rules, first match wins:
    1. average >= 4.5 and total >= 3  -> mastered
    2. latest < 2 and total > 1       -> forgotten
    3. average >= 3.5                 -> practicing
    4. otherwise                      -> learning

A mastered average therefore outranks a single bad latest rating; the
running mean drops below 4.5 soon after a few poor ratings anyway.
"""

from review_engine.enums.review import MasteryLevel

MASTERED_MIN_AVERAGE = 4.5
MASTERED_MIN_REVIEWS = 3
FORGOTTEN_BELOW_CONFIDENCE = 2
PRACTICING_MIN_AVERAGE = 3.5
INITIAL_PRACTICING_CONFIDENCE = 4


def classify_mastery(
    average_confidence: float, total_reviews: int, latest_confidence: int
) -> MasteryLevel:
    """Classify a record from its updated average, review count and latest rating."""
    if average_confidence >= MASTERED_MIN_AVERAGE and total_reviews >= MASTERED_MIN_REVIEWS:
        return MasteryLevel.MASTERED
    if latest_confidence < FORGOTTEN_BELOW_CONFIDENCE and total_reviews > 1:
        return MasteryLevel.FORGOTTEN
    if average_confidence >= PRACTICING_MIN_AVERAGE:
        return MasteryLevel.PRACTICING
    return MasteryLevel.LEARNING


def initial_mastery(confidence: int) -> MasteryLevel:
    """Mastery of a record created with a single rating."""
    if confidence >= INITIAL_PRACTICING_CONFIDENCE:
        return MasteryLevel.PRACTICING
    return MasteryLevel.LEARNING
