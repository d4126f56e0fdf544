"""
Review System Enums

Defines enums for problem difficulty, mastery classification and review
event kinds.
"""

from enum import Enum
from typing import Optional


class Difficulty(str, Enum):
    """
    Problem difficulty as shown by the problem source.

    External registries are inconsistent about casing ("EASY", "easy",
    "Easy"), so lookups by value are case-insensitive.
    """

    EASY = "Easy"
    MEDIUM = "Medium"
    HARD = "Hard"

    @classmethod
    def _missing_(cls, value: object) -> Optional["Difficulty"]:
        if isinstance(value, str):
            normalized = value.strip().lower()
            for member in cls:
                if member.value.lower() == normalized:
                    return member
        return None


class MasteryLevel(str, Enum):
    """
    Coarse retention state of a tracked problem.

    Derived after every update from the running average confidence, the
    total review count and the latest rating. Never set independently.
    """

    LEARNING = "learning"  # Initial default, weak or new recall
    PRACTICING = "practicing"  # Average confidence >= 3.5
    MASTERED = "mastered"  # Average >= 4.5 over at least 3 reviews
    FORGOTTEN = "forgotten"  # Latest rating < 2 after an earlier review


class ReviewEventKind(str, Enum):
    """
    Kind of entry in the append-only review event log.
    """

    ADDED = "added"  # Explicit add with an initial rating
    REVIEWED = "reviewed"  # Subsequent review submission
