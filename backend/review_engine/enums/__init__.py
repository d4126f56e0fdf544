"""
Centralized enum definitions for the application.

Usage:
    from review_engine.enums import MasteryLevel, Difficulty

    # Or import from the specific module
    from review_engine.enums.review import ReviewEventKind
"""

from review_engine.enums.review import (
    Difficulty,
    MasteryLevel,
    ReviewEventKind,
)

__all__ = [
    "Difficulty",
    "MasteryLevel",
    "ReviewEventKind",
]
