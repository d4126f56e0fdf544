"""
SQLAlchemy model registry.

Importing this module registers every table with Base.metadata.
"""

from review_engine.db.models_review import ReviewEvent, ReviewRecord, SolvedProblem

__all__ = ["ReviewEvent", "ReviewRecord", "SolvedProblem"]
