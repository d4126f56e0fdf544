"""
Review Engine Errors

Typed exceptions for every expected failure of the review engine, so callers
can tell "no items due" apart from "could not check" and map each condition
to a response without inspecting driver exceptions.

Usage:
    from review_engine.errors import NotFoundError, ServiceError

    try:
        await api.record_review(user_id, problem_id, confidence=4)
    except NotFoundError:
        ...  # Problem is not tracked yet
    except ServiceError as e:
        logger.error(f"{e.error_code}: {e.message}")

Exception hierarchy:
    ServiceError
    ├── NotFoundError          (404) record_review on an untracked problem
    ├── AlreadyExistsError     (409) add_to_review on a tracked problem
    ├── ReviewConflictError    (409) compare-and-set retries exhausted
    ├── InvalidInputError      (422) bad confidence or missing identifiers
    └── StoreUnavailableError  (503) persistence collaborator unreachable
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standardized error payload for callers that serialize failures."""

    error: str  # Error code (e.g., "not_found")
    message: str  # Human-readable message
    details: Optional[dict] = None
    timestamp: datetime


class ServiceError(Exception):
    """
    Base exception for review engine errors.

    Provides consistent error handling with:
    - HTTP-style status code for boundary layers
    - Error code for categorization
    - Optional details for debugging

    Example:
        raise ServiceError("Something went wrong", status_code=500)
    """

    status_code: int = 500
    error_code: str = "service_error"

    def __init__(
        self,
        message: str,
        status_code: int = None,
        error_code: str = None,
        details: dict = None,
    ):
        super().__init__(message)
        self.message = message
        if status_code:
            self.status_code = status_code
        if error_code:
            self.error_code = error_code
        self.details = details

    def to_response(self) -> ErrorResponse:
        """Convert to the serializable error payload."""
        return ErrorResponse(
            error=self.error_code,
            message=self.message,
            details=self.details,
            timestamp=datetime.now(timezone.utc),
        )


class NotFoundError(ServiceError):
    """
    Resource not found error.

    Raised when a review is submitted for a problem that is not tracked.
    """

    status_code = 404
    error_code = "not_found"


class AlreadyExistsError(ServiceError):
    """
    Duplicate resource error.

    Raised when adding a problem that is already tracked. Updates must go
    through record_review, never through a silent overwrite.
    """

    status_code = 409
    error_code = "already_exists"


class ReviewConflictError(ServiceError):
    """
    Concurrent update error.

    Raised when a review could not be committed because the record kept
    changing underneath it (compare-and-set retries exhausted).
    """

    status_code = 409
    error_code = "review_conflict"


class InvalidInputError(ServiceError):
    """
    Data validation error.

    Raised for confidence outside 1-5 or missing identifying fields.
    """

    status_code = 422
    error_code = "invalid_input"


class StoreUnavailableError(ServiceError):
    """
    Persistence error.

    Raised when the review record store or solved problem registry cannot
    be reached.
    """

    status_code = 503
    error_code = "store_unavailable"
