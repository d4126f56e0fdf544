"""
Strict Base Models for Review Engine Inputs and Outputs

Callers hand the engine loosely typed data (CLI arguments, rows synced from an
external judge). These bases make the contract explicit:
    - Unknown fields in a request are rejected (extra="forbid")
    - Whitespace is stripped from strings before validation
    - Responses can be built straight from ORM rows (from_attributes=True)

Usage:
    class ItemCreate(StrictRequest):
        name: str

    class ItemResponse(StrictResponse):
        id: int
        name: str

Architecture:
    Caller input → StrictRequest (extra="forbid") → Service
    DB Model → StrictResponse (extra="ignore") → Caller
"""

from pydantic import BaseModel, ConfigDict


class StrictRequest(BaseModel):
    """
    Base model for request payloads with strict validation.

    Features:
        - extra="forbid": Unknown fields raise a ValidationError
        - validate_default=True: Validates default values
        - str_strip_whitespace=True: Trims whitespace from strings
        - from_attributes=True: Allows ORM model conversion

    Example:
        >>> class ItemCreate(StrictRequest):
        ...     name: str
        >>>
        >>> ItemCreate(name="Widget")  # OK
        >>> ItemCreate(name="Widget", qty=5)  # Raises ValidationError
    """

    model_config = ConfigDict(
        extra="forbid",  # Reject unknown fields
        validate_default=True,  # Validate defaults
        str_strip_whitespace=True,  # Clean string inputs
        from_attributes=True,  # Enable ORM conversion
    )


class StrictResponse(BaseModel):
    """
    Base model for results returned to callers.

    More lenient than StrictRequest: extra attributes on the source object
    (DB columns such as confidence_sum or version) are ignored.
    """

    model_config = ConfigDict(
        extra="ignore",  # DB rows carry internal columns
        validate_default=True,
        from_attributes=True,
    )
