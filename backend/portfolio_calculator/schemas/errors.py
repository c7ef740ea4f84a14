# backend/portfolio_calculator/schemas/errors.py
"""
Pydantic schemas for error responses.

Every error leaving the API uses one of these two shapes. Built by the global
exception handlers in main.py and by the rate limit handler.
"""

from pydantic import BaseModel, ConfigDict, Field


class ErrorDetail(BaseModel):
    """
    Standard error response format.

    `error` is the domain exception class name, so clients can branch on it
    without parsing the message.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "error": "FundCycleError",
                "message": "Fund cycle detected: Investment12 -> Investment40 -> Investment12",
                "details": {"holding_id": "Investment12"},
            }
        }
    )

    error: str = Field(
        ...,
        description="Error type/code (e.g., 'UnsupportedHoldingTypeError')"
    )
    message: str = Field(
        ...,
        description="Human-readable error message"
    )
    details: dict | None = Field(
        default=None,
        description="Additional error context (optional)"
    )


class ValidationErrorDetail(BaseModel):
    """Request validation failure (422), e.g. a malformed ?date= parameter."""

    error: str = Field(default="ValidationError")
    message: str = Field(default="Request validation failed")
    details: list[dict] = Field(
        ...,
        description="One entry per invalid field (loc, msg, type)"
    )
