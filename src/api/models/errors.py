"""Error response models for the API.

All errors share one envelope whose ``message`` field carries the
human-readable reason, plus a request_id for tracing.
"""

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field

from src.core.constants import ErrorCodes


class ErrorResponse(BaseModel):
    """Standard error response model.

    Attributes:
        error: Error type identifier (e.g., "VALIDATION_ERROR", "NOT_FOUND")
        error_code: Machine-readable error code for programmatic handling
        message: Human-readable error message
        details: Additional error context (validation errors, etc.)
        request_id: Unique request identifier for tracing
        timestamp: ISO 8601 timestamp of when the error occurred
    """

    error: str = Field(
        ...,
        description="Error type identifier",
        examples=["VALIDATION_ERROR"],
    )
    error_code: str = Field(
        ...,
        description="Machine-readable error code",
        examples=["VIDEO_NOT_FOUND"],
    )
    message: str = Field(
        ...,
        description="Human-readable error message",
        examples=["Video not found"],
    )
    details: dict[str, Any] | None = Field(
        default=None,
        description="Additional error details and context",
    )
    request_id: str = Field(
        ...,
        description="Unique request identifier for tracing",
        examples=["req_abc123def456"],
    )
    timestamp: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat(),
        description="ISO 8601 timestamp of error occurrence",
    )

    model_config = {
        "json_schema_extra": {
            "example": {
                "error": "NOT_FOUND",
                "error_code": "VIDEO_NOT_FOUND",
                "message": "Video not found",
                "details": None,
                "request_id": "req_abc123def456",
                "timestamp": "2024-01-15T10:30:00Z",
            }
        }
    }


class ValidationErrorResponse(ErrorResponse):
    """Validation error response for request validation failures."""

    error: str = Field(default="VALIDATION_ERROR", frozen=True)
    details: dict[str, Any] = Field(  # type: ignore[assignment]
        default_factory=dict,
        description="Validation errors by field",
        examples=[{"errors": [{"field": "query.videoId", "message": "Field required"}]}],
    )


class NotFoundErrorResponse(ErrorResponse):
    """Not found error response for missing resources."""

    error: str = Field(default="NOT_FOUND", frozen=True)
    error_code: str = Field(
        ...,
        description="Specific not found error code",
        examples=["VIDEO_NOT_FOUND", "ANALYSIS_NOT_FOUND", "SHARE_NOT_FOUND"],
    )


class InternalServerErrorResponse(ErrorResponse):
    """Internal server error response for unexpected failures."""

    error: str = Field(default="INTERNAL_SERVER_ERROR", frozen=True)
    error_code: str = Field(default=ErrorCodes.INTERNAL_ERROR)
    message: str = Field(
        default="An unexpected error occurred. Please try again later.",
        description="Generic error message to avoid leaking internal details",
    )


__all__ = [
    "ErrorCodes",
    "ErrorResponse",
    "InternalServerErrorResponse",
    "NotFoundErrorResponse",
    "ValidationErrorResponse",
]
