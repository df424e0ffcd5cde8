"""Standard response models for API documentation.

Provides the error envelope schema that appears in OpenAPI docs.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field


class ErrorContent(BaseModel):
    """Error information container."""

    code: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error message")
    details: Optional[dict[str, Any]] = Field(
        default=None,
        description="Additional error context",
    )


class ErrorResponse(BaseModel):
    """Standard error response format.

    Example:
        {
            "error": {
                "code": "INVITE_EXPIRED",
                "message": "Invite has expired",
                "details": {"expired_at": "2026-01-08T12:00:00"}
            }
        }
    """

    error: ErrorContent = Field(description="Error information")


# Documented error statuses shared by every v1 router
ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    400: {"model": ErrorResponse, "description": "Validation failed"},
    401: {"model": ErrorResponse, "description": "Authentication required"},
    403: {"model": ErrorResponse, "description": "Permission denied"},
    404: {"model": ErrorResponse, "description": "Resource not found"},
    409: {"model": ErrorResponse, "description": "Conflict"},
}

INVITE_ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    **ERROR_RESPONSES,
    410: {"model": ErrorResponse, "description": "Invite expired"},
}
