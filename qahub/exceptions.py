"""Standard exception classes for the access service.

All custom exceptions inherit from QAHubException and include:
- message: Human-readable error message
- error_code: Machine-readable error code (e.g., "NOT_FOUND")
- details: Optional dictionary with additional context

The HTTP layer maps status_code straight onto the response, so services
raise these directly instead of HTTPException.
"""

from typing import Any, Optional


class QAHubException(Exception):
    """Base exception for all QAHub errors.

    Attributes:
        message: Human-readable error message
        error_code: Machine-readable error code for client handling
        details: Optional dictionary with additional error context
        status_code: HTTP status code (set by subclasses)
    """

    status_code: int = 500
    default_error_code: str = "INTERNAL_ERROR"
    default_message: str = "An unexpected error occurred"

    def __init__(
        self,
        message: Optional[str] = None,
        error_code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        self.message = message or self.default_message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for JSON response."""
        result = {
            "code": self.error_code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


class ValidationError(QAHubException):
    """Request validation failed (HTTP 400).

    Raised for malformed invite tokens and for an accepting account whose
    email does not match the invite.
    """

    status_code = 400
    default_error_code = "VALIDATION_ERROR"
    default_message = "Validation failed"


class AuthenticationError(QAHubException):
    """Authentication failed (HTTP 401)."""

    status_code = 401
    default_error_code = "AUTHENTICATION_FAILED"
    default_message = "Authentication required"


class PermissionDenied(QAHubException):
    """Rank insufficient for the requested action or target role (HTTP 403)."""

    status_code = 403
    default_error_code = "FORBIDDEN"
    default_message = "Permission denied"


class NotFoundError(QAHubException):
    """Invite, workspace, member or user does not exist (HTTP 404)."""

    status_code = 404
    default_error_code = "NOT_FOUND"
    default_message = "Resource not found"


class ConflictError(QAHubException):
    """Resource conflict (HTTP 409).

    Raised by the membership store when the (workspace_id, user_id)
    uniqueness constraint rejects an insert. Invite acceptance catches it
    and treats it as a duplicate of an earlier success.
    """

    status_code = 409
    default_error_code = "CONFLICT"
    default_message = "Resource conflict"


class AlreadyAcceptedError(QAHubException):
    """Invite was already accepted (HTTP 409)."""

    status_code = 409
    default_error_code = "INVITE_ALREADY_ACCEPTED"
    default_message = "Invite was already accepted"


class ExpiredError(QAHubException):
    """Invite expiry window has passed (HTTP 410)."""

    status_code = 410
    default_error_code = "INVITE_EXPIRED"
    default_message = "Invite has expired"
