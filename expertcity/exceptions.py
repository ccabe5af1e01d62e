"""
Expert In The City Backend — Custom Exception Hierarchy
========================================================

What:  Application-specific exceptions for the error scenarios the API exposes.
How:   Each exception class carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return the uniform error envelope with the matching HTTP status.
Who:   Raised by services and dependencies; caught by global handlers.

Exception Hierarchy:
    ExpertCityError (base)
    ├── ValidationError          → 422 Unprocessable Entity
    ├── UnauthorizedError        → 401 Unauthorized
    ├── ForbiddenError           → 403 Forbidden
    ├── NotFoundError            → 404 Not Found
    ├── ConflictError            → 409 Conflict
    ├── RateLimitExceededError   → 429 Too Many Requests
    └── DatabaseError            → 500 Internal Server Error

Every class exposes `status_code` and `code` so a single handler can render
the envelope:

    {"status": "error", "code": "...", "message": "...", "details": {...}}
"""

from typing import Any, Dict, Optional


class ExpertCityError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info; returned as `details` only for
                  client errors (4xx), logged otherwise
    """

    status_code: int = 500
    code: str = "server_error"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)

    def envelope(self, request_id: str = "") -> Dict[str, Any]:
        """Body of the error response. Context is exposed for 4xx errors only."""
        body: Dict[str, Any] = {
            "status": "error",
            "code": self.code,
            "message": self.message,
        }
        if self.status_code < 500 and self.context:
            body["details"] = self.context
        body["request_id"] = request_id
        return body


class ValidationError(ExpertCityError):
    """
    Raised when a request body or query fails schema validation.

    Pydantic detects the problem while parsing; the RequestValidationError
    handler in main.py renders it through this class.
    """

    status_code = 422
    code = "validation_error"

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class UnauthorizedError(ExpertCityError):
    """Raised when the caller's identity is missing or unknown."""

    status_code = 401
    code = "unauthorized"

    def __init__(
        self,
        message: str = "Please authenticate",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ForbiddenError(ExpertCityError):
    """
    Raised when an authenticated caller acts on something they do not own.

    When: updating or deleting another user's review, reading or deleting
    another user's notification.
    """

    status_code = 403
    code = "forbidden"

    def __init__(
        self,
        message: str = "You do not have permission to perform this action",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(ExpertCityError):
    """
    Raised when a requested resource does not exist.

    SQLAlchemy returns None for missing rows; services convert that None
    into this exception so routes stay free of status-code logic.
    """

    status_code = 404
    code = "not_found"

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class ConflictError(ExpertCityError):
    """
    Raised when a write collides with an existing row.

    When: two concurrent first reviews from the same reviewer for the same
    expert; the loser hits the (reviewer_id, expert_id) unique constraint.
    """

    status_code = 409
    code = "conflict"

    def __init__(
        self,
        message: str = "Resource conflict occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(ExpertCityError):
    """
    Raised when database operations fail unexpectedly.

    The message returned to the client is always generic. Details (SQL,
    constraint names) go to the server log only.
    """

    status_code = 500
    code = "server_error"

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RateLimitExceededError(ExpertCityError):
    """Raised when a client exceeds the per-IP request rate limit."""

    status_code = 429
    code = "rate_limit_exceeded"

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Rate limit exceeded. Please wait {retry_after} seconds before making more requests."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after
