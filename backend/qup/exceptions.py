"""
Qup Backend - Custom Exception Hierarchy
==========================================

What:  Application-specific exceptions for the error scenarios services raise.
How:   Each exception carries a message, an optional context dict, the HTTP
       status the REST handlers answer with, and the GraphQL error code placed
       in `extensions.code`.
Who:   Raised by services, dependencies and middleware; caught by the REST
       exception handlers in main.py and surfaced by the GraphQL executor.

Exception Hierarchy:
    QupError (base)
    ├── ValidationError          → 400 / BAD_USER_INPUT
    ├── AuthenticationError      → 401 / UNAUTHENTICATED
    ├── PermissionDeniedError    → 403 / FORBIDDEN
    ├── NotFoundError            → 404 / NOT_FOUND
    ├── ConflictError            → 409 / BAD_USER_INPUT
    ├── RateLimitExceededError   → 429 / RATE_LIMITED
    ├── FileStorageError         → 500 / INTERNAL_SERVER_ERROR
    └── DatabaseError            → 500 / INTERNAL_SERVER_ERROR

GraphQL integration:
    graphql-core copies `original_error.extensions` onto the located error, so
    exposing `extensions` here is all the GraphQL layer needs to report codes.
"""

from typing import Any, Dict, Optional

# Returned in place of any unexpected server error, REST and GraphQL alike
GENERIC_ERROR_MESSAGE = "An unexpected error occurred. Please try again or contact support."


class QupError(Exception):
    """
    Base exception for all Qup application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged, returned only for client errors)
    """

    status_code: int = 500
    error_code: str = "server_error"
    graphql_code: str = "INTERNAL_SERVER_ERROR"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)

    @property
    def extensions(self) -> Dict[str, Any]:
        return {"code": self.graphql_code}


class ValidationError(QupError):
    """
    Raised when client input fails a business rule.

    Schema-level validation (types, required fields) is already handled by
    FastAPI (422) and the GraphQL type system; this covers the domain limits.
    """

    status_code = 400
    error_code = "validation_error"
    graphql_code = "BAD_USER_INPUT"

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

    @property
    def extensions(self) -> Dict[str, Any]:
        ext = super().extensions
        if self.field:
            ext["field"] = self.field
        return ext


class AuthenticationError(QupError):
    """Missing, malformed, expired or revoked credentials."""

    status_code = 401
    error_code = "unauthenticated"
    graphql_code = "UNAUTHENTICATED"

    def __init__(
        self,
        message: str = "Authentication required",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class PermissionDeniedError(QupError):
    """The caller is authenticated but their role or ownership does not allow the action."""

    status_code = 403
    error_code = "forbidden"
    graphql_code = "FORBIDDEN"

    def __init__(
        self,
        message: str = "Insufficient permissions",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(QupError):
    """
    Raised when a requested resource does not exist.

    SQLAlchemy returns None for missing records; services convert that into
    NotFoundError so HTTP and GraphQL concerns stay out of the query code.
    """

    status_code = 404
    error_code = "not_found"
    graphql_code = "NOT_FOUND"

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"{resource.capitalize()} not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class ConflictError(QupError):
    """The request collides with existing state (duplicate email, existing membership)."""

    status_code = 409
    error_code = "conflict"
    graphql_code = "BAD_USER_INPUT"

    def __init__(
        self,
        message: str = "Resource already exists",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class FileStorageError(QupError):
    """
    Raised when file system operations fail.

    Disk full, permission denied, directory not writable, I/O error.
    The client gets a generic message; the OS error is logged.
    """

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(QupError):
    """
    Raised when database operations fail unexpectedly.

    The message returned to the client is always generic. Details (SQL,
    constraint names) are logged server-side only.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RateLimitExceededError(QupError):
    """Client exceeded the per-IP request budget for the current window."""

    status_code = 429
    error_code = "rate_limit_exceeded"
    graphql_code = "RATE_LIMITED"

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
