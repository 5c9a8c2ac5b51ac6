"""
Lintgate Backend: Custom Exception Hierarchy
=============================================

What:  Application-specific exceptions, one per failure category the API
       reports to clients.
How:   Each exception carries a client-safe message, an optional context
       dict (logged server-side, never returned), and the HTTP status and
       machine-readable error code it maps to. Handlers registered in
       main.py turn raised exceptions into the JSON error envelope.
Who:   Raised by services and route handlers. Middleware denials (401, 403,
       429) are built directly as responses and never raised.

Exception Hierarchy:
    LintgateError (base)
    ├── ValidationError             → 400 Bad Request (client can fix)
    ├── AuthenticationMissingError  → 401 Unauthorized
    ├── AuthorizationDeniedError    → 403 Forbidden
    ├── NotFoundError               → 404 Not Found
    ├── RateLimitExceededError      → 429 Too Many Requests
    ├── UpstreamFailureError        → 500 (analysis engine failed)
    └── StorageError                → 500 (credential file not writable)
"""

from typing import Any, Dict, Optional


class LintgateError(Exception):
    """
    Base exception for all Lintgate application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client)
    """

    status_code = 500
    error_code = "server_error"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(LintgateError):
    """
    Raised when client input fails validation.

    When:    Missing code, oversized submission, unusable standard name.
    HTTP:    400 Bad Request
    """

    status_code = 400
    error_code = "validation_error"

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


class AuthenticationMissingError(LintgateError):
    """No credential was supplied for a protected path (401)."""

    status_code = 401
    error_code = "authentication_required"

    def __init__(
        self,
        message: str = "API key is required for this endpoint",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class AuthorizationDeniedError(LintgateError):
    """
    A credential was supplied but is unknown, expired, revoked, or lacks
    the scope the path requires (403).
    """

    status_code = 403
    error_code = "invalid_api_key"

    def __init__(
        self,
        message: str = (
            "The provided API key is invalid or does not have the required permissions"
        ),
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(LintgateError):
    """
    Raised when a requested resource or route does not exist.

    HTTP:    404 Not Found
    """

    status_code = 404
    error_code = "not_found"

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class RateLimitExceededError(LintgateError):
    """
    A client exceeded a rate limit ceiling.

    HTTP:    429 Too Many Requests, with a Retry-After header.
    """

    status_code = 429
    error_code = "rate_limit_exceeded"

    def __init__(
        self,
        retry_after: int = 60,
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = message or (
            f"Rate limit exceeded. Please wait {retry_after} seconds before making more requests."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


class UpstreamFailureError(LintgateError):
    """
    The analysis engine failed to run, timed out, or produced output that
    could not be parsed.

    HTTP:    500 Internal Server Error. Not retried automatically; the full
             context (command, exit code, output excerpt) is logged.
    """

    status_code = 500
    error_code = "upstream_failure"

    def __init__(
        self,
        message: str = "Code analysis failed. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class StorageError(LintgateError):
    """
    Raised when durable state (the credential file) cannot be written.

    HTTP:    500 Internal Server Error. The in-memory state is unchanged.
    """

    status_code = 500
    error_code = "server_error"

    def __init__(
        self,
        message: str = "A storage error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
