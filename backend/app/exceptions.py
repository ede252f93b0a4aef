"""
MacroRelay Backend — Custom Exception Hierarchy
=================================================

What:  Application-specific exceptions for every failure the API reports.
How:   Each exception carries a client-safe message and an optional context
       dict. Global exception handlers (registered in main.py) turn them into
       structured JSON error responses with the matching HTTP status.
Who:   Raised by services and dependencies; caught by global handlers.

Exception Hierarchy:
    MacroRelayError (base)
    ├── ValidationError          → 400 Bad Request
    ├── UnauthorizedError        → 401 Unauthorized
    ├── AccessDeniedError        → 403 Forbidden
    ├── NotFoundError            → 404 Not Found
    ├── ConflictError            → 409 Conflict
    ├── RateLimitExceededError   → 429 Too Many Requests
    ├── UpstreamError            → upstream status, or 502 / 504
    └── DatabaseError            → 500 Internal Server Error
"""

from typing import Any, Dict, Optional


class MacroRelayError(Exception):
    """
    Base exception for all MacroRelay application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged, returned only where a handler
                  explicitly includes it)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(MacroRelayError):
    """
    Raised when client input is missing or malformed.

    When:    Blank username/password, logout without a session token,
             keys supplied for a non-RESTRICTED resource, request bodies that
             fail schema validation.
    HTTP:    400 Bad Request
    """

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


class UnauthorizedError(MacroRelayError):
    """
    Raised when credentials or a session token do not authenticate.

    When:    Password mismatch at login; missing, unknown or revoked session
             token on a protected route.
    HTTP:    401 Unauthorized

    The message never says how close a password was.
    """

    def __init__(
        self,
        message: str = "Authentication required",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class AccessDeniedError(MacroRelayError):
    """
    Raised when an authenticated caller fails the access-control gate.

    When:    Triggering a macro whose device or macro tier is NONE, or is
             RESTRICTED with no key in common with the caller.
    HTTP:    403 Forbidden
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"You are not allowed to invoke this {resource}"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class NotFoundError(MacroRelayError):
    """
    Raised when a requested resource does not exist.

    When:    Login for an unknown username; macro endpoint or device id that
             does not exist (or, for devices, is not owned by the caller).
    HTTP:    404 Not Found
    """

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


class ConflictError(MacroRelayError):
    """
    Raised when a write would violate a unique field.

    When:    Sign-up with a taken username, duplicate device id or macro
             endpoint. Raised both by the application pre-check and when the
             database unique constraint fires under a concurrent insert.
    HTTP:    409 Conflict
    """

    def __init__(
        self,
        resource: str = "resource",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"A {resource} with this {field or 'identifier'} already exists"
        ctx = context or {}
        ctx["resource"] = resource
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)


class RateLimitExceededError(MacroRelayError):
    """
    Raised when a client exceeds the credential endpoint rate limit.

    HTTP:    429 Too Many Requests, with a Retry-After header.
    """

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


class UpstreamError(MacroRelayError):
    """
    Raised when the external trigger service fails.

    Two shapes:
        - The service answered with a non-2xx status: `body` holds its raw
          response and the handler passes status, body and content type
          through verbatim.
        - The call never completed (connect error, timeout): `body` is None
          and the handler answers 502 (504 for timeouts) with a JSON error.

    Never retried.
    """

    def __init__(
        self,
        message: str = "The trigger service request failed",
        status_code: int = 502,
        body: Optional[bytes] = None,
        content_type: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["upstream_status"] = status_code
        super().__init__(message=message, context=ctx)
        self.status_code = status_code
        self.body = body
        self.content_type = content_type

    @property
    def passthrough(self) -> bool:
        return self.body is not None


class DatabaseError(MacroRelayError):
    """
    Raised when database operations fail unexpectedly.

    HTTP:    500 Internal Server Error

    The message returned to the client is always generic; the context
    (exception type, operation) is logged server-side only.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
