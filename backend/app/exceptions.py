"""
ProfileBuilder Backend — Error Taxonomy
=========================================

What:  The closed set of errors a route handler (or a collaborator) may signal.
How:   Each class carries a fixed HTTP status, a machine-readable error code,
       a user-safe message and an optional context dict. The request pipeline
       (app.pipeline.handler) is the single place that turns any of them into
       a response envelope; main.py registers the same mapping for errors that
       escape outside the pipeline.
Who:   Raised (or returned) by services and route handlers; translated by the
       pipeline.

Exception Hierarchy:
    ProfileBuilderError (base)
    ├── ValidationError          → 400 invalid_input (carries violations)
    ├── UnauthorizedError        → 401 unauthorized
    ├── ForbiddenError           → 403 forbidden
    ├── NotFoundError            → 404 not_found
    ├── ConflictError            → 409 conflict
    ├── RateLimitedError         → 429 too_many_requests (carries decision)
    ├── UpstreamError            → 503 service_unavailable (generic message)
    │   └── StorageUnavailableError
    └── UnknownError             → 500 internal_error (generic message)

    Anything that is not a ProfileBuilderError is wrapped in UnknownError.

Security Note:
    `message` is returned to the caller. `context` and `cause` are logged
    server-side only. UpstreamError and UnknownError always answer with a
    generic message regardless of what they were constructed with.
"""

from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence

if TYPE_CHECKING:
    from app.pipeline.rate_limit import RateLimitDecision
    from app.pipeline.validation import Violation


class ProfileBuilderError(Exception):
    """
    Base exception for all ProfileBuilder application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client)
    """

    status_code: int = 500
    error_code: str = "internal_error"
    # Upstream and unknown failures hide their message from the caller.
    expose_message: bool = True
    generic_message: str = "An unexpected error occurred. Please try again later."

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)

    @property
    def public_message(self) -> str:
        return self.message if self.expose_message else self.generic_message

    def extra_body(self) -> Dict[str, Any]:
        """Additional wire fields merged into the error body."""
        return {}


class ValidationError(ProfileBuilderError):
    """
    Raised when client input fails validation.

    Every failing field is listed so the client can fix all of them in one
    round-trip. Services may also raise this with a single violation for
    business-rule checks (e.g. "password incorrect" style field errors).

    Example response:
        {
            "error": "invalid_input",
            "message": "Invalid request data",
            "violations": [{"field": "slug", "message": "Field required"}]
        }
    """

    status_code = 400
    error_code = "invalid_input"

    def __init__(
        self,
        violations: Sequence["Violation"] = (),
        message: str = "Invalid request data",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
        self.violations: List["Violation"] = list(violations)

    def extra_body(self) -> Dict[str, Any]:
        return {
            "violations": [
                {"field": v.field, "message": v.message} for v in self.violations
            ]
        }


class UnauthorizedError(ProfileBuilderError):
    """No (valid) session was presented for a route that needs one."""

    status_code = 401
    error_code = "unauthorized"

    def __init__(
        self,
        message: str = "Authentication required",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ForbiddenError(ProfileBuilderError):
    """The caller is authenticated but may not perform this operation."""

    status_code = 403
    error_code = "forbidden"

    def __init__(
        self,
        message: str = "You do not have permission to perform this action",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(ProfileBuilderError):
    """
    Raised when a requested resource does not exist.

    The document store returns None for missing documents; services convert
    None into NotFoundError so the route stays free of status-code logic.
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
        self.resource = resource
        self.resource_id = resource_id


class ConflictError(ProfileBuilderError):
    """A unique field (slug, email, username, category name) is already taken."""

    status_code = 409
    error_code = "conflict"

    def __init__(
        self,
        resource: str,
        field: str,
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx.update({"resource": resource, "field": field})
        super().__init__(
            message=message or f"A {resource} with this {field} already exists",
            context=ctx,
        )
        self.resource = resource
        self.field = field

    def extra_body(self) -> Dict[str, Any]:
        return {"field": self.field}


class RateLimitedError(ProfileBuilderError):
    """
    Raised when a caller exceeds the route's fixed-window quota.

    Expected traffic-shaping behaviour: the pipeline never logs it as an
    application error.
    """

    status_code = 429
    error_code = "too_many_requests"

    def __init__(
        self,
        decision: "RateLimitDecision",
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["limit"] = decision.limit
        ctx["window_seconds"] = decision.window_seconds
        super().__init__(
            message=(
                f"Rate limit exceeded. At most {decision.limit} requests are allowed "
                f"every {decision.window_seconds} seconds."
            ),
            context=ctx,
        )
        self.decision = decision

    def extra_body(self) -> Dict[str, Any]:
        return {"retry_after": self.decision.window_seconds}


class UpstreamError(ProfileBuilderError):
    """
    A collaborator (document store, session provider) failed.

    HTTP: 503 Service Unavailable. The caller only ever sees the generic
    message; `cause` is logged with full context.
    """

    status_code = 503
    error_code = "service_unavailable"
    expose_message = False
    generic_message = "A backing service is temporarily unavailable. Please try again later."

    def __init__(
        self,
        message: str = "Upstream service failure",
        cause: Optional[BaseException] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
        self.cause = cause


class StorageUnavailableError(UpstreamError):
    """The document store could not complete an operation (after its own retries)."""

    def __init__(
        self,
        message: str = "Document store unavailable",
        cause: Optional[BaseException] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, cause=cause, context=context)


class UnknownError(ProfileBuilderError):
    """Anything uncategorised. HTTP 500 with a generic message."""

    status_code = 500
    error_code = "internal_error"
    expose_message = False

    def __init__(
        self,
        cause: Optional[BaseException] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=f"Unhandled {type(cause).__name__}" if cause else "Unhandled error",
            context=context,
        )
        self.cause = cause
