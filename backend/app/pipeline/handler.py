"""
ProfileBuilder Backend — Request Pipeline (Orchestrator)
==========================================================

What:  Turns a raw HTTP request into a rate-limited, authenticated, validated
       call of a route's business function, and turns whatever that function
       produces into a ResponseEnvelope.
How:   Fixed sequence, each step short-circuiting on failure:

       ┌────────────┐   ┌───────────┐   ┌────────────┐   ┌──────────┐   ┌─────────────┐
       │ Rate limit │──▶│ Auth gate │──▶│ Validation │──▶│ Business │──▶│ Cache policy│
       │   (429)    │   │ (401/403) │   │   (400)    │   │    fn    │   │  (GET only) │
       └────────────┘   └───────────┘   └────────────┘   └──────────┘   └─────────────┘

       X-RateLimit-* headers from an allowed check ride on every response
       that follows, success or error.
Who:   Every API route, through the `api_handler` decorator.

Business function contract:
    async def fn(request: Request, data: <schema type> | None, principal: Principal) -> value

    It returns a plain value (wrapped with the route's success status), a
    ResponseEnvelope when it needs cookies or a custom status, or
    signals failure by raising, or returning, a ProfileBuilderError. Any other
    exception becomes UnknownError. Nothing is retried here.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from starlette.requests import Request
from starlette.responses import Response

from app.exceptions import (
    ForbiddenError,
    ProfileBuilderError,
    RateLimitedError,
    UnauthorizedError,
    UnknownError,
    UpstreamError,
    ValidationError,
)
from app.middleware.request_id import request_id_var
from app.pipeline.auth import ANONYMOUS, AuthGate, Principal, User
from app.pipeline.cache import CachePolicy, compute_header
from app.pipeline.envelope import ResponseEnvelope, error_envelope
from app.pipeline.rate_limit import RateLimiter, RateLimitRule, build_key
from app.pipeline.validation import Invalid, Violation, validate

logger = logging.getLogger(__name__)

BusinessFn = Callable[[Request, Any, Principal], Awaitable[Any]]

# Methods whose input is read from the query string instead of the body.
READ_METHODS = frozenset({"GET", "HEAD", "DELETE"})


@dataclass(frozen=True)
class RouteConfig:
    """
    Static per-route options, declared once at import time.

    Attributes:
        route_id:       Stable identifier, also the rate-limit key prefix
        require_auth:   Anonymous callers get 401
        require_admin:  Implies require_auth; non-admins get 403
        optional_auth:  Resolve the principal without requiring one
                        (public routes that behave differently for owners/admins)
        validation:     Schema for the body (write routes) or query (read routes)
        rate_limit:     Fixed-window quota; None disables limiting for the route
        cache:          Cache-Control policy for successful GET responses
        success_status: 200, or 201 for creation routes
    """

    route_id: str
    require_auth: bool = False
    require_admin: bool = False
    optional_auth: bool = False
    validation: Optional[Any] = None
    rate_limit: Optional[RateLimitRule] = None
    cache: Optional[CachePolicy] = None
    success_status: int = 200


class RequestPipeline:
    """Composes the rate limiter, auth gate, validator and cache policy."""

    def __init__(self, rate_limiter: RateLimiter, auth_gate: AuthGate):
        self.rate_limiter = rate_limiter
        self.auth_gate = auth_gate

    async def handle(
        self,
        request: Request,
        config: RouteConfig,
        business_fn: BusinessFn,
    ) -> ResponseEnvelope:
        rate_headers = {}
        try:
            # ── Step 1: Rate limit ────────────────────────────────────────
            if config.rate_limit is not None:
                rule = config.rate_limit
                key = await build_key(config.route_id, rule, request)
                decision = await self.rate_limiter.check(key, rule.limit, rule.window_seconds)
                rate_headers = decision.to_headers()
                if not decision.allowed:
                    raise RateLimitedError(decision, context={"key": key})

            # ── Step 2: Auth gate ─────────────────────────────────────────
            principal = await self._resolve_principal(request, config)

            # ── Step 3: Validation ────────────────────────────────────────
            data = None
            if config.validation is not None:
                data = await self._validated_input(request, config)

            # ── Step 4: Business function ─────────────────────────────────
            result = await business_fn(request, data, principal)
            if isinstance(result, ProfileBuilderError):
                raise result
            if not isinstance(result, ResponseEnvelope):
                result = ResponseEnvelope(status=config.success_status, body=result)
        except ProfileBuilderError as error:
            envelope = self._translate(request, config, error)
        except Exception as exc:
            envelope = self._translate(request, config, UnknownError(cause=exc))
        else:
            envelope = result
            # ── Step 5: Cache policy (successful GET only) ────────────────
            if config.cache is not None and request.method == "GET":
                envelope.headers["Cache-Control"] = compute_header(config.cache)

        envelope.headers.update(rate_headers)
        return envelope

    async def _resolve_principal(self, request: Request, config: RouteConfig) -> Principal:
        if not (config.require_auth or config.require_admin or config.optional_auth):
            return ANONYMOUS

        principal = await self.auth_gate.resolve_principal(request)
        if (config.require_auth or config.require_admin) and not isinstance(principal, User):
            raise UnauthorizedError()
        if config.require_admin and not principal.is_admin:
            raise ForbiddenError(message="Admin access required")
        return principal

    async def _validated_input(self, request: Request, config: RouteConfig) -> Any:
        if request.method in READ_METHODS:
            raw: Any = dict(request.query_params)
        else:
            body = await request.body()
            if not body.strip():
                raw = {}
            else:
                try:
                    raw = json.loads(body)
                except ValueError:
                    raise ValidationError(
                        [Violation(field="body", message="Request body is not valid JSON")]
                    )

        outcome = validate(config.validation, raw)
        if isinstance(outcome, Invalid):
            raise ValidationError(outcome.violations)
        return outcome.data

    def _translate(
        self, request: Request, config: RouteConfig, error: ProfileBuilderError
    ) -> ResponseEnvelope:
        rid = request_id_var.get("")
        if isinstance(error, (UpstreamError, UnknownError)):
            # Full context server-side only; the body carries a generic message.
            logger.error(
                "[%s] %s %s failed: %s | Context: %s",
                rid,
                request.method,
                config.route_id,
                error.message,
                error.context,
                exc_info=error.cause or error,
            )
        elif isinstance(error, RateLimitedError):
            logger.info("[%s] Rate limited on %s: %s", rid, config.route_id, error.context.get("key"))
        else:
            logger.info(
                "[%s] %s %s rejected with %s: %s",
                rid,
                request.method,
                config.route_id,
                error.error_code,
                error.message,
            )
        return error_envelope(error, request_id=rid)


def api_handler(config: RouteConfig) -> Callable[[BusinessFn], Callable[[Request], Awaitable[Response]]]:
    """
    Turn a business function into a FastAPI endpoint that runs through the
    pipeline installed on app.state.

    Usage:
        @router.post("")
        @api_handler(RouteConfig(route_id="profiles.create", require_auth=True))
        async def create_profile(request, data, principal): ...
    """

    def decorator(business_fn: BusinessFn) -> Callable[[Request], Awaitable[Response]]:
        async def endpoint(request: Request) -> Response:
            pipeline: RequestPipeline = request.app.state.pipeline
            envelope = await pipeline.handle(request, config, business_fn)
            return envelope.to_response()

        # functools.wraps would expose the business signature to FastAPI's
        # dependency resolver; copy only the descriptive attributes.
        endpoint.__name__ = business_fn.__name__
        endpoint.__qualname__ = business_fn.__qualname__
        endpoint.__doc__ = business_fn.__doc__
        endpoint.route_config = config
        endpoint.business_fn = business_fn
        return endpoint

    return decorator
