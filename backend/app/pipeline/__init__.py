# Pipeline package init
"""
ProfileBuilder Backend — Request Pipeline Package
===================================================

What:  The generic request-handling pipeline every API route delegates to.

Module Inventory:
    - validation.py:  schema → Valid / Invalid(violations)
    - rate_limit.py:  fixed-window RateLimiter and its counter stores
    - auth.py:        AuthGate, Principal, is_owner_or_admin
    - cache.py:       CachePolicy → Cache-Control header
    - envelope.py:    ResponseEnvelope and the error wire shape
    - handler.py:     RouteConfig, RequestPipeline, api_handler
"""

from app.pipeline.auth import (
    ANONYMOUS,
    Anonymous,
    AuthGate,
    Principal,
    SessionInfo,
    SessionProvider,
    User,
    is_owner_or_admin,
    user_or_ip_key,
)
from app.pipeline.cache import CachePolicy, compute_header
from app.pipeline.envelope import ResponseEnvelope, error_envelope, paginated
from app.pipeline.handler import RequestPipeline, RouteConfig, api_handler
from app.pipeline.rate_limit import (
    CounterStore,
    InMemoryCounterStore,
    RateLimitDecision,
    RateLimiter,
    RateLimitRule,
    RedisCounterStore,
)
from app.pipeline.validation import Invalid, Valid, Violation, validate

__all__ = [
    "ANONYMOUS",
    "Anonymous",
    "AuthGate",
    "CachePolicy",
    "CounterStore",
    "InMemoryCounterStore",
    "Invalid",
    "Principal",
    "RateLimitDecision",
    "RateLimitRule",
    "RateLimiter",
    "RedisCounterStore",
    "RequestPipeline",
    "ResponseEnvelope",
    "RouteConfig",
    "SessionInfo",
    "SessionProvider",
    "User",
    "Valid",
    "Violation",
    "api_handler",
    "compute_header",
    "error_envelope",
    "is_owner_or_admin",
    "paginated",
    "user_or_ip_key",
    "validate",
]
