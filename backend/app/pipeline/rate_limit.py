"""
ProfileBuilder Backend — Distributed Rate Limiter
===================================================

What:  Fixed-window request counter keyed by "{route_id}:{caller}".
How:   Each check atomically increments the counter for the key; the first
       increment of a window also arms a TTL of `window_seconds`, so the
       counter disappears (and the quota resets) when the window ends.
       allowed = count <= limit, remaining = max(0, limit - count).
Who:   Consulted by the request pipeline before anything else runs.

Algorithm: Fixed Window Counter
    Quota resets at window boundaries. A caller can burst up to 2x the limit
    around a boundary; in exchange state is one integer per key and expiry is
    handled by the store, with no background sweeping.

Counter stores:
    - RedisCounterStore:    shared across all workers/instances. INCR and
                            EXPIRE run inside one Lua script so a crash
                            between them cannot leave a counter without TTL.
    - InMemoryCounterStore: single process only (development, tests).
    - None:                 unconfigured → every check allows the request.
                            Logged once as a WARNING when the limiter is built.

Outage policy:
    A store that fails mid-run is treated like an unconfigured one: the
    request is allowed. The first failure of an outage logs a WARNING and the
    first success afterwards logs recovery at INFO.
"""

import inspect
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Optional, Protocol, Tuple, Union, runtime_checkable

from starlette.requests import Request

from redis.asyncio import Redis
from redis.exceptions import RedisError

from app.config import settings

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Decision & Rule
# ══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of one rate-limit check."""

    allowed: bool
    limit: int
    remaining: int
    window_seconds: int

    def to_headers(self) -> Dict[str, str]:
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(max(0, self.remaining)),
        }


KeyFn = Callable[[Request], Union[str, Awaitable[str]]]


@dataclass(frozen=True)
class RateLimitRule:
    """
    Per-route quota.

    Attributes:
        limit:          Requests allowed per window
        window_seconds: Window length
        key_fn:         Caller identifier; defaults to the client IP.
                        May be sync or async (e.g. resolve the session user id).
    """

    limit: int
    window_seconds: int
    key_fn: Optional[KeyFn] = None

    def __post_init__(self) -> None:
        if self.limit < 1:
            raise ValueError("limit must be >= 1")
        if self.window_seconds < 1:
            raise ValueError("window_seconds must be >= 1")


def client_ip(request: Request) -> str:
    """Caller IP, optionally taken from the first X-Forwarded-For hop."""
    if settings.trust_forwarded_for:
        forwarded = request.headers.get("X-Forwarded-For", "")
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop
    return request.client.host if request.client else "anonymous"


async def build_key(route_id: str, rule: RateLimitRule, request: Request) -> str:
    """Key format: "{route_id}:{caller}"."""
    if rule.key_fn is None:
        caller = client_ip(request)
    else:
        caller = rule.key_fn(request)
        if inspect.isawaitable(caller):
            caller = await caller
    return f"{route_id}:{caller}"


# ══════════════════════════════════════════════════════════════════════════
# Counter Stores
# ══════════════════════════════════════════════════════════════════════════

@runtime_checkable
class CounterStore(Protocol):
    """
    Shared counter with atomic increment-and-expire.

    `increment` returns the post-increment value and guarantees the key has a
    TTL of `window_seconds` counted from the increment that created it.
    """

    async def increment(self, key: str, window_seconds: int) -> int:
        ...

    async def ping(self) -> bool:
        ...


# KEYS[1] = counter key, ARGV[1] = window seconds.
# TTL == -1 means "exists without expiry": arm it, which also repairs keys
# written by a client that died between INCR and EXPIRE.
_INCREMENT_SCRIPT = """
local count = redis.call('INCR', KEYS[1])
if count == 1 or redis.call('TTL', KEYS[1]) == -1 then
    redis.call('EXPIRE', KEYS[1], ARGV[1])
end
return count
"""


class RedisCounterStore:
    """Redis-backed counters shared by every process serving the API."""

    def __init__(self, client: Redis, key_prefix: str = "rate-limit:"):
        self.client = client
        self.key_prefix = key_prefix
        self._script = client.register_script(_INCREMENT_SCRIPT)

    @classmethod
    def from_url(cls, url: str, key_prefix: str = "rate-limit:") -> "RedisCounterStore":
        client = Redis.from_url(url, socket_connect_timeout=2, socket_timeout=2)
        return cls(client, key_prefix=key_prefix)

    async def increment(self, key: str, window_seconds: int) -> int:
        count = await self._script(keys=[self.key_prefix + key], args=[window_seconds])
        return int(count)

    async def ping(self) -> bool:
        try:
            return bool(await self.client.ping())
        except (RedisError, OSError):
            return False

    async def close(self) -> None:
        await self.client.aclose()


class InMemoryCounterStore:
    """
    Process-local counters with the same window semantics as Redis.

    Expired counters are purged on the first increment after the earliest
    one expires, so idle keys do not accumulate.
    Operations never await, so each increment is atomic on the event loop.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._counters: Dict[str, Tuple[int, float]] = {}
        self._next_purge = float("inf")

    async def increment(self, key: str, window_seconds: int) -> int:
        now = self._clock()
        if now >= self._next_purge:
            self._purge_expired(now)
        count, expires_at = self._counters.get(key, (0, 0.0))
        if count == 0 or now >= expires_at:
            count, expires_at = 0, now + window_seconds
            self._next_purge = min(self._next_purge, expires_at)
        count += 1
        self._counters[key] = (count, expires_at)
        return count

    async def ping(self) -> bool:
        return True

    def reset(self) -> None:
        self._counters.clear()
        self._next_purge = float("inf")

    def _purge_expired(self, now: float) -> None:
        self._counters = {k: v for k, v in self._counters.items() if v[1] > now}
        self._next_purge = min((v[1] for v in self._counters.values()), default=float("inf"))


# ══════════════════════════════════════════════════════════════════════════
# Limiter
# ══════════════════════════════════════════════════════════════════════════

class RateLimiter:
    """
    Answers "is this call allowed?" for a key.

    Fails OPEN: with no store, or while the store is unreachable, every check
    returns allowed=True with the full quota remaining.
    """

    def __init__(self, store: Optional[CounterStore]):
        self.store = store
        self._degraded = False
        if store is None:
            logger.warning(
                "Rate limiting is DISABLED: no shared counter store is configured. "
                "All requests will be allowed regardless of volume."
            )

    @property
    def enabled(self) -> bool:
        return self.store is not None

    @property
    def degraded(self) -> bool:
        return self._degraded

    async def check(self, key: str, limit: int, window_seconds: int) -> RateLimitDecision:
        if self.store is None:
            return self._allow_all(limit, window_seconds)

        try:
            count = await self.store.increment(key, window_seconds)
        except (RedisError, OSError) as exc:
            if not self._degraded:
                logger.warning(
                    "Rate limit store unreachable, allowing traffic until it recovers: %s",
                    exc,
                )
            self._degraded = True
            return self._allow_all(limit, window_seconds)

        if self._degraded:
            logger.info("Rate limit store reachable again, enforcing quotas")
            self._degraded = False

        return RateLimitDecision(
            allowed=count <= limit,
            limit=limit,
            remaining=max(0, limit - count),
            window_seconds=window_seconds,
        )

    @staticmethod
    def _allow_all(limit: int, window_seconds: int) -> RateLimitDecision:
        return RateLimitDecision(
            allowed=True, limit=limit, remaining=limit, window_seconds=window_seconds
        )


def build_counter_store() -> Optional[CounterStore]:
    """Select the counter store from settings (None when unconfigured)."""
    if settings.rate_limit_store == "memory":
        logger.warning("Using in-memory rate limit counters; quotas are per process")
        return InMemoryCounterStore()
    if not settings.redis_url:
        return None
    return RedisCounterStore.from_url(settings.redis_url, key_prefix=settings.rate_limit_key_prefix)
