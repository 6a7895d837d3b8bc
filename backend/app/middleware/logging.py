"""
ProfileBuilder Backend — Access Log Middleware
================================================

What:  One access-log line per API request: method, path, status, duration,
       request id, client IP and the remaining rate-limit quota.
How:   Wraps the downstream app and logs after the response is produced.
       Severity follows the status class (5xx ERROR, 4xx WARNING, else INFO),
       so rejected requests (401/403/429) are visible without a separate
       audit stream.
Who:   Applied to every request except /health.

Privacy:
    Request bodies, cookies and Authorization headers are never logged.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from app.middleware.request_id import request_id_var

logger = logging.getLogger("profilebuilder.access")

# Probes hit these every few seconds.
_QUIET_PATHS = frozenset({"/health"})


def _level_for(status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Access logging with request-id correlation."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in _QUIET_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        client_ip = request.client.host if request.client else "unknown"
        rid = request_id_var.get("")
        status = response.status_code
        remaining = response.headers.get("X-RateLimit-Remaining", "-")

        logger.log(
            _level_for(status),
            "%s %s %d %.1fms [%s] from %s quota=%s",
            request.method,
            path,
            status,
            duration_ms,
            rid,
            client_ip,
            remaining,
            extra={
                "request_id": rid,
                "method": request.method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
                "rate_limit_remaining": remaining,
            },
        )
        return response
