"""
ProfileBuilder Backend — Health Check Route
=============================================

What:  Health check endpoint for monitoring and load balancer probes.
How:   Pings the document store and reports the rate limiter's state.
Who:   Called by Docker health checks, load balancers, and monitoring systems.

Status levels:
    - healthy:   database connected, rate limiter enforcing (HTTP 200)
    - degraded:  rate limiter disabled or its store unreachable; requests
                 are served but quotas are not enforced (HTTP 200)
    - unhealthy: database unreachable (HTTP 503, stop routing traffic)
"""

import logging
import time

from fastapi import APIRouter, Request, Response

from app import __version__
from app.config import settings
from app.schemas.common import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

# Initialized once when the module loads
_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    response_model_by_alias=True,
    summary="Service health check",
)
async def health_check(request: Request, response: Response) -> HealthResponse:
    """
    Check the health of the service and its dependencies.

    Database: SELECT 1 through the document store.
    Rate limiter: configuration plus the last observed store state; the
    counter store itself is pinged only when the limiter is enabled.
    """
    overall = "healthy"

    store = request.app.state.store
    if await store.ping():
        db_status = "connected"
    else:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable")

    limiter = request.app.state.rate_limiter
    if not limiter.enabled:
        limiter_status = "disabled"
    elif limiter.degraded or not await limiter.store.ping():
        limiter_status = "unreachable"
    else:
        limiter_status = "enabled"
    if limiter_status != "enabled" and overall == "healthy":
        overall = "degraded"

    if overall == "unhealthy":
        response.status_code = 503

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        rate_limiter=limiter_status,
        uptime_seconds=round(time.time() - _start_time, 2),
        environment=settings.environment,
    )
