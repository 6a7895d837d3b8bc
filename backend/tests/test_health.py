"""
ProfileBuilder Backend — Health Check Tests
=============================================
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient
from redis.exceptions import ConnectionError as RedisConnectionError

from app import __version__
from app.main import create_app


async def _get_health(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        return await client.get("/health")


@pytest.mark.asyncio
async def test_healthy(test_client):
    response = await test_client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["version"] == __version__
    assert body["database"] == "connected"
    assert body["rateLimiter"] == "enabled"
    assert body["uptimeSeconds"] >= 0


@pytest.mark.asyncio
async def test_rate_limiter_disabled_is_degraded(store):
    response = await _get_health(create_app(store=store, counter_store=None))

    assert response.status_code == 200
    assert response.json()["status"] == "degraded"
    assert response.json()["rateLimiter"] == "disabled"


@pytest.mark.asyncio
async def test_rate_limiter_unreachable_is_degraded(store):
    counter_store = MagicMock()
    counter_store.ping = AsyncMock(return_value=False)
    counter_store.increment = AsyncMock(side_effect=RedisConnectionError("down"))

    response = await _get_health(create_app(store=store, counter_store=counter_store))

    assert response.json()["rateLimiter"] == "unreachable"
    assert response.json()["status"] == "degraded"


@pytest.mark.asyncio
async def test_database_down_is_503(counter_store):
    broken_store = MagicMock()
    broken_store.ping = AsyncMock(return_value=False)

    response = await _get_health(create_app(store=broken_store, counter_store=counter_store))

    assert response.status_code == 503
    assert response.json()["status"] == "unhealthy"
    assert response.json()["database"] == "disconnected"
