"""
ProfileBuilder Backend — Cache Policy & Auth Gate Unit Tests
==============================================================
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from app.exceptions import UpstreamError
from app.pipeline.auth import ANONYMOUS, Anonymous, AuthGate, SessionInfo, User, is_owner_or_admin
from app.pipeline.cache import CachePolicy, compute_header


class TestCachePolicy:

    def test_public_header(self):
        policy = CachePolicy(max_age_seconds=300, stale_while_revalidate_seconds=600, is_public=True)
        assert compute_header(policy) == "public, max-age=300, stale-while-revalidate=600"

    def test_private_default(self):
        assert compute_header(CachePolicy()) == "private, max-age=60, stale-while-revalidate=300"

    def test_zero_lifetimes_allowed(self):
        assert compute_header(CachePolicy(0, 0)) == "private, max-age=0, stale-while-revalidate=0"

    def test_negative_lifetime_rejected(self):
        with pytest.raises(ValueError):
            CachePolicy(max_age_seconds=-1)


class TestOwnership:

    def test_owner(self):
        assert is_owner_or_admin(User(id="u1", email="a@b.c"), "u1")

    def test_other_user(self):
        assert not is_owner_or_admin(User(id="u1", email="a@b.c"), "u2")

    def test_admin_owns_everything(self):
        assert is_owner_or_admin(User(id="u1", email="a@b.c", is_admin=True), "u2")

    def test_anonymous_owns_nothing(self):
        assert not is_owner_or_admin(ANONYMOUS, "u1")
        assert not is_owner_or_admin(ANONYMOUS, None)

    def test_missing_owner(self):
        assert not is_owner_or_admin(User(id="u1", email="a@b.c"), None)


def _request():
    return SimpleNamespace(state=SimpleNamespace())


class TestAuthGate:

    @pytest.mark.asyncio
    async def test_no_session_is_anonymous(self):
        provider = AsyncMock()
        provider.get_current_session.return_value = None

        principal = await AuthGate(provider).resolve_principal(_request())

        assert isinstance(principal, Anonymous)
        assert not principal.is_authenticated

    @pytest.mark.asyncio
    async def test_session_becomes_user(self):
        provider = AsyncMock()
        provider.get_current_session.return_value = SessionInfo("u1", "jane@example.com", is_admin=True)

        principal = await AuthGate(provider).resolve_principal(_request())

        assert principal == User(id="u1", email="jane@example.com", is_admin=True)

    @pytest.mark.asyncio
    async def test_principal_is_resolved_once_per_request(self):
        provider = AsyncMock()
        provider.get_current_session.return_value = SessionInfo("u1", "jane@example.com")
        gate = AuthGate(provider)
        request = _request()

        await gate.resolve_principal(request)
        await gate.resolve_principal(request)

        provider.get_current_session.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_provider_failure_is_upstream_error(self):
        provider = AsyncMock()
        provider.get_current_session.side_effect = RuntimeError("session backend down")

        with pytest.raises(UpstreamError):
            await AuthGate(provider).resolve_principal(_request())
