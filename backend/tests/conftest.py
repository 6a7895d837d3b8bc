"""
ProfileBuilder Backend — Test Configuration (conftest.py)
===========================================================

What:  Shared pytest fixtures for the entire test suite.
How:   A throwaway SQLite database per test (aiosqlite) behind the real
       SqlDocumentStore, in-memory rate-limit counters driven by a fake
       clock, and an HTTPX AsyncClient talking to the app over ASGITransport.

Fixture Hierarchy (all function-scoped):
    ├── clock:          FakeClock, advanced by hand to cross window boundaries
    ├── counter_store:  InMemoryCounterStore(clock)
    ├── store:          SqlDocumentStore on a fresh SQLite file
    ├── app:            create_app(store, counter_store)
    ├── test_client:    HTTPX AsyncClient bound to `app`
    └── user_token / admin_token: registered + signed-in accounts
"""

import os
import tempfile

# Override settings BEFORE any app imports: the settings singleton reads the
# environment once.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///" + os.path.join(
    tempfile.mkdtemp(prefix="profilebuilder_test_"), "app.db"
)
os.environ["REDIS_URL"] = ""
os.environ["RATE_LIMIT_STORE"] = "redis"
os.environ["ADMIN_EMAIL"] = "admin@example.com"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["STORAGE_RETRY_MIN_WAIT"] = "0"
os.environ["STORAGE_RETRY_MAX_WAIT"] = "0"

from typing import Dict  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from app.database import build_engine, build_session_factory, create_tables  # noqa: E402
from app.main import create_app  # noqa: E402
from app.pipeline import InMemoryCounterStore  # noqa: E402
from app.services.document_store import SqlDocumentStore  # noqa: E402

PASSWORD = "secret-password"


class FakeClock:
    """Monotonic clock stand-in for window arithmetic."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# ══════════════════════════════════════════════════════════════════════════
# Collaborators
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def counter_store(clock) -> InMemoryCounterStore:
    return InMemoryCounterStore(clock=clock)


@pytest_asyncio.fixture
async def store(tmp_path):
    """Real SqlDocumentStore over a per-test SQLite file."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'documents.db'}")
    await create_tables(bind=engine)
    yield SqlDocumentStore(build_session_factory(engine))
    await engine.dispose()


# ══════════════════════════════════════════════════════════════════════════
# Application & Client
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def app(store, counter_store):
    return create_app(store=store, counter_store=counter_store)


@pytest_asyncio.fixture
async def test_client(app):
    """
    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


# ══════════════════════════════════════════════════════════════════════════
# Accounts
# ══════════════════════════════════════════════════════════════════════════

async def register_and_login(client: AsyncClient, username: str, email: str) -> str:
    """Create an account through the API and return its bearer token."""
    response = await client.post(
        "/api/auth/register",
        json={"name": username.title(), "email": email, "username": username, "password": PASSWORD},
    )
    assert response.status_code == 201, response.text
    response = await client.post("/api/auth/login", json={"email": email, "password": PASSWORD})
    assert response.status_code == 200, response.text
    # Bearer tokens only; keep the cookie jar from mixing identities.
    client.cookies.clear()
    return response.json()["token"]


def bearer(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def user_token(test_client) -> str:
    return await register_and_login(test_client, "jane", "jane@example.com")


@pytest_asyncio.fixture
async def other_token(test_client) -> str:
    return await register_and_login(test_client, "bob", "bob@example.com")


@pytest_asyncio.fixture
async def admin_token(test_client) -> str:
    return await register_and_login(test_client, "admin", "admin@example.com")


@pytest.fixture
def profile_payload() -> Dict:
    """Minimal valid POST /api/profiles body."""
    return {"title": "Jane Doe", "slug": "jane-doe", "isPublic": True}
