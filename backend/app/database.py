"""
ProfileBuilder Backend — Database Engine & Sessions
=====================================================

What:  Async SQLAlchemy engine, session factory and declarative Base.
How:   One engine per process with connection pooling; the document store
       opens a short-lived session per operation.
Who:   Used by SqlDocumentStore, the health route and Alembic.
When:  Engine is created at module import; disposed on shutdown.

Connection Pooling Strategy:
    pool_size=20:     Persistent connections for normal load
    max_overflow=10:  Temporary connections for traffic spikes (total max = 30)
    pool_pre_ping:    Validates connections before use (catches stale connections)
    pool_recycle=3600: Recycles connections every hour
    SQLite URLs (tests, local experiments) use the driver's default pool.
"""

from typing import Any, Dict

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from app.config import settings


def _engine_options(url: str) -> Dict[str, Any]:
    options: Dict[str, Any] = {"echo": settings.log_level == "DEBUG"}
    if not url.startswith("sqlite"):
        options.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=settings.db_pool_pre_ping,
            pool_recycle=3600,
        )
    return options


def build_engine(url: str) -> AsyncEngine:
    return create_async_engine(url, **_engine_options(url))


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # expire_on_commit=False: rows stay readable after the transaction ends
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


# ── Engine & Session Factory ──────────────────────────────────────────────
engine = build_engine(settings.database_url)
async_session_factory = build_session_factory(engine)


# ── Base Model ────────────────────────────────────────────────────────────
class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Registers models with a shared metadata object (used by Alembic and by
    create_all when AUTO_CREATE_TABLES is enabled).
    """
    pass


# ── Lifecycle Helpers ─────────────────────────────────────────────────────
async def create_tables(bind: AsyncEngine = engine) -> None:
    """Create missing tables. Development convenience; production uses Alembic."""
    from app.models import document  # noqa: F401  (registers the table)

    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine() -> None:
    """Closes all connections in the pool. Called during application shutdown."""
    await engine.dispose()
