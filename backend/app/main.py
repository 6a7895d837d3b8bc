"""
ProfileBuilder Backend — FastAPI Application Factory
======================================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() wires the collaborators (document store,
       counter store, session provider) into the request pipeline, mounts the
       routers and registers middleware and exception handlers.
Who:   Called by uvicorn to start the server (uvicorn app.main:app) and by
       the test suite with in-memory collaborators.

Application Architecture:
    ┌───────────────────────────────────────────────────────────────┐
    │                         FastAPI App                           │
    │                                                               │
    │  Middleware:   Request ID → Access Log → GZip → CORS          │
    │                                                               │
    │  Routes (each delegates to the RequestPipeline):              │
    │    /api/auth   /api/profiles   /api/users   /api/categories   │
    │                                                               │
    │  app.state:                                                   │
    │    store ─────────── DocumentStore (SQLAlchemy)               │
    │    rate_limiter ──── RateLimiter(CounterStore | None)         │
    │    auth_gate ─────── AuthGate(DocumentSessionProvider)        │
    │    pipeline ──────── RequestPipeline(rate_limiter, auth_gate) │
    └───────────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging, configuration check, optional table creation
    Shutdown: close the Redis connection pool, dispose the database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from app import __version__
from app.config import settings
from app.database import async_session_factory, create_tables, dispose_engine
from app.exceptions import ProfileBuilderError, UnknownError
from app.middleware.logging import RequestLoggingMiddleware
from app.middleware.request_id import RequestIDMiddleware, request_id_var
from app.pipeline import AuthGate, RateLimiter, RedisCounterStore, RequestPipeline, SessionProvider, error_envelope
from app.pipeline.rate_limit import build_counter_store
from app.routes import auth, categories, health, profiles, users
from app.services.document_store import DocumentStore, SqlDocumentStore
from app.services.session_service import DocumentSessionProvider

logger = logging.getLogger(__name__)

# Distinguishes "not passed" from an explicit None (rate limiting disabled).
_FROM_SETTINGS = object()


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the whole application.

    Format: 2024-01-15T12:00:00 [INFO] app.services.profile_service: message
    Level comes from LOG_LEVEL; noisy third-party loggers are capped at WARNING.
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("ProfileBuilder Backend %s starting up (%s)...", __version__, settings.environment)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Keep serving so /health can report the problem.
        logger.error("Configuration error: %s", str(e))

    if settings.auto_create_tables:
        await create_tables()
        logger.info("Database tables ensured")

    limiter: RateLimiter = app.state.rate_limiter
    logger.info("Rate limiting: %s", "enabled" if limiter.enabled else "DISABLED")
    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("ProfileBuilder Backend shutting down...")
    if isinstance(limiter.store, RedisCounterStore):
        await limiter.store.close()
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def register_exception_handlers(app: FastAPI) -> None:
    """
    Errors raised outside the request pipeline (health route, middleware,
    routing) get the same wire shape as pipeline errors.
    """

    @app.exception_handler(ProfileBuilderError)
    async def handle_profilebuilder_error(request: Request, exc: ProfileBuilderError):
        rid = request_id_var.get("")
        logger.warning("[%s] %s outside pipeline: %s", rid, exc.error_code, exc.message)
        return error_envelope(exc, request_id=rid).to_response()

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        """Stack trace is logged server-side only."""
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        envelope = error_envelope(UnknownError(cause=exc), request_id=rid)
        return JSONResponse(status_code=envelope.status, content=envelope.body)


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(
    store: Optional[DocumentStore] = None,
    counter_store=_FROM_SETTINGS,
    session_provider: Optional[SessionProvider] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        store:            Document store; defaults to SQL over DATABASE_URL
        counter_store:    Rate-limit counters; defaults to the configured
                          store, and None disables rate limiting
        session_provider: Defaults to sessions kept in the document store
    """
    app = FastAPI(
        title="ProfileBuilder API",
        description="Profile builder backend: accounts, profile documents and categories.",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Collaborators ─────────────────────────────────────────────────────
    # Built eagerly rather than in lifespan so in-process test clients get them.
    if store is None:
        store = SqlDocumentStore(async_session_factory)
    if counter_store is _FROM_SETTINGS:
        counter_store = build_counter_store()
    if session_provider is None:
        session_provider = DocumentSessionProvider(store)

    rate_limiter = RateLimiter(counter_store)
    auth_gate = AuthGate(session_provider)

    app.state.store = store
    app.state.session_provider = session_provider
    app.state.rate_limiter = rate_limiter
    app.state.auth_gate = auth_gate
    app.state.pipeline = RequestPipeline(rate_limiter, auth_gate)

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added runs first: RequestID → Logging → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[
            "X-Request-ID",
            "X-RateLimit-Limit",
            "X-RateLimit-Remaining",
        ],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(auth.router)
    app.include_router(profiles.router)
    app.include_router(users.router)
    app.include_router(categories.router)
    app.include_router(health.router)

    return app


# uvicorn expects `app.main:app` to be importable
app = create_app()
