"""
ProfileBuilder Backend — Auth Route Handlers
==============================================

What:  Registration, login, logout and the current-session lookup.
How:   Thin handlers: the pipeline rate-limits and validates, UserService
       checks credentials, the session provider issues and revokes tokens.
Who:   Called by the sign-up / sign-in forms and the frontend session hook.

Quotas (per client IP):
    register  5 per hour
    login    10 per 5 minutes
"""

import logging

from fastapi import APIRouter
from starlette.requests import Request

from app.config import settings
from app.pipeline import ResponseEnvelope, RateLimitRule, RouteConfig, User, api_handler
from app.schemas.user import LoginRequest, UserRegistration
from app.services.session_service import extract_token
from app.services.user_service import user_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])


def _session_cookie(token: str, max_age: int) -> dict:
    return {
        "key": settings.session_cookie_name,
        "value": token,
        "max_age": max_age,
        "httponly": True,
        "samesite": "lax",
        "secure": settings.is_production,
        "path": "/",
    }


@router.post("/register", status_code=201, summary="Create an account")
@api_handler(
    RouteConfig(
        route_id="auth.register",
        validation=UserRegistration,
        rate_limit=RateLimitRule(limit=5, window_seconds=3600),
        success_status=201,
    )
)
async def register(request: Request, data: UserRegistration, principal) -> dict:
    user_id = await user_service.register(request.app.state.store, data)
    return {"message": "User registered successfully", "userId": user_id}


@router.post("/login", summary="Sign in with email and password")
@api_handler(
    RouteConfig(
        route_id="auth.login",
        validation=LoginRequest,
        rate_limit=RateLimitRule(limit=10, window_seconds=300),
    )
)
async def login(request: Request, data: LoginRequest, principal) -> ResponseEnvelope:
    user = await user_service.authenticate(request.app.state.store, data)
    provider = request.app.state.session_provider
    token, expires_at = await provider.create_session(user["id"])
    logger.info("User %s signed in", user["id"])
    return ResponseEnvelope(
        status=200,
        body={"token": token, "expiresAt": expires_at, "user": user},
        cookies=[_session_cookie(token, provider.ttl_seconds)],
    )


@router.post("/logout", summary="Revoke the current session")
@api_handler(RouteConfig(route_id="auth.logout", require_auth=True))
async def logout(request: Request, data, principal: User) -> ResponseEnvelope:
    token = extract_token(request)
    if token:
        await request.app.state.session_provider.revoke_session(token)
    return ResponseEnvelope(
        status=200,
        body={"message": "Signed out"},
        cookies=[_session_cookie("", 0)],
    )


@router.get("/session", summary="Current signed-in user")
@api_handler(RouteConfig(route_id="auth.session", require_auth=True))
async def current_session(request: Request, data, principal: User) -> dict:
    user = await user_service.get_by_id(request.app.state.store, principal.id)
    return {"user": {**user, "isAdmin": principal.is_admin}}
