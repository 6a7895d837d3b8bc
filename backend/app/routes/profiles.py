"""
ProfileBuilder Backend — Profile Route Handlers
=================================================

What:  Profile CRUD for signed-in owners, plus the public slug page and
       the view counter.
How:   Every handler is a business function behind `api_handler`; the
       RouteConfig next to it is the whole HTTP policy of the route.
Who:   Called by the dashboard, the profile editor and public profile pages.

Caching:
    GET /api/profiles            private, 60s (+300s stale)  owner's own list
    GET /api/profiles/slug/{s}   public,  60s (+300s stale)  shareable page
    Mutations are never cached.
"""

import logging

from fastapi import APIRouter
from starlette.requests import Request

from app.pipeline import CachePolicy, Principal, RateLimitRule, RouteConfig, User, api_handler, user_or_ip_key
from app.schemas.profile import ProfileCreate, ProfileListQuery, ProfileUpdate
from app.services.profile_service import profile_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/profiles", tags=["Profiles"])


@router.get("", summary="List my profiles")
@api_handler(
    RouteConfig(
        route_id="profiles.list",
        require_auth=True,
        validation=ProfileListQuery,
        rate_limit=RateLimitRule(limit=50, window_seconds=60),
        cache=CachePolicy(max_age_seconds=60, stale_while_revalidate_seconds=300),
    )
)
async def list_profiles(request: Request, data: ProfileListQuery, principal: User) -> dict:
    return await profile_service.list_for_user(
        request.app.state.store, principal.id, limit=data.limit, offset=data.offset
    )


@router.post("", status_code=201, summary="Create a profile")
@api_handler(
    RouteConfig(
        route_id="profiles.create",
        require_auth=True,
        validation=ProfileCreate,
        rate_limit=RateLimitRule(limit=10, window_seconds=3600, key_fn=user_or_ip_key),
        success_status=201,
    )
)
async def create_profile(request: Request, data: ProfileCreate, principal: User) -> dict:
    profile_id = await profile_service.create(request.app.state.store, data, principal)
    return {"message": "Profile created successfully", "profileId": profile_id}


@router.get("/slug/{slug}", summary="Public profile page")
@api_handler(
    RouteConfig(
        route_id="profiles.by_slug",
        optional_auth=True,
        cache=CachePolicy(max_age_seconds=60, stale_while_revalidate_seconds=300, is_public=True),
    )
)
async def get_profile_by_slug(request: Request, data, principal: Principal) -> dict:
    return await profile_service.get_by_slug(
        request.app.state.store, request.path_params["slug"], principal
    )


@router.get("/{profile_id}", summary="Get one of my profiles")
@api_handler(RouteConfig(route_id="profiles.get", require_auth=True))
async def get_profile(request: Request, data, principal: User) -> dict:
    return await profile_service.get(
        request.app.state.store, request.path_params["profile_id"], principal
    )


@router.patch("/{profile_id}", summary="Edit a profile")
@api_handler(RouteConfig(route_id="profiles.update", require_auth=True, validation=ProfileUpdate))
async def update_profile(request: Request, data: ProfileUpdate, principal: User) -> dict:
    profile = await profile_service.update(
        request.app.state.store, request.path_params["profile_id"], data, principal
    )
    return {"message": "Profile updated successfully", "profile": profile}


@router.delete("/{profile_id}", summary="Delete a profile")
@api_handler(RouteConfig(route_id="profiles.delete", require_auth=True))
async def delete_profile(request: Request, data, principal: User) -> dict:
    await profile_service.delete(request.app.state.store, request.path_params["profile_id"], principal)
    return {"message": "Profile deleted successfully"}


@router.post("/{profile_id}/views", summary="Count a profile view")
@api_handler(
    RouteConfig(
        route_id="profiles.views",
        rate_limit=RateLimitRule(limit=30, window_seconds=60),
    )
)
async def record_view(request: Request, data, principal: Principal) -> dict:
    await profile_service.increment_views(request.app.state.store, request.path_params["profile_id"])
    return {"success": True}
