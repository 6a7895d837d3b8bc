"""
ProfileBuilder Backend — User Route Handlers
==============================================

What:  Public profile listing by username, and account edits.
"""

from fastapi import APIRouter
from starlette.requests import Request

from app.pipeline import CachePolicy, Principal, RouteConfig, User, api_handler
from app.schemas.common import PageQuery
from app.schemas.user import UserUpdate
from app.services.profile_service import profile_service
from app.services.user_service import user_service

router = APIRouter(prefix="/api/users", tags=["Users"])


@router.get("/{username}/profiles", summary="Public profiles of a user")
@api_handler(
    RouteConfig(
        route_id="users.profiles",
        validation=PageQuery,
        cache=CachePolicy(max_age_seconds=60, stale_while_revalidate_seconds=300, is_public=True),
    )
)
async def list_user_profiles(request: Request, data: PageQuery, principal: Principal) -> dict:
    return await profile_service.list_public_for_username(
        request.app.state.store,
        request.path_params["username"],
        limit=data.limit,
        offset=data.offset,
    )


@router.patch("/{username}", summary="Edit an account")
@api_handler(RouteConfig(route_id="users.update", require_auth=True, validation=UserUpdate))
async def update_user(request: Request, data: UserUpdate, principal: User) -> dict:
    user = await user_service.update(
        request.app.state.store, request.path_params["username"], data, principal
    )
    return {"message": "User updated successfully", "user": user}
