"""
ProfileBuilder Backend — Category Route Handlers
==================================================

What:  Category catalogue, user suggestions and admin moderation.
Who:   Called by the profile editor's category picker and the admin panel.

Caching:
    GET /api/categories is public for 5 minutes (+10 minutes stale); the
    catalogue changes only through moderation.
"""

from fastapi import APIRouter
from starlette.requests import Request

from app.pipeline import CachePolicy, Principal, RouteConfig, User, api_handler
from app.schemas.category import CategoryCreate, CategoryListQuery, CategoryUpdate
from app.services.category_service import category_service

router = APIRouter(prefix="/api/categories", tags=["Categories"])


@router.get("", summary="List categories")
@api_handler(
    RouteConfig(
        route_id="categories.list",
        optional_auth=True,
        validation=CategoryListQuery,
        cache=CachePolicy(max_age_seconds=300, stale_while_revalidate_seconds=600, is_public=True),
    )
)
async def list_categories(request: Request, data: CategoryListQuery, principal: Principal) -> list:
    return await category_service.list(request.app.state.store, data, principal)


@router.post("", status_code=201, summary="Create or suggest a category")
@api_handler(
    RouteConfig(
        route_id="categories.create",
        require_auth=True,
        validation=CategoryCreate,
        success_status=201,
    )
)
async def create_category(request: Request, data: CategoryCreate, principal: User) -> dict:
    category = await category_service.create(request.app.state.store, data, principal)
    return {"message": "Category created successfully", "category": category}


@router.post("/seed", summary="Insert the predefined categories")
@api_handler(RouteConfig(route_id="categories.seed", require_admin=True))
async def seed_categories(request: Request, data, principal: User) -> dict:
    result = await category_service.seed(request.app.state.store)
    return {"success": True, **result}


@router.get("/{category_id}", summary="Get a category")
@api_handler(RouteConfig(route_id="categories.get", optional_auth=True))
async def get_category(request: Request, data, principal: Principal) -> dict:
    return await category_service.get(
        request.app.state.store, request.path_params["category_id"], principal
    )


@router.patch("/{category_id}", summary="Edit or moderate a category")
@api_handler(RouteConfig(route_id="categories.update", require_auth=True, validation=CategoryUpdate))
async def update_category(request: Request, data: CategoryUpdate, principal: User) -> dict:
    category = await category_service.update(
        request.app.state.store, request.path_params["category_id"], data, principal
    )
    return {"message": "Category updated successfully", "category": category}


@router.delete("/{category_id}", summary="Delete a category")
@api_handler(RouteConfig(route_id="categories.delete", require_admin=True))
async def delete_category(request: Request, data, principal: User) -> dict:
    await category_service.delete(request.app.state.store, request.path_params["category_id"])
    return {"message": "Category deleted successfully"}
