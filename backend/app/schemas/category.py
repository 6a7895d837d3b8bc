"""
ProfileBuilder Backend — Category Schemas
===========================================

What:  Request schemas for profile categories.

Moderation fields (is_enabled, is_correct, is_official) are accepted from
anyone by the schema; CategoryService drops them unless the caller is admin.
"""

from typing import Optional

from pydantic import Field

from app.schemas.common import ApiModel


class CategoryCreate(ApiModel):
    name: str = Field(min_length=2, max_length=60)
    description: str = Field(min_length=10, max_length=500)
    icon: Optional[str] = None
    color: Optional[str] = None


class CategoryUpdate(ApiModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=60)
    description: Optional[str] = Field(default=None, min_length=10, max_length=500)
    icon: Optional[str] = None
    color: Optional[str] = None
    is_enabled: Optional[bool] = None
    is_correct: Optional[bool] = None
    is_official: Optional[bool] = None


class CategoryListQuery(ApiModel):
    """Query of GET /api/categories; both flags only take effect for admins."""

    include_disabled: bool = False
    include_incorrect: bool = False
