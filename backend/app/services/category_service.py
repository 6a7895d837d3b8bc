"""
ProfileBuilder Backend — Category Service
===========================================

What:  Profile categories: listing, suggestions, moderation and seeding.
How:   Categories live in the `categories` collection. Names are unique
       case-insensitively; a lower-cased `nameKey` copy makes that an
       equality lookup.

Moderation:
    Categories created by an admin are enabled, correct and official at once.
    Anyone else's suggestion is stored disabled until an admin approves it.
    Only admins may change isEnabled / isCorrect / isOfficial.
"""

import logging
from typing import Any, Dict, List, Optional

from app.exceptions import ConflictError, ForbiddenError, NotFoundError
from app.pipeline.auth import Principal, User, is_owner_or_admin
from app.schemas.category import CategoryCreate, CategoryListQuery, CategoryUpdate
from app.services.document_store import DocumentStore

logger = logging.getLogger(__name__)

CATEGORIES = "categories"

MODERATION_FIELDS = ("isEnabled", "isCorrect", "isOfficial")

SYSTEM_CREATOR = "system"

PREDEFINED_CATEGORIES = [
    ("Professional", "Career-focused profiles for professional networking and job seeking", "#0ea5e9"),
    ("Creative Portfolio", "Showcase your artistic work, designs, and creative projects", "#f43f5e"),
    ("Gaming", "Gaming profiles for streamers, esports players, and gaming enthusiasts", "#8b5cf6"),
    ("Academic", "Academic profiles for researchers, students, and educators", "#10b981"),
    ("Personal", "Personal profiles for social networking and dating", "#f59e0b"),
    ("Community", "Community profiles for groups, clubs, and organizations", "#6366f1"),
    ("Blog", "Blog profiles for writers and content creators", "#ec4899"),
    ("Business", "Business profiles for companies and entrepreneurs", "#14b8a6"),
]


def _name_key(name: str) -> str:
    return name.strip().lower()


class CategoryService:
    """Business logic layer for categories."""

    async def list(
        self, store: DocumentStore, query: CategoryListQuery, principal: Principal
    ) -> List[Dict[str, Any]]:
        filter: Dict[str, Any] = {}
        is_admin = isinstance(principal, User) and principal.is_admin
        if not (is_admin and query.include_disabled):
            filter["isEnabled"] = True
        if not (is_admin and query.include_incorrect):
            filter["isCorrect"] = True
        return await store.find_many(CATEGORIES, filter, sort=[("name", "asc")])

    async def get(self, store: DocumentStore, category_id: str, principal: Principal) -> Dict[str, Any]:
        category = await store.find(CATEGORIES, {"id": category_id})
        if category is None:
            raise NotFoundError(resource="category", resource_id=category_id)
        # Unapproved suggestions are only visible to their creator and admins.
        if not category.get("isEnabled") and not is_owner_or_admin(principal, category.get("createdBy")):
            raise NotFoundError(resource="category", resource_id=category_id)
        return category

    async def create(self, store: DocumentStore, data: CategoryCreate, principal: User) -> Dict[str, Any]:
        await self._ensure_name_free(store, data.name)
        doc = data.to_document()
        doc.update(
            nameKey=_name_key(data.name),
            isEnabled=principal.is_admin,
            isCorrect=principal.is_admin,
            isOfficial=principal.is_admin,
            createdBy=principal.id,
            usageCount=0,
        )
        category_id = await store.insert(CATEGORIES, doc)
        logger.info(
            "Category %s (%s) created by %s%s",
            category_id,
            data.name,
            principal.id,
            "" if principal.is_admin else ", awaiting approval",
        )
        return await store.find(CATEGORIES, {"id": category_id})

    async def update(
        self, store: DocumentStore, category_id: str, data: CategoryUpdate, principal: User
    ) -> Dict[str, Any]:
        category = await store.find(CATEGORIES, {"id": category_id})
        if category is None:
            raise NotFoundError(resource="category", resource_id=category_id)
        if not is_owner_or_admin(principal, category.get("createdBy")):
            raise ForbiddenError(message="You can only edit categories you created")

        patch = {k: v for k, v in data.to_document(partial=True).items() if v is not None}
        if not principal.is_admin:
            for field in MODERATION_FIELDS:
                patch.pop(field, None)

        if "name" in patch:
            await self._ensure_name_free(store, patch["name"], exclude_id=category_id)
            patch["nameKey"] = _name_key(patch["name"])

        if patch and not await store.update(CATEGORIES, category_id, patch):
            raise NotFoundError(resource="category", resource_id=category_id)
        return await store.find(CATEGORIES, {"id": category_id})

    async def delete(self, store: DocumentStore, category_id: str) -> None:
        if not await store.delete(CATEGORIES, category_id):
            raise NotFoundError(resource="category", resource_id=category_id)
        logger.info("Deleted category %s", category_id)

    async def seed(self, store: DocumentStore) -> Dict[str, int]:
        """Insert the predefined categories that are missing; existing ones are left as they are."""
        upserted = matched = 0
        for name, description, color in PREDEFINED_CATEGORIES:
            existing = await store.find(CATEGORIES, {"nameKey": _name_key(name)})
            if existing is not None:
                matched += 1
                continue
            await store.insert(
                CATEGORIES,
                {
                    "name": name,
                    "nameKey": _name_key(name),
                    "description": description,
                    "color": color,
                    "icon": None,
                    "isEnabled": True,
                    "isCorrect": True,
                    "isOfficial": True,
                    "createdBy": SYSTEM_CREATOR,
                    "usageCount": 0,
                },
            )
            upserted += 1
        logger.info("Seeded categories: %d inserted, %d already present", upserted, matched)
        return {"upsertedCount": upserted, "matchedCount": matched}

    @staticmethod
    async def _ensure_name_free(store: DocumentStore, name: str, exclude_id: Optional[str] = None) -> None:
        existing = await store.find(CATEGORIES, {"nameKey": _name_key(name)})
        if existing is not None and existing["id"] != exclude_id:
            raise ConflictError("category", "name", message="A category with this name already exists")


category_service = CategoryService()
