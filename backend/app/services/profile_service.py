"""
ProfileBuilder Backend — Profile Service
==========================================

What:  CRUD for profile documents plus public lookups and view counting.
How:   Profiles live in the `profiles` collection, each carrying the owning
       `userId`. Ownership is checked here, not in the pipeline: the pipeline
       only knows *who* the caller is; this service knows *what* they own.
Who:   Called by the profiles and users route handlers.

Visibility:
    A private profile (isPublic = false) reached through a public lookup is
    reported as missing unless the caller owns it or is admin, so its
    existence is not leaked.
"""

import logging
from typing import Any, Dict, Optional

from app.exceptions import ConflictError, ForbiddenError, NotFoundError
from app.pipeline.auth import Principal, User, is_owner_or_admin
from app.pipeline.envelope import paginated
from app.schemas.profile import ProfileCreate, ProfileUpdate
from app.services.document_store import DocumentStore
from app.services.user_service import user_service

logger = logging.getLogger(__name__)

PROFILES = "profiles"

NEWEST_FIRST = [("updatedAt", "desc")]

NULLABLE_FIELDS = frozenset({"subtitle", "bio", "location", "categoryId"})


class ProfileService:
    """Business logic layer for profiles."""

    # ── Reads ─────────────────────────────────────────────────────────────

    async def list_for_user(
        self, store: DocumentStore, user_id: str, limit: int, offset: int
    ) -> Dict[str, Any]:
        filter = {"userId": user_id}
        total = await store.count(PROFILES, filter)
        items = await store.find_many(PROFILES, filter, sort=NEWEST_FIRST, limit=limit, offset=offset)
        return paginated(items, total)

    async def list_public_for_username(
        self, store: DocumentStore, username: str, limit: int, offset: int
    ) -> Dict[str, Any]:
        user = await user_service.get_by_username(store, username)
        filter = {"userId": user["id"], "isPublic": True}
        total = await store.count(PROFILES, filter)
        items = await store.find_many(PROFILES, filter, sort=NEWEST_FIRST, limit=limit, offset=offset)
        return paginated(items, total)

    async def get(self, store: DocumentStore, profile_id: str, principal: Principal) -> Dict[str, Any]:
        """Owner-or-admin read by id."""
        profile = await self._get_or_404(store, profile_id)
        if not is_owner_or_admin(principal, profile.get("userId")):
            raise ForbiddenError(message="You do not have access to this profile")
        return profile

    async def get_by_slug(self, store: DocumentStore, slug: str, principal: Principal) -> Dict[str, Any]:
        profile = await store.find(PROFILES, {"slug": slug})
        if profile is None:
            raise NotFoundError(resource="profile", resource_id=slug)
        if not profile.get("isPublic") and not is_owner_or_admin(principal, profile.get("userId")):
            raise NotFoundError(resource="profile", resource_id=slug)
        return profile

    # ── Writes ────────────────────────────────────────────────────────────

    async def create(self, store: DocumentStore, data: ProfileCreate, principal: User) -> str:
        await self._ensure_slug_free(store, data.slug)
        doc = data.to_document()
        doc["userId"] = principal.id
        doc["viewCount"] = 0
        profile_id = await store.insert(PROFILES, doc)
        logger.info("Created profile %s (%s) for user %s", profile_id, data.slug, principal.id)
        return profile_id

    async def update(
        self, store: DocumentStore, profile_id: str, data: ProfileUpdate, principal: Principal
    ) -> Dict[str, Any]:
        profile = await self.get(store, profile_id, principal)
        patch = data.to_document(partial=True)
        # An explicit null only clears fields that are optional in a stored profile.
        patch = {k: v for k, v in patch.items() if v is not None or k in NULLABLE_FIELDS}

        new_slug = patch.get("slug")
        if new_slug and new_slug != profile.get("slug"):
            await self._ensure_slug_free(store, new_slug, exclude_id=profile_id)

        if patch and not await store.update(PROFILES, profile_id, patch):
            raise NotFoundError(resource="profile", resource_id=profile_id)
        logger.info("Updated profile %s fields=%s", profile_id, sorted(patch))
        return await self._get_or_404(store, profile_id)

    async def delete(self, store: DocumentStore, profile_id: str, principal: Principal) -> None:
        await self.get(store, profile_id, principal)
        if not await store.delete(PROFILES, profile_id):
            raise NotFoundError(resource="profile", resource_id=profile_id)
        logger.info("Deleted profile %s", profile_id)

    async def increment_views(self, store: DocumentStore, profile_id: str) -> None:
        if not await store.increment(PROFILES, profile_id, "viewCount"):
            raise NotFoundError(resource="profile", resource_id=profile_id)

    # ── Internals ─────────────────────────────────────────────────────────

    @staticmethod
    async def _get_or_404(store: DocumentStore, profile_id: str) -> Dict[str, Any]:
        profile = await store.find(PROFILES, {"id": profile_id})
        if profile is None:
            raise NotFoundError(resource="profile", resource_id=profile_id)
        return profile

    @staticmethod
    async def _ensure_slug_free(
        store: DocumentStore, slug: str, exclude_id: Optional[str] = None
    ) -> None:
        existing = await store.find(PROFILES, {"slug": slug})
        if existing is not None and existing["id"] != exclude_id:
            raise ConflictError("profile", "slug", message="A profile with this slug already exists")


profile_service = ProfileService()
