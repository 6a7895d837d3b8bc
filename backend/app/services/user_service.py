"""
ProfileBuilder Backend — User Service
=======================================

What:  Registration, credential checks, lookup and account edits.
How:   Users live in the `users` collection. Emails are stored lower-cased;
       passwords are bcrypt hashes computed off the event loop.
Who:   Called by the auth and users route handlers.
"""

import asyncio
import logging
from typing import Any, Dict

import bcrypt

from app.config import settings
from app.exceptions import ConflictError, ForbiddenError, NotFoundError, UnauthorizedError
from app.pipeline.auth import Principal, is_owner_or_admin
from app.schemas.user import LoginRequest, UserRegistration, UserUpdate
from app.services.document_store import DocumentStore

logger = logging.getLogger(__name__)

USERS = "users"

# Fields that never leave the service.
_PRIVATE_FIELDS = {"password"}


def public_user(user: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in user.items() if k not in _PRIVATE_FIELDS}


def _hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def _check_password(password: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


class UserService:
    """Business logic layer for user accounts."""

    async def register(self, store: DocumentStore, data: UserRegistration) -> str:
        email = data.email.lower()
        if await store.find(USERS, {"email": email}):
            raise ConflictError("user", "email", message="User with this email already exists")
        if await store.find(USERS, {"username": data.username}):
            raise ConflictError("user", "username", message="Username is already taken")

        hashed = await asyncio.to_thread(_hash_password, data.password)
        user_id = await store.insert(
            USERS,
            {
                "name": data.name,
                "email": email,
                "username": data.username,
                "password": hashed,
                "bio": "",
            },
        )
        logger.info("Registered user %s (%s)", user_id, data.username)
        return user_id

    async def authenticate(self, store: DocumentStore, data: LoginRequest) -> Dict[str, Any]:
        user = await store.find(USERS, {"email": data.email.lower()})
        if user is None or not await asyncio.to_thread(
            _check_password, data.password, user.get("password", "")
        ):
            raise UnauthorizedError(message="Invalid email or password")
        return public_user(user)

    async def get_by_username(self, store: DocumentStore, username: str) -> Dict[str, Any]:
        user = await store.find(USERS, {"username": username})
        if user is None:
            raise NotFoundError(resource="user", resource_id=username)
        return user

    async def get_by_id(self, store: DocumentStore, user_id: str) -> Dict[str, Any]:
        user = await store.find(USERS, {"id": user_id})
        if user is None:
            raise NotFoundError(resource="user", resource_id=user_id)
        return public_user(user)

    async def update(
        self,
        store: DocumentStore,
        username: str,
        data: UserUpdate,
        principal: Principal,
    ) -> Dict[str, Any]:
        user = await self.get_by_username(store, username)
        if not is_owner_or_admin(principal, user["id"]):
            raise ForbiddenError(message="You can only update your own account")

        patch = data.to_document(partial=True)
        # Username and name cannot be removed; a null bio clears it.
        if "bio" in patch and patch["bio"] is None:
            patch["bio"] = ""
        patch = {k: v for k, v in patch.items() if v is not None}

        new_username = patch.get("username")
        if new_username and new_username != user["username"]:
            if await store.find(USERS, {"username": new_username}):
                raise ConflictError("user", "username", message="Username is already taken")

        if patch and not await store.update(USERS, user["id"], patch):
            raise NotFoundError(resource="user", resource_id=username)

        updated = {**user, **patch}
        return {
            "id": updated["id"],
            "name": updated.get("name"),
            "username": updated.get("username"),
            "bio": updated.get("bio"),
        }


user_service = UserService()
