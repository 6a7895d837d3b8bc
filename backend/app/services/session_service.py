"""
ProfileBuilder Backend — Session Provider
===========================================

What:  The session collaborator behind the AuthGate.
How:   Opaque random tokens are handed to clients (JSON body + HttpOnly
       cookie). Only a SHA-256 digest of each token is stored in the
       `sessions` collection, together with the user id and expiry.
       A request is authenticated when its token (Authorization: Bearer
       <token>, or the session cookie) maps to an unexpired session whose
       user still exists.
Who:   Installed on app.state by create_app; used by the auth routes to
       issue and revoke tokens.

Admin classification:
    A user is admin when their email equals ADMIN_EMAIL (case-insensitive).
"""

import hashlib
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

from starlette.requests import Request

from app.config import settings
from app.pipeline.auth import SessionInfo
from app.services.document_store import DocumentStore

logger = logging.getLogger(__name__)

SESSIONS = "sessions"
USERS = "users"


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def is_admin_email(email: Optional[str]) -> bool:
    return bool(settings.admin_email) and (email or "").lower() == settings.admin_email.lower()


def extract_token(request: Request) -> Optional[str]:
    """Bearer token first, then the session cookie."""
    authorization = request.headers.get("Authorization", "")
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()
    return request.cookies.get(settings.session_cookie_name) or None


class DocumentSessionProvider:
    """Sessions stored in the document store."""

    def __init__(self, store: DocumentStore, ttl_seconds: Optional[int] = None):
        self.store = store
        self.ttl_seconds = ttl_seconds or settings.session_ttl_seconds

    async def get_current_session(self, request: Request) -> Optional[SessionInfo]:
        token = extract_token(request)
        if not token:
            return None

        session = await self.store.find(SESSIONS, {"tokenHash": hash_token(token)})
        if session is None:
            return None

        expires_at = datetime.fromisoformat(session["expiresAt"])
        if expires_at <= datetime.now(timezone.utc):
            logger.debug("Session %s expired at %s, removing", session["id"], session["expiresAt"])
            await self.store.delete(SESSIONS, session["id"])
            return None

        user = await self.store.find(USERS, {"id": session["userId"]})
        if user is None:
            return None

        return SessionInfo(
            user_id=user["id"],
            email=user["email"],
            is_admin=is_admin_email(user["email"]),
        )

    async def create_session(self, user_id: str) -> Tuple[str, datetime]:
        """Issue a new token for the user. Returns (token, expires_at)."""
        token = secrets.token_urlsafe(32)
        expires_at = datetime.now(timezone.utc) + timedelta(seconds=self.ttl_seconds)
        await self.store.insert(
            SESSIONS,
            {
                "tokenHash": hash_token(token),
                "userId": user_id,
                "expiresAt": expires_at.isoformat(),
            },
        )
        logger.info("Session created for user %s", user_id)
        return token, expires_at

    async def revoke_session(self, token: str) -> bool:
        session = await self.store.find(SESSIONS, {"tokenHash": hash_token(token)})
        if session is None:
            return False
        return await self.store.delete(SESSIONS, session["id"])
