"""
ProfileBuilder Backend — Auth Gate
====================================

What:  Resolves the calling Principal from request credentials and answers
       ownership questions shared by every "edit my own X" route.
How:   Delegates token verification to a SessionProvider and classifies the
       result as Anonymous or User(is_admin=...). The resolved principal is
       memoized on request.state, so a rate-limit key function and the auth
       step share one session lookup.
Who:   Used by the request pipeline and by rate-limit key functions.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Protocol, Union

from starlette.requests import Request

from app.exceptions import ProfileBuilderError, UpstreamError
from app.pipeline.rate_limit import client_ip

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionInfo:
    """What the session collaborator knows about the caller."""

    user_id: str
    email: str
    is_admin: bool = False


class SessionProvider(Protocol):
    async def get_current_session(self, request: Request) -> Optional[SessionInfo]:
        ...


@dataclass(frozen=True)
class Anonymous:
    is_authenticated = False
    is_admin = False


@dataclass(frozen=True)
class User:
    id: str
    email: str
    is_admin: bool = False
    is_authenticated = True


Principal = Union[Anonymous, User]

ANONYMOUS = Anonymous()

_STATE_KEY = "principal"


def is_owner_or_admin(principal: Principal, resource_owner_id: Optional[str]) -> bool:
    """True when the principal owns the resource or is an admin."""
    if not isinstance(principal, User):
        return False
    if principal.is_admin:
        return True
    return resource_owner_id is not None and principal.id == str(resource_owner_id)


class AuthGate:
    """Principal resolution on top of a SessionProvider."""

    def __init__(self, session_provider: SessionProvider):
        self.session_provider = session_provider

    async def resolve_principal(self, request: Request) -> Principal:
        cached = getattr(request.state, _STATE_KEY, None)
        if cached is not None:
            return cached

        try:
            session = await self.session_provider.get_current_session(request)
        except ProfileBuilderError:
            raise
        except Exception as exc:
            raise UpstreamError(message="Session lookup failed", cause=exc) from exc

        principal: Principal
        if session is None:
            principal = ANONYMOUS
        else:
            principal = User(id=session.user_id, email=session.email, is_admin=session.is_admin)
        setattr(request.state, _STATE_KEY, principal)
        return principal


async def user_or_ip_key(request: Request) -> str:
    """
    Rate-limit key function: the session user id when signed in, the client
    IP otherwise. Uses the AuthGate installed on app.state.
    """
    gate: AuthGate = request.app.state.auth_gate
    principal = await gate.resolve_principal(request)
    if isinstance(principal, User):
        return f"user:{principal.id}"
    return f"ip:{client_ip(request)}"
