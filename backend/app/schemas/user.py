"""
ProfileBuilder Backend — User & Auth Schemas
==============================================

What:  Request schemas for registration, login and account edits.
"""

from typing import Optional

from pydantic import EmailStr, Field

from app.schemas.common import ApiModel

USERNAME_PATTERN = r"^[a-zA-Z0-9_-]+$"


class UserRegistration(ApiModel):
    """Body of POST /api/auth/register."""

    name: str = Field(min_length=2, max_length=100)
    email: EmailStr
    username: str = Field(min_length=3, max_length=20, pattern=USERNAME_PATTERN)
    # bcrypt only looks at the first 72 bytes
    password: str = Field(min_length=6, max_length=72)


class LoginRequest(ApiModel):
    email: EmailStr
    password: str = Field(min_length=1, max_length=72)


class UserUpdate(ApiModel):
    """Body of PATCH /api/users/{username}."""

    username: Optional[str] = Field(default=None, min_length=3, max_length=20, pattern=USERNAME_PATTERN)
    bio: Optional[str] = Field(default=None, max_length=500)
    name: Optional[str] = Field(default=None, min_length=2, max_length=100)
