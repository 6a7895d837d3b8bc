"""
ProfileBuilder Backend — Profile Document Schemas
===================================================

What:  Request schemas for creating and editing profile documents.
How:   Nested pydantic models; the full document nests five levels:

       ProfileCreate
       └── sections[]          ProfileSection
           └── content         SectionContent
               ├── images[]    SectionImage
               ├── videos[]    SectionVideo
               └── attributes[] SectionAttribute

       Defaults are filled for every optional part so a stored profile always
       has the same shape; constraints mirror the editor's client-side rules.
"""

import uuid
from enum import Enum
from typing import List, Optional

from pydantic import Field, HttpUrl

from app.schemas.common import ApiModel, PageQuery

SLUG_PATTERN = r"^[a-z0-9-]+$"
MAX_SECTIONS = 10


def _new_id() -> str:
    return uuid.uuid4().hex


class SectionType(str, Enum):
    BIO = "bio"
    ATTRIBUTES = "attributes"
    GALLERY = "gallery"
    VIDEOS = "videos"
    MARKDOWN = "markdown"
    CUSTOM = "custom"


# ── Level 5: leaf items ───────────────────────────────────────────────────

class SectionAttribute(ApiModel):
    id: str = Field(default_factory=_new_id, alias="_id")
    label: str = Field(min_length=1, max_length=100)
    value: str = Field(max_length=500)


class SectionImage(ApiModel):
    id: str = Field(default_factory=_new_id, alias="_id")
    url: str = Field(min_length=1)
    alt_text: str = ""
    is_primary: bool = False


class SectionVideo(ApiModel):
    id: str = Field(default_factory=_new_id, alias="_id")
    url: str = Field(min_length=1)
    title: str = ""
    description: str = ""


# ── Level 3-4: sections ───────────────────────────────────────────────────

class SectionContent(ApiModel):
    text: str = ""
    attributes: List[SectionAttribute] = Field(default_factory=list)
    images: List[SectionImage] = Field(default_factory=list)
    videos: List[SectionVideo] = Field(default_factory=list)
    markdown: str = ""
    html: str = ""


class ProfileSection(ApiModel):
    id: str = Field(default_factory=_new_id, alias="_id")
    type: SectionType
    title: str = Field(max_length=200)
    content: SectionContent = Field(default_factory=SectionContent)
    order: int = Field(ge=0)


# ── Profile-level parts ───────────────────────────────────────────────────

class ProfilePicture(ApiModel):
    url: HttpUrl
    alt_text: Optional[str] = None
    is_primary: bool = False


class ProfileHeader(ApiModel):
    name: str = ""
    title: str = ""
    subtitle: str = ""
    short_bio: str = ""
    pictures: List[ProfilePicture] = Field(default_factory=list)


class ProfileTheme(ApiModel):
    primary_color: str = "#3b82f6"
    secondary_color: str = "#6b7280"
    background_color: str = "#ffffff"
    text_color: str = "#333333"
    font_family: str = "font-sans"
    custom_css: Optional[str] = None


class SocialLink(ApiModel):
    platform: str = Field(min_length=1)
    url: HttpUrl
    icon: Optional[str] = None


# ── Level 1: the profile ──────────────────────────────────────────────────

class ProfileCreate(ApiModel):
    """Body of POST /api/profiles."""

    title: str = Field(min_length=1, max_length=200)
    slug: str = Field(min_length=3, max_length=50, pattern=SLUG_PATTERN)
    is_public: bool = False
    subtitle: Optional[str] = None
    bio: Optional[str] = Field(default=None, max_length=2000)
    location: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    category_id: Optional[str] = None
    header: ProfileHeader = Field(default_factory=ProfileHeader)
    theme: ProfileTheme = Field(default_factory=ProfileTheme)
    layout: str = "default"
    sections: List[ProfileSection] = Field(default_factory=list, max_length=MAX_SECTIONS)
    social_links: List[SocialLink] = Field(default_factory=list)


class ProfileUpdate(ApiModel):
    """Body of PATCH /api/profiles/{id}; only sent fields are applied."""

    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    slug: Optional[str] = Field(default=None, min_length=3, max_length=50, pattern=SLUG_PATTERN)
    is_public: Optional[bool] = None
    subtitle: Optional[str] = None
    bio: Optional[str] = Field(default=None, max_length=2000)
    location: Optional[str] = None
    tags: Optional[List[str]] = None
    category_id: Optional[str] = None
    header: Optional[ProfileHeader] = None
    theme: Optional[ProfileTheme] = None
    layout: Optional[str] = None
    sections: Optional[List[ProfileSection]] = Field(default=None, max_length=MAX_SECTIONS)
    social_links: Optional[List[SocialLink]] = None


class ProfileListQuery(PageQuery):
    pass
