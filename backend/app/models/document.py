"""
ProfileBuilder Backend — Document SQLAlchemy Model
====================================================

What:  ORM model for the `documents` table that backs the document store.
How:   Every persisted object (profile, user, category, session) is one row:
       a collection name, a string id and a JSON payload. Filters run on
       top-level JSON fields (see app.services.document_store).

Table Design:
    - id: UUID hex string generated in Python (portable across dialects)
    - collection: "profiles" | "users" | "categories" | "sessions"
    - data: JSON payload (JSONB on PostgreSQL)
    - created_at / updated_at: UTC, timezone-aware

    Index on (collection, created_at): every query is scoped to a collection
    and list endpoints order by creation time by default.

    Partial unique indexes back the unique document fields (profile slug,
    user email and username, category name key); see UNIQUE_FIELDS.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict

from sqlalchemy import JSON, DateTime, Index, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DocumentRecord(Base):
    """One stored document."""

    __tablename__ = "documents"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: uuid.uuid4().hex,
    )

    collection: Mapped[str] = mapped_column(String(64), nullable=False)

    data: Mapped[Dict[str, Any]] = mapped_column(
        JSON().with_variant(JSONB(), "postgresql"),
        nullable=False,
        default=dict,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )

    __table_args__ = (
        Index("idx_documents_collection_created_at", "collection", "created_at"),
    )

    def to_document(self) -> Dict[str, Any]:
        """Plain dict view handed to services."""
        doc = dict(self.data or {})
        doc["id"] = self.id
        doc["createdAt"] = self.created_at.isoformat() if self.created_at else None
        doc["updatedAt"] = self.updated_at.isoformat() if self.updated_at else None
        return doc

    def __repr__(self) -> str:
        return f"<DocumentRecord(id={self.id}, collection='{self.collection}')>"


# (index name, collection, document field, resource, field reported on conflict)
UNIQUE_FIELDS = (
    ("uq_documents_profile_slug", "profiles", "slug", "profile", "slug"),
    ("uq_documents_user_email", "users", "email", "user", "email"),
    ("uq_documents_user_username", "users", "username", "user", "username"),
    ("uq_documents_category_name", "categories", "nameKey", "category", "name"),
)

for _name, _collection, _field, _resource, _reported in UNIQUE_FIELDS:
    Index(
        _name,
        DocumentRecord.data[_field].as_string(),
        unique=True,
        sqlite_where=DocumentRecord.collection == _collection,
        postgresql_where=DocumentRecord.collection == _collection,
    )
