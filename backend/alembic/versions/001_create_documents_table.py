"""Create documents table

Revision ID: 001
Revises: None
Create Date: 2026-10-18 00:00:00.000000+00:00

What:  Creates the `documents` table behind the document store. Profiles,
       users, categories and sessions share it, partitioned by `collection`.
How:   JSONB payload on PostgreSQL; ids are generated by the application.

Rollback: downgrade() drops the table (all stored documents are lost).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# (index name, collection, document field)
UNIQUE_FIELDS = (
    ("uq_documents_profile_slug", "profiles", "slug"),
    ("uq_documents_user_email", "users", "email"),
    ("uq_documents_user_username", "users", "username"),
    ("uq_documents_category_name", "categories", "nameKey"),
)


def upgrade() -> None:
    op.create_table(
        "documents",
        sa.Column(
            "id",
            sa.String(36),
            nullable=False,
            comment="Application-generated UUID hex",
        ),
        sa.Column(
            "collection",
            sa.String(64),
            nullable=False,
            comment="profiles, users, categories or sessions",
        ),
        sa.Column(
            "data",
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
            comment="Document body keyed by camelCase wire names",
        ),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_index(
        "idx_documents_collection_created_at",
        "documents",
        ["collection", "created_at"],
    )

    # Equality lookups on hot fields: profile slugs, user emails/usernames,
    # session token hashes.
    op.create_index(
        "idx_documents_data_gin",
        "documents",
        ["data"],
        postgresql_using="gin",
    )

    # Unique document fields, one partial index per collection.
    for name, collection, field in UNIQUE_FIELDS:
        op.create_index(
            name,
            "documents",
            [sa.text(f"(data ->> '{field}')")],
            unique=True,
            postgresql_where=sa.text(f"collection = '{collection}'"),
        )


def downgrade() -> None:
    for name, _, _ in UNIQUE_FIELDS:
        op.drop_index(name, table_name="documents")
    op.drop_index("idx_documents_data_gin", table_name="documents")
    op.drop_index("idx_documents_collection_created_at", table_name="documents")
    op.drop_table("documents")
