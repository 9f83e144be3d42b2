"""itinerary desk tables

Revision ID: 0001_itinerary_desk
Revises:
Create Date: 2026-10-18 09:00:00.000000
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "0001_itinerary_desk"
down_revision = None
branch_labels = None
depends_on = None


def _timestamp(name: str, **kwargs: object) -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.text("CURRENT_TIMESTAMP"),
        **kwargs,
    )


def upgrade() -> None:
    op.create_table(
        "user_roles",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("role", sa.String(length=20), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=True),
        sa.Column("email", sa.String(length=320), nullable=True),
        _timestamp("created_at"),
    )

    op.create_table(
        "itineraries",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("code", sa.String(length=14), nullable=False),
        sa.Column("created_by", sa.String(length=64), nullable=False),
        sa.Column(
            "status",
            sa.String(length=20),
            nullable=False,
            server_default=sa.text("'draft'"),
        ),
        sa.Column("doc_title", sa.String(length=255), nullable=True),
        sa.Column("trip_tag", sa.String(length=120), nullable=True),
        sa.Column("participants", sa.Text(), nullable=True),
        sa.Column("phones", sa.Text(), nullable=True),
        sa.Column("purpose", sa.Text(), nullable=True),
        sa.Column("factory", sa.String(length=255), nullable=True),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("flights", sa.JSON(), nullable=False),
        sa.Column("visits", sa.JSON(), nullable=False),
        sa.Column("accommodation", sa.JSON(), nullable=False),
        sa.Column("transport", sa.JSON(), nullable=False),
        sa.Column("travel_docs", sa.JSON(), nullable=False),
        sa.Column("sent_to", sa.String(length=320), nullable=True),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("1")),
        _timestamp("created_at"),
        _timestamp("updated_at", server_onupdate=sa.text("CURRENT_TIMESTAMP")),
    )
    op.create_index("ix_itineraries_code", "itineraries", ["code"], unique=True)
    op.create_index("ix_itineraries_created_by", "itineraries", ["created_by"], unique=False)

    op.create_table(
        "documents",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "itinerary_id",
            sa.String(length=36),
            sa.ForeignKey("itineraries.id"),
            nullable=False,
        ),
        sa.Column("file_name", sa.String(length=255), nullable=False),
        sa.Column("file_path", sa.String(length=512), nullable=False),
        sa.Column("file_type", sa.String(length=120), nullable=True),
        sa.Column("file_size", sa.Integer(), nullable=True),
        sa.Column("file_url", sa.Text(), nullable=True),
        _timestamp("uploaded_at"),
    )
    op.create_index("ix_documents_itinerary_id", "documents", ["itinerary_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_documents_itinerary_id", table_name="documents")
    op.drop_table("documents")
    op.drop_index("ix_itineraries_created_by", table_name="itineraries")
    op.drop_index("ix_itineraries_code", table_name="itineraries")
    op.drop_table("itineraries")
    op.drop_table("user_roles")
