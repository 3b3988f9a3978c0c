"""initial schema: parsed documents, fusion sessions and records

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 10:00:00

"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "0001_initial"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "parsed_document",
        sa.Column("content_hash", sa.String(length=64), nullable=False),
        sa.Column("filename", sa.String(), nullable=False),
        sa.Column("item_count", sa.Integer(), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("content_hash", name=op.f("pk_parsed_document")),
    )
    op.create_table(
        "fusion_session",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("doc1_hash", sa.String(length=64), nullable=False),
        sa.Column("doc2_hash", sa.String(length=64), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("analysis_started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("analysis_completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("total_suggestions", sa.Integer(), nullable=False),
        sa.Column("avg_confidence", sa.Float(), nullable=True),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_fusion_session")),
    )
    op.create_index("ix_fusion_session_pair", "fusion_session", ["doc1_hash", "doc2_hash"])
    op.create_table(
        "fusion_record",
        sa.Column("session_id", sa.Uuid(), nullable=False),
        sa.Column("fusion_id", sa.String(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("origin", sa.String(length=32), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("doc1_item_ids", sa.Text(), nullable=False),
        sa.Column("doc2_item_ids", sa.Text(), nullable=False),
        sa.Column("merged_item", sa.JSON(), nullable=True),
        sa.Column("draft_item", sa.JSON(), nullable=True),
        sa.Column("can_fuse", sa.Boolean(), nullable=True),
        sa.Column("confidence_score", sa.Float(), nullable=True),
        sa.Column("explanation", sa.Text(), nullable=True),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("edit_notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(
            ["session_id"],
            ["fusion_session.id"],
            name=op.f("fk_fusion_record_session_id_fusion_session"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("session_id", "fusion_id", name=op.f("pk_fusion_record")),
    )


def downgrade() -> None:
    op.drop_table("fusion_record")
    op.drop_index("ix_fusion_session_pair", table_name="fusion_session")
    op.drop_table("fusion_session")
    op.drop_table("parsed_document")
