"""SQLAlchemy metadata for parsed documents, sessions and fusion records."""

from __future__ import annotations

import json
import logging
import uuid
from datetime import UTC, datetime
from functools import cache
from typing import Any, cast

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Dialect,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    PrimaryKeyConstraint,
    String,
    Table,
    Text,
    TypeDecorator,
    Uuid,
    orm,
)
from sqlalchemy.orm import configure_mappers

from checkfuse.domain.model import FusionKind, FusionSession, FusionStatus, SessionStatus

log = logging.getLogger(__name__)

UUIDColumnType = Uuid[uuid.UUID]


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


class ItemIdListType(TypeDecorator[tuple[str, ...]]):
    """Ordered item ids stored as a JSON array."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value: tuple[str, ...] | None, dialect: Dialect) -> str | None:
        _ = dialect
        if value is None:
            return None
        return json.dumps(list(value))

    def process_result_value(self, value: str | None, dialect: Dialect) -> tuple[str, ...]:
        _ = dialect
        if value is None:
            return ()
        loaded = json.loads(value)
        if not isinstance(loaded, list):
            return ()
        items = cast(list[Any], loaded)
        return tuple(item for item in items if isinstance(item, str))


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

# Tables ----------------------------------------------------------------------

parsed_document_table = Table(
    "parsed_document",
    mapper_registry.metadata,
    Column("content_hash", String(64), primary_key=True),
    Column("filename", String, nullable=False),
    Column("item_count", Integer, nullable=False, default=0),
    Column("payload", JSON, nullable=False),
    Column("created_at", UTCDateTime(), nullable=False),
)

fusion_session_table = Table(
    "fusion_session",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("name", String, nullable=False),
    Column("doc1_hash", String(64), nullable=False),
    Column("doc2_hash", String(64), nullable=False),
    Column(
        "status",
        Enum(SessionStatus, native_enum=False, length=32),
        nullable=False,
        default=SessionStatus.CREATED,
    ),
    Column("created_at", UTCDateTime(), nullable=False),
    Column("analysis_started_at", UTCDateTime(), nullable=True),
    Column("analysis_completed_at", UTCDateTime(), nullable=True),
    Column("completed_at", UTCDateTime(), nullable=True),
    Column("total_suggestions", Integer, nullable=False, default=0),
    Column("avg_confidence", Float, nullable=True),
    Index("ix_fusion_session_pair", "doc1_hash", "doc2_hash"),
)

fusion_record_table = Table(
    "fusion_record",
    mapper_registry.metadata,
    Column(
        "session_id",
        UUIDColumnType,
        ForeignKey("fusion_session.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("fusion_id", String, nullable=False),
    Column("position", Integer, nullable=False),
    Column("origin", Enum(FusionKind, native_enum=False, length=32), nullable=False),
    Column("status", Enum(FusionStatus, native_enum=False, length=32), nullable=False),
    Column("doc1_item_ids", ItemIdListType(), nullable=False),
    Column("doc2_item_ids", ItemIdListType(), nullable=False),
    Column("merged_item", JSON, nullable=True),
    Column("draft_item", JSON, nullable=True),
    Column("can_fuse", Boolean, nullable=True),
    Column("confidence_score", Float, nullable=True),
    Column("explanation", Text, nullable=True),
    Column("reason", Text, nullable=True),
    Column("edit_notes", Text, nullable=True),
    Column("created_at", UTCDateTime(), nullable=False),
    Column("reviewed_at", UTCDateTime(), nullable=True),
    PrimaryKeyConstraint("session_id", "fusion_id"),
)


@cache
def start_mappers() -> orm.registry:
    """Map the session aggregate; documents and records go through Core tables."""

    log.info("Starting SQLAlchemy mappers")

    mapper_registry.map_imperatively(
        FusionSession,
        fusion_session_table,
    )

    configure_mappers()
    return mapper_registry
