"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import and_, delete, func, or_, select, update

from checkfuse.adapters.sqlalchemy.codec import (
    document_from_json,
    document_to_json,
    merged_item_from_json,
    merged_item_to_json,
)
from checkfuse.adapters.sqlalchemy.mappings import (
    fusion_record_table,
    fusion_session_table,
    parsed_document_table,
)
from checkfuse.domain.model import CachedDocument, FusionRecord, FusionSession, SessionStatus

if TYPE_CHECKING:
    from uuid import UUID

    from sqlalchemy import Row
    from sqlalchemy.orm import Session

    from checkfuse.domain.model import Document

_CLOSED_STATUSES = (SessionStatus.COMPLETED, SessionStatus.ARCHIVED)


class SqlAlchemyDocumentCache:
    """Parsed documents keyed by the SHA-256 of the uploaded file."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def load_cached_document(self, content_hash: str) -> Document | None:
        stmt = select(parsed_document_table.c.payload).where(
            parsed_document_table.c.content_hash == content_hash
        )
        payload = self.session.execute(stmt).scalar_one_or_none()
        if payload is None:
            return None
        return document_from_json(payload)

    def save_document(self, content_hash: str, document: Document) -> None:
        values = {
            "filename": document.filename,
            "item_count": document.item_count,
            "payload": document_to_json(document),
        }
        exists = self.session.execute(
            select(parsed_document_table.c.content_hash).where(
                parsed_document_table.c.content_hash == content_hash
            )
        ).scalar_one_or_none()
        if exists is None:
            stmt = parsed_document_table.insert().values(
                content_hash=content_hash,
                created_at=datetime.now(tz=UTC),
                **values,
            )
        else:
            stmt = (
                update(parsed_document_table)
                .where(parsed_document_table.c.content_hash == content_hash)
                .values(**values)
            )
        self.session.execute(stmt)

    def list_recent(self, limit: int) -> list[CachedDocument]:
        table = parsed_document_table
        stmt = (
            select(table.c.content_hash, table.c.filename, table.c.item_count, table.c.created_at)
            .order_by(table.c.created_at.desc())
            .limit(limit)
        )
        return [
            CachedDocument(
                content_hash=row.content_hash,
                filename=row.filename,
                item_count=row.item_count,
                created_at=row.created_at,
            )
            for row in self.session.execute(stmt)
        ]


class SqlAlchemyFusionSessionRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, session: FusionSession) -> None:
        self.session.add(session)

    def update(self, session: FusionSession) -> None:
        self.session.merge(session)

    def get(self, session_id: UUID) -> FusionSession | None:
        return self.session.get(FusionSession, session_id)

    def find_open_for_pair(self, doc1_hash: str, doc2_hash: str) -> FusionSession | None:
        table = fusion_session_table
        stmt = (
            select(FusionSession)
            .where(
                or_(
                    and_(table.c.doc1_hash == doc1_hash, table.c.doc2_hash == doc2_hash),
                    and_(table.c.doc1_hash == doc2_hash, table.c.doc2_hash == doc1_hash),
                )
            )
            .where(table.c.status.not_in(_CLOSED_STATUSES))
            .order_by(table.c.created_at.desc())
            .limit(1)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def list_recent(self, limit: int, *, open_only: bool = False) -> list[FusionSession]:
        table = fusion_session_table
        stmt = select(FusionSession).order_by(table.c.created_at.desc()).limit(limit)
        if open_only:
            stmt = stmt.where(table.c.status.not_in(_CLOSED_STATUSES))
        return list(self.session.execute(stmt).scalars())


class SqlAlchemyFusionRecordRepository:
    """Fusion records of a session, in creation order."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def save(self, session_id: UUID, record: FusionRecord) -> None:
        table = fusion_record_table
        values = self._values(record)
        key = and_(table.c.session_id == session_id, table.c.fusion_id == record.fusion_id)
        exists = self.session.execute(select(table.c.fusion_id).where(key)).scalar_one_or_none()
        if exists is not None:
            self.session.execute(update(table).where(key).values(**values))
            return
        position = self.session.execute(
            select(func.coalesce(func.max(table.c.position), -1) + 1).where(
                table.c.session_id == session_id
            )
        ).scalar_one()
        self.session.execute(
            table.insert().values(
                session_id=session_id,
                fusion_id=record.fusion_id,
                position=position,
                **values,
            )
        )

    def delete(self, session_id: UUID, fusion_id: str) -> None:
        table = fusion_record_table
        self.session.execute(
            delete(table).where(table.c.session_id == session_id, table.c.fusion_id == fusion_id)
        )

    def list_for_session(self, session_id: UUID) -> list[FusionRecord]:
        table = fusion_record_table
        stmt = select(table).where(table.c.session_id == session_id).order_by(table.c.position)
        return [self._to_record(row) for row in self.session.execute(stmt)]

    @staticmethod
    def _values(record: FusionRecord) -> dict[str, Any]:
        return {
            "origin": record.origin,
            "status": record.status,
            "doc1_item_ids": record.doc1_item_ids,
            "doc2_item_ids": record.doc2_item_ids,
            "merged_item": merged_item_to_json(record.merged_item),
            "draft_item": merged_item_to_json(record.draft_item),
            "can_fuse": record.can_fuse,
            "confidence_score": record.confidence_score,
            "explanation": record.explanation,
            "reason": record.reason,
            "edit_notes": record.edit_notes,
            "created_at": record.timestamp,
            "reviewed_at": record.reviewed_at,
        }

    @staticmethod
    def _to_record(row: Row[Any]) -> FusionRecord:
        data = row._mapping  # noqa: SLF001
        return FusionRecord(
            fusion_id=data["fusion_id"],
            origin=data["origin"],
            status=data["status"],
            doc1_item_ids=data["doc1_item_ids"],
            doc2_item_ids=data["doc2_item_ids"],
            merged_item=merged_item_from_json(data["merged_item"]),
            draft_item=merged_item_from_json(data["draft_item"]),
            can_fuse=data["can_fuse"],
            confidence_score=data["confidence_score"],
            explanation=data["explanation"],
            reason=data["reason"],
            edit_notes=data["edit_notes"],
            timestamp=data["created_at"],
            reviewed_at=data["reviewed_at"],
        )
