"""Ports for persisting parsed documents, sessions and fusion records."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from uuid import UUID

    from checkfuse.domain.model import CachedDocument, Document, FusionRecord, FusionSession


@runtime_checkable
class DocumentCache(Protocol):
    """Parsed documents keyed by the content hash of their source file."""

    def load_cached_document(self, content_hash: str) -> Document | None: ...

    def save_document(self, content_hash: str, document: Document) -> None: ...

    def list_recent(self, limit: int) -> list[CachedDocument]: ...


@runtime_checkable
class FusionRecordSink(Protocol):
    """Receives every record the engine creates, changes or drops."""

    def persist_record(self, record: FusionRecord) -> None: ...

    def remove_record(self, fusion_id: str) -> None: ...


@runtime_checkable
class FusionRecordRepository(Protocol):
    """Session-scoped record storage."""

    def save(self, session_id: UUID, record: FusionRecord) -> None: ...

    def delete(self, session_id: UUID, fusion_id: str) -> None: ...

    def list_for_session(self, session_id: UUID) -> list[FusionRecord]: ...


@runtime_checkable
class FusionSessionRepository(Protocol):
    def add(self, session: FusionSession) -> None: ...

    def update(self, session: FusionSession) -> None: ...

    def get(self, session_id: UUID) -> FusionSession | None: ...

    def find_open_for_pair(self, doc1_hash: str, doc2_hash: str) -> FusionSession | None: ...

    def list_recent(self, limit: int, *, open_only: bool = False) -> list[FusionSession]:
        """Newest sessions first."""
        ...
