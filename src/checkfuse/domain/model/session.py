"""Fusion session bookkeeping (one reviewed document pair)."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import UUID, uuid4

from checkfuse.domain.model.enums import SessionStatus


def new_id() -> UUID:
    return uuid4()


@dataclass(eq=False, kw_only=True)
class FusionSession:
    """Audit envelope around one reconciliation of a document pair."""

    doc1_hash: str
    doc2_hash: str
    name: str
    id: UUID = field(default_factory=new_id)
    status: SessionStatus = SessionStatus.CREATED
    created_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))
    analysis_started_at: datetime | None = None
    analysis_completed_at: datetime | None = None
    completed_at: datetime | None = None
    total_suggestions: int = 0
    avg_confidence: float | None = None

    def mark(self, status: SessionStatus, *, at: datetime | None = None) -> None:
        """Move to ``status`` and stamp the matching timestamp."""

        moment = at or datetime.now(tz=UTC)
        self.status = status
        if status is SessionStatus.ANALYZING:
            self.analysis_started_at = moment
        elif status is SessionStatus.READY:
            self.analysis_completed_at = moment
        elif status is SessionStatus.COMPLETED:
            self.completed_at = moment

    @property
    def is_open(self) -> bool:
        return self.status not in (SessionStatus.COMPLETED, SessionStatus.ARCHIVED)


@dataclass(frozen=True, slots=True, kw_only=True)
class CachedDocument:
    """Listing entry for a parsed document kept in the content-hash cache."""

    content_hash: str
    filename: str
    item_count: int
    created_at: datetime
