"""Fusion candidates and the lifecycle records derived from them."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from checkfuse.domain.model.enums import ConfidenceLevel, FusionKind, FusionStatus

if TYPE_CHECKING:
    from checkfuse.domain.model.checklist import ItemOption

AUTO_APPLY_THRESHOLD = 80.0

# lower bound (inclusive) of each bucket, highest first
_CONFIDENCE_BOUNDS: tuple[tuple[float, ConfidenceLevel], ...] = (
    (90.0, ConfidenceLevel.VERY_HIGH),
    (75.0, ConfidenceLevel.HIGH),
    (60.0, ConfidenceLevel.MEDIUM),
    (40.0, ConfidenceLevel.LOW),
)


def confidence_level(score: float) -> ConfidenceLevel:
    """Bucket a 0..100 confidence score."""

    for lower_bound, level in _CONFIDENCE_BOUNDS:
        if score >= lower_bound:
            return level
    return ConfidenceLevel.VERY_LOW


def should_auto_apply(*, can_fuse: bool, score: float) -> bool:
    """Advisory flag for callers; the engine never acts on it by itself."""

    return can_fuse and score >= AUTO_APPLY_THRESHOLD


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass(frozen=True, slots=True, kw_only=True)
class MergedItem:
    """Unified item produced by a fusion (service draft or user authored)."""

    section: str
    text: str
    subsection: str | None = None
    status: str | None = None
    options: tuple[ItemOption, ...] = ()
    notes: str | None = None
    page: int | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class FusionCandidate:
    """Proposed merge of item subsets from both documents.

    Produced by the external fusion service; nothing here is trusted until the
    engine has validated it during ingestion.
    """

    fusion_id: str
    doc1_item_ids: tuple[str, ...]
    doc2_item_ids: tuple[str, ...]
    can_fuse: bool
    confidence_score: float
    explanation: str
    merged_item: MergedItem | None = None

    @property
    def confidence_level(self) -> ConfidenceLevel:
        return confidence_level(self.confidence_score)

    @property
    def should_auto_apply(self) -> bool:
        return should_auto_apply(can_fuse=self.can_fuse, score=self.confidence_score)

    @property
    def item_ids(self) -> tuple[str, ...]:
        return self.doc1_item_ids + self.doc2_item_ids


@dataclass(kw_only=True)
class FusionRecord:
    """Lifecycle object owned by the reconciliation engine.

    ``origin`` is fixed at creation (``ai_fused``, ``manual`` or
    ``kept_separate``); ``kind`` reports ``edited`` while the record is in the
    edited state and the origin otherwise.
    """

    fusion_id: str
    origin: FusionKind
    status: FusionStatus
    doc1_item_ids: tuple[str, ...]
    doc2_item_ids: tuple[str, ...]
    merged_item: MergedItem | None = None
    draft_item: MergedItem | None = None
    can_fuse: bool | None = None
    confidence_score: float | None = None
    explanation: str | None = None
    reason: str | None = None
    edit_notes: str | None = None
    timestamp: datetime = field(default_factory=_utcnow)
    reviewed_at: datetime | None = None

    @classmethod
    def from_candidate(cls, candidate: FusionCandidate) -> FusionRecord:
        return cls(
            fusion_id=candidate.fusion_id,
            origin=FusionKind.AI_FUSED,
            status=FusionStatus.PENDING,
            doc1_item_ids=candidate.doc1_item_ids,
            doc2_item_ids=candidate.doc2_item_ids,
            merged_item=candidate.merged_item,
            draft_item=candidate.merged_item,
            can_fuse=candidate.can_fuse,
            confidence_score=candidate.confidence_score,
            explanation=candidate.explanation,
        )

    @property
    def kind(self) -> FusionKind:
        if self.status is FusionStatus.EDITED:
            return FusionKind.EDITED
        return self.origin

    @property
    def confidence_level(self) -> ConfidenceLevel | None:
        if self.confidence_score is None:
            return None
        return confidence_level(self.confidence_score)

    @property
    def should_auto_apply(self) -> bool:
        if self.can_fuse is None or self.confidence_score is None:
            return False
        return should_auto_apply(can_fuse=self.can_fuse, score=self.confidence_score)

    @property
    def item_ids(self) -> tuple[str, ...]:
        return self.doc1_item_ids + self.doc2_item_ids

    @property
    def is_fused(self) -> bool:
        """Accepted or edited: the record's merged item is part of the output."""
        return self.status in (FusionStatus.ACCEPTED, FusionStatus.EDITED)

    @property
    def is_resolved(self) -> bool:
        return self.status is not FusionStatus.PENDING

    @property
    def is_transient(self) -> bool:
        """Records that only exist through a user action and vanish on undo."""
        return self.origin in (FusionKind.MANUAL, FusionKind.KEPT_SEPARATE)
