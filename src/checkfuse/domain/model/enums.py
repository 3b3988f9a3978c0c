"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class DocumentSide(StrEnum):
    """Which of the two source checklists an item belongs to."""

    DOC1 = "doc1"
    DOC2 = "doc2"


class FusionKind(StrEnum):
    AI_FUSED = "ai_fused"
    MANUAL = "manual"
    EDITED = "edited"
    KEPT_SEPARATE = "kept_separate"


class FusionStatus(StrEnum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    EDITED = "edited"


class ConfidenceLevel(StrEnum):
    """Categorical confidence bucket.

    Members are declared lowest first; ``rank`` exposes that total order since
    string comparison of the values would not.
    """

    VERY_LOW = "very_low"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    VERY_HIGH = "very_high"

    @property
    def rank(self) -> int:
        return _CONFIDENCE_RANK[self]


_CONFIDENCE_RANK: dict[ConfidenceLevel, int] = {
    level: index for index, level in enumerate(ConfidenceLevel)
}


class SessionStatus(StrEnum):
    CREATED = "created"
    ANALYZING = "analyzing"
    READY = "ready"
    IN_REVIEW = "in_review"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class ItemStatus(StrEnum):
    """Status derived from a checkbox glyph."""

    CHECKED = "checked"
    PARTIAL = "partial"
