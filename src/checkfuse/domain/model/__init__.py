"""Public domain model surface."""

from __future__ import annotations

from checkfuse.domain.model.checklist import (
    DEFAULT_SECTION_ID,
    DEFAULT_SUBSECTION,
    ChecklistItem,
    Document,
    ItemOption,
    Section,
    Subsection,
)
from checkfuse.domain.model.enums import (
    ConfidenceLevel,
    DocumentSide,
    FusionKind,
    FusionStatus,
    ItemStatus,
    SessionStatus,
)
from checkfuse.domain.model.fusion import (
    AUTO_APPLY_THRESHOLD,
    FusionCandidate,
    FusionRecord,
    MergedItem,
    confidence_level,
    should_auto_apply,
)
from checkfuse.domain.model.session import CachedDocument, FusionSession

__all__ = [  # noqa: RUF022
    # checklist
    "DEFAULT_SECTION_ID",
    "DEFAULT_SUBSECTION",
    "ChecklistItem",
    "Document",
    "ItemOption",
    "Section",
    "Subsection",
    # enums
    "ConfidenceLevel",
    "DocumentSide",
    "FusionKind",
    "FusionStatus",
    "ItemStatus",
    "SessionStatus",
    # fusion
    "AUTO_APPLY_THRESHOLD",
    "FusionCandidate",
    "FusionRecord",
    "MergedItem",
    "confidence_level",
    "should_auto_apply",
    # session
    "CachedDocument",
    "FusionSession",
]
