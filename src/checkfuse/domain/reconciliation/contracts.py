"""Value objects exchanged with callers of the reconciliation engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, NamedTuple

if TYPE_CHECKING:
    from checkfuse.domain.model import DocumentSide, FusionRecord


class ItemRef(NamedTuple):
    """Source item qualified by the document it comes from.

    Both documents derive ids with the same formula, so identical checklists
    produce identical ids; usage is therefore tracked per side.
    """

    side: DocumentSide
    item_id: str

    def __str__(self) -> str:
        return f"{self.side}:{self.item_id}"


class RejectionStage(StrEnum):
    """Where a candidate was turned away; ``index`` counts within that stage's list."""

    RESPONSE = "response"  # raw entries of the service payload
    INGEST = "ingest"  # candidates handed to ``ReconciliationEngine.ingest``


@dataclass(frozen=True, slots=True, kw_only=True)
class CandidateRejection:
    """A candidate that failed validation and was not ingested."""

    fusion_id: str | None
    index: int
    errors: tuple[str, ...]
    stage: RejectionStage = RejectionStage.INGEST


@dataclass(slots=True, kw_only=True)
class IngestReport:
    ingested: list[str] = field(default_factory=list[str])
    rejections: list[CandidateRejection] = field(default_factory=list[CandidateRejection])

    @property
    def ok(self) -> bool:
        return not self.rejections

    def extend(self, rejections: list[CandidateRejection]) -> None:
        self.rejections.extend(rejections)

    def rejections_from(self, stage: RejectionStage) -> list[CandidateRejection]:
        return [rejection for rejection in self.rejections if rejection.stage is stage]


@dataclass(frozen=True, slots=True, kw_only=True)
class ActionOutcome:
    """Result of a lifecycle action.

    ``changed`` is ``False`` when the action was a tolerated no-op (for
    example accepting an already accepted fusion); ``warnings`` says why.
    """

    record: FusionRecord | None
    changed: bool = True
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True, kw_only=True)
class ReconciliationSummary:
    """Session statistics over the current records."""

    total: int
    pending: int
    accepted: int
    edited: int
    rejected: int
    manual: int
    kept_separate: int
    used_items: int
    average_confidence: float | None
    high_confidence: int
    medium_confidence: int
    auto_apply_candidates: int
