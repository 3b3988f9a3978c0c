"""Port for the external fusion-analysis service."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from uuid import UUID

    from checkfuse.domain.model import Document, FusionCandidate
    from checkfuse.domain.reconciliation.contracts import CandidateRejection


@dataclass(slots=True, kw_only=True)
class AnalysisResult:
    """One complete response of the fusion service."""

    candidates: list[FusionCandidate] = field(default_factory=list["FusionCandidate"])
    rejections: list[CandidateRejection] = field(default_factory=list["CandidateRejection"])
    total_pairs_analyzed: int | None = None
    average_confidence: float | None = None


@runtime_checkable
class FusionAnalyzer(Protocol):
    """Callable port proposing fusions between two parsed documents."""

    def __call__(
        self,
        doc1: Document,
        doc2: Document,
        *,
        session_id: UUID | None = None,
    ) -> AnalysisResult: ...
