"""Domain port definitions for adapters."""

from __future__ import annotations

from .fusion_service import AnalysisResult, FusionAnalyzer
from .persistence import (
    DocumentCache,
    FusionRecordRepository,
    FusionRecordSink,
    FusionSessionRepository,
)
from .unit_of_work import (
    FusionRepositories,
    FusionUnitOfWork,
    RepositoryCollection,
    UnitOfWork,
)

__all__ = [
    "AnalysisResult",
    "DocumentCache",
    "FusionAnalyzer",
    "FusionRecordRepository",
    "FusionRecordSink",
    "FusionRepositories",
    "FusionSessionRepository",
    "FusionUnitOfWork",
    "RepositoryCollection",
    "UnitOfWork",
]
