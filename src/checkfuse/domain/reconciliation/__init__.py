"""Review lifecycle of fusion candidates between two checklists.

Flow:
1) ``ingest`` validates service candidates and stores them as pending records
2) reviewers accept, reject, edit, undo or create manual/keep-separate records
3) the resulting state feeds ``checkfuse.domain.export.assemble``
"""

from __future__ import annotations

from .contracts import (
    ActionOutcome,
    CandidateRejection,
    IngestReport,
    ItemRef,
    ReconciliationSummary,
    RejectionStage,
)
from .engine import ReconciliationEngine
from .errors import (
    EmptySelectionError,
    InvalidMergedItemError,
    InvalidTransitionError,
    ItemAlreadyUsedError,
    MissingMergedItemError,
    ReconciliationError,
    UnknownFusionError,
    UnknownItemError,
)
from .ingest import screen_batch, validate_candidate
from .state import ReconciliationState

__all__ = [
    "ActionOutcome",
    "CandidateRejection",
    "EmptySelectionError",
    "IngestReport",
    "InvalidMergedItemError",
    "InvalidTransitionError",
    "ItemAlreadyUsedError",
    "ItemRef",
    "MissingMergedItemError",
    "ReconciliationEngine",
    "ReconciliationError",
    "ReconciliationState",
    "ReconciliationSummary",
    "RejectionStage",
    "UnknownFusionError",
    "UnknownItemError",
    "screen_batch",
    "validate_candidate",
]
