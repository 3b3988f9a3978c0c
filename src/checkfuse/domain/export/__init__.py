"""Final checklist assembly."""

from __future__ import annotations

from .assembler import (
    UNFUSED_PROVENANCE,
    AssemblyError,
    EntryKind,
    ExportSummary,
    FinalChecklist,
    FusedEntry,
    OriginalEntry,
    RejectionMarker,
    assemble,
)

__all__ = [
    "UNFUSED_PROVENANCE",
    "AssemblyError",
    "EntryKind",
    "ExportSummary",
    "FinalChecklist",
    "FusedEntry",
    "OriginalEntry",
    "RejectionMarker",
    "assemble",
]
