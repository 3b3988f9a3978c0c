"""Assemble the unified checklist from a reconciliation state.

The output has three partitions:

- fused entries, one per accepted or edited record, in record order
- rejected originals, every source item of a rejected or kept-separate record
- unfused items, doc1 first and then doc2, in source order

Every source item of both documents ends up in exactly one partition;
``FinalChecklist.verify`` enforces that.

``FinalChecklist.entries`` flattens the partitions, in that order, into the
single list handed to renderers.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from checkfuse.domain.model import DocumentSide, FusionKind, FusionStatus
from checkfuse.domain.reconciliation import ItemRef

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

    from checkfuse.domain.model import ChecklistItem, FusionRecord, ItemOption, MergedItem
    from checkfuse.domain.reconciliation import ReconciliationState

log = logging.getLogger(__name__)

UNFUSED_PROVENANCE = "unfused"


class AssemblyError(RuntimeError):
    """The assembled checklist does not account for every source item once."""


class EntryKind(StrEnum):
    FUSED = "fused"
    REJECTED_ORIGINAL = "rejected_original"
    UNFUSED = "unfused"


class RejectionMarker(StrEnum):
    REJECTED_FUSION = "rejected_fusion"
    KEPT_SEPARATE = "kept_separate"


@dataclass(frozen=True, slots=True, kw_only=True)
class FusedEntry:
    fusion_id: str
    kind: FusionKind
    merged_item: MergedItem
    doc1_items: tuple[ChecklistItem, ...]
    doc2_items: tuple[ChecklistItem, ...]
    confidence_score: float | None = None
    explanation: str | None = None
    edit_notes: str | None = None

    @property
    def entry_kind(self) -> EntryKind:
        return EntryKind.FUSED

    @property
    def provenance(self) -> str:
        return self.fusion_id

    def sources(self) -> Iterator[ItemRef]:
        for item in self.doc1_items:
            yield ItemRef(DocumentSide.DOC1, item.id)
        for item in self.doc2_items:
            yield ItemRef(DocumentSide.DOC2, item.id)


@dataclass(frozen=True, slots=True, kw_only=True)
class OriginalEntry:
    """A source item carried over unchanged, with where it came from."""

    item: ChecklistItem
    side: DocumentSide
    provenance: str
    marker: RejectionMarker | None = None
    reason: str | None = None

    @property
    def entry_kind(self) -> EntryKind:
        if self.marker is None:
            return EntryKind.UNFUSED
        return EntryKind.REJECTED_ORIGINAL

    @property
    def ref(self) -> ItemRef:
        return ItemRef(self.side, self.item.id)


@dataclass(frozen=True, slots=True)
class ExportSummary:
    fused: int
    rejected_originals: int
    unfused: int
    kept_separate: int
    source_items: int


@dataclass(frozen=True, slots=True, kw_only=True)
class FinalChecklist:
    fused: tuple[FusedEntry, ...]
    rejected_originals: tuple[OriginalEntry, ...]
    unfused: tuple[OriginalEntry, ...]
    doc1_item_ids: tuple[str, ...]
    doc2_item_ids: tuple[str, ...]

    @property
    def summary(self) -> ExportSummary:
        return ExportSummary(
            fused=len(self.fused),
            rejected_originals=len(self.rejected_originals),
            unfused=len(self.unfused),
            kept_separate=sum(
                1 for e in self.rejected_originals if e.marker is RejectionMarker.KEPT_SEPARATE
            ),
            source_items=len(self.doc1_item_ids) + len(self.doc2_item_ids),
        )

    def entries(self) -> Iterator[FusedEntry | OriginalEntry]:
        """Every entry in output order: fused, rejected originals, unfused."""
        yield from self.fused
        yield from self.rejected_originals
        yield from self.unfused

    def verify(self) -> None:
        """Raise ``AssemblyError`` unless every source item appears exactly once."""

        counts: Counter[ItemRef] = Counter()
        for entry in self.fused:
            counts.update(entry.sources())
        counts.update(entry.ref for entry in self.rejected_originals)
        counts.update(entry.ref for entry in self.unfused)

        expected = {ItemRef(DocumentSide.DOC1, i) for i in self.doc1_item_ids}
        expected |= {ItemRef(DocumentSide.DOC2, i) for i in self.doc2_item_ids}

        problems: list[str] = []
        missing = sorted(str(ref) for ref in expected - counts.keys())
        if missing:
            problems.append(f"missing: {', '.join(missing)}")
        repeated = sorted(str(ref) for ref, count in counts.items() if count > 1)
        if repeated:
            problems.append(f"repeated: {', '.join(repeated)}")
        unknown = sorted(str(ref) for ref in counts.keys() - expected)
        if unknown:
            problems.append(f"unknown: {', '.join(unknown)}")
        if problems:
            detail = "; ".join(problems)
            raise AssemblyError(f"Export does not account for every item once ({detail})")

    def to_payload(self) -> dict[str, Any]:
        """Plain dictionaries for renderers."""

        summary = self.summary
        return {
            "items": [_entry_payload(entry) for entry in self.entries()],
            "summary": {
                "fused": summary.fused,
                "rejected_originals": summary.rejected_originals,
                "unfused": summary.unfused,
                "kept_separate": summary.kept_separate,
                "source_items": summary.source_items,
            },
        }


def _options_payload(options: tuple[ItemOption, ...]) -> list[dict[str, Any]]:
    return [{"label": option.label, "checked": option.checked} for option in options]


def _item_payload(item: ChecklistItem) -> dict[str, Any]:
    return {
        "id": item.id,
        "section": item.section,
        "subsection": item.subsection,
        "text": item.text,
        "status": item.status,
        "options": _options_payload(item.options),
        "notes": item.notes,
        "page": item.page,
    }


def _fused_payload(entry: FusedEntry) -> dict[str, Any]:
    merged = entry.merged_item
    return {
        "entry_kind": str(entry.entry_kind),
        "provenance": entry.provenance,
        "kind": str(entry.kind),
        "merged_item": {
            "section": merged.section,
            "subsection": merged.subsection,
            "text": merged.text,
            "status": merged.status,
            "options": _options_payload(merged.options),
            "notes": merged.notes,
            "page": merged.page,
        },
        "doc1_items": [_item_payload(item) for item in entry.doc1_items],
        "doc2_items": [_item_payload(item) for item in entry.doc2_items],
        "confidence_score": entry.confidence_score,
        "explanation": entry.explanation,
        "edit_notes": entry.edit_notes,
    }


def _original_payload(entry: OriginalEntry) -> dict[str, Any]:
    return {
        "entry_kind": str(entry.entry_kind),
        "provenance": entry.provenance,
        "source": str(entry.side),
        "marker": str(entry.marker) if entry.marker is not None else None,
        "reason": entry.reason,
        "item": _item_payload(entry.item),
    }


def _entry_payload(entry: FusedEntry | OriginalEntry) -> dict[str, Any]:
    if isinstance(entry, FusedEntry):
        return _fused_payload(entry)
    return _original_payload(entry)


def _lookup(
    index: dict[str, ChecklistItem],
    item_ids: Sequence[str],
    *,
    side: DocumentSide,
    fusion_id: str,
) -> tuple[ChecklistItem, ...]:
    missing = [item_id for item_id in item_ids if item_id not in index]
    if missing:
        raise AssemblyError(
            f"Fusion {fusion_id!r} references unknown {side} item(s): {', '.join(missing)}"
        )
    return tuple(index[item_id] for item_id in item_ids)


def _originals(
    record: FusionRecord,
    items: dict[DocumentSide, dict[str, ChecklistItem]],
) -> Iterator[OriginalEntry]:
    marker = (
        RejectionMarker.KEPT_SEPARATE
        if record.origin is FusionKind.KEPT_SEPARATE
        else RejectionMarker.REJECTED_FUSION
    )
    for side, item_ids in (
        (DocumentSide.DOC1, record.doc1_item_ids),
        (DocumentSide.DOC2, record.doc2_item_ids),
    ):
        for item in _lookup(items[side], item_ids, side=side, fusion_id=record.fusion_id):
            yield OriginalEntry(
                item=item,
                side=side,
                provenance=record.fusion_id,
                marker=marker,
                reason=record.reason,
            )


def assemble(
    state: ReconciliationState,
    doc1_items: Sequence[ChecklistItem],
    doc2_items: Sequence[ChecklistItem],
) -> FinalChecklist:
    """Build and verify the final checklist for the current state."""

    items = {
        DocumentSide.DOC1: {item.id: item for item in doc1_items},
        DocumentSide.DOC2: {item.id: item for item in doc2_items},
    }
    fused: list[FusedEntry] = []
    rejected: list[OriginalEntry] = []
    accounted: set[ItemRef] = set()

    for record in state.records.values():
        if record.is_fused:
            if record.merged_item is None:
                raise AssemblyError(f"Fusion {record.fusion_id!r} is fused without a merged item")
            entry = FusedEntry(
                fusion_id=record.fusion_id,
                kind=record.kind,
                merged_item=record.merged_item,
                doc1_items=_lookup(
                    items[DocumentSide.DOC1],
                    record.doc1_item_ids,
                    side=DocumentSide.DOC1,
                    fusion_id=record.fusion_id,
                ),
                doc2_items=_lookup(
                    items[DocumentSide.DOC2],
                    record.doc2_item_ids,
                    side=DocumentSide.DOC2,
                    fusion_id=record.fusion_id,
                ),
                confidence_score=record.confidence_score,
                explanation=record.explanation,
                edit_notes=record.edit_notes,
            )
            fused.append(entry)
            accounted.update(entry.sources())
        elif record.status is FusionStatus.REJECTED:
            originals = list(_originals(record, items))
            rejected.extend(originals)
            accounted.update(entry.ref for entry in originals)

    unfused = [
        OriginalEntry(item=item, side=side, provenance=UNFUSED_PROVENANCE)
        for side, source in ((DocumentSide.DOC1, doc1_items), (DocumentSide.DOC2, doc2_items))
        for item in source
        if ItemRef(side, item.id) not in accounted
    ]

    checklist = FinalChecklist(
        fused=tuple(fused),
        rejected_originals=tuple(rejected),
        unfused=tuple(unfused),
        doc1_item_ids=tuple(item.id for item in doc1_items),
        doc2_item_ids=tuple(item.id for item in doc2_items),
    )
    checklist.verify()
    summary = checklist.summary
    log.info(
        "Assembled checklist: %s fused, %s rejected original(s), %s unfused",
        summary.fused,
        summary.rejected_originals,
        summary.unfused,
    )
    return checklist
