"""Mutable per-session reconciliation state."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from checkfuse.domain.model import DocumentSide, FusionRecord

from .contracts import ItemRef

if TYPE_CHECKING:
    from collections.abc import Iterator


def record_refs(record: FusionRecord) -> Iterator[ItemRef]:
    for item_id in record.doc1_item_ids:
        yield ItemRef(DocumentSide.DOC1, item_id)
    for item_id in record.doc2_item_ids:
        yield ItemRef(DocumentSide.DOC2, item_id)


@dataclass(slots=True)
class ReconciliationState:
    """Records keyed by fusion id plus the set of items claimed by fusions.

    ``used_item_ids`` holds exactly the source items of accepted or edited
    records. Records keep insertion order, which is also the export order of
    fused entries.
    """

    used_item_ids: set[ItemRef] = field(default_factory=set[ItemRef])
    records: dict[str, FusionRecord] = field(default_factory=dict[str, FusionRecord])

    def reset(self) -> None:
        self.used_item_ids.clear()
        self.records.clear()

    def claims(self, *, exclude: str | None = None) -> dict[ItemRef, str]:
        """Map every item held by a resolved record to that record's fusion id."""

        owners: dict[ItemRef, str] = {}
        for record in self.records.values():
            if record.fusion_id == exclude or not record.is_resolved:
                continue
            for ref in record_refs(record):
                owners.setdefault(ref, record.fusion_id)
        return owners

    def rebuild_usage(self) -> None:
        """Recompute ``used_item_ids`` from the records (after loading them)."""

        self.used_item_ids = {
            ref
            for record in self.records.values()
            if record.is_fused
            for ref in record_refs(record)
        }

    @classmethod
    def from_records(cls, records: list[FusionRecord]) -> ReconciliationState:
        state = cls(records={record.fusion_id: record for record in records})
        state.rebuild_usage()
        return state
