"""Lifecycle of fusion records for one review session.

The engine owns a ``ReconciliationState`` and is the only code that mutates
records. Each action validates all of its preconditions before it changes
anything; the optional ``FusionRecordSink`` is notified after the change.
"""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime
from statistics import fmean
from typing import TYPE_CHECKING

from checkfuse.domain.model import (
    ConfidenceLevel,
    DocumentSide,
    FusionKind,
    FusionRecord,
    FusionStatus,
)

from .contracts import ActionOutcome, IngestReport, ItemRef, ReconciliationSummary
from .errors import (
    EmptySelectionError,
    InvalidMergedItemError,
    InvalidTransitionError,
    ItemAlreadyUsedError,
    MissingMergedItemError,
    UnknownFusionError,
    UnknownItemError,
)
from .ingest import screen_batch
from .state import ReconciliationState, record_refs

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from checkfuse.domain.model import ChecklistItem, Document, FusionCandidate, MergedItem
    from checkfuse.domain.ports import FusionRecordSink

log = logging.getLogger(__name__)

_EDITABLE = (FusionStatus.PENDING, FusionStatus.ACCEPTED, FusionStatus.EDITED)


def _now() -> datetime:
    return datetime.now(tz=UTC)


def _dedupe(item_ids: Iterable[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(item_ids))


class ReconciliationEngine:
    """Accept, reject, edit and undo fusions between two parsed documents."""

    def __init__(
        self,
        doc1: Document,
        doc2: Document,
        state: ReconciliationState | None = None,
        record_sink: FusionRecordSink | None = None,
    ) -> None:
        self.doc1 = doc1
        self.doc2 = doc2
        self.state = state if state is not None else ReconciliationState()
        self._sink = record_sink

    # --- Queries -------------------------------------------------------------

    @property
    def records(self) -> list[FusionRecord]:
        return list(self.state.records.values())

    def get(self, fusion_id: str) -> FusionRecord:
        try:
            return self.state.records[fusion_id]
        except KeyError:
            raise UnknownFusionError(fusion_id) from None

    def pending(self) -> list[FusionRecord]:
        return [r for r in self.state.records.values() if r.status is FusionStatus.PENDING]

    def accepted(self) -> list[FusionRecord]:
        """Accepted and edited records, i.e. the fused ones."""
        return [r for r in self.state.records.values() if r.is_fused]

    def rejected(self) -> list[FusionRecord]:
        return [r for r in self.state.records.values() if r.status is FusionStatus.REJECTED]

    def auto_apply_candidates(self) -> list[FusionRecord]:
        return [record for record in self.pending() if record.should_auto_apply]

    def is_item_used(self, item_id: str, side: DocumentSide | None = None) -> bool:
        sides = (side,) if side is not None else tuple(DocumentSide)
        return any(ItemRef(s, item_id) in self.state.used_item_ids for s in sides)

    def unused_items(self, side: DocumentSide) -> list[ChecklistItem]:
        return [
            item
            for item in self.document(side).items()
            if ItemRef(side, item.id) not in self.state.used_item_ids
        ]

    def document(self, side: DocumentSide) -> Document:
        return self.doc1 if side is DocumentSide.DOC1 else self.doc2

    def summary(self) -> ReconciliationSummary:
        records = self.records
        scores = [r.confidence_score for r in records if r.confidence_score is not None]
        levels = [r.confidence_level for r in records]
        by_status = {status: 0 for status in FusionStatus}
        for record in records:
            by_status[record.status] += 1
        return ReconciliationSummary(
            total=len(records),
            pending=by_status[FusionStatus.PENDING],
            accepted=by_status[FusionStatus.ACCEPTED],
            edited=by_status[FusionStatus.EDITED],
            rejected=by_status[FusionStatus.REJECTED],
            manual=sum(1 for r in records if r.origin is FusionKind.MANUAL),
            kept_separate=sum(1 for r in records if r.origin is FusionKind.KEPT_SEPARATE),
            used_items=len(self.state.used_item_ids),
            average_confidence=round(fmean(scores), 1) if scores else None,
            high_confidence=sum(
                1 for level in levels if level in (ConfidenceLevel.HIGH, ConfidenceLevel.VERY_HIGH)
            ),
            medium_confidence=sum(1 for level in levels if level is ConfidenceLevel.MEDIUM),
            auto_apply_candidates=len(self.auto_apply_candidates()),
        )

    # --- Ingestion -----------------------------------------------------------

    def ingest(self, candidates: Sequence[FusionCandidate]) -> IngestReport:
        """Add every valid candidate as a pending record; report the others."""

        valid, rejections = screen_batch(
            candidates,
            doc1=self.doc1,
            doc2=self.doc2,
            known_fusion_ids=self.state.records.keys(),
        )
        report = IngestReport(rejections=rejections)
        for candidate in valid:
            record = FusionRecord.from_candidate(candidate)
            self.state.records[record.fusion_id] = record
            report.ingested.append(record.fusion_id)
            self._persist(record)
        for rejection in rejections:
            log.warning(
                "Rejected fusion candidate #%s (%s): %s",
                rejection.index,
                rejection.fusion_id,
                "; ".join(rejection.errors),
            )
        log.info("Ingested %s candidate(s), rejected %s", len(valid), len(rejections))
        return report

    # --- Actions -------------------------------------------------------------

    def accept(self, fusion_id: str) -> ActionOutcome:
        record = self.get(fusion_id)
        if record.status is FusionStatus.ACCEPTED:
            log.warning("Fusion %r is already accepted", fusion_id)
            warning = f"Fusion {fusion_id!r} is already accepted"
            return ActionOutcome(record=record, changed=False, warnings=(warning,))
        self._require_status(record, "accept", FusionStatus.PENDING)
        if record.merged_item is None:
            raise MissingMergedItemError(fusion_id)
        self._ensure_unclaimed(record_refs(record), exclude=fusion_id)

        record.status = FusionStatus.ACCEPTED
        record.reviewed_at = _now()
        self.state.used_item_ids.update(record_refs(record))
        log.info("Accepted fusion %s", fusion_id)
        return self._changed(record)

    def reject(self, fusion_id: str, reason: str | None = None) -> ActionOutcome:
        record = self.get(fusion_id)
        self._require_status(record, "reject", FusionStatus.PENDING)
        self._ensure_unclaimed(record_refs(record), exclude=fusion_id)

        record.status = FusionStatus.REJECTED
        record.reason = reason
        record.reviewed_at = _now()
        log.info("Rejected fusion %s", fusion_id)
        return self._changed(record)

    def edit(
        self,
        fusion_id: str,
        merged_item: MergedItem,
        notes: str | None = None,
    ) -> ActionOutcome:
        """Replace the merged item with a user-authored one.

        The service draft is kept on the record so ``undo`` can restore it.
        """

        record = self.get(fusion_id)
        self._require_status(record, "edit", *_EDITABLE)
        self._validate_merged_item(merged_item)
        self._ensure_unclaimed(record_refs(record), exclude=fusion_id)

        record.status = FusionStatus.EDITED
        record.merged_item = merged_item
        record.edit_notes = notes
        record.reviewed_at = _now()
        self.state.used_item_ids.update(record_refs(record))
        log.info("Edited fusion %s", fusion_id)
        return self._changed(record)

    def create_manual(
        self,
        doc1_item_ids: Iterable[str],
        doc2_item_ids: Iterable[str],
        merged_item: MergedItem,
    ) -> ActionOutcome:
        """Create an accepted user-authored fusion of the selected items."""

        doc1_ids, doc2_ids = self._check_selection(doc1_item_ids, doc2_item_ids)
        self._validate_merged_item(merged_item)
        refs = [ItemRef(DocumentSide.DOC1, i) for i in doc1_ids]
        refs += [ItemRef(DocumentSide.DOC2, i) for i in doc2_ids]
        self._ensure_unclaimed(refs)

        now = _now()
        record = FusionRecord(
            fusion_id=f"manual_{uuid.uuid4().hex[:12]}",
            origin=FusionKind.MANUAL,
            status=FusionStatus.ACCEPTED,
            doc1_item_ids=doc1_ids,
            doc2_item_ids=doc2_ids,
            merged_item=merged_item,
            timestamp=now,
            reviewed_at=now,
        )
        self.state.records[record.fusion_id] = record
        self.state.used_item_ids.update(refs)
        log.info("Created manual fusion %s over %s item(s)", record.fusion_id, len(refs))
        return self._changed(record)

    def keep_separate(
        self,
        doc1_item_ids: Iterable[str],
        doc2_item_ids: Iterable[str],
        reason: str | None = None,
    ) -> ActionOutcome:
        """Record an explicit decision that the selected items stay distinct."""

        doc1_ids, doc2_ids = self._check_selection(doc1_item_ids, doc2_item_ids)
        refs = [ItemRef(DocumentSide.DOC1, i) for i in doc1_ids]
        refs += [ItemRef(DocumentSide.DOC2, i) for i in doc2_ids]
        self._ensure_unclaimed(refs)

        now = _now()
        record = FusionRecord(
            fusion_id=f"separate_{uuid.uuid4().hex[:12]}",
            origin=FusionKind.KEPT_SEPARATE,
            status=FusionStatus.REJECTED,
            doc1_item_ids=doc1_ids,
            doc2_item_ids=doc2_ids,
            reason=reason,
            timestamp=now,
            reviewed_at=now,
        )
        self.state.records[record.fusion_id] = record
        log.info("Kept %s item(s) separate as %s", len(refs), record.fusion_id)
        return self._changed(record)

    def undo(self, fusion_id: str) -> ActionOutcome:
        """Revert a resolved record to pending, or drop a user-created one."""

        record = self.get(fusion_id)
        if record.status is FusionStatus.PENDING:
            raise InvalidTransitionError(fusion_id, "undo", record.status)

        refs = list(record_refs(record))
        if record.is_transient:
            del self.state.records[fusion_id]
            self._release(refs)
            log.info("Removed %s fusion %s", record.origin, fusion_id)
            if self._sink is not None:
                self._sink.remove_record(fusion_id)
            return ActionOutcome(record=None)

        record.status = FusionStatus.PENDING
        record.merged_item = record.draft_item
        record.reason = None
        record.edit_notes = None
        record.reviewed_at = None
        self._release(refs)
        log.info("Reverted fusion %s to pending", fusion_id)
        return self._changed(record)

    def reset(self) -> None:
        fusion_ids = list(self.state.records)
        self.state.reset()
        if self._sink is not None:
            for fusion_id in fusion_ids:
                self._sink.remove_record(fusion_id)
        log.info("Reset reconciliation state (%s record(s) dropped)", len(fusion_ids))

    # --- Helpers -------------------------------------------------------------

    @staticmethod
    def _require_status(record: FusionRecord, action: str, *allowed: FusionStatus) -> None:
        if record.status not in allowed:
            raise InvalidTransitionError(record.fusion_id, action, record.status)

    @staticmethod
    def _validate_merged_item(merged_item: MergedItem) -> None:
        problems: list[str] = []
        if not merged_item.section.strip():
            problems.append("section must not be empty")
        if not merged_item.text.strip():
            problems.append("text must not be empty")
        if problems:
            raise InvalidMergedItemError(problems)

    def _check_selection(
        self,
        doc1_item_ids: Iterable[str],
        doc2_item_ids: Iterable[str],
    ) -> tuple[tuple[str, ...], tuple[str, ...]]:
        selection = {
            DocumentSide.DOC1: _dedupe(doc1_item_ids),
            DocumentSide.DOC2: _dedupe(doc2_item_ids),
        }
        for side, item_ids in selection.items():
            if not item_ids:
                raise EmptySelectionError(side)
            document = self.document(side)
            unknown = [item_id for item_id in item_ids if document.find_item(item_id) is None]
            if unknown:
                raise UnknownItemError(side, unknown)
        return selection[DocumentSide.DOC1], selection[DocumentSide.DOC2]

    def _ensure_unclaimed(self, refs: Iterable[ItemRef], *, exclude: str | None = None) -> None:
        owners = self.state.claims(exclude=exclude)
        conflicts = {ref: owners[ref] for ref in refs if ref in owners}
        if conflicts:
            raise ItemAlreadyUsedError(conflicts)

    def _release(self, refs: Iterable[ItemRef]) -> None:
        still_used = {
            ref for record in self.state.records.values() if record.is_fused
            for ref in record_refs(record)
        }
        for ref in refs:
            if ref not in still_used:
                self.state.used_item_ids.discard(ref)

    def _persist(self, record: FusionRecord) -> None:
        if self._sink is not None:
            self._sink.persist_record(record)

    def _changed(self, record: FusionRecord) -> ActionOutcome:
        self._persist(record)
        return ActionOutcome(record=record)
