from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from checkfuse.domain.model import ConfidenceLevel, DocumentSide, FusionKind, FusionStatus
from checkfuse.domain.reconciliation import (
    EmptySelectionError,
    InvalidMergedItemError,
    InvalidTransitionError,
    ItemAlreadyUsedError,
    ItemRef,
    MissingMergedItemError,
    ReconciliationEngine,
    ReconciliationState,
    UnknownFusionError,
    UnknownItemError,
)
from tests.helpers.checklists import (
    RecordingSink,
    make_candidate,
    make_document,
    make_merged_item,
)

if TYPE_CHECKING:
    from checkfuse.domain.model import Document


def doc1_ref(item_id: str) -> ItemRef:
    return ItemRef(DocumentSide.DOC1, item_id)


def doc2_ref(item_id: str) -> ItemRef:
    return ItemRef(DocumentSide.DOC2, item_id)


# --- accept ---------------------------------------------------------------


def test_accept_high_confidence_candidate_claims_both_items(engine: ReconciliationEngine) -> None:
    engine.ingest([make_candidate("f1", ["d1_a"], ["d2_a"], score=95.0)])

    record = engine.get("f1")
    assert record.confidence_level is ConfidenceLevel.VERY_HIGH
    assert record.should_auto_apply is True

    outcome = engine.accept("f1")

    assert outcome.changed is True
    assert record.status is FusionStatus.ACCEPTED
    assert record.reviewed_at is not None
    assert engine.state.used_item_ids == {doc1_ref("d1_a"), doc2_ref("d2_a")}
    assert engine.accepted() == [record]


def test_accept_twice_is_a_warning_no_op(engine: ReconciliationEngine) -> None:
    engine.ingest([make_candidate("f1", ["d1_a"], ["d2_a"])])
    engine.accept("f1")

    outcome = engine.accept("f1")

    assert outcome.changed is False
    assert outcome.warnings
    assert engine.get("f1").status is FusionStatus.ACCEPTED


def test_accept_second_candidate_sharing_an_item_fails(engine: ReconciliationEngine) -> None:
    engine.ingest(
        [
            make_candidate("f1", ["d1_a"], ["d2_a"]),
            make_candidate("f2", ["d1_a"], ["d2_b"]),
        ]
    )
    engine.accept("f1")

    with pytest.raises(ItemAlreadyUsedError) as exc:
        engine.accept("f2")

    assert exc.value.claims == {doc1_ref("d1_a"): "f1"}
    assert engine.get("f2").status is FusionStatus.PENDING
    assert doc2_ref("d2_b") not in engine.state.used_item_ids


def test_accept_without_merged_item_fails(engine: ReconciliationEngine) -> None:
    engine.ingest([make_candidate("f1", ["d1_a"], ["d2_a"], can_fuse=False)])

    with pytest.raises(MissingMergedItemError):
        engine.accept("f1")


def test_unknown_fusion_id_fails(engine: ReconciliationEngine) -> None:
    with pytest.raises(UnknownFusionError):
        engine.accept("missing")


# --- reject ---------------------------------------------------------------


def test_reject_keeps_record_without_claiming_items(engine: ReconciliationEngine) -> None:
    engine.ingest([make_candidate("f1", ["d1_a"], ["d2_a"])])

    engine.reject("f1", reason="different scope")

    record = engine.get("f1")
    assert record.status is FusionStatus.REJECTED
    assert record.reason == "different scope"
    assert engine.state.used_item_ids == set()
    assert engine.rejected() == [record]


def test_rejected_items_cannot_be_accepted_elsewhere(engine: ReconciliationEngine) -> None:
    engine.ingest(
        [
            make_candidate("f1", ["d1_a"], ["d2_a"]),
            make_candidate("f2", ["d1_a"], ["d2_b"]),
        ]
    )
    engine.reject("f1")

    with pytest.raises(ItemAlreadyUsedError):
        engine.accept("f2")


def test_reject_requires_pending(engine: ReconciliationEngine) -> None:
    engine.ingest([make_candidate("f1", ["d1_a"], ["d2_a"])])
    engine.accept("f1")

    with pytest.raises(InvalidTransitionError):
        engine.reject("f1")


# --- edit -----------------------------------------------------------------


def test_edit_pending_replaces_merged_item_and_claims(engine: ReconciliationEngine) -> None:
    candidate = make_candidate("f1", ["d1_a"], ["d2_a"])
    engine.ingest([candidate])
    edited = make_merged_item("Reviewer wording")

    engine.edit("f1", edited, notes="clarified wording")

    record = engine.get("f1")
    assert record.status is FusionStatus.EDITED
    assert record.kind is FusionKind.EDITED
    assert record.merged_item == edited
    assert record.draft_item == candidate.merged_item
    assert record.edit_notes == "clarified wording"
    assert engine.is_item_used("d1_a", DocumentSide.DOC1)


def test_edit_accepted_record(engine: ReconciliationEngine) -> None:
    engine.ingest([make_candidate("f1", ["d1_a"], ["d2_a"])])
    engine.accept("f1")

    engine.edit("f1", make_merged_item("Second thoughts"))

    assert engine.get("f1").status is FusionStatus.EDITED
    assert engine.state.used_item_ids == {doc1_ref("d1_a"), doc2_ref("d2_a")}


def test_edit_rejected_record_fails(engine: ReconciliationEngine) -> None:
    engine.ingest([make_candidate("f1", ["d1_a"], ["d2_a"])])
    engine.reject("f1")

    with pytest.raises(InvalidTransitionError):
        engine.edit("f1", make_merged_item())


def test_edit_with_blank_text_fails(engine: ReconciliationEngine) -> None:
    engine.ingest([make_candidate("f1", ["d1_a"], ["d2_a"])])

    with pytest.raises(InvalidMergedItemError):
        engine.edit("f1", make_merged_item("   "))

    assert engine.get("f1").status is FusionStatus.PENDING


# --- manual / keep separate -----------------------------------------------


def test_create_manual_is_accepted_without_confidence(engine: ReconciliationEngine) -> None:
    outcome = engine.create_manual(["d1_b", "d1_c"], ["d2_c"], make_merged_item("Manual"))

    record = outcome.record
    assert record is not None
    assert record.fusion_id.startswith("manual_")
    assert record.origin is FusionKind.MANUAL
    assert record.status is FusionStatus.ACCEPTED
    assert record.confidence_score is None
    assert engine.state.used_item_ids == {doc1_ref("d1_b"), doc1_ref("d1_c"), doc2_ref("d2_c")}


def test_create_manual_rejects_unknown_items(engine: ReconciliationEngine) -> None:
    with pytest.raises(UnknownItemError) as exc:
        engine.create_manual(["d1_a"], ["nope"], make_merged_item())

    assert exc.value.side is DocumentSide.DOC2
    assert engine.records == []


def test_create_manual_requires_both_sides(engine: ReconciliationEngine) -> None:
    with pytest.raises(EmptySelectionError):
        engine.create_manual([], ["d2_a"], make_merged_item())


def test_create_manual_over_claimed_item_fails(engine: ReconciliationEngine) -> None:
    engine.create_manual(["d1_a"], ["d2_a"], make_merged_item())

    with pytest.raises(ItemAlreadyUsedError):
        engine.create_manual(["d1_a"], ["d2_b"], make_merged_item())


def test_keep_separate_resolves_items_without_using_them(engine: ReconciliationEngine) -> None:
    outcome = engine.keep_separate(["d1_a"], ["d2_a"], reason="different products")

    record = outcome.record
    assert record is not None
    assert record.origin is FusionKind.KEPT_SEPARATE
    assert record.status is FusionStatus.REJECTED
    assert engine.state.used_item_ids == set()
    with pytest.raises(ItemAlreadyUsedError):
        engine.create_manual(["d1_a"], ["d2_b"], make_merged_item())


# --- undo -----------------------------------------------------------------


def test_undo_accept_restores_previous_state(engine: ReconciliationEngine) -> None:
    engine.ingest([make_candidate("f1", ["d1_a"], ["d2_a"])])
    before_used = set(engine.state.used_item_ids)
    before_status = engine.get("f1").status

    engine.accept("f1")
    engine.undo("f1")

    assert engine.state.used_item_ids == before_used
    assert engine.get("f1").status is before_status
    assert engine.get("f1").reviewed_at is None


def test_undo_edit_restores_service_draft(engine: ReconciliationEngine) -> None:
    candidate = make_candidate("f1", ["d1_a"], ["d2_a"])
    engine.ingest([candidate])
    engine.edit("f1", make_merged_item("Reviewer wording"), notes="n")

    engine.undo("f1")

    record = engine.get("f1")
    assert record.status is FusionStatus.PENDING
    assert record.merged_item == candidate.merged_item
    assert record.edit_notes is None


def test_undo_reject_clears_reason(engine: ReconciliationEngine) -> None:
    engine.ingest([make_candidate("f1", ["d1_a"], ["d2_a"])])
    engine.reject("f1", reason="nope")

    engine.undo("f1")

    assert engine.get("f1").status is FusionStatus.PENDING
    assert engine.get("f1").reason is None


def test_undo_manual_removes_record(engine: ReconciliationEngine) -> None:
    record = engine.create_manual(["d1_a"], ["d2_a"], make_merged_item()).record
    assert record is not None

    outcome = engine.undo(record.fusion_id)

    assert outcome.record is None
    assert engine.records == []
    assert engine.state.used_item_ids == set()


def test_undo_pending_fails(engine: ReconciliationEngine) -> None:
    engine.ingest([make_candidate("f1", ["d1_a"], ["d2_a"])])

    with pytest.raises(InvalidTransitionError):
        engine.undo("f1")


def test_undo_keeps_items_claimed_by_another_record(doc1: Document, doc2: Document) -> None:
    state = ReconciliationState()
    engine = ReconciliationEngine(doc1, doc2, state=state)
    engine.ingest([make_candidate("f1", ["d1_a"], ["d2_a"])])
    engine.accept("f1")
    # a second accepted record over the same item, e.g. loaded from older storage
    other = engine.create_manual(["d1_b"], ["d2_b"], make_merged_item()).record
    assert other is not None
    other.doc1_item_ids = ("d1_a", "d1_b")
    state.rebuild_usage()

    engine.undo("f1")

    assert doc1_ref("d1_a") in state.used_item_ids
    assert doc2_ref("d2_a") not in state.used_item_ids


# --- usage tracking -------------------------------------------------------


def test_identical_ids_on_both_sides_are_tracked_separately() -> None:
    doc1 = make_document("one.txt", "shared", "only_1")
    doc2 = make_document("two.txt", "shared", "only_2")
    engine = ReconciliationEngine(doc1, doc2)

    engine.create_manual(["shared"], ["only_2"], make_merged_item())

    assert engine.is_item_used("shared", DocumentSide.DOC1)
    assert not engine.is_item_used("shared", DocumentSide.DOC2)
    assert engine.is_item_used("shared")
    assert [item.id for item in engine.unused_items(DocumentSide.DOC2)] == ["shared"]


def test_used_items_never_shared_between_fused_records(engine: ReconciliationEngine) -> None:
    engine.ingest(
        [
            make_candidate("f1", ["d1_a"], ["d2_a"]),
            make_candidate("f2", ["d1_a", "d1_b"], ["d2_b"]),
            make_candidate("f3", ["d1_c"], ["d2_b", "d2_c"]),
        ]
    )
    attempts = [
        lambda: engine.accept("f1"),
        lambda: engine.accept("f2"),
        lambda: engine.edit("f3", make_merged_item()),
        lambda: engine.undo("f1"),
        lambda: engine.accept("f2"),
        lambda: engine.accept("f1"),
    ]
    for attempt in attempts:
        try:
            attempt()
        except ItemAlreadyUsedError:
            pass
        owners: dict[ItemRef, str] = {}
        for record in engine.accepted():
            for ref in [doc1_ref(i) for i in record.doc1_item_ids] + [
                doc2_ref(i) for i in record.doc2_item_ids
            ]:
                assert ref not in owners
                owners[ref] = record.fusion_id
        assert set(owners) == engine.state.used_item_ids


# --- queries / persistence ------------------------------------------------


def test_summary_counts_statuses_and_confidence(engine: ReconciliationEngine) -> None:
    engine.ingest(
        [
            make_candidate("f1", ["d1_a"], ["d2_a"], score=95.0),
            make_candidate("f2", ["d1_b"], ["d2_b"], score=65.0),
            make_candidate("f3", ["d1_c"], ["d2_c"], score=30.0, can_fuse=False),
        ]
    )
    engine.accept("f1")
    engine.reject("f3")

    summary = engine.summary()

    assert summary.total == 3
    assert summary.pending == 1
    assert summary.accepted == 1
    assert summary.rejected == 1
    assert summary.average_confidence == 63.3
    assert summary.high_confidence == 1
    assert summary.medium_confidence == 1
    assert summary.auto_apply_candidates == 0
    assert summary.used_items == 2


def test_auto_apply_candidates_are_only_reported(engine: ReconciliationEngine) -> None:
    engine.ingest(
        [
            make_candidate("f1", ["d1_a"], ["d2_a"], score=92.0),
            make_candidate("f2", ["d1_b"], ["d2_b"], score=70.0),
        ]
    )

    assert [record.fusion_id for record in engine.auto_apply_candidates()] == ["f1"]
    assert engine.get("f1").status is FusionStatus.PENDING


def test_sink_receives_every_change(doc1: Document, doc2: Document) -> None:
    sink = RecordingSink()
    engine = ReconciliationEngine(doc1, doc2, record_sink=sink)

    engine.ingest([make_candidate("f1", ["d1_a"], ["d2_a"])])
    engine.accept("f1")
    manual = engine.create_manual(["d1_b"], ["d2_b"], make_merged_item()).record
    assert manual is not None
    engine.undo(manual.fusion_id)

    assert sink.persisted == ["f1", "f1", manual.fusion_id]
    assert sink.removed == [manual.fusion_id]


def test_failed_action_is_not_forwarded_to_sink(doc1: Document, doc2: Document) -> None:
    sink = RecordingSink()
    engine = ReconciliationEngine(doc1, doc2, record_sink=sink)
    engine.ingest([make_candidate("f1", ["d1_a"], ["d2_a"])])

    with pytest.raises(InvalidTransitionError):
        engine.undo("f1")

    assert sink.persisted == ["f1"]


def test_reset_drops_everything(doc1: Document, doc2: Document) -> None:
    sink = RecordingSink()
    engine = ReconciliationEngine(doc1, doc2, record_sink=sink)
    engine.ingest([make_candidate("f1", ["d1_a"], ["d2_a"])])
    engine.accept("f1")

    engine.reset()

    assert engine.records == []
    assert engine.state.used_item_ids == set()
    assert sink.removed == ["f1"]


def test_state_from_records_rebuilds_usage(engine: ReconciliationEngine) -> None:
    engine.ingest(
        [
            make_candidate("f1", ["d1_a"], ["d2_a"]),
            make_candidate("f2", ["d1_b"], ["d2_b"]),
        ]
    )
    engine.accept("f1")
    engine.reject("f2")

    restored = ReconciliationState.from_records(engine.records)

    assert restored.used_item_ids == {doc1_ref("d1_a"), doc2_ref("d2_a")}
    assert list(restored.records) == ["f1", "f2"]
