from __future__ import annotations

import itertools
from typing import TYPE_CHECKING

import pytest

from checkfuse.domain.export import (
    UNFUSED_PROVENANCE,
    AssemblyError,
    EntryKind,
    FinalChecklist,
    OriginalEntry,
    RejectionMarker,
    assemble,
)
from checkfuse.domain.model import DocumentSide, FusionKind
from checkfuse.domain.reconciliation import ItemRef, ReconciliationError
from tests.helpers.checklists import make_candidate, make_item, make_merged_item

if TYPE_CHECKING:
    from checkfuse.domain.reconciliation import ReconciliationEngine


def run_assemble(engine: ReconciliationEngine) -> FinalChecklist:
    return assemble(engine.state, list(engine.doc1.items()), list(engine.doc2.items()))


def accounted_refs(checklist: FinalChecklist) -> list[ItemRef]:
    refs = [ref for entry in checklist.fused for ref in entry.sources()]
    refs += [entry.ref for entry in checklist.rejected_originals]
    refs += [entry.ref for entry in checklist.unfused]
    return refs


def all_refs(engine: ReconciliationEngine) -> set[ItemRef]:
    refs = {ItemRef(DocumentSide.DOC1, item.id) for item in engine.doc1.items()}
    refs |= {ItemRef(DocumentSide.DOC2, item.id) for item in engine.doc2.items()}
    return refs


def test_untouched_documents_are_entirely_unfused(engine: ReconciliationEngine) -> None:
    engine.ingest([make_candidate("f1", ["d1_a"], ["d2_a"])])

    checklist = run_assemble(engine)

    assert checklist.fused == ()
    assert checklist.rejected_originals == ()
    assert [entry.item.id for entry in checklist.unfused] == [
        "d1_a",
        "d1_b",
        "d1_c",
        "d2_a",
        "d2_b",
        "d2_c",
    ]
    assert {entry.provenance for entry in checklist.unfused} == {UNFUSED_PROVENANCE}


def test_accepted_fusion_replaces_its_sources(engine: ReconciliationEngine) -> None:
    engine.ingest([make_candidate("f1", ["d1_a"], ["d2_a", "d2_b"])])
    engine.accept("f1")

    checklist = run_assemble(engine)

    (entry,) = checklist.fused
    assert entry.fusion_id == "f1"
    assert entry.provenance == "f1"
    assert entry.entry_kind is EntryKind.FUSED
    assert [item.id for item in entry.doc2_items] == ["d2_a", "d2_b"]
    assert entry.merged_item.text == "Merged f1"
    assert [e.item.id for e in checklist.unfused] == ["d1_b", "d1_c", "d2_c"]


def test_rejected_fusion_sources_become_rejected_originals(engine: ReconciliationEngine) -> None:
    engine.ingest([make_candidate("f1", ["d1_a"], ["d2_a"], score=95.0)])
    engine.reject("f1", reason="not the same control")

    checklist = run_assemble(engine)

    assert checklist.fused == ()
    assert [(e.side, e.item.id) for e in checklist.rejected_originals] == [
        (DocumentSide.DOC1, "d1_a"),
        (DocumentSide.DOC2, "d2_a"),
    ]
    assert all(e.marker is RejectionMarker.REJECTED_FUSION for e in checklist.rejected_originals)
    assert all(e.reason == "not the same control" for e in checklist.rejected_originals)
    assert "d1_a" not in {e.item.id for e in checklist.unfused}
    assert "d2_a" not in {e.item.id for e in checklist.unfused}


def test_kept_separate_items_are_marked(engine: ReconciliationEngine) -> None:
    engine.keep_separate(["d1_b"], ["d2_c"])

    checklist = run_assemble(engine)

    assert [e.marker for e in checklist.rejected_originals] == [RejectionMarker.KEPT_SEPARATE] * 2
    assert checklist.summary.kept_separate == 2


def test_edited_and_manual_entries_keep_their_kind(engine: ReconciliationEngine) -> None:
    engine.ingest([make_candidate("f1", ["d1_a"], ["d2_a"])])
    engine.edit("f1", make_merged_item("Edited wording"), notes="merged by hand")
    engine.create_manual(["d1_b"], ["d2_b"], make_merged_item("Manual wording"))

    checklist = run_assemble(engine)

    assert [entry.kind for entry in checklist.fused] == [FusionKind.EDITED, FusionKind.MANUAL]
    assert checklist.fused[0].merged_item.text == "Edited wording"
    assert checklist.fused[0].edit_notes == "merged by hand"


def test_every_item_accounted_once_after_any_operation(engine: ReconciliationEngine) -> None:
    engine.ingest(
        [
            make_candidate("f1", ["d1_a"], ["d2_a"]),
            make_candidate("f2", ["d1_b"], ["d2_a", "d2_b"]),
            make_candidate("f3", ["d1_c"], ["d2_c"]),
        ]
    )
    operations = [
        ("accept", "f1"),
        ("reject", "f3"),
        ("accept", "f2"),
        ("undo", "f1"),
        ("accept", "f2"),
        ("edit", "f2"),
        ("undo", "f3"),
        ("accept", "f3"),
        ("undo", "f2"),
        ("reject", "f1"),
    ]
    expected = all_refs(engine)
    for action, fusion_id in operations:
        try:
            if action == "edit":
                engine.edit(fusion_id, make_merged_item())
            else:
                getattr(engine, action)(fusion_id)
        except ReconciliationError:
            pass
        refs = accounted_refs(run_assemble(engine))
        assert len(refs) == len(expected)
        assert set(refs) == expected


@pytest.mark.parametrize("order", list(itertools.permutations(["f1", "f2", "f3"])))
def test_accept_order_never_duplicates_items(
    engine: ReconciliationEngine, order: tuple[str, ...]
) -> None:
    engine.ingest(
        [
            make_candidate("f1", ["d1_a"], ["d2_a"]),
            make_candidate("f2", ["d1_a", "d1_b"], ["d2_b"]),
            make_candidate("f3", ["d1_c"], ["d2_a"]),
        ]
    )
    for fusion_id in order:
        try:
            engine.accept(fusion_id)
        except ReconciliationError:
            pass

    refs = accounted_refs(run_assemble(engine))

    assert len(refs) == len(set(refs)) == 6


def test_verify_reports_missing_and_repeated_items() -> None:
    item = make_item("d1_a")
    entry = OriginalEntry(item=item, side=DocumentSide.DOC1, provenance=UNFUSED_PROVENANCE)
    checklist = FinalChecklist(
        fused=(),
        rejected_originals=(),
        unfused=(entry, entry),
        doc1_item_ids=("d1_a", "d1_b"),
        doc2_item_ids=(),
    )

    with pytest.raises(AssemblyError) as exc:
        checklist.verify()

    message = str(exc.value)
    assert "missing: doc1:d1_b" in message
    assert "repeated: doc1:d1_a" in message


def test_assemble_fails_on_record_with_unknown_item(engine: ReconciliationEngine) -> None:
    engine.ingest([make_candidate("f1", ["d1_a"], ["d2_a"])])
    engine.accept("f1")

    with pytest.raises(AssemblyError, match="unknown doc2"):
        assemble(engine.state, list(engine.doc1.items()), [])


def test_payload_lists_entries_in_output_order(engine: ReconciliationEngine) -> None:
    engine.ingest(
        [
            make_candidate("f1", ["d1_a"], ["d2_a"], score=91.0),
            make_candidate("f2", ["d1_b"], ["d2_b"]),
        ]
    )
    engine.accept("f1")
    engine.reject("f2")

    payload = run_assemble(engine).to_payload()

    assert payload["summary"] == {
        "fused": 1,
        "rejected_originals": 2,
        "unfused": 2,
        "kept_separate": 0,
        "source_items": 6,
    }
    items = payload["items"]
    assert [item["entry_kind"] for item in items] == [
        "fused",
        "rejected_original",
        "rejected_original",
        "unfused",
        "unfused",
    ]
    fused = items[0]
    assert fused["provenance"] == "f1"
    assert fused["confidence_score"] == 91.0
    assert [item["id"] for item in fused["doc1_items"]] == ["d1_a"]
    assert items[1]["marker"] == "rejected_fusion"
    assert [item["provenance"] for item in items[1:]] == ["f2", "f2", "unfused", "unfused"]


def test_entries_flatten_partitions_with_provenance(engine: ReconciliationEngine) -> None:
    engine.ingest(
        [
            make_candidate("f1", ["d1_b"], ["d2_c"]),
            make_candidate("f2", ["d1_a"], ["d2_a"]),
        ]
    )
    engine.reject("f2", reason="different scope")
    engine.accept("f1")
    engine.keep_separate(["d1_c"], ["d2_b"])

    checklist = run_assemble(engine)
    entries = list(checklist.entries())

    assert checklist.unfused == ()
    assert [entry.entry_kind for entry in entries] == [
        EntryKind.FUSED,
        EntryKind.REJECTED_ORIGINAL,
        EntryKind.REJECTED_ORIGINAL,
        EntryKind.REJECTED_ORIGINAL,
        EntryKind.REJECTED_ORIGINAL,
    ]
    assert entries[0].provenance == "f1"
    assert [entry.provenance for entry in entries[1:3]] == ["f2", "f2"]
    assert isinstance(entries[3], OriginalEntry)
    assert entries[3].marker is RejectionMarker.KEPT_SEPARATE
