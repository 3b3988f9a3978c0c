from __future__ import annotations

import pytest

from checkfuse.domain.model import (
    ConfidenceLevel,
    FusionKind,
    FusionRecord,
    FusionStatus,
    confidence_level,
    should_auto_apply,
)
from tests.helpers.checklists import make_candidate, make_document


@pytest.mark.parametrize(
    ("score", "expected"),
    [
        (0.0, ConfidenceLevel.VERY_LOW),
        (39.9, ConfidenceLevel.VERY_LOW),
        (40.0, ConfidenceLevel.LOW),
        (59.9, ConfidenceLevel.LOW),
        (60.0, ConfidenceLevel.MEDIUM),
        (74.9, ConfidenceLevel.MEDIUM),
        (75.0, ConfidenceLevel.HIGH),
        (89.9, ConfidenceLevel.HIGH),
        (90.0, ConfidenceLevel.VERY_HIGH),
        (100.0, ConfidenceLevel.VERY_HIGH),
    ],
)
def test_confidence_level_bucket_bounds(score: float, expected: ConfidenceLevel) -> None:
    assert confidence_level(score) is expected


def test_confidence_level_is_monotonic() -> None:
    scores = [x / 2 for x in range(201)]

    ranks = [confidence_level(score).rank for score in scores]

    assert ranks == sorted(ranks)


def test_should_auto_apply_requires_fusable_and_threshold() -> None:
    assert should_auto_apply(can_fuse=True, score=80.0)
    assert not should_auto_apply(can_fuse=True, score=79.9)
    assert not should_auto_apply(can_fuse=False, score=99.0)


def test_candidate_exposes_derived_confidence() -> None:
    candidate = make_candidate("f1", ["d1_a"], ["d2_a"], score=95.0)

    assert candidate.confidence_level is ConfidenceLevel.VERY_HIGH
    assert candidate.should_auto_apply is True
    assert candidate.item_ids == ("d1_a", "d2_a")


def test_record_from_candidate_is_pending_ai_fusion_with_draft() -> None:
    candidate = make_candidate("f1", ["d1_a"], ["d2_a"])

    record = FusionRecord.from_candidate(candidate)

    assert record.status is FusionStatus.PENDING
    assert record.origin is FusionKind.AI_FUSED
    assert record.merged_item == candidate.merged_item
    assert record.draft_item == candidate.merged_item
    assert record.is_resolved is False


def test_record_kind_reports_edited_while_edited() -> None:
    record = FusionRecord.from_candidate(make_candidate("f1", ["d1_a"], ["d2_a"]))

    record.status = FusionStatus.EDITED

    assert record.kind is FusionKind.EDITED
    assert record.origin is FusionKind.AI_FUSED
    assert record.is_fused is True


def test_manual_record_has_no_confidence() -> None:
    record = FusionRecord(
        fusion_id="manual_1",
        origin=FusionKind.MANUAL,
        status=FusionStatus.ACCEPTED,
        doc1_item_ids=("d1_a",),
        doc2_item_ids=("d2_a",),
    )

    assert record.confidence_level is None
    assert record.should_auto_apply is False
    assert record.is_transient is True


def test_document_indexes_items_and_rejects_duplicate_ids() -> None:
    document = make_document("doc.txt", "one", "two")

    assert document.item_ids() == frozenset({"one", "two"})
    assert document.find_item("two") is not None
    assert document.find_item("three") is None
    with pytest.raises(ValueError, match="Duplicate item id"):
        make_document("doc.txt", "one", "one")
