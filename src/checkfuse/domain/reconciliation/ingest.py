"""Validation of fusion candidates before they enter the engine."""

from __future__ import annotations

import math
from collections import Counter
from typing import TYPE_CHECKING

from checkfuse.domain.model import DocumentSide

from .contracts import CandidateRejection, RejectionStage

if TYPE_CHECKING:
    from collections.abc import Collection, Sequence

    from checkfuse.domain.model import Document, FusionCandidate, MergedItem


def _check_item_ids(
    side: DocumentSide,
    item_ids: Sequence[str],
    document: Document,
) -> list[str]:
    if not item_ids:
        return [f"{side}_item_ids must not be empty"]
    errors: list[str] = []
    unknown = [item_id for item_id in item_ids if document.find_item(item_id) is None]
    if unknown:
        errors.append(f"unknown {side} item id(s): {', '.join(unknown)}")
    duplicates = sorted(item_id for item_id, count in Counter(item_ids).items() if count > 1)
    if duplicates:
        errors.append(f"duplicate {side} item id(s): {', '.join(duplicates)}")
    return errors


def _check_merged_item(merged_item: MergedItem) -> list[str]:
    errors: list[str] = []
    if not merged_item.section.strip():
        errors.append("merged_item.section must not be empty")
    if not merged_item.text.strip():
        errors.append("merged_item.text must not be empty")
    return errors


def validate_candidate(
    candidate: FusionCandidate,
    *,
    doc1: Document,
    doc2: Document,
) -> list[str]:
    """Return every problem with ``candidate``; an empty list means valid.

    Batch and session uniqueness of the fusion id is checked by the caller.
    """

    errors: list[str] = []
    if not candidate.fusion_id or not candidate.fusion_id.strip():
        errors.append("fusion_id must not be empty")
    errors.extend(_check_item_ids(DocumentSide.DOC1, candidate.doc1_item_ids, doc1))
    errors.extend(_check_item_ids(DocumentSide.DOC2, candidate.doc2_item_ids, doc2))

    if not isinstance(candidate.can_fuse, bool):
        errors.append("can_fuse must be a boolean")
    score = candidate.confidence_score
    if (
        isinstance(score, bool)
        or not isinstance(score, int | float)
        or math.isnan(score)
        or not 0 <= score <= 100
    ):
        errors.append(f"confidence_score must be a number between 0 and 100, got {score!r}")
    if not candidate.explanation or not candidate.explanation.strip():
        errors.append("explanation must not be empty")

    if candidate.can_fuse is True:
        if candidate.merged_item is None:
            errors.append("can_fuse is true but merged_item is missing")
        else:
            errors.extend(_check_merged_item(candidate.merged_item))
    elif candidate.can_fuse is False and candidate.merged_item is not None:
        errors.append("can_fuse is false but merged_item is present")
    return errors


def screen_batch(
    candidates: Sequence[FusionCandidate],
    *,
    doc1: Document,
    doc2: Document,
    known_fusion_ids: Collection[str],
) -> tuple[list[FusionCandidate], list[CandidateRejection]]:
    """Split a batch into valid candidates and itemized rejections."""

    accepted: list[FusionCandidate] = []
    rejections: list[CandidateRejection] = []
    seen: set[str] = set()
    for index, candidate in enumerate(candidates):
        errors = validate_candidate(candidate, doc1=doc1, doc2=doc2)
        if candidate.fusion_id in known_fusion_ids:
            errors.append(f"fusion_id {candidate.fusion_id!r} already exists in this session")
        elif candidate.fusion_id in seen:
            errors.append(f"fusion_id {candidate.fusion_id!r} is repeated within the batch")
        seen.add(candidate.fusion_id)
        if errors:
            rejections.append(
                CandidateRejection(
                    fusion_id=candidate.fusion_id or None,
                    index=index,
                    errors=tuple(errors),
                    stage=RejectionStage.INGEST,
                )
            )
        else:
            accepted.append(candidate)
    return accepted, rejections
