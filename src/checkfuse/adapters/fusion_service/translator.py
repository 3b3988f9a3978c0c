"""Translate fusion service payloads into domain candidates."""

from __future__ import annotations

from collections.abc import Mapping
from logging import getLogger
from typing import TYPE_CHECKING, Any, cast

from pydantic import ValidationError

from checkfuse.domain.model import FusionCandidate, ItemOption, MergedItem
from checkfuse.domain.ports import AnalysisResult
from checkfuse.domain.reconciliation import CandidateRejection, RejectionStage

from .schema import (
    AutoFusionPayload,
    AutoFusionResponse,
    LegacyDecisionResult,
    MergedItemPayload,
)

if TYPE_CHECKING:
    from checkfuse.domain.model import ChecklistItem, Document

log = getLogger(__name__)

LEGACY_FUSION_ID_PREFIX = "legacy"


class UnexpectedPayloadError(ValueError):
    """The payload matches neither the batch nor the legacy response shape."""


def _merged_item(payload: MergedItemPayload) -> MergedItem:
    return MergedItem(
        section=payload.section.strip(),
        text=payload.text.strip(),
        subsection=payload.subsection,
        status=payload.status,
        options=tuple(
            ItemOption(label=option.label, checked=option.checked) for option in payload.options
        ),
        notes=payload.notes,
        page=payload.page,
    )


def parse_fusion(payload: AutoFusionPayload) -> FusionCandidate:
    decision = payload.fusion_decision
    merged = payload.result.merged_item
    return FusionCandidate(
        fusion_id=payload.fusion_id,
        doc1_item_ids=tuple(item.id for item in payload.doc1_items),
        doc2_item_ids=tuple(item.id for item in payload.doc2_items),
        can_fuse=decision.can_fuse,
        confidence_score=decision.confidence_score,
        explanation=decision.explanation.strip(),
        merged_item=_merged_item(merged) if merged is not None else None,
    )


def _format_validation_error(exc: ValidationError) -> tuple[str, ...]:
    messages: list[str] = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"]) or "payload"
        messages.append(f"{location}: {error['msg']}")
    return tuple(messages)


def _raw_fusion_id(raw: object) -> str | None:
    if isinstance(raw, Mapping):
        value = cast(Mapping[str, object], raw).get("fusion_id")
        if isinstance(value, str) and value:
            return value
    return None


def adapt_legacy_response(payload: Mapping[str, Any]) -> dict[str, Any]:
    """Rewrite a per-pair response into the ``auto_fusions`` batch shape.

    Older workflow versions answered either with one pair at the top level
    (``fusion_decision`` + ``result`` + ``doc1_item_id``/``doc2_item_id``) or
    with a ``results`` list of such pairs.
    """

    if "results" in payload:
        raw_results = payload.get("results") or []
    else:
        raw_results = [payload]

    fusions: list[object] = []
    for index, raw in enumerate(raw_results):
        try:
            pair = LegacyDecisionResult.model_validate(raw)
        except ValidationError:
            # keep it so the per-entry validation reports it with its index
            fusions.append(raw)
            continue
        position = pair.item_index if pair.item_index is not None else index
        fusions.append(
            {
                "fusion_id": f"{LEGACY_FUSION_ID_PREFIX}_{position}",
                "fusion_decision": dict(pair.fusion_decision),
                "result": dict(pair.result) if pair.result is not None else {},
                "doc1_items": [pair.doc1_item_id] if pair.doc1_item_id else [],
                "doc2_items": [pair.doc2_item_id] if pair.doc2_item_id else [],
            }
        )
    log.info("Adapted legacy fusion response with %s pair(s)", len(fusions))
    return {
        "success": payload.get("success", True),
        "auto_fusions": fusions,
        "summary": {"total_pairs_analyzed": len(fusions)},
    }


def parse_analysis_response(payload: object) -> tuple[AutoFusionResponse, AnalysisResult]:
    """Validate a full service response.

    Malformed fusions become ``CandidateRejection`` entries; the domain
    validation of the remaining candidates happens during engine ingestion.
    """

    if not isinstance(payload, Mapping):
        raise UnexpectedPayloadError("Fusion service response is not a JSON object")
    mapping = cast(Mapping[str, Any], payload)
    if "auto_fusions" not in mapping:
        if "fusion_decision" not in mapping and "results" not in mapping:
            raise UnexpectedPayloadError("Fusion service response has no auto_fusions")
        mapping = adapt_legacy_response(mapping)

    try:
        response = AutoFusionResponse.model_validate(mapping)
    except ValidationError as exc:
        raise UnexpectedPayloadError("; ".join(_format_validation_error(exc))) from exc

    result = AnalysisResult()
    for index, raw in enumerate(response.auto_fusions):
        try:
            fusion = AutoFusionPayload.model_validate(raw)
        except ValidationError as exc:
            result.rejections.append(
                CandidateRejection(
                    fusion_id=_raw_fusion_id(raw),
                    index=index,
                    errors=_format_validation_error(exc),
                    stage=RejectionStage.RESPONSE,
                )
            )
            continue
        result.candidates.append(parse_fusion(fusion))

    if response.summary is not None:
        result.total_pairs_analyzed = response.summary.total_pairs_analyzed
        result.average_confidence = response.summary.average_confidence
    return response, result


def item_payload(item: ChecklistItem) -> dict[str, Any]:
    """Wire shape of a parsed item as the analysis workflow expects it."""

    payload: dict[str, Any] = {
        "id": item.id,
        "section": item.section,
        "sous_section": item.subsection,
        "question": item.text,
    }
    if item.status is not None:
        payload["status"] = item.status
    if item.options:
        payload["options"] = [
            {"label": option.label, "checked": option.checked} for option in item.options
        ]
    if item.notes is not None:
        payload["notes"] = item.notes
    if item.page is not None:
        payload["page"] = item.page
    return payload


def document_payload(document: Document) -> list[dict[str, Any]]:
    return [item_payload(item) for item in document.items()]
