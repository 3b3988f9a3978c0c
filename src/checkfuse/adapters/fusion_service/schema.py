"""Pydantic models describing the fusion service payloads."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    field_validator,
    model_validator,
)


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


class FusionServiceBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class OptionPayload(FusionServiceBaseModel):
    label: str = Field(validation_alias=AliasChoices("label", "text"))
    checked: bool | None = None

    @model_validator(mode="before")
    @classmethod
    def _accept_plain_label(cls, value: object) -> object:
        if isinstance(value, str):
            return {"label": value}
        return value


class ItemPayload(FusionServiceBaseModel):
    """Source item echoed back by the service; only ``id`` is relied upon."""

    id: str
    section: str | None = None
    subsection: str | None = Field(
        default=None, validation_alias=AliasChoices("subsection", "sous_section")
    )
    text: str | None = Field(default=None, validation_alias=AliasChoices("text", "question"))

    @model_validator(mode="before")
    @classmethod
    def _accept_bare_id(cls, value: object) -> object:
        if isinstance(value, str):
            return {"id": value}
        return value


class MergedItemPayload(FusionServiceBaseModel):
    section: str
    text: str = Field(validation_alias=AliasChoices("text", "question"))
    subsection: str | None = Field(
        default=None, validation_alias=AliasChoices("subsection", "sous_section")
    )
    status: str | None = None
    options: list[OptionPayload] = Field(default_factory=list[OptionPayload])
    notes: str | None = None
    page: int | None = None

    _normalize_optional = field_validator("subsection", "status", "notes", mode="before")(
        _blank_to_none
    )

    @field_validator("options", mode="before")
    @classmethod
    def _null_options(cls, value: object) -> object:
        return [] if value is None else value


class FusionDecisionPayload(FusionServiceBaseModel):
    can_fuse: StrictBool
    confidence_score: float
    explanation: str = ""
    confidence_level: str | None = None
    should_auto_apply: bool | None = None

    @field_validator("confidence_score", mode="before")
    @classmethod
    def _require_number(cls, value: object) -> object:
        if isinstance(value, bool) or not isinstance(value, int | float):
            raise ValueError("confidence_score must be a number")
        return value


class FusionResultPayload(FusionServiceBaseModel):
    status: str | None = None
    merged_item: MergedItemPayload | None = None
    action: str | None = None


class AutoFusionPayload(FusionServiceBaseModel):
    fusion_id: str
    fusion_decision: FusionDecisionPayload
    result: FusionResultPayload = Field(default_factory=FusionResultPayload)
    doc1_items: list[ItemPayload] = Field(default_factory=list[ItemPayload])
    doc2_items: list[ItemPayload] = Field(default_factory=list[ItemPayload])

    @field_validator("doc1_items", "doc2_items", mode="before")
    @classmethod
    def _null_items(cls, value: object) -> object:
        return [] if value is None else value


class AnalysisSummaryPayload(FusionServiceBaseModel):
    total_pairs_analyzed: int | None = None
    fusions_found: int | None = None
    average_confidence: float | None = Field(
        default=None, validation_alias=AliasChoices("average_confidence", "avg_confidence")
    )


class AutoFusionResponse(FusionServiceBaseModel):
    """Top level of the batch response.

    ``auto_fusions`` stays untyped here; every entry is validated on its own so
    one malformed fusion does not discard the whole batch.
    """

    success: bool = True
    auto_fusions: list[Any] = Field(default_factory=list[Any])
    summary: AnalysisSummaryPayload | None = None
    error: str | None = None


class LegacyDecisionResult(FusionServiceBaseModel):
    """One pair of the older per-pair response (``results`` list or a single pair)."""

    doc1_item_id: str | None = None
    doc2_item_id: str | None = None
    item_index: int | None = None
    fusion_decision: Mapping[str, Any]
    result: Mapping[str, Any] | None = None
