"""JSON encoding of frozen domain values stored in Core tables."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, cast

from checkfuse.domain.model import (
    ChecklistItem,
    Document,
    ItemOption,
    MergedItem,
    Section,
    Subsection,
)


def _options_to_json(options: tuple[ItemOption, ...]) -> list[dict[str, Any]]:
    return [{"label": option.label, "checked": option.checked} for option in options]


def _options_from_json(raw: object) -> tuple[ItemOption, ...]:
    if not isinstance(raw, list):
        return ()
    entries = cast(list[Mapping[str, Any]], raw)
    return tuple(
        ItemOption(label=entry["label"], checked=entry.get("checked")) for entry in entries
    )


def item_to_json(item: ChecklistItem) -> dict[str, Any]:
    return {
        "id": item.id,
        "section": item.section,
        "subsection": item.subsection,
        "text": item.text,
        "status": item.status,
        "options": _options_to_json(item.options),
        "notes": item.notes,
        "page": item.page,
    }


def item_from_json(raw: Mapping[str, Any]) -> ChecklistItem:
    return ChecklistItem(
        id=raw["id"],
        section=raw["section"],
        subsection=raw["subsection"],
        text=raw["text"],
        status=raw.get("status"),
        options=_options_from_json(raw.get("options")),
        notes=raw.get("notes"),
        page=raw.get("page"),
    )


def document_to_json(document: Document) -> dict[str, Any]:
    return {
        "filename": document.filename,
        "sections": [
            {
                "id": section.id,
                "title": section.title,
                "subsections": [
                    {
                        "name": subsection.name,
                        "items": [item_to_json(item) for item in subsection.items],
                    }
                    for subsection in section.subsections
                ],
            }
            for section in document.sections
        ],
    }


def document_from_json(raw: Mapping[str, Any]) -> Document:
    sections = tuple(
        Section(
            id=section["id"],
            title=section["title"],
            subsections=tuple(
                Subsection(
                    name=subsection["name"],
                    items=tuple(item_from_json(item) for item in subsection["items"]),
                )
                for subsection in section["subsections"]
            ),
        )
        for section in raw["sections"]
    )
    return Document(filename=raw["filename"], sections=sections)


def merged_item_to_json(item: MergedItem | None) -> dict[str, Any] | None:
    if item is None:
        return None
    return {
        "section": item.section,
        "subsection": item.subsection,
        "text": item.text,
        "status": item.status,
        "options": _options_to_json(item.options),
        "notes": item.notes,
        "page": item.page,
    }


def merged_item_from_json(raw: Mapping[str, Any] | None) -> MergedItem | None:
    if raw is None:
        return None
    return MergedItem(
        section=raw["section"],
        text=raw["text"],
        subsection=raw.get("subsection"),
        status=raw.get("status"),
        options=_options_from_json(raw.get("options")),
        notes=raw.get("notes"),
        page=raw.get("page"),
    )
