"""Parsed checklist documents.

A ``Document`` is built once by the structural parser and never mutated
afterwards; every container is a frozen dataclass holding tuples.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator

DEFAULT_SECTION_ID = "Other"
DEFAULT_SUBSECTION = "General"


@dataclass(frozen=True, slots=True, kw_only=True)
class ItemOption:
    label: str
    checked: bool | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class ChecklistItem:
    """A single checklist question with a document-unique identifier."""

    id: str
    section: str
    subsection: str
    text: str
    status: str | None = None
    options: tuple[ItemOption, ...] = ()
    notes: str | None = None
    page: int | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class Subsection:
    name: str
    items: tuple[ChecklistItem, ...] = ()


@dataclass(frozen=True, slots=True, kw_only=True)
class Section:
    id: str
    title: str
    subsections: tuple[Subsection, ...] = ()

    def items(self) -> Iterator[ChecklistItem]:
        for subsection in self.subsections:
            yield from subsection.items


@dataclass(frozen=True, slots=True, kw_only=True)
class Document:
    filename: str
    sections: tuple[Section, ...] = ()
    _index: dict[str, ChecklistItem] = field(
        init=False, repr=False, compare=False, default_factory=dict[str, ChecklistItem]
    )

    def __post_init__(self) -> None:
        for item in self.items():
            if item.id in self._index:
                raise ValueError(f"Duplicate item id in document {self.filename!r}: {item.id}")
            self._index[item.id] = item

    def items(self) -> Iterator[ChecklistItem]:
        """Yield every item in source order."""
        for section in self.sections:
            yield from section.items()

    def item_ids(self) -> frozenset[str]:
        return frozenset(self._index)

    def find_item(self, item_id: str) -> ChecklistItem | None:
        return self._index.get(item_id)

    def sorted_sections(self) -> tuple[Section, ...]:
        """Sections in rendering order (lexicographic by id)."""
        return tuple(sorted(self.sections, key=lambda section: section.id))

    @property
    def item_count(self) -> int:
        return len(self._index)

    @property
    def is_empty(self) -> bool:
        return not self.sections
