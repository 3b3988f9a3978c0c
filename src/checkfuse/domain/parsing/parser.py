"""Structural parser: extracted plain text to a hierarchical ``Document``.

Single left-to-right scan over normalized lines. Each line is tested, in
order, as a section header, a subsection header and a checklist item; lines
matching none of them are ignored unless they directly follow an item, in
which case they are absorbed into that item's text.

The parser never raises on malformed text: the worst outcome is a document
with fewer items (or none at all).
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Final

from checkfuse.domain.model import (
    DEFAULT_SECTION_ID,
    DEFAULT_SUBSECTION,
    ChecklistItem,
    Document,
    ItemStatus,
    Section,
    Subsection,
)

from .options import DEFAULT_OPTIONS, ParserOptions
from .slug import slugify

if TYPE_CHECKING:
    from collections.abc import Sequence

log = logging.getLogger(__name__)

SECTION_PATTERN: Final = re.compile(r"^([A-Z])\.\s+(.+)$")
SUBSECTION_PATTERN: Final = re.compile(r"^(.+?):\s*$")
ITEM_PATTERN: Final = re.compile(r"^\[([\sXxpa]*)\]\s*(.+)$")
_CHECKBOX_PREFIX: Final = re.compile(r"^\[[\sXxpa]*\]")

_ESCAPES: Final[tuple[tuple[str, str], ...]] = (
    ("\\r\\n", "\n"),
    ("\\n", "\n"),
    ("\\r", "\n"),
    ("\\t", " "),
    ('\\"', '"'),
)
_QUOTES: Final = ('"', "'")


def normalize_lines(raw_text: str) -> list[str]:
    """Unwrap quoting, expand escaped line breaks and split into stripped lines."""

    text = raw_text.strip()
    if len(text) >= 2 and text[0] == text[-1] and text[0] in _QUOTES:  # noqa: PLR2004
        text = text[1:-1]
    for escaped, replacement in _ESCAPES:
        text = text.replace(escaped, replacement)
    return [line.strip() for line in text.splitlines()]


def parse(
    raw_text: str,
    filename: str,
    *,
    options: ParserOptions | None = None,
) -> Document:
    """Parse checklist text extracted from ``filename``."""

    opts = options or DEFAULT_OPTIONS
    if not raw_text:
        log.info("Parsed %s: empty input", filename)
        return Document(filename=filename)

    lines = normalize_lines(raw_text)
    builder = _DocumentBuilder(options=opts)
    skipped = 0
    index = 0
    while index < len(lines):
        line = lines[index]
        index += 1
        if not line:
            continue

        section_match = SECTION_PATTERN.match(line)
        if section_match:
            builder.open_section(section_match.group(1), section_match.group(2).strip())
            continue

        subsection = _subsection_name(line, opts)
        if subsection is not None:
            builder.open_subsection(subsection)
            continue

        item_match = ITEM_PATTERN.match(line)
        if item_match is None:
            continue

        head = item_match.group(2).strip()
        continuation, index = _absorb_continuation(lines, index, opts)
        if opts.is_noise(head):
            skipped += 1
            log.debug("Skipping noise candidate in %s: %r", filename, head)
            continue
        builder.add_item(" ".join([head, *continuation]), status=_glyph_status(item_match.group(1)))

    document = builder.build(filename)
    log.info(
        "Parsed %s: sections=%s, items=%s, skipped=%s",
        filename,
        len(document.sections),
        document.item_count,
        skipped,
    )
    return document


def _subsection_name(line: str, options: ParserOptions) -> str | None:
    # checkbox lines are items even when they end with a colon
    if len(line) >= options.subsection_max_length or _CHECKBOX_PREFIX.match(line):
        return None
    match = SUBSECTION_PATTERN.match(line)
    return match.group(1).strip() if match else None


def _is_structural(line: str) -> bool:
    return SECTION_PATTERN.match(line) is not None or ITEM_PATTERN.match(line) is not None


def _absorb_continuation(
    lines: Sequence[str],
    start: int,
    options: ParserOptions,
) -> tuple[list[str], int]:
    """Collect the free-form lines continuing an item; return them and the next index."""

    absorbed: list[str] = []
    index = start
    while index < len(lines):
        candidate = lines[index]
        if not candidate or _is_structural(candidate):
            break
        if len(candidate) >= options.continuation_max_length:
            break
        absorbed.append(candidate)
        index += 1
    return absorbed, index


def _glyph_status(glyph: str) -> str | None:
    marks = glyph.strip()
    if not marks:
        return None
    if "X" in marks or "x" in marks:
        return ItemStatus.CHECKED
    return ItemStatus.PARTIAL


@dataclass(slots=True)
class _DocumentBuilder:
    """Mutable accumulator; frozen into a ``Document`` once the scan ends."""

    options: ParserOptions
    current_section: str = DEFAULT_SECTION_ID
    current_subsection: str = DEFAULT_SUBSECTION
    item_counter: int = 0
    _titles: dict[str, str] = field(default_factory=dict[str, str])
    _items: dict[str, dict[str, list[ChecklistItem]]] = field(
        default_factory=dict[str, dict[str, list[ChecklistItem]]]
    )

    def open_section(self, section_id: str, title: str) -> None:
        self.current_section = section_id
        self.current_subsection = title
        self._titles.setdefault(section_id, title)
        log.debug("Section %s: %s", section_id, title)

    def open_subsection(self, name: str) -> None:
        self.current_subsection = name or DEFAULT_SUBSECTION

    def add_item(self, text: str, *, status: str | None = None) -> ChecklistItem:
        self.item_counter += 1
        prefix = text[: self.options.id_text_prefix_length]
        item_id = (
            f"{slugify(self.current_section)}.{slugify(self.current_subsection)}."
            f"{slugify(prefix)}_{self.item_counter}"
        )
        item = ChecklistItem(
            id=item_id,
            section=self.current_section,
            subsection=self.current_subsection,
            text=text.strip(),
            status=status,
        )
        subsections = self._items.setdefault(self.current_section, {})
        subsections.setdefault(self.current_subsection, []).append(item)
        return item

    def build(self, filename: str) -> Document:
        sections = tuple(
            Section(
                id=section_id,
                title=self._titles.get(section_id, section_id),
                subsections=tuple(
                    Subsection(name=name, items=tuple(items)) for name, items in subsections.items()
                ),
            )
            for section_id, subsections in self._items.items()
        )
        return Document(filename=filename, sections=sections)
