"""Tunable thresholds and noise markers for the structural parser."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Final

SUBSECTION_MAX_LENGTH: Final[int] = 150
CONTINUATION_MAX_LENGTH: Final[int] = 200
ITEM_MIN_LENGTH: Final[int] = 10
ID_TEXT_PREFIX_LENGTH: Final[int] = 50

DEFAULT_NOISE_MARKERS: Final[tuple[re.Pattern[str], ...]] = (
    # page footers such as "Page 3" or "Page 3 of 12"
    re.compile(r"\bPage\s+\d+"),
    # certifier / vendor name references
    re.compile(r"procert", re.IGNORECASE),
    # "explanations are mandatory" disclaimers
    re.compile(r"des explications sont obligatoires", re.IGNORECASE),
    re.compile(r"explanations? (?:are |is )?mandatory", re.IGNORECASE),
)


@dataclass(frozen=True, slots=True, kw_only=True)
class ParserOptions:
    subsection_max_length: int = SUBSECTION_MAX_LENGTH
    continuation_max_length: int = CONTINUATION_MAX_LENGTH
    item_min_length: int = ITEM_MIN_LENGTH
    id_text_prefix_length: int = ID_TEXT_PREFIX_LENGTH
    noise_markers: tuple[re.Pattern[str], ...] = DEFAULT_NOISE_MARKERS

    def is_noise(self, text: str) -> bool:
        if len(text) < self.item_min_length:
            return True
        return any(marker.search(text) for marker in self.noise_markers)


DEFAULT_OPTIONS: Final[ParserOptions] = ParserOptions()
