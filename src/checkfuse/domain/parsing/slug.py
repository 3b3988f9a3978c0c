"""Identifier-safe slugs for checklist item ids."""

from __future__ import annotations

import re
from typing import Final

SLUG_MAX_LENGTH: Final[int] = 60

_ACCENT_FAMILIES: Final[dict[str, str]] = {
    "a": "àáâãäå",
    "e": "èéêë",
    "i": "ìíîï",
    "o": "òóôõö",
    "u": "ùúûü",
    "c": "ç",
}
_FOLD_TABLE = str.maketrans(
    {accented: base for base, variants in _ACCENT_FAMILIES.items() for accented in variants}
)
_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def slugify(text: str) -> str:
    """Lowercase, fold accents, collapse separators into ``_``.

    Only the a/e/i/o/u/c accent families are folded; any other non-ASCII
    letter is treated as a separator. Truncation happens after trimming, so a
    slug may end in ``_`` when the cut lands on a separator.
    """

    folded = text.lower().translate(_FOLD_TABLE)
    collapsed = _NON_ALNUM.sub("_", folded).strip("_")
    return collapsed[:SLUG_MAX_LENGTH]
