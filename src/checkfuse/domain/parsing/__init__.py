"""Structural parsing of extracted checklist text."""

from __future__ import annotations

from .options import DEFAULT_OPTIONS, ParserOptions
from .parser import normalize_lines, parse
from .slug import slugify

__all__ = [
    "DEFAULT_OPTIONS",
    "ParserOptions",
    "normalize_lines",
    "parse",
    "slugify",
]
