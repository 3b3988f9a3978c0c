"""Errors raised by the reconciliation engine.

Every engine operation validates its preconditions first and raises one of
these before touching the state, so a caught error always leaves the session
exactly as it was.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from checkfuse.domain.model import DocumentSide, FusionStatus
    from checkfuse.domain.reconciliation.contracts import ItemRef


class ReconciliationError(RuntimeError):
    """Base class for rejected reconciliation operations."""


class UnknownFusionError(ReconciliationError):
    def __init__(self, fusion_id: str) -> None:
        super().__init__(f"Unknown fusion id: {fusion_id!r}")
        self.fusion_id = fusion_id


class InvalidTransitionError(ReconciliationError):
    def __init__(self, fusion_id: str, action: str, status: FusionStatus) -> None:
        super().__init__(f"Cannot {action} fusion {fusion_id!r} in status {status}")
        self.fusion_id = fusion_id
        self.action = action
        self.status = status


class UnknownItemError(ReconciliationError):
    def __init__(self, side: DocumentSide, item_ids: Iterable[str]) -> None:
        self.side = side
        self.item_ids = tuple(item_ids)
        super().__init__(f"Unknown {side} item id(s): {', '.join(self.item_ids)}")


class ItemAlreadyUsedError(ReconciliationError):
    """One or more items are already claimed by another resolved fusion."""

    def __init__(self, claims: dict[ItemRef, str]) -> None:
        self.claims = dict(claims)
        details = ", ".join(f"{ref} (by {owner})" for ref, owner in claims.items())
        super().__init__(f"Item(s) already used: {details}")


class MissingMergedItemError(ReconciliationError):
    def __init__(self, fusion_id: str) -> None:
        super().__init__(f"Fusion {fusion_id!r} has no merged item to accept")
        self.fusion_id = fusion_id


class EmptySelectionError(ReconciliationError):
    def __init__(self, side: DocumentSide) -> None:
        super().__init__(f"At least one {side} item must be selected")
        self.side = side


class InvalidMergedItemError(ReconciliationError):
    def __init__(self, problems: Iterable[str]) -> None:
        self.problems = tuple(problems)
        super().__init__(f"Invalid merged item: {'; '.join(self.problems)}")
