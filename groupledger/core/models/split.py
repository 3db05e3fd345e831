"""
models/split.py — Split record and the split calculator result type.

No business logic. No imports from services or schemas.

Key design points:
  - `owed_amount` is Decimal with exactly two fractional digits — never float.
  - `user_id` is None when the participant's account was deleted. Deleting an
    account nulls the reference in stored data; the split itself survives.
    Every consumer must handle the None case explicitly.
  - The payer's own share is a Split like any other.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from groupledger.core.errors import LedgerError


# Opaque participant identifier (UUID-like string).
UserId = str


@dataclass(frozen=True)
class Split:
    user_id: UserId | None
    owed_amount: Decimal

    def to_dict(self) -> dict:
        return {"user_id": self.user_id, "owed_amount": self.owed_amount}


@dataclass(frozen=True)
class SplitResult:
    """
    Outcome of compute_splits(): either `splits` or `error`, never both.

    Split calculator failures are values, not exceptions, so callers can
    render `error.message` (or `error.details`) directly.
    """

    splits: list[Split] = field(default_factory=list)
    error: LedgerError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def total(self) -> Decimal:
        return sum((s.owed_amount for s in self.splits), Decimal("0.00"))
