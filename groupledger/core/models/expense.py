"""
models/expense.py — Expense record and split mode enum.

No business logic. No imports from services or schemas.

Key design points:
  - `amount` is Decimal — never float.
  - `paid_by_user_id` is None when the payer's account was deleted.
    Balance aggregation skips such expenses entirely (their credit is
    forgiven); it must never guess a replacement payer.
  - Invariant (maintained by the split calculators, not checked here):
    sum(split.owed_amount for split in splits) == amount to the cent.
  - SplitMode is a Python enum so it can be imported by schemas and services
    without repeating string literals.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from decimal import Decimal

from groupledger.core.models.split import Split, UserId


class SplitMode(str, enum.Enum):
    EQUAL      = "equal"
    EXACT      = "exact"
    PERCENTAGE = "percentage"
    SHARES     = "shares"
    LINE_ITEM  = "line_item"


@dataclass(frozen=True)
class Expense:
    paid_by_user_id: UserId | None
    amount: Decimal
    splits: tuple[Split, ...] = field(default_factory=tuple)
    id: str | None = None
    description: str | None = None
    split_mode: SplitMode | None = None

    @property
    def split_total(self) -> Decimal:
        return sum((s.owed_amount for s in self.splits), Decimal("0.00"))
