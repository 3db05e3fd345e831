"""
models/settlement.py — Settlement record.

A settlement is a payment that already happened outside the app. It is
appended, never edited. Either party may be None after account deletion;
such settlements are ignored by balance aggregation.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from groupledger.core.models.split import UserId


@dataclass(frozen=True)
class Settlement:
    paid_by_user_id: UserId | None
    paid_to_user_id: UserId | None
    amount: Decimal
    id: str | None = None
