"""
models/transaction.py — Derived, never-persisted outputs of the ledger.

Transactions and balances are projections of the expense and settlement log.
They are recomputed on every read; nothing here is stored.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from groupledger.core.models.split import UserId


@dataclass(frozen=True)
class Transaction:
    """Suggested payment: `from_user_id` pays `to_user_id` `amount`."""

    from_user_id: UserId
    to_user_id: UserId
    amount: Decimal

    def to_dict(self) -> dict:
        return {
            "from_user_id": self.from_user_id,
            "to_user_id":   self.to_user_id,
            "amount":       self.amount,
        }


@dataclass(frozen=True)
class BalanceSummary:
    """Everything a group view needs: all balances, suggested payments, and the viewer's own balance."""

    balances: dict[UserId, Decimal] = field(default_factory=dict)
    transactions: list[Transaction] = field(default_factory=list)
    my_balance: Decimal = Decimal("0.00")
