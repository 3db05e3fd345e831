"""
schemas/balance_schema.py — Output schemas for derived ledger values.

Dump-only. Every amount leaves the engine as a decimal string ("10.50"),
never as a number, so no consumer can reintroduce float error.
"""

from __future__ import annotations

from decimal import Decimal

from marshmallow import Schema, fields

from groupledger.core.models.transaction import BalanceSummary


class TransactionSchema(Schema):
    from_user_id = fields.Str()
    to_user_id = fields.Str()
    amount = fields.Decimal(as_string=True)


class BalanceEntrySchema(Schema):
    user_id = fields.Str()
    balance = fields.Decimal(as_string=True)


class BalanceSummarySchema(Schema):
    """
    Dumps a BalanceSummary as:
        {"balances": [{"user_id", "balance"}], "transactions": [...],
         "my_balance": "0.00", "balance_sum": "0.00"}
    """

    balances = fields.Method("dump_balances")
    transactions = fields.List(fields.Nested(TransactionSchema))
    my_balance = fields.Decimal(as_string=True)
    balance_sum = fields.Method("dump_balance_sum")

    def dump_balances(self, summary: BalanceSummary) -> list[dict]:
        return BalanceEntrySchema(many=True).dump(
            [{"user_id": uid, "balance": bal} for uid, bal in summary.balances.items()]
        )

    def dump_balance_sum(self, summary: BalanceSummary) -> str:
        return str(sum(summary.balances.values(), Decimal("0.00")))
