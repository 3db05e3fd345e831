"""
schemas/settlement_schema.py — Marshmallow schema for settlement records.

Validation responsibility:
  - This file: field types, decimal precision, positive amount.
  - Self-settlement and membership are the recording layer's business; by
    the time a settlement reaches the ledger it already happened.
  - Either party may be null (deleted account). Such settlements load fine
    and are skipped by balance_service.compute_balances().
"""

from __future__ import annotations

from decimal import Decimal

from marshmallow import Schema, ValidationError, fields, post_load

from groupledger.core.errors import ErrorCode
from groupledger.core.models.settlement import Settlement


# ── Shared monetary amount validator ──────────────────────────────────────
#
# Same rule as expense_schema._validate_monetary_amount. Kept local so each
# schema file stays self-contained.
# ──────────────────────────────────────────────────────────────────────────

def _validate_monetary_amount(value: Decimal) -> None:
    """Strictly positive, at most 2 decimal places (never rounded)."""
    if value <= Decimal("0"):
        raise ValidationError("Amount must be greater than zero.")
    if value.as_tuple().exponent < -2:
        raise ValidationError(ErrorCode.INVALID_AMOUNT_PRECISION)


class SettlementSchema(Schema):

    id = fields.Str(load_default=None, allow_none=True)

    paid_by_user_id = fields.Str(required=True, allow_none=True)

    paid_to_user_id = fields.Str(required=True, allow_none=True)

    amount = fields.Decimal(
        required=True,
        as_string=True,
        validate=_validate_monetary_amount,
    )

    @post_load
    def make_settlement(self, data: dict, **kwargs) -> Settlement:
        return Settlement(**data)
