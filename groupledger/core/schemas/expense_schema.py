"""
schemas/expense_schema.py — Marshmallow schemas for expense records.

Validation responsibility:
  - This file:
      - Field types, decimal precision, positive expense amount
      - DUPLICATE_SPLIT_USER — the same live participant twice in one expense
      - Participant ids may be null (deleted accounts) on payer and splits
  - services/balance_service.py:
      - Split-sum integrity (logged, never rejected: stored history must
        stay computable even when it is imperfect)

Loading returns frozen Expense / Split records; dumping renders amounts as
decimal strings.
"""

from __future__ import annotations

from decimal import Decimal

from marshmallow import (
    Schema,
    ValidationError,
    fields,
    post_load,
    validates_schema,
)

from groupledger.core.errors import ErrorCode
from groupledger.core.models.expense import Expense, SplitMode
from groupledger.core.models.split import Split


# ── Shared monetary validators ────────────────────────────────────────────
#
# Input with more than 2 decimal places is REJECTED with
# INVALID_AMOUNT_PRECISION — never rounded or truncated.
# ──────────────────────────────────────────────────────────────────────────

def _validate_precision(value: Decimal) -> None:
    """
    Rejects amounts with more than 2 decimal places.

    Decimal.as_tuple().exponent gives the scale as a negative integer:
      Decimal("10.123").as_tuple().exponent == -3  → 3 dp → REJECT
      Decimal("10.12").as_tuple().exponent  == -2  → 2 dp → accept
    """
    if value.as_tuple().exponent < -2:
        raise ValidationError(ErrorCode.INVALID_AMOUNT_PRECISION)


def _validate_monetary_amount(value: Decimal) -> None:
    """Strictly positive, at most 2 decimal places."""
    if value <= Decimal("0"):
        raise ValidationError("Amount must be greater than zero.")
    _validate_precision(value)


# ── Split ──────────────────────────────────────────────────────────────────

class SplitSchema(Schema):
    """
    One participant's share of one expense.

    user_id is null when the participant's account was deleted. owed_amount
    may be zero; a split is never rejected for being empty.
    """

    user_id = fields.Str(required=True, allow_none=True)

    owed_amount = fields.Decimal(
        required=True,
        as_string=True,
        validate=_validate_precision,
    )

    @post_load
    def make_split(self, data: dict, **kwargs) -> Split:
        return Split(**data)


# ── Expense ────────────────────────────────────────────────────────────────

class ExpenseSchema(Schema):
    """
    An expense as fetched from storage, splits included.

    paid_by_user_id is null when the payer's account was deleted.
    """

    id = fields.Str(load_default=None, allow_none=True)

    description = fields.Str(load_default=None, allow_none=True)

    paid_by_user_id = fields.Str(required=True, allow_none=True)

    amount = fields.Decimal(
        required=True,
        as_string=True,
        validate=_validate_monetary_amount,
    )

    split_mode = fields.Enum(
        SplitMode,
        load_default=None,
        allow_none=True,
        by_value=True,
        error_messages={"unknown": ErrorCode.INVALID_SPLIT_MODE},
    )

    splits = fields.List(fields.Nested(SplitSchema), required=True)

    @validates_schema
    def validate_unique_split_users(self, data: dict, **kwargs) -> None:
        """
        DUPLICATE_SPLIT_USER: a live participant may hold only one split per
        expense. Several null (deleted) participants are fine.
        """
        user_ids = [s.user_id for s in data.get("splits") or [] if s.user_id is not None]
        if len(user_ids) != len(set(user_ids)):
            raise ValidationError({"splits": [ErrorCode.DUPLICATE_SPLIT_USER]})

    @post_load
    def make_expense(self, data: dict, **kwargs) -> Expense:
        data["splits"] = tuple(data["splits"])
        return Expense(**data)
