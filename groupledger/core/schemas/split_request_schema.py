"""
schemas/split_request_schema.py — Marshmallow schemas for split calculations.

Payload shape:
    {"mode": "equal" | "exact" | "percentage" | "shares" | "line_item",
     "total": "30.00",
     "assignments": [...]}

`assignments` depends on `mode`:
    equal       ["user-a", "user-b"]
    exact       [{"user_id", "amount"}]
    percentage  [{"user_id", "percentage"}]
    shares      [{"user_id", "shares"}]
    line_item   [{"id", "name"?, "amount", "assignments": [{"user_id", "share_count"?}]}]

Validation responsibility:
  - This file: field types, decimal precision, the assignment shape for the
    selected mode.
  - services/split_service.py: everything arithmetic (sums, tolerances,
    zero shares, unassigned items). Those come back as SplitResult.error,
    not as ValidationError.
"""

from __future__ import annotations

from decimal import Decimal

from marshmallow import Schema, ValidationError, fields, post_load, validate

from groupledger.core.errors import ErrorCode
from groupledger.core.models.expense import SplitMode


def _validate_precision(value: Decimal) -> None:
    """At most 2 decimal places; never rounded."""
    if value.as_tuple().exponent < -2:
        raise ValidationError(ErrorCode.INVALID_AMOUNT_PRECISION)


def _validate_total(value: Decimal) -> None:
    """Strictly positive, at most 2 decimal places."""
    if value <= Decimal("0"):
        raise ValidationError("Total must be greater than zero.")
    _validate_precision(value)


def _user_id_field() -> fields.Str:
    return fields.Str(
        required=True,
        validate=validate.Length(min=1, error="user_id must not be empty."),
    )


# ── Per-mode assignment schemas ───────────────────────────────────────────

class ExactAssignmentSchema(Schema):
    user_id = _user_id_field()
    amount = fields.Decimal(required=True, validate=_validate_precision)


class PercentageAssignmentSchema(Schema):
    user_id = _user_id_field()
    percentage = fields.Decimal(
        required=True,
        validate=validate.Range(min=0, max=100, error="percentage must be between 0 and 100."),
    )


class ShareAssignmentSchema(Schema):
    user_id = _user_id_field()
    shares = fields.Decimal(
        required=True,
        validate=validate.Range(min=0, error="shares must not be negative."),
    )


class ItemAssignmentSchema(Schema):
    user_id = _user_id_field()
    share_count = fields.Decimal(
        load_default=Decimal("1"),
        validate=validate.Range(min=0, error="share_count must not be negative."),
    )


class LineItemSchema(Schema):
    id = fields.Str(required=True)
    name = fields.Str(load_default=None, allow_none=True)
    amount = fields.Decimal(required=True, validate=_validate_precision)
    assignments = fields.List(fields.Nested(ItemAssignmentSchema), load_default=list)


_ASSIGNMENT_SCHEMAS = {
    SplitMode.EXACT:      ExactAssignmentSchema,
    SplitMode.PERCENTAGE: PercentageAssignmentSchema,
    SplitMode.SHARES:     ShareAssignmentSchema,
    SplitMode.LINE_ITEM:  LineItemSchema,
}


# ── Request ────────────────────────────────────────────────────────────────

class ComputeSplitsSchema(Schema):
    """
    Loads a split request into {"mode": SplitMode, "total": Decimal,
    "assignments": list} ready for split_service.compute_splits().
    """

    mode = fields.Enum(
        SplitMode,
        required=True,
        by_value=True,
        error_messages={"unknown": ErrorCode.INVALID_SPLIT_MODE},
    )

    total = fields.Decimal(required=True, validate=_validate_total)

    # Shape depends on mode; checked in load_assignments().
    assignments = fields.List(fields.Raw(), required=True)

    @post_load
    def load_assignments(self, data: dict, **kwargs) -> dict:
        """
        Validates `assignments` against the schema for `mode`.

        Errors are re-keyed under "assignments" so the caller sees which
        payload field was wrong.
        """
        mode = data["mode"]
        raw = data["assignments"]

        if mode == SplitMode.EQUAL:
            if not all(isinstance(uid, str) and uid for uid in raw):
                raise ValidationError(
                    {"assignments": ["Equal split assignments must be non-empty user_id strings."]}
                )
            data["assignments"] = list(raw)
            return data

        try:
            data["assignments"] = _ASSIGNMENT_SCHEMAS[mode](many=True).load(raw)
        except ValidationError as err:
            raise ValidationError({"assignments": err.messages}) from err
        return data
