"""
errors.py — LedgerError hierarchy and error code registry.

Every failure reported by the split calculators must use a code defined here.
Do not raise strings or generic exceptions from service code.

Rules:
  - Error codes are a versioned contract. They do not change once published.
  - Error messages are human-readable prose. They may be improved at any time.
  - Every error carries enough data in `details` for a caller to render its
    own message (sum, target, difference) without parsing `message`.
  - Only the split calculators fail. Balance aggregation and debt
    simplification degrade (skip records) instead of raising.
"""

from __future__ import annotations

from decimal import Decimal


class LedgerError(Exception):

    code = "INVALID_INPUT"

    def __init__(
            self,
            message: str,
            code: str | None = None,
            details: dict | None = None,
            field: str | None = None,
    ) -> None:
        super().__init__(message)
        if code is not None:
            self.code = code
        self.message = message
        self.details = details or {}
        self.field   = field  # which payload field caused the error

    def to_dict(self) -> dict:
        payload = {
            "code":    self.code,
            "message": self.message,
        }
        if self.details:
            payload["details"] = {
                key: str(value) if isinstance(value, Decimal) else value
                for key, value in self.details.items()
            }
        if self.field is not None:
            payload["field"] = self.field
        return {"error": payload}

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(code={self.code!r}, "
            f"message={self.message!r})"
        )


class InvalidInputError(LedgerError):
    """Structurally impossible request: no participants, non-positive total, zero shares."""

    code = "INVALID_INPUT"


class SplitMismatchError(LedgerError):
    """Exact-mode amounts do not add up to the expense total."""

    code = "SPLIT_MISMATCH"

    def __init__(self, computed_sum: Decimal, target: Decimal, difference: Decimal) -> None:
        from groupledger.core.models.money import format_money

        self.computed_sum = computed_sum
        self.target       = target
        self.difference   = difference
        super().__init__(
            f"Amounts sum to {format_money(computed_sum)} but total is "
            f"{format_money(target)}. Difference: {format_money(difference)}",
            details={
                "computed_sum": computed_sum,
                "target":       target,
                "difference":   difference,
            },
            field="assignments",
        )


class PercentageMismatchError(LedgerError):
    """Percentages do not add up to 100."""

    code = "PERCENTAGE_MISMATCH"

    def __init__(self, actual_sum: Decimal) -> None:
        self.actual_sum = actual_sum
        super().__init__(
            f"Percentages sum to {actual_sum.quantize(Decimal('0.1'))}%, must equal 100%.",
            details={"actual_sum": actual_sum},
            field="assignments",
        )


class UnassignedItemError(LedgerError):
    """A line item has no participant (or only zero share counts) assigned."""

    code = "UNASSIGNED_ITEM"

    def __init__(self, item: str) -> None:
        self.item = item
        super().__init__(
            f'Item "{item}" has no assignments.',
            details={"item": item},
            field="assignments",
        )


# ── Error Code Registry ────────────────────────────────────────────────────
#
# IMPORTANT: these are the string values returned to collaborators in
# LedgerError.to_dict(). Do not rename them without a major version bump.
# ──────────────────────────────────────────────────────────────────────────

class ErrorCode:

    # ── Payload Errors (schema layer) ─────────────────────────────────────
    MISSING_FIELD              = "MISSING_FIELD"
    INVALID_FIELD              = "INVALID_FIELD"
    INVALID_AMOUNT_PRECISION   = "INVALID_AMOUNT_PRECISION"
    INVALID_SPLIT_MODE         = "INVALID_SPLIT_MODE"
    DUPLICATE_SPLIT_USER       = "DUPLICATE_SPLIT_USER"

    # ── Split Calculator Errors ───────────────────────────────────────────
    INVALID_INPUT              = InvalidInputError.code
    SPLIT_MISMATCH             = SplitMismatchError.code
    PERCENTAGE_MISMATCH        = PercentageMismatchError.code
    UNASSIGNED_ITEM            = UnassignedItemError.code


def error_from_validation(messages: dict | list) -> LedgerError:
    """
    Converts marshmallow ValidationError.messages into a single LedgerError.

    Only the FIRST error is reported. Nested messages (lists of sub-schema
    errors keyed by index) are walked until a string message is found; the
    reported field is the top-level payload key.
    """
    field = None
    raw_message = "Invalid input."

    if isinstance(messages, dict) and messages:
        field_name, field_errors = next(iter(messages.items()))
        field = field_name if field_name != "_schema" else None
        raw_message = _first_message(field_errors)
    elif isinstance(messages, list) and messages:
        raw_message = _first_message(messages)

    if raw_message in vars(ErrorCode).values():
        code = raw_message
    elif raw_message.startswith("Missing data for required field"):
        code = ErrorCode.MISSING_FIELD
    else:
        code = ErrorCode.INVALID_FIELD

    message = _code_to_message(code) if raw_message == code else raw_message
    return LedgerError(message, code=code, field=field)


def _first_message(errors) -> str:
    """Depth-first search for the first string in a marshmallow messages tree."""
    if isinstance(errors, str):
        return errors
    if isinstance(errors, dict):
        for value in errors.values():
            return _first_message(value)
    if isinstance(errors, list):
        for value in errors:
            return _first_message(value)
    return "Invalid value."


def _code_to_message(code: str) -> str:
    """
    Returns a human-readable default message for a known error code.
    Used when a ValidationError message IS the error code constant itself
    (e.g. INVALID_AMOUNT_PRECISION raised as ValidationError in schemas).
    """
    _messages = {
        "INVALID_AMOUNT_PRECISION": "Amount must have at most 2 decimal places.",
        "INVALID_SPLIT_MODE": "mode must be one of 'equal', 'exact', 'percentage', "
                              "'shares' or 'line_item'.",
        "DUPLICATE_SPLIT_USER": "The same user_id appears more than once in the splits array.",
    }
    return _messages.get(code, "Invalid input.")
