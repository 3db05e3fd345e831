"""
services/split_service.py — Split calculators, one per split mode.

Every calculator returns a list of Split whose owed amounts sum EXACTLY to the
expense total. Tolerance is zero: not a cent lost, not a cent gained.

Arithmetic rules:
  - Totals and amounts are converted to int cents on entry (money.to_cents).
  - Proportional amounts (percentage, shares, line items) are computed as exact
    Fractions of a cent, then rounded half-up to whole cents.
  - Rounding drift is fixed by _round_splits(): the whole difference goes to
    the participant with the largest rounded amount (first one on ties).
  - Equal splits hand the leftover cents to the first participants, one each,
    in input order.
These two remainder rules are product behaviour that users see on their
receipts; do not swap them for anything "fairer".

Layer rules:
  - No I/O, no logging of amounts, no mutable module state.
  - Calculators RAISE LedgerError subclasses; compute_splits() is the public
    entry point and turns those into SplitResult values.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal
from fractions import Fraction

from groupledger.core.errors import (
    InvalidInputError,
    LedgerError,
    PercentageMismatchError,
    SplitMismatchError,
    UnassignedItemError,
)
from groupledger.core.models.expense import SplitMode
from groupledger.core.models.money import (
    Money,
    from_cents,
    round_half_up,
    to_cents,
    to_decimal,
    to_fraction,
)
from groupledger.core.models.split import Split, SplitResult, UserId


# Exact-mode amounts may miss the total by at most one cent.
EXACT_TOLERANCE_CENTS = 1

# Percentages may miss 100 by at most 0.01 percentage points.
PERCENTAGE_TOLERANCE = Fraction(1, 100)


# ── Private helpers ────────────────────────────────────────────────────────

def _total_cents(total: Money) -> int:
    """Converts the expense total to cents. Raises INVALID_INPUT unless strictly positive."""
    cents = to_cents(total, field="total")
    if cents <= 0:
        raise InvalidInputError("Total must be greater than zero.", field="total")
    return cents


def _to_splits(pairs: Iterable[tuple[UserId, int]]) -> list[Split]:
    return [Split(user_id=uid, owed_amount=from_cents(cents)) for uid, cents in pairs]


def _round_splits(raw: list[tuple[UserId, Fraction]], target_cents: int) -> list[Split]:
    """
    Rounds raw fractional-cent amounts and forces the sum to target_cents.

    The full difference (positive or negative) is applied to the participant
    holding the largest rounded amount. Ties go to the first one seen.
    """
    rounded = [[uid, round_half_up(amount)] for uid, amount in raw]
    diff = target_cents - sum(cents for _, cents in rounded)

    if diff != 0 and rounded:
        largest = 0
        for i, (_, cents) in enumerate(rounded):
            if cents > rounded[largest][1]:
                largest = i
        rounded[largest][1] += diff

    return _to_splits((uid, cents) for uid, cents in rounded)


# ── Calculators ────────────────────────────────────────────────────────────

def split_equal(total: Money, participant_ids: list[UserId]) -> list[Split]:
    """
    Divides total evenly among participant_ids.

    base = total_cents // n; the leftover total_cents % n cents go to the
    first participants in input order, one cent each.

        split_equal(Decimal("10.00"), ["a", "b", "c"])
        → a: 3.34, b: 3.33, c: 3.33

    Raises:
        InvalidInputError — no participants, or total <= 0.
    """
    target = _total_cents(total)
    n = len(participant_ids)
    if n == 0:
        raise InvalidInputError(
            "At least one participant is required.",
            field="assignments",
        )

    base, remainder = divmod(target, n)
    return _to_splits(
        (uid, base + 1 if i < remainder else base)
        for i, uid in enumerate(participant_ids)
    )


def split_exact(total: Money, assignments: list[dict]) -> list[Split]:
    """
    Uses caller-supplied amounts ({"user_id", "amount"}) as-is.

    The amounts must add up to total within EXACT_TOLERANCE_CENTS. A residual
    cent inside the tolerance is absorbed by the largest amount so the
    returned splits are still exact.

    Raises:
        SplitMismatchError — sum differs from total by more than one cent.
        InvalidInputError  — total <= 0.
    """
    target = _total_cents(total)
    amounts = [(a["user_id"], to_cents(a["amount"], field="assignments")) for a in assignments]
    computed = sum(cents for _, cents in amounts)

    if abs(target - computed) > EXACT_TOLERANCE_CENTS:
        raise SplitMismatchError(
            computed_sum=from_cents(computed),
            target=from_cents(target),
            difference=from_cents(abs(target - computed)),
        )

    return _round_splits([(uid, Fraction(cents)) for uid, cents in amounts], target)


def split_percentage(total: Money, assignments: list[dict]) -> list[Split]:
    """
    Splits by percentage ({"user_id", "percentage"}); percentages must add up
    to 100 within PERCENTAGE_TOLERANCE.

    Raises:
        PercentageMismatchError — percentages do not add up to 100.
        InvalidInputError       — total <= 0.
    """
    target = _total_cents(total)
    percentages = [
        (a["user_id"], to_fraction(a["percentage"], field="assignments"))
        for a in assignments
    ]
    total_percent = sum((pct for _, pct in percentages), Fraction(0))

    if abs(total_percent - 100) > PERCENTAGE_TOLERANCE:
        actual = sum((to_decimal(a["percentage"]) for a in assignments), Decimal("0"))
        raise PercentageMismatchError(actual_sum=actual)

    raw = [(uid, pct / 100 * target) for uid, pct in percentages]
    return _round_splits(raw, target)


def split_shares(total: Money, assignments: list[dict]) -> list[Split]:
    """
    Splits proportionally to share counts ({"user_id", "shares"}).
    Share counts may be fractional ("1.5") but not negative.

        split_shares(Decimal("30.00"), [{"user_id": "a", "shares": 2},
                                        {"user_id": "b", "shares": 1}])
        → a: 20.00, b: 10.00

    Raises:
        InvalidInputError — a negative share count, total shares <= 0, or total <= 0.
    """
    target = _total_cents(total)
    shares = [(a["user_id"], to_fraction(a["shares"], field="assignments")) for a in assignments]

    if any(count < 0 for _, count in shares):
        raise InvalidInputError("Share counts must not be negative.", field="assignments")

    total_shares = sum((count for _, count in shares), Fraction(0))
    if total_shares <= 0:
        raise InvalidInputError("Total shares must be greater than 0.", field="assignments")

    raw = [(uid, count / total_shares * target) for uid, count in shares]
    return _round_splits(raw, target)


def split_line_items(total: Money, items: list[dict]) -> list[Split]:
    """
    Splits a receipt item by item.

    Each item is {"id", "name"?, "amount", "assignments": [{"user_id",
    "share_count"}]}. An item's cost is shared among its assignees in
    proportion to share_count. Whatever the items do not cover (total minus
    the item subtotal: tax, tip, service charge, or a negative discount) is
    spread over participants in proportion to their item subtotals.

    Participants appear in the order they are first seen across items.

    Raises:
        InvalidInputError   — item subtotal <= 0, or total <= 0.
        UnassignedItemError — an item whose share counts add up to zero.
    """
    target = _total_cents(total)
    item_cents = [to_cents(item["amount"], field="assignments") for item in items]
    item_subtotal = sum(item_cents)

    if item_subtotal <= 0:
        raise InvalidInputError("Items must have a positive total.", field="assignments")

    extras = target - item_subtotal

    # Phase 1: each participant's share of the items themselves.
    subtotals: dict[UserId, Fraction] = {}
    for item, cents in zip(items, item_cents):
        assignments = [
            (a["user_id"], to_fraction(a.get("share_count", 1), field="assignments"))
            for a in item.get("assignments") or []
        ]
        total_shares = sum((count for _, count in assignments), Fraction(0))
        if total_shares == 0:
            raise UnassignedItemError(item=str(item.get("name") or item.get("id")))

        for uid, count in assignments:
            subtotals[uid] = subtotals.get(uid, Fraction(0)) + count / total_shares * cents

    # Phase 2: spread the extras in proportion to each subtotal.
    raw = [
        (uid, subtotal + extras * (subtotal / item_subtotal))
        for uid, subtotal in subtotals.items()
    ]
    return _round_splits(raw, target)


# ── Public entry point ─────────────────────────────────────────────────────

_CALCULATORS = {
    SplitMode.EQUAL:      split_equal,
    SplitMode.EXACT:      split_exact,
    SplitMode.PERCENTAGE: split_percentage,
    SplitMode.SHARES:     split_shares,
    SplitMode.LINE_ITEM:  split_line_items,
}


def compute_splits(
        mode: SplitMode | str,
        total: Money,
        assignment_data: list,
) -> SplitResult:
    """
    Runs the calculator for `mode` and returns a SplitResult.

    Args:
        mode:            A SplitMode (or its string value).
        total:           The expense total as Decimal, int or decimal string.
        assignment_data: Mode-specific list; see each split_* function.

    Never raises LedgerError — failures come back as SplitResult.error.
    Malformed assignment data (a missing key, None instead of a list) is
    reported as INVALID_INPUT on the "assignments" field.
    """
    try:
        try:
            calculator = _CALCULATORS[SplitMode(mode)]
        except ValueError:
            raise InvalidInputError(f"Unknown split mode {mode!r}.", field="mode")
        try:
            splits = calculator(total, assignment_data)
        except (KeyError, TypeError, AttributeError) as err:
            raise InvalidInputError(
                f"Malformed assignment data for {SplitMode(mode).value} split.",
                field="assignments",
                details={"reason": repr(err)},
            ) from err
        return SplitResult(splits=splits)
    except LedgerError as error:
        return SplitResult(error=error)
