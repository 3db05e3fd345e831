"""
models/money.py — Money conversion at the engine boundary.

Money crosses the boundary as Decimal (or a decimal string / int) and is
converted to integer cents on the way in. Everything inside the services is
int cents; proportional intermediates are exact Fractions. Nothing in this
package ever touches float.
"""

from __future__ import annotations

import math
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from fractions import Fraction

from groupledger.core.errors import InvalidInputError


CENT = Decimal("0.01")

Money = Decimal | int | str


def to_decimal(value: Money, field: str | None = None) -> Decimal:
    """
    Parses a boundary money value into a Decimal.

    float is rejected outright: by the time a binary float reaches the engine
    the cents are already lost.
    """
    if isinstance(value, bool) or isinstance(value, float):
        raise InvalidInputError(
            f"Money values must be Decimal, int or decimal strings, not {type(value).__name__}.",
            field=field,
        )
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, str)):
        try:
            result = Decimal(value)
        except InvalidOperation:
            raise InvalidInputError(f"{value!r} is not a decimal amount.", field=field)
    else:
        raise InvalidInputError(
            f"Money values must be Decimal, int or decimal strings, not {type(value).__name__}.",
            field=field,
        )

    if not result.is_finite():
        raise InvalidInputError(f"{value!r} is not a finite amount.", field=field)
    return result


def to_cents(value: Money, field: str | None = None) -> int:
    """Decimal dollars → int cents, rounding half-up beyond the second digit."""
    amount = to_decimal(value, field)
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_cents(cents: int) -> Decimal:
    """int cents → Decimal dollars with exactly two fractional digits."""
    return (Decimal(cents) / 100).quantize(CENT)


def to_fraction(value: Money, field: str | None = None) -> Fraction:
    """Exact rational for percentages and share counts."""
    return Fraction(to_decimal(value, field))


def round_half_up(value: Fraction) -> int:
    """Rounds a rational number of cents to the nearest whole cent, .5 going up."""
    return math.floor(value + Fraction(1, 2))


def format_money(value: Money) -> str:
    """
    Renders an amount for user-facing messages.

        format_money(Decimal("1234.5"))  → "$1,234.50"
        format_money(Decimal("-3"))      → "-$3.00"
    """
    amount = to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f}"
