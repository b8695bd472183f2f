"""Money helpers - euros as Decimal with two decimal places"""

from decimal import Decimal, ROUND_FLOOR, ROUND_HALF_UP
from typing import Union

CENT = Decimal("0.01")

Number = Union[Decimal, int, float, str]


def to_decimal(value: Number) -> Decimal:
    """Convert to Decimal without binary float artifacts (0.1 -> Decimal('0.1'))"""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(value)


def round_money(value: Number) -> Decimal:
    """Round half-up to cents"""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def floor_points(value: Number) -> int:
    """Whole points available in an amount; negatives become 0"""
    amount = to_decimal(value)
    if amount <= 0:
        return 0
    return int(amount.to_integral_value(rounding=ROUND_FLOOR))


def to_cents(value: Number) -> int:
    return int(round_money(value) * 100)


def from_cents(cents: int) -> Decimal:
    return (Decimal(cents) / 100).quantize(CENT)
