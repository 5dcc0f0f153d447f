from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Tuple

CENT = Decimal("0.01")


def to_decimal(value) -> Decimal:
    # str() first so 19.99 stays 19.99
    return Decimal(str(value))


def to_cents(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def sum_lines(lines: Iterable[Tuple[float, int]]) -> Decimal:
    """Sum of price x quantity, rounded to cents."""
    total = Decimal(0)
    for price, quantity in lines:
        total += to_decimal(price) * quantity
    return to_cents(total)


def to_minor_units(amount) -> int:
    """Major currency units to integer minor units, half-up (19.995 -> 2000)."""
    return int((to_decimal(amount) * 100).quantize(Decimal(1), rounding=ROUND_HALF_UP))
