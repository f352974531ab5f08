"""Integer money in kopecks and the single rounding rule of the engine.

Every monetary amount is a signed ``int`` number of kopecks. Sums and
differences stay exact integer arithmetic. A percentage is realised into
money in exactly one place, ``percent_of``, which rounds to the nearest
kopeck with ties away from zero. Derived amounts are never rounded again.

    percent_of(530_000, Decimal("6"))    -> 31_800
    percent_of(5, Decimal("10"))         -> 1      (0.5 rounds up)
    percent_of(-5, Decimal("10"))        -> -1     (-0.5 rounds away from zero)
    percentage(10_000, 1_000_000)        -> Decimal("1.00")
    percentage(1, 0)                     -> Decimal("0")
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Annotated, Union

from pydantic import Field

Money = Annotated[int, Field(strict=True)]
NonNegativeMoney = Annotated[int, Field(strict=True, ge=0)]

Rate = Union[Decimal, int]

_HUNDRED = Decimal("100")
_WHOLE_KOPECK = Decimal("1")
_PERCENT_PLACES = Decimal("0.01")


def percent_of(amount: int, rate_percent: Rate) -> int:
    """Apply a percentage rate to an amount and round to whole kopecks.

    Args:
        amount: Amount in kopecks
        rate_percent: Rate in percent (``Decimal("5.1")`` means 5.1%)

    Returns:
        Rounded amount in kopecks (ROUND_HALF_UP, i.e. ties away from zero)
    """
    raw = Decimal(amount) * Decimal(rate_percent) / _HUNDRED
    return int(raw.quantize(_WHOLE_KOPECK, rounding=ROUND_HALF_UP))


def percentage(part: int, whole: int) -> Decimal:
    """Express ``part`` as a percentage of ``whole`` with two decimals.

    Returns ``Decimal("0")`` when ``whole`` is zero.
    """
    if whole == 0:
        return Decimal("0")
    ratio = Decimal(part) * _HUNDRED / Decimal(whole)
    return ratio.quantize(_PERCENT_PLACES, rounding=ROUND_HALF_UP)


def clamp_non_negative(value: int) -> int:
    """Floor an amount at zero."""
    return max(0, value)


__all__ = [
    "Money",
    "NonNegativeMoney",
    "Rate",
    "percent_of",
    "percentage",
    "clamp_non_negative",
]
