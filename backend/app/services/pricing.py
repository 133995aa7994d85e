"""
Stay pricing.

Totals are computed on exact decimals and rounded once, half-up, to cents.
Rates are never rounded per room before summing.
"""

import math
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Union

CENT = Decimal("0.01")
SECONDS_PER_NIGHT = 24 * 60 * 60


def count_nights(check_in: Union[date, datetime], check_out: Union[date, datetime]) -> int:
    """Number of nights between two dates, partial days rounded up."""
    delta = check_out - check_in
    return math.ceil(delta.total_seconds() / SECONDS_PER_NIGHT)


def price(rates: Iterable[Union[Decimal, str, int]], nights: int) -> Decimal:
    """Total for a stay: sum of nightly rates times nights, rounded to cents."""
    subtotal = sum((Decimal(str(rate)) for rate in rates), Decimal("0"))
    return (subtotal * nights).quantize(CENT, rounding=ROUND_HALF_UP)
