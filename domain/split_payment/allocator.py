"""
Proportional amount allocation for split parts.
"""
from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP
from typing import Union

from .entity import TaxAmounts

CENT = Decimal("0.01")
HUNDRED = Decimal(100)


def _share(value: Decimal, factor: Decimal) -> Decimal:
    return (value * factor).quantize(CENT, rounding=ROUND_HALF_UP)


def allocate(total: TaxAmounts, percentage: Union[Decimal, float, int, str]) -> TaxAmounts:
    """Compute the share of `total` for a part holding `percentage` percent.

    Every present field (total and any optional tax/tip/cashback field) is
    scaled by percentage/100 and rounded half-up to cents. Fields absent on
    the input stay absent, which keeps tax pairs intact per part. Each field
    is rounded on its own, so the parts of a split may drift from the total
    by up to one cent per part.
    """
    factor = Decimal(str(percentage)) / HUNDRED
    return TaxAmounts(**{
        name: _share(value, factor)
        for name, value in total.present_fields().items()
    })
