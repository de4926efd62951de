"""Period-over-period revenue growth."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Literal


def growth_percent(current: int, previous: int) -> int:
    """Return the signed growth of ``current`` over ``previous`` as a whole percent.

    A previous period without revenue reports ``0`` (flat) instead of an
    infinite or undefined growth. Rounding is half away from zero and computed
    exactly with ``Decimal``, so ``2.5`` rounds to ``3`` and ``-2.5`` to ``-3``.
    """

    if previous == 0:
        return 0
    ratio = (Decimal(current) - Decimal(previous)) * 100 / Decimal(previous)
    return int(ratio.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def trend_label(growth: int) -> Literal["positive", "negative", "flat"]:
    if growth > 0:
        return "positive"
    if growth < 0:
        return "negative"
    return "flat"


__all__ = ["growth_percent", "trend_label"]
