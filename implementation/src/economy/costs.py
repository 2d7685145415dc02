"""Geometric cost curves shared by generators and upgrades.

The k-th additional level bought from level L costs base * mult^(L+k), so q
levels cost the geometric sum

    total(L, q) = base * mult^L * (mult^q - 1) / (mult - 1)

and the largest affordable q inverts that sum in closed form, then walks the
estimate to the exact boundary under BigNumber comparison.
"""
from __future__ import annotations

import math
from enum import Enum
from typing import Optional

from economy.bignum import ONE, ZERO, BigNumber

# |mult - 1| below this is treated as a flat (linear) curve.
FLAT_MULTIPLIER_EPSILON = 1e-6

# Upper bound on levels bought in one purchase.
MAX_PURCHASE_QUANTITY = 1_000_000_000


class PurchaseMode(Enum):
    X1 = "x1"
    X10 = "x10"
    X100 = "x100"
    MAX = "max"

    @property
    def fixed_quantity(self) -> Optional[int]:
        return {PurchaseMode.X1: 1, PurchaseMode.X10: 10, PurchaseMode.X100: 100}.get(self)


def _effective_multiplier(multiplier: float) -> float:
    # Shrinking curves are not supported; they are priced flat.
    return multiplier if multiplier > 1.0 else 1.0


def _is_flat(multiplier: float) -> bool:
    return abs(multiplier - 1.0) < FLAT_MULTIPLIER_EPSILON


def start_cost(base_cost: float, multiplier: float, level: int) -> BigNumber:
    """Price of the next single level at ``level``."""
    if base_cost <= 0.0:
        return ZERO
    mult = _effective_multiplier(multiplier)
    return BigNumber.from_float(base_cost) * BigNumber.from_float(mult).pow(max(0, level))


def total_cost(base_cost: float, multiplier: float, level: int, quantity: int) -> BigNumber:
    if quantity <= 0:
        return ZERO
    mult = _effective_multiplier(multiplier)
    first = start_cost(base_cost, mult, level)
    if first.is_zero:
        return ZERO
    if _is_flat(mult):
        return first * quantity
    numerator = BigNumber.from_float(mult).pow(quantity) - ONE
    denominator = BigNumber.from_float(mult - 1.0)
    return first * (numerator / denominator)


def max_affordable(
    base_cost: float,
    multiplier: float,
    level: int,
    available: BigNumber,
    cap: Optional[int] = None,
) -> int:
    """Greatest q >= 0 with total_cost(level, q) <= available, clamped to ``cap``."""
    limit = MAX_PURCHASE_QUANTITY if cap is None else max(0, min(cap, MAX_PURCHASE_QUANTITY))
    if limit == 0 or available <= ZERO:
        return 0
    mult = _effective_multiplier(multiplier)
    first = start_cost(base_cost, mult, level)
    if first.is_zero:
        # The inverse is undefined for free levels; MAX buys nothing, fixed modes still work.
        return 0

    if _is_flat(mult):
        ratio = (available / first).to_float()
        if not math.isfinite(ratio):
            return limit
        return max(0, min(limit, int(math.floor(ratio))))

    ratio = available * BigNumber.from_float(mult - 1.0) / first + ONE
    if ratio <= ONE:
        return 0
    estimate = math.floor(ratio.log10() / math.log10(mult))
    quantity = max(0, min(limit, int(estimate)))

    while quantity > 0 and total_cost(base_cost, mult, level, quantity) > available:
        quantity -= 1
    while quantity < limit and total_cost(base_cost, mult, level, quantity + 1) <= available:
        quantity += 1
    return quantity


def resolve_quantity(
    mode: PurchaseMode,
    base_cost: float,
    multiplier: float,
    level: int,
    available: BigNumber,
    cap: Optional[int] = None,
) -> int:
    """Number of levels a purchase in ``mode`` would buy (before affordability for fixed modes)."""
    if mode is PurchaseMode.MAX:
        return max_affordable(base_cost, multiplier, level, available, cap)
    quantity = mode.fixed_quantity or 1
    if cap is not None:
        quantity = max(0, min(quantity, cap))
    return quantity
