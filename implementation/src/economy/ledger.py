from __future__ import annotations

from typing import Dict, Iterable, Iterator, Tuple

from economy.bignum import ZERO, BigNumber
from economy.definitions import SoftCapThreshold


def apply_soft_caps(
    thresholds: Iterable[SoftCapThreshold], current: BigNumber, delta: BigNumber
) -> BigNumber:
    """Dampen an incoming gain by every threshold the current balance has reached.

    Thresholds compose in order: each reached one raises the running delta to
    its exponent. Non-positive exponents are neutral.
    """
    adjusted = delta
    if adjusted <= ZERO:
        return adjusted
    for threshold in thresholds:
        if threshold.exponent <= 0.0:
            continue
        if current >= BigNumber.from_float(threshold.amount):
            adjusted = adjusted.pow(threshold.exponent)
    return adjusted


class ResourceLedger:
    """Authoritative balances per resource id plus lifetime-produced totals.

    Lifetime totals only grow through ``credit`` and are untouched by
    ``set``/``spend``/``reset_balances``.
    """

    def __init__(self) -> None:
        self._balances: Dict[str, BigNumber] = {}
        self._lifetime: Dict[str, BigNumber] = {}

    def get(self, resource_id: str) -> BigNumber:
        return self._balances.get(resource_id, ZERO)

    def set(self, resource_id: str, amount: BigNumber) -> None:
        self._balances[resource_id] = amount

    def add(self, resource_id: str, amount: BigNumber) -> None:
        if amount.is_zero:
            return
        self._balances[resource_id] = self.get(resource_id) + amount

    def can_afford(self, resource_id: str, cost: BigNumber) -> bool:
        return self.get(resource_id) >= cost

    def spend(self, resource_id: str, cost: BigNumber) -> bool:
        """Deduct ``cost`` iff affordable; otherwise leave the balance alone."""
        if not self.can_afford(resource_id, cost):
            return False
        self._balances[resource_id] = self.get(resource_id) - cost
        return True

    def credit(
        self,
        resource_id: str,
        amount: BigNumber,
        soft_caps: Iterable[SoftCapThreshold] = (),
    ) -> BigNumber:
        """Add produced ``amount`` after soft caps; returns what was credited."""
        if amount.is_zero:
            return ZERO
        adjusted = apply_soft_caps(soft_caps, self.get(resource_id), amount)
        self.add(resource_id, adjusted)
        if adjusted > ZERO:
            self._lifetime[resource_id] = self.lifetime(resource_id) + adjusted
        return adjusted

    def lifetime(self, resource_id: str) -> BigNumber:
        return self._lifetime.get(resource_id, ZERO)

    def set_lifetime(self, resource_id: str, amount: BigNumber) -> None:
        self._lifetime[resource_id] = amount

    def reset_balances(self, starting: Dict[str, BigNumber]) -> None:
        self._balances = dict(starting)

    def clear(self) -> None:
        self._balances.clear()
        self._lifetime.clear()

    def items(self) -> Iterator[Tuple[str, BigNumber]]:
        return iter(list(self._balances.items()))

    def lifetime_items(self) -> Iterator[Tuple[str, BigNumber]]:
        return iter(list(self._lifetime.items()))
