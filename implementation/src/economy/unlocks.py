from __future__ import annotations

from typing import Callable, Iterable, List, Protocol

from economy.bignum import BigNumber
from economy.definitions import UnlockCondition


class Gated(Protocol):
    unlocked: bool

    @property
    def unlock_condition(self) -> UnlockCondition: ...


class UnlockGate:
    """Evaluates resource-threshold and map-node gates.

    An entity unlocks when it is unlocked by default, or any configured gate
    is satisfied. An entity with no gate at all is open. Unlocks latch: this
    class never sets ``unlocked`` back to False.
    """

    def __init__(
        self,
        balance_of: Callable[[str], BigNumber],
        node_unlocked: Callable[[str], bool],
    ) -> None:
        self._balance_of = balance_of
        self._node_unlocked = node_unlocked

    def is_satisfied(self, condition: UnlockCondition) -> bool:
        if condition.unlocked_by_default:
            return True
        if not condition.has_resource_gate and not condition.has_map_gate:
            return True
        if condition.has_resource_gate:
            required = BigNumber.from_float(condition.required_resource_amount)
            if self._balance_of(condition.required_resource_id) >= required:
                return True
        if condition.has_map_gate and self._node_unlocked(condition.required_map_node_id):
            return True
        return False

    def refresh(self, entities: Iterable[Gated]) -> List[Gated]:
        """Unlock every still-locked entity whose gate now passes; return those."""
        newly: List[Gated] = []
        for entity in entities:
            if entity.unlocked:
                continue
            if self.is_satisfied(entity.unlock_condition):
                entity.unlocked = True
                newly.append(entity)
        return newly
