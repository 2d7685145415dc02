"""Upgrade runtimes, purchases and the prestige reset.

An upgrade's level feeds the modifier aggregation for every tag it targets.
Levels are bounded by ``max_level`` unless it is -1. Costs follow the shared
geometric curve in ``economy.costs``; where the currency comes from (ledger or
meta wallet) is decided by the ``balance_of``/``spend`` callables the engine
passes in.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional

from economy.bignum import ZERO, BigNumber
from economy.costs import PurchaseMode, max_affordable, resolve_quantity, total_cost
from economy.definitions import UnlockCondition, UpgradeDef
from economy.notifications import UpgradePurchased
from economy.snapshot import (
    Record,
    make_record,
    migration,
    prepare_record,
    read_bool,
    read_int,
    read_list,
    read_mapping,
)

logger = logging.getLogger(__name__)

STATE_KIND = "upgrades"
STATE_VERSION = 2

BalanceOf = Callable[[str], BigNumber]
Spend = Callable[[str, BigNumber], bool]


@dataclass
class UpgradeRuntime:
    definition: UpgradeDef
    level: int = 0
    unlocked: bool = False

    @property
    def unlock_condition(self) -> UnlockCondition:
        return self.definition.unlock

    @property
    def remaining_levels(self) -> Optional[int]:
        """Levels left before ``max_level``; None when unbounded."""
        if self.definition.max_level < 0:
            return None
        return max(0, self.definition.max_level - self.level)

    def clamp_level(self, level: int) -> int:
        level = max(0, level)
        if self.definition.max_level >= 0:
            level = min(level, self.definition.max_level)
        return level


class UpgradeManager:
    def __init__(self, definitions: Iterable[UpgradeDef]) -> None:
        self.upgrades: List[UpgradeRuntime] = [UpgradeRuntime(d) for d in definitions]
        self._by_id: Dict[str, UpgradeRuntime] = {u.definition.id: u for u in self.upgrades}
        self.initialize()

    def initialize(self) -> None:
        for runtime in self.upgrades:
            runtime.level = 0
            runtime.unlocked = runtime.definition.unlock.unlocked_by_default

    def get(self, upgrade_id: str) -> Optional[UpgradeRuntime]:
        return self._by_id.get(upgrade_id)

    def level(self, upgrade_id: str) -> int:
        runtime = self._by_id.get(upgrade_id)
        return runtime.level if runtime else 0

    def is_unlocked(self, upgrade_id: str) -> bool:
        runtime = self._by_id.get(upgrade_id)
        return runtime is not None and runtime.unlocked

    def get_cost(self, upgrade_id: str, quantity: int = 1) -> BigNumber:
        """Total price of the next ``quantity`` levels; zero for unknown ids."""
        runtime = self._by_id.get(upgrade_id)
        if runtime is None:
            return ZERO
        d = runtime.definition
        return total_cost(d.base_cost, d.cost_multiplier, runtime.level, quantity)

    def max_affordable(self, upgrade_id: str, balance_of: BalanceOf) -> int:
        runtime = self._by_id.get(upgrade_id)
        if runtime is None:
            return 0
        d = runtime.definition
        return max_affordable(
            d.base_cost,
            d.cost_multiplier,
            runtime.level,
            balance_of(d.cost_resource_id),
            runtime.remaining_levels,
        )

    def purchase(
        self,
        upgrade_id: str,
        mode: PurchaseMode,
        balance_of: BalanceOf,
        spend: Spend,
    ) -> Optional[UpgradePurchased]:
        """Buy levels atomically; None when locked, capped or unaffordable."""
        runtime = self._by_id.get(upgrade_id)
        if runtime is None or not runtime.unlocked:
            return None
        d = runtime.definition
        quantity = resolve_quantity(
            mode,
            d.base_cost,
            d.cost_multiplier,
            runtime.level,
            balance_of(d.cost_resource_id),
            runtime.remaining_levels,
        )
        if quantity <= 0:
            return None
        cost = total_cost(d.base_cost, d.cost_multiplier, runtime.level, quantity)
        if not spend(d.cost_resource_id, cost):
            return None
        runtime.level += quantity
        logger.debug("Bought %d level(s) of %s for %s", quantity, d.id, cost)
        return UpgradePurchased(d.id, quantity, cost, runtime.level)

    def reset_for_prestige(self, should_preserve: Callable[[UpgradeDef], bool]) -> List[str]:
        """Reset every upgrade the predicate does not preserve; returns their ids."""
        reset = []
        for runtime in self.upgrades:
            if should_preserve(runtime.definition):
                continue
            runtime.level = 0
            runtime.unlocked = runtime.definition.unlock.unlocked_by_default
            reset.append(runtime.definition.id)
        return reset

    # ── State ──────────────────────────────────────────────────────

    def capture_state(self) -> Record:
        return make_record(
            STATE_KIND,
            STATE_VERSION,
            upgrades={
                u.definition.id: {"level": u.level, "unlocked": u.unlocked}
                for u in self.upgrades
            },
        )

    def restore_state(self, record: Record) -> None:
        self.initialize()
        data = prepare_record(record, STATE_KIND, STATE_VERSION)
        if data is None:
            return
        for upgrade_id, entry in read_mapping(data, "upgrades").items():
            runtime = self._by_id.get(upgrade_id)
            if runtime is None:
                logger.warning("Skipping saved upgrade %r: not configured", upgrade_id)
                continue
            if not isinstance(entry, dict):
                continue
            runtime.level = runtime.clamp_level(read_int(entry, "level", 0))
            runtime.unlocked = read_bool(entry, "unlocked", runtime.unlocked)


@migration(STATE_KIND, 1)
def _upgrades_from_purchased_list(record: Record) -> Record:
    """Version 1 kept a flat list of purchased ids; each one becomes level 1."""
    upgrades = {}
    for upgrade_id in read_list(record, "purchased"):
        if isinstance(upgrade_id, str) and upgrade_id:
            upgrades[upgrade_id] = {"level": 1, "unlocked": True}
    return {"kind": STATE_KIND, "version": 1, "upgrades": upgrades}
