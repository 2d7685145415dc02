from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from economy.bignum import ZERO, BigNumber
from economy.costs import PurchaseMode, max_affordable, resolve_quantity, start_cost, total_cost
from economy.definitions import ALL_GENERATORS_TAG, GeneratorDef, ResourceDef, UnlockCondition
from economy.ledger import ResourceLedger
from economy.modifiers import ModifierAggregator, ModifierTotals
from economy.notifications import GeneratorPurchased
from economy.snapshot import (
    Record,
    decode_number,
    encode_number,
    make_record,
    prepare_record,
    read_bool,
    read_int,
    read_mapping,
)

logger = logging.getLogger(__name__)

STATE_KIND = "economy"
STATE_VERSION = 1


@dataclass
class GeneratorRuntime:
    definition: GeneratorDef
    level: int = 0
    unlocked: bool = False
    last_production: BigNumber = ZERO  # per second, refreshed each tick

    @property
    def unlock_condition(self) -> UnlockCondition:
        return self.definition.unlock

    @property
    def producing(self) -> bool:
        return self.unlocked and self.level > 0


@dataclass(frozen=True)
class GeneratorSnapshot:
    """Breakdown of one generator's current rate for display."""
    generator_id: str
    level: int
    unlocked: bool
    base_per_second: float
    exponential_factor: float
    additive_factor: float
    multiplicative_factor: float
    external_multiplier: float
    production_per_second: BigNumber
    next_cost: BigNumber


class ProductionEngine:
    """Generators, their production into the ledger, and generator purchases.

    Per generator and second:

        base_production * level * exponential * (1 + additive) * multiplicative * external

    where the modifiers aggregate over the generator's effective tags and
    ``external`` is supplied by the caller (map and event multipliers).
    """

    def __init__(
        self,
        resources: Iterable[ResourceDef],
        generators: Iterable[GeneratorDef],
        ledger: ResourceLedger,
        modifiers: ModifierAggregator,
        external_multiplier: Callable[[], float],
    ) -> None:
        self.resources: Dict[str, ResourceDef] = {r.id: r for r in resources}
        self.generators: List[GeneratorRuntime] = [GeneratorRuntime(g) for g in generators]
        self._by_id: Dict[str, GeneratorRuntime] = {g.definition.id: g for g in self.generators}
        self.ledger = ledger
        self.modifiers = modifiers
        self._external = external_multiplier

    def initialize(self) -> None:
        """Fresh game: starting balances, zero lifetime, generators at defaults."""
        self.ledger.clear()
        self.reset_resources_to_base()
        self.reset_generators()

    def get(self, generator_id: str) -> Optional[GeneratorRuntime]:
        return self._by_id.get(generator_id)

    # ── Rates ──────────────────────────────────────────────────────

    @staticmethod
    def effective_tags(definition: GeneratorDef) -> List[str]:
        tags = [ALL_GENERATORS_TAG, definition.id, definition.produces_resource_id, *definition.tags]
        seen = set()
        unique = []
        for tag in tags:
            key = tag.casefold()
            if tag and key not in seen:
                seen.add(key)
                unique.append(tag)
        return unique

    def modifiers_for(self, runtime: GeneratorRuntime) -> ModifierTotals:
        return self.modifiers.for_tags(self.effective_tags(runtime.definition))

    def external_multiplier(self) -> float:
        value = self._external()
        return value if value > 0.0 else 1.0

    def production_per_second(self, runtime: GeneratorRuntime, level: Optional[int] = None) -> BigNumber:
        level = runtime.level if level is None else level
        if level <= 0:
            return ZERO
        totals = self.modifiers_for(runtime)
        rate = BigNumber.from_float(runtime.definition.base_production * level)
        rate = rate * totals.exponential_factor
        rate = rate * totals.additive_factor
        rate = rate * totals.multiplicative_factor
        return rate * self.external_multiplier()

    def production_for_resource(self, resource_id: str) -> BigNumber:
        total = ZERO
        for runtime in self.generators:
            if runtime.producing and runtime.definition.produces_resource_id == resource_id:
                total = total + self.production_per_second(runtime)
        return total

    # ── Stepping ───────────────────────────────────────────────────

    def credit(self, resource_id: str, amount: BigNumber) -> BigNumber:
        """Credit produced ``amount`` through the resource's soft caps."""
        resource = self.resources.get(resource_id)
        if resource is None:
            return ZERO
        return self.ledger.credit(resource_id, amount, resource.soft_caps)

    def _produce(self, seconds: float, record_rate: bool) -> Dict[str, BigNumber]:
        gains: Dict[str, BigNumber] = {}
        for runtime in self.generators:
            if not runtime.producing:
                if record_rate:
                    runtime.last_production = ZERO
                continue
            rate = self.production_per_second(runtime)
            if record_rate:
                runtime.last_production = rate
            resource_id = runtime.definition.produces_resource_id
            credited = self.credit(resource_id, rate * seconds)
            if not credited.is_zero:
                gains[resource_id] = gains.get(resource_id, ZERO) + credited
        return gains

    def tick(self, dt: float) -> Dict[str, BigNumber]:
        if dt <= 0.0:
            return {}
        return self._produce(dt, record_rate=True)

    def apply_lump(self, seconds: float) -> Dict[str, BigNumber]:
        """One production step of ``seconds`` at current rates (offline catch-up)."""
        if seconds <= 0.0:
            return {}
        return self._produce(seconds, record_rate=False)

    # ── Purchases ──────────────────────────────────────────────────

    def cost(self, generator_id: str, quantity: int = 1) -> BigNumber:
        runtime = self._by_id.get(generator_id)
        if runtime is None:
            return ZERO
        d = runtime.definition
        return total_cost(d.base_cost, d.cost_multiplier, runtime.level, quantity)

    def max_affordable(self, generator_id: str) -> int:
        runtime = self._by_id.get(generator_id)
        if runtime is None:
            return 0
        d = runtime.definition
        return max_affordable(
            d.base_cost, d.cost_multiplier, runtime.level, self.ledger.get(d.cost_resource_id)
        )

    def buy(self, generator_id: str, mode: PurchaseMode) -> Optional[GeneratorPurchased]:
        runtime = self._by_id.get(generator_id)
        if runtime is None or not runtime.unlocked:
            return None
        d = runtime.definition
        quantity = resolve_quantity(
            mode, d.base_cost, d.cost_multiplier, runtime.level, self.ledger.get(d.cost_resource_id)
        )
        if quantity <= 0:
            return None
        cost = total_cost(d.base_cost, d.cost_multiplier, runtime.level, quantity)
        if not self.ledger.spend(d.cost_resource_id, cost):
            return None
        runtime.level += quantity
        runtime.last_production = self.production_per_second(runtime)
        logger.debug("Bought %d %s for %s (level %d)", quantity, d.id, cost, runtime.level)
        return GeneratorPurchased(d.id, quantity, cost, runtime.level)

    def projection(self, generator_id: str, quantity: int) -> Optional[Tuple[BigNumber, BigNumber]]:
        """(current, projected) per-second rate if ``quantity`` more levels were owned."""
        runtime = self._by_id.get(generator_id)
        if runtime is None or quantity <= 0:
            return None
        current = self.production_per_second(runtime)
        return current, self.production_per_second(runtime, runtime.level + quantity)

    def snapshot(self, generator_id: str) -> Optional[GeneratorSnapshot]:
        runtime = self._by_id.get(generator_id)
        if runtime is None:
            return None
        d = runtime.definition
        totals = self.modifiers_for(runtime)
        return GeneratorSnapshot(
            generator_id=d.id,
            level=runtime.level,
            unlocked=runtime.unlocked,
            base_per_second=d.base_production * runtime.level if runtime.level > 0 else 0.0,
            exponential_factor=totals.exponential_factor,
            additive_factor=totals.additive_factor,
            multiplicative_factor=totals.multiplicative_factor,
            external_multiplier=self.external_multiplier(),
            production_per_second=self.production_per_second(runtime),
            next_cost=start_cost(d.base_cost, d.cost_multiplier, runtime.level),
        )

    # ── Resets ─────────────────────────────────────────────────────

    def reset_resources_to_base(self) -> None:
        self.ledger.reset_balances(
            {r.id: BigNumber.from_float(r.starting_amount) for r in self.resources.values()}
        )

    def reset_generators(self) -> None:
        for runtime in self.generators:
            runtime.level = 0
            runtime.unlocked = runtime.definition.unlock.unlocked_by_default
            runtime.last_production = ZERO

    # ── State ──────────────────────────────────────────────────────

    def capture_state(self) -> Record:
        return make_record(
            STATE_KIND,
            STATE_VERSION,
            balances={rid: encode_number(v) for rid, v in self.ledger.items()},
            lifetime={rid: encode_number(v) for rid, v in self.ledger.lifetime_items()},
            generators={
                g.definition.id: {"level": g.level, "unlocked": g.unlocked}
                for g in self.generators
            },
        )

    def restore_state(self, record: Record) -> None:
        self.initialize()
        data = prepare_record(record, STATE_KIND, STATE_VERSION)
        if data is None:
            return
        for resource_id, raw in read_mapping(data, "balances").items():
            if resource_id in self.resources:
                self.ledger.set(resource_id, decode_number(raw))
            else:
                logger.warning("Skipping saved balance for unknown resource %r", resource_id)
        for resource_id, raw in read_mapping(data, "lifetime").items():
            if resource_id in self.resources:
                self.ledger.set_lifetime(resource_id, decode_number(raw))
        for generator_id, entry in read_mapping(data, "generators").items():
            runtime = self._by_id.get(generator_id)
            if runtime is None:
                logger.warning("Skipping saved generator %r: not configured", generator_id)
                continue
            if not isinstance(entry, dict):
                continue
            runtime.level = max(0, read_int(entry, "level", 0))
            runtime.unlocked = read_bool(entry, "unlocked", runtime.unlocked)
            runtime.last_production = self.production_per_second(runtime)
