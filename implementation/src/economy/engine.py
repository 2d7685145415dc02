"""Composition root: wires the economy modules and exposes commands and queries.

Lifecycle is explicit::

    engine = Engine(load_config())
    notes = engine.init(snapshot)      # fresh game when snapshot is None
    notes = engine.tick(dt)            # once per host frame
    snapshot = engine.shutdown()

Each tick runs in a fixed order: unlock gates, production, event timer,
prestige eligibility. Commands run between ticks and return a CommandResult.
Nothing here touches files or the network.
"""
from __future__ import annotations

import logging
import random
import time
from typing import Callable, List, Optional, Tuple

from economy.bignum import BigNumber
from economy.clock import OfflineClock
from economy.costs import PurchaseMode
from economy.definitions import EventDef, GameConfig
from economy.events import EventScheduler
from economy.ledger import ResourceLedger
from economy.mapnodes import MapService
from economy.meta import MetaWallet
from economy.modifiers import ModifierAggregator
from economy.notifications import (
    CommandResult,
    GeneratorUnlocked,
    MapNodeUnlocked,
    Notification,
    OfflineProgressApplied,
    UpgradeUnlocked,
)
from economy.prestige import PreservePredicate, PrestigeEngine, PrestigeStatus
from economy.production import GeneratorSnapshot, ProductionEngine
from economy.snapshot import Record, make_record, prepare_record
from economy.unlocks import UnlockGate
from economy.upgrades import UpgradeManager

logger = logging.getLogger(__name__)

STATE_KIND = "engine"
STATE_VERSION = 1


class Engine:
    def __init__(
        self,
        config: GameConfig,
        now: Optional[Callable[[], float]] = None,
        rng: Optional[random.Random] = None,
        preserve_upgrade: Optional[PreservePredicate] = None,
    ) -> None:
        self.config = config
        balance = config.balance
        self._now = now or time.time
        self._resource_ids = {r.id for r in config.resources}

        self.ledger = ResourceLedger()
        self.wallet = MetaWallet()
        self.map = MapService(config.map_nodes)
        self.events = EventScheduler(config.events, balance.event_rate_per_second, rng)
        self.upgrades = UpgradeManager(config.upgrades)
        self.modifiers = ModifierAggregator(self.upgrades.upgrades)
        self.production = ProductionEngine(
            config.resources,
            config.generators,
            self.ledger,
            self.modifiers,
            self.external_multiplier,
        )
        self.prestige_engine = PrestigeEngine(
            config.prestiges,
            balance,
            self.production,
            self.upgrades,
            self.map,
            self.wallet,
            preserve_upgrade=preserve_upgrade,
            now=self._now,
        )
        self.clock = OfflineClock(balance.max_offline_hours, balance.offline_efficiency, self._now)
        self.gate = UnlockGate(self.currency_balance, self.map.is_unlocked)
        self.initialized = False

    # ── Lifecycle ──────────────────────────────────────────────────

    def init(self, snapshot: Optional[Record] = None) -> List[Notification]:
        """Start a fresh game or resume ``snapshot``; resuming applies offline progress once."""
        if snapshot is None:
            self._fresh_state()
        else:
            self.restore_state(snapshot)
        self.initialized = True

        notes = self._refresh_unlocks()
        if snapshot is not None:
            elapsed = self.clock.consume_offline()
            if elapsed > 0.0:
                notes.extend(self.apply_offline(elapsed).notifications)
        notes.extend(self.prestige_engine.update_eligibility())
        self.clock.mark()
        logger.info("Engine initialized (%s)", "resumed" if snapshot is not None else "new game")
        return notes

    def tick(self, dt: float) -> List[Notification]:
        if not self.initialized:
            logger.warning("tick() called before init(); ignoring")
            return []
        if dt <= 0.0:
            return []
        notes = self._refresh_unlocks()
        gains = self.production.tick(dt)
        notes.extend(self.events.tick(dt))
        notes.extend(self.prestige_engine.update_eligibility())
        self.clock.mark()
        if gains:
            logger.debug("tick %.3fs: %s", dt, {rid: str(v) for rid, v in gains.items()})
        return notes

    def shutdown(self) -> Record:
        snapshot = self.capture_state()
        self.initialized = False
        logger.info("Engine shut down")
        return snapshot

    def _fresh_state(self) -> None:
        self.production.initialize()
        self.upgrades.initialize()
        self.map.initialize()
        self.events.clear()
        self.wallet.clear()
        self.prestige_engine.clear()
        self.clock.mark()

    def _refresh_unlocks(self) -> List[Notification]:
        notes: List[Notification] = []
        for runtime in self.gate.refresh(self.production.generators):
            notes.append(GeneratorUnlocked(runtime.definition.id))
        for runtime in self.gate.refresh(self.upgrades.upgrades):
            notes.append(UpgradeUnlocked(runtime.definition.id))
        return notes

    # ── Currency routing ───────────────────────────────────────────

    def currency_balance(self, currency_id: str) -> BigNumber:
        """Ledger balance for configured resources, meta wallet otherwise."""
        if currency_id in self._resource_ids:
            return self.ledger.get(currency_id)
        return self.wallet.get(currency_id)

    def _spend_currency(self, currency_id: str, cost: BigNumber) -> bool:
        if currency_id in self._resource_ids:
            return self.ledger.spend(currency_id, cost)
        return self.wallet.spend(currency_id, cost)

    def external_multiplier(self) -> float:
        return self.map.global_multiplier * self.events.multiplier

    # ── Queries ────────────────────────────────────────────────────

    def balance(self, resource_id: str) -> BigNumber:
        return self.ledger.get(resource_id)

    def production_per_second(self, resource_id: str) -> BigNumber:
        return self.production.production_for_resource(resource_id)

    def lifetime_produced(self, resource_id: str) -> BigNumber:
        return self.ledger.lifetime(resource_id)

    def max_affordable_generator(self, generator_id: str) -> int:
        return self.production.max_affordable(generator_id)

    def max_affordable_upgrade(self, upgrade_id: str) -> int:
        return self.upgrades.max_affordable(upgrade_id, self.currency_balance)

    def generator_cost(self, generator_id: str, quantity: int = 1) -> BigNumber:
        return self.production.cost(generator_id, quantity)

    def upgrade_cost(self, upgrade_id: str, quantity: int = 1) -> BigNumber:
        return self.upgrades.get_cost(upgrade_id, quantity)

    def production_projection(self, generator_id: str, quantity: int) -> Optional[Tuple[BigNumber, BigNumber]]:
        return self.production.projection(generator_id, quantity)

    def generator_snapshot(self, generator_id: str) -> Optional[GeneratorSnapshot]:
        return self.production.snapshot(generator_id)

    def generator_level(self, generator_id: str) -> int:
        runtime = self.production.get(generator_id)
        return runtime.level if runtime else 0

    def upgrade_level(self, upgrade_id: str) -> int:
        return self.upgrades.level(upgrade_id)

    def is_generator_unlocked(self, generator_id: str) -> bool:
        runtime = self.production.get(generator_id)
        return runtime is not None and runtime.unlocked

    def is_upgrade_unlocked(self, upgrade_id: str) -> bool:
        return self.upgrades.is_unlocked(upgrade_id)

    def prestige_status(self, prestige_id: str) -> Optional[PrestigeStatus]:
        return self.prestige_engine.status(prestige_id)

    def projected_prestige_reward(self, prestige_id: str) -> BigNumber:
        return self.prestige_engine.projected_reward(prestige_id)

    def active_event(self) -> Optional[EventDef]:
        return self.events.active

    def event_multiplier(self) -> float:
        return self.events.multiplier

    def is_map_node_unlocked(self, node_id: str) -> bool:
        return self.map.is_unlocked(node_id)

    def map_multiplier(self) -> float:
        return self.map.global_multiplier

    def meta_balance(self, currency_id: str) -> BigNumber:
        return self.wallet.get(currency_id)

    # ── Commands ───────────────────────────────────────────────────

    def buy_generator(self, generator_id: str, mode: PurchaseMode = PurchaseMode.X1) -> CommandResult:
        purchased = self.production.buy(generator_id, mode)
        if purchased is None:
            return CommandResult(False)
        return CommandResult(True, [purchased])

    def buy_upgrade(self, upgrade_id: str, mode: PurchaseMode = PurchaseMode.X1) -> CommandResult:
        purchased = self.upgrades.purchase(upgrade_id, mode, self.currency_balance, self._spend_currency)
        if purchased is None:
            return CommandResult(False)
        return CommandResult(True, [purchased])

    def prestige(self, prestige_id: str) -> CommandResult:
        notes = self.prestige_engine.execute(prestige_id)
        if notes is None:
            return CommandResult(False)
        return CommandResult(True, notes)

    def unlock_map_node(self, node_id: str) -> CommandResult:
        """Unlock a node whose resource thresholds and prerequisites are met. Nothing is spent."""
        if not self.map.can_unlock(node_id, self.currency_balance):
            return CommandResult(False)
        self.map.unlock(node_id)
        logger.info("Map node %s unlocked (global x%g)", node_id, self.map.global_multiplier)
        notes: List[Notification] = [MapNodeUnlocked(node_id, self.map.global_multiplier)]
        notes.extend(self._refresh_unlocks())
        return CommandResult(True, notes)

    def start_event(self, event_id: str) -> CommandResult:
        notes = self.events.start(event_id)
        return CommandResult(bool(notes), notes)

    def apply_offline(self, elapsed_seconds: float) -> CommandResult:
        """Grant one lump of production for time spent away, capped and scaled."""
        effective = self.clock.effective_seconds(elapsed_seconds)
        if effective <= 0.0:
            return CommandResult(False)
        gains = self.production.apply_lump(effective)
        logger.info(
            "Offline progress: %.0fs away, %.0fs credited, gains %s",
            elapsed_seconds,
            effective,
            {rid: str(v) for rid, v in gains.items()},
        )
        notes: List[Notification] = [OfflineProgressApplied(elapsed_seconds, effective, gains)]
        notes.extend(self._refresh_unlocks())
        return CommandResult(True, notes)

    # ── State ──────────────────────────────────────────────────────

    def capture_state(self) -> Record:
        return make_record(
            STATE_KIND,
            STATE_VERSION,
            economy=self.production.capture_state(),
            upgrades=self.upgrades.capture_state(),
            meta=self.wallet.capture_state(),
            map=self.map.capture_state(),
            events=self.events.capture_state(),
            prestige=self.prestige_engine.capture_state(),
            clock=self.clock.capture_state(),
        )

    def restore_state(self, record: Record) -> None:
        """Restore every module; sections that are missing or malformed start fresh."""
        data = prepare_record(record, STATE_KIND, STATE_VERSION) or {}
        self.upgrades.restore_state(data.get("upgrades"))
        self.wallet.restore_state(data.get("meta"))
        self.map.restore_state(data.get("map"))
        self.events.restore_state(data.get("events"))
        self.production.restore_state(data.get("economy"))
        self.prestige_engine.restore_state(data.get("prestige"))
        self.clock.restore_state(data.get("clock"))
