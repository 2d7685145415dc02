"""Prestige: eligibility tracking, the reward formula and the reset protocol.

Reward for a lifetime metric M:

    floor(A * max(1, M / B) ** E)

with A, B and E taken from the prestige definition, falling back to the
balance defaults where the definition leaves them non-positive.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional

from economy.bignum import ONE, ZERO, BigNumber
from economy.definitions import GameBalance, PrestigeDef, PrestigeTier, UpgradeDef
from economy.mapnodes import MapService
from economy.meta import MetaWallet
from economy.notifications import Notification, PrestigeEligibilityChanged, PrestigePerformed
from economy.production import ProductionEngine
from economy.snapshot import Record, make_record, prepare_record, read_int, read_mapping, read_str
from economy.upgrades import UpgradeManager

logger = logging.getLogger(__name__)

STATE_KIND = "prestige"
STATE_VERSION = 1

PreservePredicate = Callable[[UpgradeDef, PrestigeDef], bool]


def preserve_reward_currency_upgrades(upgrade: UpgradeDef, prestige: PrestigeDef) -> bool:
    """Keep upgrades bought with the currency this prestige pays out."""
    return upgrade.cost_resource_id.casefold() == prestige.reward_currency_id.casefold()


@dataclass(frozen=True)
class PrestigeStatus:
    prestige_id: str
    tier: PrestigeTier
    eligible: bool
    metric: BigNumber
    requirement: float
    projected_reward: BigNumber
    count: int
    last_prestige_at: Optional[datetime]


class PrestigeEngine:
    def __init__(
        self,
        prestiges: Iterable[PrestigeDef],
        balance: GameBalance,
        production: ProductionEngine,
        upgrades: UpgradeManager,
        map_service: MapService,
        wallet: MetaWallet,
        preserve_upgrade: Optional[PreservePredicate] = None,
        now: Optional[Callable[[], float]] = None,
    ) -> None:
        self._defs: Dict[str, PrestigeDef] = {p.id: p for p in prestiges}
        self.balance = balance
        self.production = production
        self.upgrades = upgrades
        self.map_service = map_service
        self.wallet = wallet
        self.preserve_upgrade = preserve_upgrade or preserve_reward_currency_upgrades
        self._now = now or time.time
        self._eligible: Dict[str, bool] = {pid: False for pid in self._defs}
        self._counts: Dict[str, int] = {pid: 0 for pid in self._defs}
        self._last_at: Dict[str, datetime] = {}

    def definitions(self) -> List[PrestigeDef]:
        return list(self._defs.values())

    def by_tier(self, tier: PrestigeTier) -> Optional[PrestigeDef]:
        for definition in self._defs.values():
            if definition.tier == tier:
                return definition
        return None

    # ── Queries ────────────────────────────────────────────────────

    def metric(self, definition: PrestigeDef) -> BigNumber:
        if not definition.requirement_metric_id:
            return ZERO
        return self.production.ledger.lifetime(definition.requirement_metric_id)

    def requirement(self, definition: PrestigeDef) -> float:
        return max(definition.required_metric_value, self.balance.prestige_requirement)

    def meets_requirement(self, definition: PrestigeDef) -> bool:
        return self.metric(definition) >= BigNumber.from_float(self.requirement(definition))

    def reward_for(self, definition: PrestigeDef, metric: BigNumber) -> BigNumber:
        b = self.balance
        coefficient = definition.reward_coefficient if definition.reward_coefficient > 0.0 else b.prestige_reward_coefficient
        divisor = definition.reward_divisor if definition.reward_divisor > 0.0 else b.prestige_reward_divisor
        exponent = definition.reward_exponent if definition.reward_exponent > 0.0 else b.prestige_reward_exponent
        normalized = metric / divisor
        if normalized < ONE:
            normalized = ONE
        reward = normalized.pow(exponent) * coefficient
        return reward.clamp_min(ZERO).floor()

    def projected_reward(self, prestige_id: str) -> BigNumber:
        definition = self._defs.get(prestige_id)
        if definition is None:
            return ZERO
        return self.reward_for(definition, self.metric(definition))

    def is_eligible(self, prestige_id: str) -> bool:
        return self._eligible.get(prestige_id, False)

    def count(self, prestige_id: str) -> int:
        return self._counts.get(prestige_id, 0)

    def last_prestige_at(self, prestige_id: str) -> Optional[datetime]:
        return self._last_at.get(prestige_id)

    def status(self, prestige_id: str) -> Optional[PrestigeStatus]:
        definition = self._defs.get(prestige_id)
        if definition is None:
            return None
        metric = self.metric(definition)
        return PrestigeStatus(
            prestige_id=definition.id,
            tier=definition.tier,
            eligible=self.is_eligible(prestige_id),
            metric=metric,
            requirement=self.requirement(definition),
            projected_reward=self.reward_for(definition, metric),
            count=self.count(prestige_id),
            last_prestige_at=self.last_prestige_at(prestige_id),
        )

    # ── Eligibility ────────────────────────────────────────────────

    def update_eligibility(self, force: bool = False) -> List[Notification]:
        """Re-evaluate every prestige; notify on transitions, or always when forced."""
        notes: List[Notification] = []
        for definition in self._defs.values():
            previous = self._eligible.get(definition.id, False)
            eligible = self.meets_requirement(definition)
            self._eligible[definition.id] = eligible
            if force or eligible != previous:
                notes.append(PrestigeEligibilityChanged(definition.id, eligible, previous))
        return notes

    # ── Execution ──────────────────────────────────────────────────

    def execute(self, prestige_id: str) -> Optional[List[Notification]]:
        """Prestige if eligible with a positive reward; None when refused."""
        definition = self._defs.get(prestige_id)
        if definition is None or not self.meets_requirement(definition):
            return None
        reward = self.reward_for(definition, self.metric(definition))
        if reward <= ZERO:
            return None

        self.production.reset_resources_to_base()
        self.production.reset_generators()
        reset = self.upgrades.reset_for_prestige(
            lambda upgrade: self.preserve_upgrade(upgrade, definition)
        )
        self.map_service.initialize()
        self.wallet.add(definition.reward_currency_id, reward)

        self._counts[definition.id] = self.count(definition.id) + 1
        self._last_at[definition.id] = datetime.fromtimestamp(self._now(), tz=timezone.utc)
        logger.info(
            "Prestige %s #%d: +%s %s (%d upgrade(s) reset)",
            definition.id,
            self._counts[definition.id],
            reward,
            definition.reward_currency_id,
            len(reset),
        )
        notes: List[Notification] = [
            PrestigePerformed(definition.id, definition.reward_currency_id, reward, self._counts[definition.id])
        ]
        notes.extend(self.update_eligibility(force=True))
        return notes

    # ── State ──────────────────────────────────────────────────────

    def capture_state(self) -> Record:
        return make_record(
            STATE_KIND,
            STATE_VERSION,
            prestiges={
                pid: {
                    "count": self.count(pid),
                    "last_prestige_utc": self._last_at[pid].isoformat() if pid in self._last_at else "",
                }
                for pid in self._defs
            },
        )

    def clear(self) -> None:
        self._counts = {pid: 0 for pid in self._defs}
        self._last_at = {}
        self._eligible = {pid: False for pid in self._defs}

    def restore_state(self, record: Record) -> None:
        self.clear()
        data = prepare_record(record, STATE_KIND, STATE_VERSION)
        if data is None:
            return
        for prestige_id, entry in read_mapping(data, "prestiges").items():
            if prestige_id not in self._defs or not isinstance(entry, dict):
                continue
            self._counts[prestige_id] = max(0, read_int(entry, "count", 0))
            raw = read_str(entry, "last_prestige_utc")
            if not raw:
                continue
            try:
                stamp = datetime.fromisoformat(raw)
            except ValueError:
                logger.warning("Malformed prestige timestamp %r for %s; ignoring", raw, prestige_id)
                continue
            if stamp.tzinfo is None:
                stamp = stamp.replace(tzinfo=timezone.utc)
            self._last_at[prestige_id] = stamp
