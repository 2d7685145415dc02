"""Domain events emitted by engine ticks and commands.

The engine returns these as plain lists; dispatching them (UI refresh, sound,
achievements) is the host's business.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

from economy.bignum import BigNumber


@dataclass(frozen=True)
class Notification:
    pass


@dataclass(frozen=True)
class GeneratorUnlocked(Notification):
    generator_id: str


@dataclass(frozen=True)
class UpgradeUnlocked(Notification):
    upgrade_id: str


@dataclass(frozen=True)
class GeneratorPurchased(Notification):
    generator_id: str
    quantity: int
    cost: BigNumber
    new_level: int


@dataclass(frozen=True)
class UpgradePurchased(Notification):
    upgrade_id: str
    quantity: int
    cost: BigNumber
    new_level: int


@dataclass(frozen=True)
class MapNodeUnlocked(Notification):
    node_id: str
    global_multiplier: float


@dataclass(frozen=True)
class EventStarted(Notification):
    event_id: str
    duration_seconds: float
    multiplier: float


@dataclass(frozen=True)
class EventEnded(Notification):
    event_id: str


@dataclass(frozen=True)
class PrestigeEligibilityChanged(Notification):
    prestige_id: str
    eligible: bool
    previous: bool


@dataclass(frozen=True)
class PrestigePerformed(Notification):
    prestige_id: str
    reward_currency_id: str
    reward: BigNumber
    count: int


@dataclass(frozen=True)
class OfflineProgressApplied(Notification):
    elapsed_seconds: float
    effective_seconds: float
    gains: dict = field(default_factory=dict)


@dataclass
class CommandResult:
    """Outcome of a command. Truthy iff it succeeded."""
    ok: bool
    notifications: List[Notification] = field(default_factory=list)

    def __bool__(self) -> bool:
        return self.ok
