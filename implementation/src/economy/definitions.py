from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Dict, Tuple

from economy.bignum import NumberFormat

# Implicit tag every generator answers to.
ALL_GENERATORS_TAG = "all_generators"


class EffectType(Enum):
    ADDITIVE = "additive"
    MULTIPLICATIVE = "multiplicative"
    EXPONENTIAL = "exponential"


class PrestigeTier(IntEnum):
    WARP = 1
    ASCENSION = 2
    SINGULARITY = 3


@dataclass(frozen=True)
class SoftCapThreshold:
    amount: float
    exponent: float = 1.0


@dataclass(frozen=True)
class UnlockCondition:
    unlocked_by_default: bool = False
    required_resource_id: str = ""
    required_resource_amount: float = 0.0
    required_map_node_id: str = ""

    @property
    def has_resource_gate(self) -> bool:
        return bool(self.required_resource_id) and self.required_resource_amount > 0.0

    @property
    def has_map_gate(self) -> bool:
        return bool(self.required_map_node_id)


@dataclass(frozen=True)
class ResourceDef:
    id: str
    display_name: str = ""
    starting_amount: float = 0.0
    soft_caps: Tuple[SoftCapThreshold, ...] = ()
    display_format: NumberFormat = NumberFormat.SCIENTIFIC


@dataclass(frozen=True)
class GeneratorDef:
    id: str
    produces_resource_id: str
    cost_resource_id: str
    display_name: str = ""
    tags: Tuple[str, ...] = ()
    base_cost: float = 10.0
    cost_multiplier: float = 1.15
    base_production: float = 1.0
    unlock: UnlockCondition = field(default_factory=UnlockCondition)


@dataclass(frozen=True)
class UpgradeDef:
    id: str
    cost_resource_id: str
    display_name: str = ""
    description: str = ""
    base_cost: float = 10.0
    cost_multiplier: float = 1.15
    tags: Tuple[str, ...] = ()
    effect_type: EffectType = EffectType.MULTIPLICATIVE
    effect_value: float = 0.1  # per level; additive uses fractions (0.05 = +5%)
    max_level: int = -1  # -1 = unbounded
    unlock: UnlockCondition = field(default_factory=UnlockCondition)

    def targets_tag(self, tag: str) -> bool:
        if not tag:
            return False
        wanted = tag.casefold()
        return any(t.casefold() == wanted for t in self.tags)


@dataclass(frozen=True)
class PrestigeDef:
    """Reward: floor(A * max(1, metric / B) ** E); non-positive A/B/E use balance defaults."""
    id: str
    requirement_metric_id: str
    reward_currency_id: str
    tier: PrestigeTier = PrestigeTier.WARP
    display_name: str = ""
    required_metric_value: float = 1e6
    reward_coefficient: float = 1.0
    reward_divisor: float = 1e6
    reward_exponent: float = 0.5


@dataclass(frozen=True)
class EventDef:
    id: str
    display_name: str = ""
    duration_seconds: float = 60.0
    production_multiplier: float = 2.0


@dataclass(frozen=True)
class MapNodeDef:
    id: str
    display_name: str = ""
    required_resources: Tuple[Tuple[str, float], ...] = ()
    required_nodes: Tuple[str, ...] = ()
    production_multiplier: float = 1.0


@dataclass(frozen=True)
class GameBalance:
    offline_efficiency: float = 0.9
    max_offline_hours: float = 12.0
    prestige_reward_coefficient: float = 1.0
    prestige_reward_divisor: float = 1e6
    prestige_reward_exponent: float = 0.5
    prestige_requirement: float = 1e7
    # Expected event starts per second while no event is active.
    event_rate_per_second: float = 1.0 / 600.0
    autosave_interval_seconds: float = 30.0


@dataclass(frozen=True)
class GameConfig:
    resources: Tuple[ResourceDef, ...] = ()
    generators: Tuple[GeneratorDef, ...] = ()
    upgrades: Tuple[UpgradeDef, ...] = ()
    prestiges: Tuple[PrestigeDef, ...] = ()
    events: Tuple[EventDef, ...] = ()
    map_nodes: Tuple[MapNodeDef, ...] = ()
    balance: GameBalance = field(default_factory=GameBalance)

    def resource_index(self) -> Dict[str, ResourceDef]:
        return {r.id: r for r in self.resources}
