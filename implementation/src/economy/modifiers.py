"""Upgrade modifier aggregation per tag.

For a tag, every upgrade with level > 0 that targets it contributes:
  additive       += level * value
  multiplicative *= (1 + value) ** level
  exponential    *= max(0, value) ** level
Production combines them as exponential * (1 + additive) * multiplicative,
each factor floored at 0.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Protocol, Sequence

from economy.definitions import EffectType, UpgradeDef


class LeveledUpgrade(Protocol):
    definition: UpgradeDef
    level: int


@dataclass(frozen=True)
class ModifierTotals:
    additive: float = 0.0
    multiplicative: float = 1.0
    exponential: float = 1.0

    @property
    def additive_factor(self) -> float:
        return max(0.0, 1.0 + self.additive)

    @property
    def multiplicative_factor(self) -> float:
        return max(0.0, self.multiplicative)

    @property
    def exponential_factor(self) -> float:
        return max(0.0, self.exponential)

    @property
    def combined(self) -> float:
        return self.exponential_factor * self.additive_factor * self.multiplicative_factor

    def value(self, effect_type: EffectType) -> float:
        if effect_type is EffectType.ADDITIVE:
            return self.additive
        if effect_type is EffectType.MULTIPLICATIVE:
            return self.multiplicative
        return self.exponential


NEUTRAL = ModifierTotals()


def _accumulate(upgrades: Iterable[LeveledUpgrade]) -> ModifierTotals:
    additive = 0.0
    multiplicative = 1.0
    exponential = 1.0
    for upgrade in upgrades:
        level = upgrade.level
        value = upgrade.definition.effect_value
        effect = upgrade.definition.effect_type
        if effect is EffectType.ADDITIVE:
            additive += level * value
        elif effect is EffectType.MULTIPLICATIVE:
            multiplicative *= (1.0 + value) ** level
        else:
            exponential *= max(0.0, value) ** level
    return ModifierTotals(additive, multiplicative, exponential)


class ModifierAggregator:
    """Reads upgrade levels live from the supplied runtimes; holds no cache."""

    def __init__(self, upgrades: Sequence[LeveledUpgrade]) -> None:
        self._upgrades = upgrades

    def _active(self) -> Iterable[LeveledUpgrade]:
        return (u for u in self._upgrades if u.level > 0)

    def for_tag(self, tag: str) -> ModifierTotals:
        return _accumulate(u for u in self._active() if u.definition.targets_tag(tag))

    def modifier(self, tag: str, effect_type: EffectType) -> float:
        """Raw aggregate for one tag and effect type (unfloored)."""
        return self.for_tag(tag).value(effect_type)

    def for_tags(self, tags: Iterable[str]) -> ModifierTotals:
        """Combine ``for_tag`` over every tag: additive values sum, the others multiply.

        An upgrade matching several of the tags contributes once per matching tag.
        """
        additive = 0.0
        multiplicative = 1.0
        exponential = 1.0
        for tag in tags:
            if not tag:
                continue
            totals = self.for_tag(tag)
            additive += totals.additive
            multiplicative *= totals.multiplicative
            exponential *= totals.exponential
        return ModifierTotals(additive, multiplicative, exponential)
