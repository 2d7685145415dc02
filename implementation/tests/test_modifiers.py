from dataclasses import dataclass

import pytest

from economy.definitions import EffectType, UpgradeDef
from economy.modifiers import NEUTRAL, ModifierAggregator, ModifierTotals


@dataclass
class Leveled:
    definition: UpgradeDef
    level: int


def upgrade(uid, effect, value, tags, level):
    return Leveled(UpgradeDef(uid, "credits", tags=tuple(tags), effect_type=effect, effect_value=value), level)


def test_empty_aggregate_is_neutral():
    totals = ModifierAggregator([]).for_tag("mining")
    assert totals == NEUTRAL
    assert totals.combined == 1.0


def test_each_effect_type_stacks_by_level():
    aggregator = ModifierAggregator([
        upgrade("a", EffectType.ADDITIVE, 0.25, ["mining"], 2),
        upgrade("b", EffectType.ADDITIVE, 0.1, ["mining"], 1),
        upgrade("c", EffectType.MULTIPLICATIVE, 0.5, ["mining"], 2),
        upgrade("d", EffectType.EXPONENTIAL, 2.0, ["mining"], 3),
    ])
    totals = aggregator.for_tag("mining")
    assert totals.additive == pytest.approx(0.6)
    assert totals.multiplicative == pytest.approx(2.25)
    assert totals.exponential == pytest.approx(8.0)
    assert totals.combined == pytest.approx(8.0 * 1.6 * 2.25)
    assert aggregator.modifier("mining", EffectType.ADDITIVE) == pytest.approx(0.6)


def test_level_zero_and_other_tags_ignored():
    aggregator = ModifierAggregator([
        upgrade("a", EffectType.MULTIPLICATIVE, 1.0, ["mining"], 0),
        upgrade("b", EffectType.MULTIPLICATIVE, 1.0, ["solar"], 4),
    ])
    assert aggregator.for_tag("mining") == NEUTRAL


def test_tag_match_is_case_insensitive():
    aggregator = ModifierAggregator([upgrade("a", EffectType.MULTIPLICATIVE, 1.0, ["Mining"], 1)])
    assert aggregator.for_tag("MINING").multiplicative == pytest.approx(2.0)


def test_factors_are_floored_at_zero():
    totals = ModifierTotals(additive=-3.0, multiplicative=-1.0, exponential=-2.0)
    assert totals.additive_factor == 0.0
    assert totals.multiplicative_factor == 0.0
    assert totals.exponential_factor == 0.0


def test_negative_exponential_value_contributes_zero():
    aggregator = ModifierAggregator([upgrade("a", EffectType.EXPONENTIAL, -1.5, ["x"], 1)])
    assert aggregator.for_tag("x").exponential == 0.0


def test_for_tags_applies_upgrade_once_per_matching_tag():
    aggregator = ModifierAggregator([
        upgrade("a", EffectType.MULTIPLICATIVE, 1.0, ["mining", "all_generators"], 1),
        upgrade("b", EffectType.ADDITIVE, 0.5, ["miner", "mining"], 1),
        upgrade("c", EffectType.EXPONENTIAL, 3.0, ["miner"], 1),
    ])
    totals = aggregator.for_tags(["all_generators", "miner", "mining"])
    assert totals.multiplicative == pytest.approx(4.0)
    assert totals.additive == pytest.approx(1.0)
    assert totals.exponential == pytest.approx(3.0)


def test_for_tags_without_tags_is_neutral():
    aggregator = ModifierAggregator([upgrade("a", EffectType.ADDITIVE, 1.0, ["x"], 1)])
    assert aggregator.for_tags([]) == NEUTRAL
    assert aggregator.for_tags(["", "y"]) == NEUTRAL


def test_levels_are_read_live():
    entry = upgrade("a", EffectType.ADDITIVE, 0.5, ["x"], 0)
    aggregator = ModifierAggregator([entry])
    assert aggregator.for_tag("x").additive == 0.0
    entry.level = 2
    assert aggregator.for_tag("x").additive == pytest.approx(1.0)
