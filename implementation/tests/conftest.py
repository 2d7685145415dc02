from __future__ import annotations

import copy
import random

import pytest

from economy.catalog import config_from_dict
from economy.engine import Engine

GAME_DATA = {
    "balance": {
        "offline_efficiency": 0.9,
        "max_offline_hours": 12,
        "prestige_reward_coefficient": 1,
        "prestige_reward_divisor": 1000,
        "prestige_reward_exponent": 0.5,
        "prestige_requirement": 1000,
        "event_rate_per_second": 0.0,
        "autosave_interval_seconds": 30,
    },
    "resources": [
        {"id": "credits", "starting_amount": 100},
        {
            "id": "alloys",
            "starting_amount": 0,
            "soft_caps": [{"amount": 1000, "exponent": 0.5}],
        },
    ],
    "generators": [
        {
            "id": "miner",
            "produces_resource_id": "credits",
            "cost_resource_id": "credits",
            "tags": ["mining"],
            "base_cost": 10,
            "cost_multiplier": 1.15,
            "base_production": 1,
            "unlock": {"unlocked_by_default": True},
        },
        {
            "id": "refinery",
            "produces_resource_id": "alloys",
            "cost_resource_id": "credits",
            "base_cost": 100,
            "cost_multiplier": 1.2,
            "base_production": 2,
            "unlock": {"required_resource_id": "credits", "required_resource_amount": 500},
        },
        {
            "id": "beacon",
            "produces_resource_id": "credits",
            "cost_resource_id": "credits",
            "base_cost": 50,
            "cost_multiplier": 1.1,
            "base_production": 5,
            "unlock": {"required_map_node_id": "outpost"},
        },
    ],
    "upgrades": [
        {
            "id": "drills",
            "cost_resource_id": "credits",
            "base_cost": 50,
            "cost_multiplier": 2,
            "tags": ["mining"],
            "effect_type": "multiplicative",
            "effect_value": 1.0,
            "max_level": 3,
            "unlock": {"unlocked_by_default": True},
        },
        {
            "id": "overclock",
            "cost_resource_id": "credits",
            "base_cost": 100,
            "cost_multiplier": 1.5,
            "tags": ["all_generators"],
            "effect_type": "additive",
            "effect_value": 0.5,
            "unlock": {"required_resource_id": "credits", "required_resource_amount": 200},
        },
        {
            "id": "warp_boost",
            "cost_resource_id": "warp_cores",
            "base_cost": 1,
            "cost_multiplier": 2,
            "tags": ["all_generators"],
            "effect_type": "exponential",
            "effect_value": 2.0,
            "unlock": {"unlocked_by_default": True},
        },
    ],
    "prestiges": [
        {
            "id": "warp",
            "tier": "warp",
            "requirement_metric_id": "credits",
            "required_metric_value": 1000,
            "reward_currency_id": "warp_cores",
            "reward_coefficient": 1,
            "reward_divisor": 1000,
            "reward_exponent": 0.5,
        }
    ],
    "events": [
        {"id": "flare", "duration_seconds": 10, "production_multiplier": 3},
    ],
    "map_nodes": [
        {"id": "home"},
        {
            "id": "outpost",
            "required_resources": {"credits": 1000},
            "required_nodes": ["home"],
            "production_multiplier": 2,
        },
    ],
}


class FakeClock:
    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def game_data():
    return copy.deepcopy(GAME_DATA)


@pytest.fixture
def config(game_data):
    return config_from_dict(game_data)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_engine(config, clock):
    def factory(cfg=None, seed=1234, **kwargs):
        return Engine(cfg or config, now=clock, rng=random.Random(seed), **kwargs)
    return factory


@pytest.fixture
def engine(make_engine):
    eng = make_engine()
    eng.init()
    return eng
