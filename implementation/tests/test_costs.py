import pytest

from economy.bignum import BigNumber
from economy.costs import (
    MAX_PURCHASE_QUANTITY,
    PurchaseMode,
    max_affordable,
    resolve_quantity,
    start_cost,
    total_cost,
)


def test_start_cost_grows_geometrically():
    assert start_cost(10, 1.15, 0).to_float() == pytest.approx(10)
    assert start_cost(10, 1.15, 3).to_float() == pytest.approx(10 * 1.15 ** 3)


def test_total_cost_matches_geometric_sum():
    assert total_cost(10, 1.15, 0, 6).to_float() == pytest.approx(87.537, rel=1e-4)
    assert total_cost(10, 1.15, 0, 7).to_float() == pytest.approx(110.668, rel=1e-4)
    assert total_cost(10, 1.15, 0, 0).is_zero


def test_total_cost_is_sum_of_single_levels():
    summed = sum(start_cost(25, 1.07, level).to_float() for level in range(4, 4 + 12))
    assert total_cost(25, 1.07, 4, 12).to_float() == pytest.approx(summed)


def test_flat_curve_is_linear():
    assert total_cost(10, 1.0, 5, 4).to_float() == pytest.approx(40)
    assert max_affordable(10, 1.0, 0, BigNumber.from_float(95)) == 9


def test_shrinking_multiplier_priced_flat():
    assert total_cost(10, 0.5, 3, 2).to_float() == pytest.approx(20)


def test_max_affordable_inverts_total_cost():
    assert max_affordable(10, 1.15, 0, BigNumber.from_float(100)) == 6
    assert max_affordable(10, 1.15, 0, BigNumber.from_float(110.67)) == 7
    assert max_affordable(10, 1.15, 0, BigNumber.from_float(9.99)) == 0


@pytest.mark.parametrize("level, available", [(0, 1e3), (17, 5e6), (120, 1e12), (3, 87.54)])
def test_max_affordable_is_tight(level, available):
    funds = BigNumber.from_float(available)
    q = max_affordable(12, 1.12, level, funds)
    assert total_cost(12, 1.12, level, q) <= funds
    assert total_cost(12, 1.12, level, q + 1) > funds


def test_max_affordable_respects_caps():
    funds = BigNumber(1.0, 50)
    assert max_affordable(10, 1.15, 0, funds, cap=3) == 3
    assert max_affordable(10, 1.15, 0, funds, cap=0) == 0
    assert max_affordable(10, 1.0, 0, BigNumber(1.0, 300)) == MAX_PURCHASE_QUANTITY


def test_free_levels_are_not_bought_in_bulk():
    funds = BigNumber.from_float(5)
    assert max_affordable(0, 1.15, 0, funds) == 0
    assert resolve_quantity(PurchaseMode.MAX, 0, 1.15, 3, funds) == 0
    assert resolve_quantity(PurchaseMode.X10, 0, 1.15, 3, funds) == 10


def test_resolve_quantity_modes():
    funds = BigNumber.from_float(100)
    assert resolve_quantity(PurchaseMode.X1, 10, 1.15, 0, funds) == 1
    assert resolve_quantity(PurchaseMode.X10, 10, 1.15, 0, funds) == 10
    assert resolve_quantity(PurchaseMode.X100, 10, 1.15, 0, funds, cap=4) == 4
    assert resolve_quantity(PurchaseMode.MAX, 10, 1.15, 0, funds) == 6
