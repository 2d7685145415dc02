import math

import pytest

from economy.bignum import ONE, ZERO, BigNumber, NumberFormat


def test_construction_normalizes_mantissa():
    n = BigNumber(1234.0, 2)
    assert n.mantissa == pytest.approx(1.234)
    assert n.exponent == 5

    small = BigNumber(0.05, 0)
    assert small.mantissa == pytest.approx(5.0)
    assert small.exponent == -2


def test_zero_is_canonical():
    assert BigNumber(0.0, 42).exponent == 0
    assert BigNumber(1e-13, 7).is_zero
    assert BigNumber.from_float(0.0) == ZERO
    assert not ZERO
    assert ONE


def test_from_float_keeps_tiny_values():
    tiny = BigNumber.from_float(1e-15)
    assert not tiny.is_zero
    assert tiny.exponent == -15
    assert tiny.mantissa == pytest.approx(1.0)


def test_non_finite_input_rejected():
    with pytest.raises(ValueError):
        BigNumber.from_float(math.inf)
    with pytest.raises(ValueError):
        BigNumber(math.nan, 0)


def test_addition_and_subtraction():
    total = BigNumber.from_float(150) + BigNumber.from_float(50)
    assert total.to_float() == pytest.approx(200)
    assert (BigNumber.from_float(5) - 5).is_zero
    assert (3 - BigNumber.from_float(1)).to_float() == pytest.approx(2)


def test_addition_drops_negligible_operand():
    big = BigNumber(1.0, 20)
    assert big + 1 == big
    assert 1 + big == big


def test_multiply_divide_beyond_float_range():
    huge = BigNumber(5.0, 300) * BigNumber(4.0, 300)
    assert huge.mantissa == pytest.approx(2.0)
    assert huge.exponent == 601
    back = huge / BigNumber(2.0, 600)
    assert back.to_float() == pytest.approx(10.0)


def test_division_by_zero_raises():
    with pytest.raises(ZeroDivisionError):
        BigNumber.from_float(1) / ZERO


def test_comparison_orders_by_exponent_then_mantissa():
    assert BigNumber(9.9, 2) < BigNumber(1.0, 3)
    assert BigNumber(2.0, 3) > BigNumber(1.5, 3)
    assert BigNumber.from_float(-1000) < BigNumber.from_float(-10)
    assert BigNumber.from_float(-1) < ZERO < BigNumber.from_float(1e-9)
    assert BigNumber.from_float(10) >= 10
    assert BigNumber.from_float(10).compare(BigNumber(1.0, 1)) == 0


def test_pow_and_log10():
    assert BigNumber.from_float(4).pow(0.5) == 2
    assert BigNumber.from_float(10).pow(3).to_float() == pytest.approx(1000)
    assert BigNumber(1.0, 400).pow(2).exponent == 800
    assert BigNumber.from_float(1000).log10() == pytest.approx(3.0)
    assert ZERO.log10() == -math.inf


def test_pow_of_negative_base():
    assert BigNumber.from_float(-2).pow(2).to_float() == pytest.approx(4)
    assert BigNumber.from_float(-2).pow(3).to_float() == pytest.approx(-8)


def test_floor():
    assert BigNumber.from_float(2.9).floor() == 2
    assert BigNumber.from_float(0.4).floor().is_zero
    huge = BigNumber(1.2345, 40)
    assert huge.floor() == huge


def test_to_float_overflow_is_infinite():
    assert BigNumber(1.0, 400).to_float() == math.inf
    assert BigNumber(-1.0, 400).to_float() == -math.inf


def test_unnormalized_pair_round_trip():
    n = BigNumber.from_unnormalized(12345.0, -1)
    assert n.mantissa == pytest.approx(1.2345)
    assert n.exponent == 3


def test_helpers():
    a, b = BigNumber.from_float(3), BigNumber.from_float(7)
    assert BigNumber.max(a, b) is b
    assert BigNumber.from_float(-4).clamp_min(ZERO) == ZERO
    assert abs(BigNumber.from_float(-4)) == 4
    assert float(BigNumber.pow10(2.5)) == pytest.approx(10 ** 2.5)


def test_short_string_formats():
    n = BigNumber.from_float(123456)
    assert n.to_short_string(3) == "1.23e5"
    assert n.to_short_string(3, NumberFormat.ENGINEERING) == "123.46e3"
    assert BigNumber.from_float(1234.5).to_short_string(1, NumberFormat.STANDARD) == "1,234.5"
    assert ZERO.to_short_string() == "0"
