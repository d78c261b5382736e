import math

import pytest

from calc_engine import format_result, number_to_string, to_exponential


@pytest.mark.parametrize("x,expected", [
    (250.0, "250"),
    (0.1, "0.1"),
    (-2.5, "-2.5"),
    (123.456, "123.456"),
    (0.0, "0"),
    (-0.0, "0"),
    (1e20, "100000000000000000000"),
    (1e21, "1e+21"),
    (1.5e300, "1.5e+300"),
    (1e-6, "0.000001"),
    (1e-7, "1e-7"),
    (-1.25e-9, "-1.25e-9"),
    (math.inf, "Infinity"),
    (-math.inf, "-Infinity"),
    (math.nan, "NaN"),
])
def test_number_to_string(x, expected):
    assert number_to_string(x) == expected


def test_number_to_string_round_trips():
    for x in (2 * math.pi, 0.1 + 0.2, 1 / 3, 12345678901234568.0):
        assert float(number_to_string(x)) == x


def test_to_exponential_has_unpadded_exponent():
    assert to_exponential(12345.678, 3) == "1.235e+4"
    assert to_exponential(0.00042, 1) == "4.2e-4"


@pytest.mark.parametrize("x,expected", [
    (250.0, "250"),
    (0.1, "0.1"),
    (5.0, "5"),
    (-7.0, "-7"),
    (2 * math.pi, "6.283185307179586"),
    (1234567890123456.0, "1234567890123456"),
    (12345678901234568.0, "1.234567890123457e+16"),
    (0.1 + 0.2, "3.000000000000000e-1"),
    (1e21, "1.000000000000000e+21"),
    (1e-7, "1.000000000000000e-7"),
    (0.0, "0"),
    (3, "3"),
])
def test_format_result(x, expected):
    assert format_result(x) == expected


@pytest.mark.parametrize("x", [math.inf, -math.inf, math.nan, "12", None, True])
def test_format_result_rejects_non_finite_and_non_numbers(x):
    assert format_result(x) == "Error"


def test_format_result_digit_limit_is_configurable():
    assert format_result(123456.0, max_digits=5, exp_digits=2) == "1.23e+5"
