import math

import pytest

from differences import (
    H,
    divide,
    finite_difference_derivative,
    finite_difference_second_derivative,
    get_second_difference,
    isinfnan,
    sign,
    sign_matches,
)


def test_step_is_fixed():
    assert H == 0.01


def test_sign():
    assert math.isnan(sign(math.nan))
    assert sign(3.0) == 1.0
    assert sign(-0.5) == -1.0
    assert sign(math.inf) == 1.0
    assert sign(0.0) == 0.0
    # negative zero keeps its sign bit but still compares equal to 0
    assert sign(-0.0) == 0.0
    assert math.copysign(1.0, sign(-0.0)) == -1.0


def test_isinfnan():
    assert isinfnan(math.nan)
    assert isinfnan(math.inf)
    assert isinfnan(-math.inf)
    assert not isinfnan(1e308)


def test_sign_matches():
    assert sign_matches(1.0, 2.0)
    assert not sign_matches(1.0, -2.0)
    assert sign_matches(-3.0, -0.5)
    assert sign_matches(0.0, -1.0)
    assert not sign_matches(math.nan, 1.0)


@pytest.mark.parametrize("a, b, expected", [
    (1.0, 0.0, math.inf),
    (-1.0, 0.0, -math.inf),
    (1.0, -0.0, -math.inf),
    (6.0, 3.0, 2.0),
])
def test_divide(a, b, expected):
    assert divide(a, b) == expected


@pytest.mark.parametrize("a", [0.0, math.nan])
def test_divide_undefined(a):
    assert math.isnan(divide(a, 0.0))


def test_first_derivative_is_central_difference():
    assert finite_difference_derivative(lambda x: x * x, 3.0) == pytest.approx(6.0, abs=1e-9)
    assert finite_difference_derivative(math.sin, 0.0) == pytest.approx(math.sin(H) / H)


def test_second_difference_and_derivative_scaling():
    square = lambda x: x * x
    assert get_second_difference(square, 1.0) == pytest.approx(2 * H ** 2)
    # second difference / (2h): for x^2 this is h, not the textbook 2
    assert finite_difference_second_derivative(square, 1.0) == pytest.approx(H)


def test_differences_propagate_nan():
    assert math.isnan(finite_difference_derivative(lambda x: math.nan, 1.0))
    assert math.isnan(finite_difference_second_derivative(lambda x: math.nan, 1.0))
