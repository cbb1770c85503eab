import math

import pytest

from differences import H, finite_difference_derivative, finite_difference_second_derivative, get_second_difference
from expression import Expression
from root_finding import (
    METHODS,
    Failure,
    RootResult,
    chord,
    dichotomy,
    halley,
    newton,
    run_chord_method,
    run_dichotomy_method,
    run_halley_method,
    run_method,
    run_newton_method,
    run_secant_method,
    run_simple_iteration_method,
    secant,
    simple_iteration,
)

CUBIC_ROOT = 1.5213797068045676  # x^3 - x - 2


def cubic(x):
    return x ** 3 - x - 2


class Recorder:
    def __init__(self):
        self.calls = []

    def __call__(self, step, x, y):
        self.calls.append((step, x, y))


def test_root_result_collapses_to_nan():
    good = RootResult(1.5, 3)
    bad = RootResult(math.nan, 7, Failure.BUDGET_EXHAUSTED)
    assert good.ok and good.value == 1.5 and float(good) == 1.5
    assert not bad.ok and math.isnan(bad.value) and math.isnan(float(bad))


def test_dichotomy_identity_converges_to_zero():
    root = run_dichotomy_method(lambda x: x, 1e-8, -1.0, 1.0)
    assert abs(root) <= 1e-8


def test_dichotomy_cubic():
    result = dichotomy(cubic, 1e-6, 1.0, 2.0)
    assert result.ok
    assert result.root == pytest.approx(CUBIC_ROOT, abs=1e-6)
    # 2^-20 is the first power of two not above 1e-6
    assert result.steps == 20


def test_dichotomy_same_sign_fails():
    result = dichotomy(lambda x: x * x + 1, 1e-8, -1.0, 1.0)
    assert result.failure is Failure.INVALID_BRACKET
    assert math.isnan(run_dichotomy_method(lambda x: x * x + 1, 1e-8, -1.0, 1.0))


def test_dichotomy_nan_endpoint_fails():
    result = dichotomy(Expression("sqrt(x)"), 1e-6, -1.0, 2.0)
    assert result.failure is Failure.INVALID_BRACKET


def test_dichotomy_exact_endpoint_returns_immediately():
    recorder = Recorder()
    result = dichotomy(lambda x: x - 1, 1e-8, 1.0, 3.0, max_steps=0, reporter=recorder)
    assert result.ok and result.root == 1.0 and result.steps == 0
    assert recorder.calls == []


def test_dichotomy_nan_midpoint_fails():
    f = lambda x: math.nan if 0 < x < 0.6 else x - 0.5
    result = dichotomy(f, 1e-8, 0.0, 1.0)
    assert result.failure is Failure.NON_FINITE
    assert result.steps == 1


def test_dichotomy_budget_counts_reports():
    recorder = Recorder()
    result = dichotomy(cubic, 1e-6, 1.0, 2.0, max_steps=3, reporter=recorder)
    assert result.failure is Failure.BUDGET_EXHAUSTED
    assert result.steps == 3
    assert [step for step, _, _ in recorder.calls] == [1, 2, 3]


def test_newton_sqrt2():
    root = run_newton_method(Expression("x^2 - 2"), 1e-10, 1.4)
    assert root == pytest.approx(math.sqrt(2), abs=1e-9)


def test_newton_follows_finite_difference_iteration():
    f = lambda x: x ** 3 - 2
    x, precision = 1.0, 1e-12
    while True:
        dx = f(x) / finite_difference_derivative(f, x)
        x -= dx
        if abs(dx) <= precision / 2:
            break
    assert newton(f, precision, 1.0).root == x


def test_newton_flat_start_is_non_finite():
    recorder = Recorder()
    result = newton(Expression("x^2 + 1"), 1e-6, 0.0, reporter=recorder)
    assert result.failure is Failure.NON_FINITE
    assert recorder.calls[0][1] == -math.inf


def test_secant_sqrt2():
    result = secant(lambda x: x * x - 2, 1e-10, 1.0, 2.0)
    assert result.ok
    assert result.root == pytest.approx(math.sqrt(2), abs=1e-9)


def test_secant_flat_function_is_non_finite():
    result = secant(lambda x: 1.0, 1e-6, 0.0, 1.0)
    assert result.failure is Failure.NON_FINITE
    assert result.steps == 1


def test_chord_cubic():
    result = chord(cubic, 1e-8, 1.0, 2.0)
    assert result.ok
    assert result.root == pytest.approx(CUBIC_ROOT, abs=1e-7)


def test_chord_keeps_fixed_endpoint():
    # f(2) and the second difference at 2 are both positive, so 2 stays fixed
    recorder = Recorder()
    chord(cubic, 1e-8, 1.0, 2.0, max_steps=2, reporter=recorder)
    first = recorder.calls[0][1]
    expected = 1.0 - cubic(1.0) * (1.0 - 2.0) / (cubic(1.0) - cubic(2.0))
    assert first == pytest.approx(expected)


def test_halley_cubic():
    result = halley(cubic, 1e-10, 1.5)
    assert result.ok
    assert result.root == pytest.approx(CUBIC_ROOT, abs=1e-8)


def test_halley_exp():
    assert run_halley_method(Expression("exp(x) - 2"), 1e-10, 0.5) == pytest.approx(math.log(2), abs=1e-8)


def test_halley_step_uses_2h_scaled_second_derivative():
    recorder = Recorder()
    halley(cubic, 1e-12, 1.5, max_steps=1, reporter=recorder)
    d1 = finite_difference_derivative(cubic, 1.5)
    a = cubic(1.5) / d1
    b = 1 - a * finite_difference_second_derivative(cubic, 1.5) / (2 * d1)
    assert recorder.calls[0][1] == pytest.approx(1.5 - a / b, rel=1e-15)

    # an h^2-scaled second derivative would give a visibly different first step
    b_h2 = 1 - a * (get_second_difference(cubic, 1.5) / H ** 2) / (2 * d1)
    assert recorder.calls[0][1] != pytest.approx(1.5 - a / b_h2, abs=1e-6)


def test_simple_iteration_cubic():
    result = simple_iteration(cubic, 1e-8, 1.0, 2.0)
    assert result.ok
    assert result.root == pytest.approx(CUBIC_ROOT, abs=1e-7)


def test_simple_iteration_starts_at_smallest_residual():
    recorder = Recorder()
    simple_iteration(cubic, 1e-8, 1.0, 2.0, max_steps=1, reporter=recorder)
    # |f(1.5)| = 0.125 beats |f(1)| = 2 and |f(2)| = 4
    lam = 1 / finite_difference_derivative(cubic, 2.0)
    assert recorder.calls[0][1] == pytest.approx(1.5 - lam * cubic(1.5))


def test_simple_iteration_decreasing_function():
    assert run_simple_iteration_method(lambda x: 2 - x, 1e-12, 0.0, 5.0) == pytest.approx(2.0, abs=1e-9)


def test_simple_iteration_rejects_derivative_sign_change(caplog):
    recorder = Recorder()
    result = simple_iteration(lambda x: x * x - 1, 1e-6, -2.0, 2.0, reporter=recorder)
    assert result.failure is Failure.DIVERGENCE_RISK
    assert recorder.calls == []
    assert "may diverge" in caplog.text


@pytest.mark.parametrize("name", list(METHODS))
def test_zero_budget_fails_immediately(name):
    recorder = Recorder()
    result = run_method(name, cubic, 1e-6, 1.0, 2.0, max_steps=0, reporter=recorder)
    assert result.failure is Failure.BUDGET_EXHAUSTED
    assert result.steps == 0
    assert math.isnan(float(result))
    assert recorder.calls == []


@pytest.mark.parametrize("runner, args", [
    (run_secant_method, (1.0, 2.0)),
    (run_chord_method, (1.0, 2.0)),
    (run_dichotomy_method, (1.0, 2.0)),
    (run_newton_method, (1.5,)),
    (run_halley_method, (1.5,)),
    (run_simple_iteration_method, (1.0, 2.0)),
])
def test_entry_points_return_floats(runner, args):
    root = runner(Expression("x^3 - x - 2"), 1e-8, *args)
    assert isinstance(root, float)
    assert root == pytest.approx(CUBIC_ROOT, abs=1e-6)
    assert math.isnan(runner(Expression("x^3 - x - 2"), 1e-8, *args, 0))


@pytest.mark.parametrize("name", list(METHODS))
def test_reporter_sees_every_step(name):
    recorder = Recorder()
    result = run_method(name, cubic, 1e-8, 1.0, 2.0, reporter=recorder)
    assert result.ok
    assert [step for step, _, _ in recorder.calls] == list(range(1, result.steps + 1))
    for _, x, y in recorder.calls:
        assert y == cubic(x)


def test_run_method_starts_point_methods_at_midpoint():
    assert run_method("newton", cubic, 1e-10, 1.0, 2.0) == newton(cubic, 1e-10, 1.5)
    with pytest.raises(KeyError):
        run_method("regula_falsi", cubic, 1e-10, 1.0, 2.0)


def test_registry_order():
    assert list(METHODS) == ["secant", "chord", "dichotomy", "newton", "halley", "simple_iteration"]
    assert [spec.two_point for spec in METHODS.values()] == [True, True, True, False, False, True]
