"""
Root-finding methods

Features:
 - secant, chord, dichotomy (bisection), Newton, Halley and simple iteration
 - derivatives come from the finite-difference primitives, never from symbolic work
 - after every new approximation the method calls reporter(step, x, f(x)); the reporter
   only displays/records and never steers the iteration
 - expected failures never raise: each method returns a RootResult tagged with the cause
   (budget exhausted, non-finite iterate, bad bracket, divergence risk) and
   float(result) collapses that to NaN
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Optional
import logging
import math
import sys

from differences import (
    RealFunction,
    divide,
    finite_difference_derivative,
    finite_difference_second_derivative,
    get_second_difference,
    isinfnan,
    sign,
    sign_matches,
)

logger = logging.getLogger(__name__)

Reporter = Callable[[int, float, float], None]

# effectively unbounded
MAX_STEPS: int = sys.maxsize


def null_reporter(step: int, x: float, y: float) -> None:
    pass


class Failure(Enum):
    BUDGET_EXHAUSTED = "step budget exhausted"
    NON_FINITE = "non-finite iterate"
    INVALID_BRACKET = "endpoints do not bracket a root"
    DIVERGENCE_RISK = "derivative sign differs at the endpoints"


@dataclass(frozen=True)
class RootResult:
    root: float
    steps: int
    failure: Optional[Failure] = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    @property
    def value(self) -> float:
        return self.root if self.failure is None else math.nan

    def __float__(self) -> float:
        return self.value


def _converged(method: str, root: float, steps: int) -> RootResult:
    logger.debug("%s: root %r after %d step(s)", method, root, steps)
    return RootResult(root, steps)


def _failed(method: str, failure: Failure, steps: int) -> RootResult:
    logger.debug("%s: %s after %d step(s)", method, failure.value, steps)
    return RootResult(math.nan, steps, failure)


# ---------------- TWO-POINT METHODS ----------------
def secant(
    f: RealFunction,
    x_precision: float,
    x1: float,
    x2: float,
    max_steps: int = MAX_STEPS,
    reporter: Reporter = null_reporter,
) -> RootResult:
    """
    Secant method: the window (x1, x2) slides forward by one point each step.
    Stops when |dx| <= x_precision / 2.
    """
    step = 0
    while True:
        if step == max_steps:
            return _failed("secant", Failure.BUDGET_EXHAUSTED, step)

        f1 = f(x1)
        f2 = f(x2)
        dx = divide(f1 * (x2 - x1), f2 - f1)

        x3 = x1 - dx
        step += 1
        reporter(step, x3, f(x3))

        if isinfnan(x3):
            return _failed("secant", Failure.NON_FINITE, step)
        if abs(dx) <= x_precision / 2:
            return _converged("secant", x3, step)

        x1, x2 = x2, x3


def chord(
    f: RealFunction,
    x_precision: float,
    x1: float,
    x2: float,
    max_steps: int = MAX_STEPS,
    reporter: Reporter = null_reporter,
) -> RootResult:
    """
    Chord (false position with a fixed end). The fixed end is the one where f and its
    second difference share a sign; the other end moves every step.
    """
    if not sign_matches(f(x1), get_second_difference(f, x1)):
        x1, x2 = x2, x1

    step = 0
    while True:
        if step == max_steps:
            return _failed("chord", Failure.BUDGET_EXHAUSTED, step)

        f1 = f(x1)
        f2 = f(x2)
        dx = divide(f2 * (x2 - x1), f2 - f1)

        x3 = x2 - dx
        step += 1
        reporter(step, x3, f(x3))

        if isinfnan(x3):
            return _failed("chord", Failure.NON_FINITE, step)
        if abs(dx) <= x_precision / 2:
            return _converged("chord", x3, step)

        x2 = x3


def dichotomy(
    f: RealFunction,
    x_precision: float,
    x1: float,
    x2: float,
    max_steps: int = MAX_STEPS,
    reporter: Reporter = null_reporter,
) -> RootResult:
    """
    Bisection. An endpoint where f is exactly 0 is returned at once; endpoints with the
    same sign (or a NaN value) are rejected. Stops when the interval is no longer than
    x_precision and returns its midpoint.
    """
    s1 = sign(f(x1))
    s2 = sign(f(x2))
    if s1 == 0:
        return _converged("dichotomy", x1, 0)
    if s2 == 0:
        return _converged("dichotomy", x2, 0)
    if s1 == s2 or math.isnan(s1) or math.isnan(s2):
        return _failed("dichotomy", Failure.INVALID_BRACKET, 0)

    # x1 holds the positive side from here on
    if s1 != 1:
        x1, x2 = x2, x1

    step = 0
    while True:
        if step == max_steps:
            return _failed("dichotomy", Failure.BUDGET_EXHAUSTED, step)

        mid = (x1 + x2) / 2
        if abs(x2 - x1) <= x_precision:
            return _converged("dichotomy", mid, step)

        mid_val = f(mid)
        step += 1
        reporter(step, mid, mid_val)

        mid_sign = sign(mid_val)
        if mid_sign == 0:
            return _converged("dichotomy", mid, step)
        if mid_sign == 1:
            x1 = mid
        elif mid_sign == -1:
            x2 = mid
        else:
            return _failed("dichotomy", Failure.NON_FINITE, step)


def _magnitude(y: float) -> float:
    return math.inf if math.isnan(y) else abs(y)


def simple_iteration(
    f: RealFunction,
    x_precision: float,
    x1: float,
    x2: float,
    max_steps: int = MAX_STEPS,
    reporter: Reporter = null_reporter,
) -> RootResult:
    """
    Fixed-point iteration x <- x - lam * f(x).

    lam = s / max(|f'(x1)|, |f'(x2)|) where s is the common sign of the derivative at
    both ends, which keeps the iteration map's slope in [0, 1) for monotone f. Input is
    rejected when the derivative sign differs at the ends. The start is whichever of
    x1, x2 and their midpoint has the smallest |f|. Stops when |dx| < x_precision / 2.
    """
    d1 = finite_difference_derivative(f, x1)
    d2 = finite_difference_derivative(f, x2)
    s = sign(d1)
    if s != sign(d2):
        logger.warning(
            "simple iteration rejected on [%g, %g]: f' changes sign (%g vs %g), iteration may diverge",
            x1, x2, d1, d2,
        )
        return _failed("simple iteration", Failure.DIVERGENCE_RISK, 0)

    steepest = max(abs(d1), abs(d2))
    if steepest == 0:
        logger.warning("simple iteration rejected on [%g, %g]: f' vanishes at both ends", x1, x2)
        return _failed("simple iteration", Failure.DIVERGENCE_RISK, 0)
    lam = s / steepest

    x = min((x1, x2, (x1 + x2) / 2), key=lambda c: _magnitude(f(c)))

    step = 0
    while True:
        if step == max_steps:
            return _failed("simple iteration", Failure.BUDGET_EXHAUSTED, step)

        dx = lam * f(x)
        x = x - dx
        step += 1
        reporter(step, x, f(x))

        if isinfnan(x):
            return _failed("simple iteration", Failure.NON_FINITE, step)
        if abs(dx) < x_precision / 2:
            return _converged("simple iteration", x, step)


# ---------------- ONE-POINT METHODS ----------------
def newton(
    f: RealFunction,
    x_precision: float,
    x: float,
    max_steps: int = MAX_STEPS,
    reporter: Reporter = null_reporter,
) -> RootResult:
    """
    Newton's method with the central-difference derivative.
    """
    step = 0
    while True:
        if step == max_steps:
            return _failed("newton", Failure.BUDGET_EXHAUSTED, step)
        if isinfnan(x):
            return _failed("newton", Failure.NON_FINITE, step)

        dx = divide(f(x), finite_difference_derivative(f, x))
        x = x - dx
        step += 1
        reporter(step, x, f(x))

        if abs(dx) <= x_precision / 2:
            return _converged("newton", x, step)
        if isinfnan(x):
            return _failed("newton", Failure.NON_FINITE, step)


def halley(
    f: RealFunction,
    x_precision: float,
    x: float,
    max_steps: int = MAX_STEPS,
    reporter: Reporter = null_reporter,
) -> RootResult:
    """
    Halley's method: a = f/f', b = 1 - a*f''/(2f'), dx = a/b, with both derivatives
    taken from finite differences.
    """
    step = 0
    while True:
        if step == max_steps:
            return _failed("halley", Failure.BUDGET_EXHAUSTED, step)
        if isinfnan(x):
            return _failed("halley", Failure.NON_FINITE, step)

        dfdx = finite_difference_derivative(f, x)
        a = divide(f(x), dfdx)
        b = 1 - divide(a * finite_difference_second_derivative(f, x), 2 * dfdx)
        dx = divide(a, b)
        x = x - dx
        step += 1
        reporter(step, x, f(x))

        if abs(dx) <= x_precision / 2:
            return _converged("halley", x, step)
        if isinfnan(x):
            return _failed("halley", Failure.NON_FINITE, step)


# ---------------- NaN-RETURNING ENTRY POINTS ----------------
def run_secant_method(f, x_precision, x1, x2, max_steps=MAX_STEPS, reporter=null_reporter) -> float:
    return float(secant(f, x_precision, x1, x2, max_steps, reporter))


def run_chord_method(f, x_precision, x1, x2, max_steps=MAX_STEPS, reporter=null_reporter) -> float:
    return float(chord(f, x_precision, x1, x2, max_steps, reporter))


def run_dichotomy_method(f, x_precision, x1, x2, max_steps=MAX_STEPS, reporter=null_reporter) -> float:
    return float(dichotomy(f, x_precision, x1, x2, max_steps, reporter))


def run_newton_method(f, x_precision, x, max_steps=MAX_STEPS, reporter=null_reporter) -> float:
    return float(newton(f, x_precision, x, max_steps, reporter))


def run_halley_method(f, x_precision, x, max_steps=MAX_STEPS, reporter=null_reporter) -> float:
    return float(halley(f, x_precision, x, max_steps, reporter))


def run_simple_iteration_method(f, x_precision, x1, x2, max_steps=MAX_STEPS, reporter=null_reporter) -> float:
    return float(simple_iteration(f, x_precision, x1, x2, max_steps, reporter))


# ---------------- REGISTRY ----------------
@dataclass(frozen=True)
class MethodSpec:
    label: str
    func: Callable[..., RootResult]
    two_point: bool


METHODS: Dict[str, MethodSpec] = {
    "secant": MethodSpec("Secant", secant, True),
    "chord": MethodSpec("Chord", chord, True),
    "dichotomy": MethodSpec("Dichotomy", dichotomy, True),
    "newton": MethodSpec("Newton", newton, False),
    "halley": MethodSpec("Halley", halley, False),
    "simple_iteration": MethodSpec("Simple iteration", simple_iteration, True),
}


def run_method(
    name: str,
    f: RealFunction,
    x_precision: float,
    a: float,
    b: float,
    max_steps: int = MAX_STEPS,
    reporter: Reporter = null_reporter,
) -> RootResult:
    """
    Run a registered method on the interval [a, b]. One-point methods start at the midpoint.
    Raises KeyError for an unknown method name.
    """
    spec = METHODS[name]
    if spec.two_point:
        return spec.func(f, x_precision, a, b, max_steps, reporter)
    return spec.func(f, x_precision, (a + b) / 2, max_steps, reporter)
