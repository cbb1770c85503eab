"""
Finite-difference primitives shared by the root-finding methods.

Features:
 - central first derivative with a fixed step H
 - second difference and the (2h-scaled) second derivative used by Halley's method
 - sign helpers that keep NaN visible instead of collapsing it to 0
 - IEEE-style division shared by the parser and the methods
"""

from typing import Callable
import math

RealFunction = Callable[[float], float]

# fixed, not adaptive
H: float = 0.01


# ---------------- SIGN / FINITENESS HELPERS ----------------
def sign(x: float) -> float:
    """
    Return NaN for NaN input, otherwise +1.0, -1.0 or 0.0 (signed zero keeps its sign bit).
    """
    if x != x:
        return x
    return math.copysign(1.0, x) * (x != 0)


def isinfnan(x: float) -> bool:
    return math.isinf(x) or math.isnan(x)


def divide(a: float, b: float) -> float:
    """
    IEEE-754 division: x/0 gives a signed infinity, 0/0 and nan/0 give NaN.
    """
    try:
        return a / b
    except ZeroDivisionError:
        if a == 0 or math.isnan(a):
            return math.nan
        return math.copysign(math.inf, a) * math.copysign(1.0, b)


def sign_matches(a: float, b: float) -> bool:
    """
    True when a already carries the sign of b. Always False when a is NaN.
    """
    return math.copysign(a, b) == a


# ---------------- DIFFERENCES ----------------
def finite_difference_derivative(f: RealFunction, x: float) -> float:
    return (f(x + H) - f(x - H)) / (2 * H)


def get_second_difference(f: RealFunction, x: float) -> float:
    return f(x + H) - 2 * f(x) + f(x - H)


def finite_difference_second_derivative(f: RealFunction, x: float) -> float:
    # divided by 2h, not h**2; Halley's iteration is tuned to this scaling
    return get_second_difference(f, x) / (2 * H)
