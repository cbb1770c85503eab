"""
Workability analysis run before the methods

Features:
 - SymPy denominator check: does a denominator vanish inside (a, b)?
     * together() -> as_numer_denom() -> solveset over the reals
     * transcendental denominators fall back to a numeric scan of the denominator only
 - sampling checks:
     * definedness/continuity on [a, b]
     * single-root estimate (sign changes between samples)
 - dichotomy step estimate:
     N = ceil(log2(|b - a| / precision)), N >= 0

The analysis is advisory: it only produces notes for the driver. The methods run
regardless and report their own failures.
"""

from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple
import math

import sympy as sp

from differences import isinfnan
from expression import SYMBOL, Expression, ExpressionSyntaxError


# ---------------- SymPy-based denominator zero detection ----------------
def _scan_denominator(denom, lo: float, hi: float, samples: int = 800) -> Tuple[bool, str]:
    """
    Numeric scan of the denominator alone: a sign change, a non-finite value or a huge
    magnitude all mean the function has a pole/discontinuity on [lo, hi].
    """
    denom_lambda = sp.lambdify(SYMBOL, denom, modules=["math"])
    step = (hi - lo) / (samples - 1)
    prev_val: Optional[float] = None
    for i in range(samples):
        xv = lo + i * step
        try:
            dv = float(denom_lambda(xv))
        except (ArithmeticError, NameError, TypeError, ValueError):
            return False, f"sympy_numeric: denominator not defined at x={xv:g} -> discontinuity."
        if isinfnan(dv):
            return False, f"sympy_numeric: denominator produced NaN/Inf at x={xv:g} -> discontinuity."
        if abs(dv) > 1e8:
            return False, f"sympy_numeric: denominator magnitude too large at x={xv:g} (possible pole) -> discontinuity."
        if prev_val is not None and prev_val * dv <= 0:
            return False, f"sympy_numeric: denominator reaches zero between x={xv - step:g} and x={xv:g} -> discontinuity."
        prev_val = dv
    return True, ""


def check_denominator(expression: Expression, a: float, b: float) -> Tuple[bool, str]:
    """
    Returns (True, "") if no denominator zero was found inside (a, b),
    otherwise (False, message).
    """
    lo, hi = min(a, b), max(a, b)
    try:
        sym_expr = expression.to_sympy()
    except ExpressionSyntaxError as exc:
        return False, f"sympy: cannot build a symbolic form: {exc}"

    _, denom = sp.together(sym_expr).as_numer_denom()
    if denom == 1:
        return True, ""

    try:
        denom = sp.factor(denom)
    except sp.PolynomialError:
        pass  # keep the unfactored denominator

    try:
        sol = sp.solveset(sp.Eq(denom, 0), SYMBOL, domain=sp.S.Reals)
    except NotImplementedError:
        sol = None

    if isinstance(sol, sp.FiniteSet):
        for root in sol:
            try:
                rval = float(sp.N(root))
            except TypeError:
                return False, f"sympy: denominator root {root} could not be evaluated numerically; possible discontinuity."
            if lo < rval < hi:
                return False, f"sympy: denominator {denom} becomes zero at x={rval:g} inside the interval."
        return True, ""

    if sol == sp.S.EmptySet:
        return True, ""

    # ImageSet / ConditionSet / unions: transcendental denominator
    return _scan_denominator(denom, lo, hi)


# ---------------- SAMPLING: definedness & continuity ----------------
def sampling_defined_and_continuous(
    f: Callable[[float], float],
    a: float,
    b: float,
    samples: int = 300,
    max_abs_threshold: float = 1e8
) -> bool:
    """
    Sample f at 'samples' points in [a,b].
    Return False when:
     - a sample is NaN/Inf
     - any sample abs(value) > max_abs_threshold (likely pole)
     - relative jump between consecutive samples is enormous (heuristic discontinuity)
    """
    if a >= b:
        return False
    samples = max(samples, 2)

    step = (b - a) / (samples - 1)
    prev_val: Optional[float] = None
    for i in range(samples):
        v = f(a + i * step)
        if isinfnan(v) or abs(v) > max_abs_threshold:
            return False
        if prev_val is not None:
            denom = max(1.0, abs(prev_val))
            if abs(v - prev_val) / denom > 1e6:
                return False
        prev_val = v
    return True


# ---------------- SAMPLING: single-root heuristic ----------------
def estimate_single_root(f: Callable[[float], float], a: float, b: float, samples: int = 500) -> Optional[bool]:
    """
    Count sign changes between consecutive samples.
    Returns:
      - True  => exactly one sign change seen (likely single root)
      - False => multiple/no sign changes seen (ambiguous)
      - None  => a sample was NaN (treat as ambiguous)
    """
    samples = max(samples, 2)
    step = (b - a) / (samples - 1)
    prev_val: Optional[float] = None
    sign_changes = 0
    for i in range(samples):
        v = f(a + i * step)
        if math.isnan(v):
            return None
        if abs(v) < 1e-18:
            # sample sits on a root
            prev_val = None
            sign_changes += 1
            continue
        if prev_val is not None and prev_val * v < 0:
            sign_changes += 1
            prev_val = None
            continue
        prev_val = v
    return sign_changes == 1


# ---------------- REQUIRED DICHOTOMY STEPS ----------------
def required_dichotomy_steps(a: float, b: float, x_precision: float) -> int:
    """
    Halvings needed before the bracket is no longer than x_precision.
    """
    if x_precision <= 0:
        raise ValueError("x_precision must be > 0")
    width = abs(b - a)
    if width <= x_precision:
        return 0
    return max(math.ceil(math.log2(width / x_precision)), 0)


# ---------------- ANALYSIS (main) ----------------
@dataclass
class Workability:
    notes: List[str] = field(default_factory=list)
    bracketed: bool = False
    discontinuity: bool = False
    required_steps: Optional[int] = None


def analyze(expression: Expression, a: float, b: float, x_precision: float) -> Workability:
    """
    Run every check on [a, b] and collect human-readable notes.
    """
    lo, hi = min(a, b), max(a, b)
    work = Workability()

    sym_ok, sym_msg = check_denominator(expression, lo, hi)
    if sym_ok:
        work.notes.append("sympy: no denominator-zero detected.")
    else:
        work.discontinuity = True
        work.notes.append(sym_msg)

    if sampling_defined_and_continuous(expression, lo, hi):
        work.notes.append("Function is defined and continuous on the sampled interval.")
    else:
        work.notes.append("Function is not defined/continuous on [a,b] (sampling/discontinuity detected).")

    fa = expression(lo)
    fb = expression(hi)
    if fa == 0 or fb == 0:
        work.bracketed = True
        work.notes.append("Exact root at an endpoint.")
    elif fa * fb < 0:
        work.bracketed = True
        work.notes.append("Sign change at endpoints: f(a) * f(b) < 0.")
    elif math.isnan(fa) or math.isnan(fb):
        work.notes.append("f is undefined at an endpoint. Bracketing methods will fail.")
    else:
        work.notes.append("No sign change at endpoints: f(a) * f(b) > 0. Dichotomy will reject the interval.")

    if work.bracketed:
        sr = estimate_single_root(expression, lo, hi)
        if sr is True:
            work.notes.append("Single-root sampling estimate passed.")
        elif sr is False:
            work.notes.append("Warning: sampling suggests multiple/ambiguous roots inside interval.")
        else:
            work.notes.append("Warning: sampling for single-root estimate was unreliable.")

    if x_precision > 0:
        work.required_steps = required_dichotomy_steps(lo, hi, x_precision)
        work.notes.append(f"Dichotomy needs about {work.required_steps} halvings for precision {x_precision:g}.")

    return work
