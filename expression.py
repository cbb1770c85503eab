"""
Expression parser/evaluator for single-variable formulas

Grammar (whitespace is removed before parsing):
    Expression   := BinaryExpr | FunctionCall | UnaryExpr
    BinaryExpr   := Operand (BinOp Operand)*
    Operand      := Literal | Variable | FunctionCall | '(' Expression ')'
    FunctionCall := Name '(' Expression ')'
    UnaryExpr    := ('+' | '-') Expression

Features:
 - recursive descent with backtracking: every alternative restores the cursor when it misses
 - no AST: binary expressions are reduced while parsing (precedence climbing), and every
   evaluation re-parses the text from scratch
 - dry-run validation: the same grammar runs with function/operator application replaced by 0,
   so structural errors surface without domain errors like 1/0 or ln(-1)
 - IEEE-style numeric results: division by zero, overflow and domain errors give inf/nan
   instead of raising
 - symbolic view through SymPy, for diagnostics and reference checks

Sharp edge: a leading unary sign is only tried after the binary-expression and function-call
alternatives miss, and it applies to the whole expression that follows, so "-x+1" is -(x+1).
A signed literal is a single operand, so "-2^2" is (-2)^2.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Dict, Mapping, Optional, Tuple
import logging
import math
import operator
import re

import sympy as sp

from differences import divide

logger = logging.getLogger(__name__)

VARIABLE = "x"
SYMBOL = sp.symbols(VARIABLE, real=True)

DRY_PLACEHOLDER = 0.0
INT_DIV_EPSILON = 1e-9

# locale-independent, from_chars style: optional '-', never '+'
_LITERAL_RE = re.compile(
    r"-?(?:(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|inf(?:inity)?|nan)",
    re.IGNORECASE,
)


# ---------------- IEEE-STYLE ARITHMETIC ----------------
def _int_divide(a: float, b: float) -> float:
    q = divide(a, b)
    if not math.isfinite(q):
        return q
    # nudge away from zero so 0.9999999999 -> 1 and -1.9999999999 -> -2
    return float(math.trunc(q + math.copysign(INT_DIV_EPSILON, q)))


def _remainder(a: float, b: float) -> float:
    try:
        return math.fmod(a, b)
    except ValueError:
        return math.nan


def _power(a: float, b: float) -> float:
    try:
        return math.pow(a, b)
    except OverflowError:
        if a < 0 and float(b).is_integer() and int(b) % 2:
            return -math.inf
        return math.inf
    except ValueError:
        if a == 0:
            return math.inf
        return math.nan


def _ieee(fn: Callable[[float], float]) -> Callable[[float], float]:
    def apply(x: float) -> float:
        try:
            return fn(x)
        except OverflowError:
            return math.inf
        except ValueError:
            return math.nan

    return apply


def _logarithm(fn: Callable[[float], float]) -> Callable[[float], float]:
    def apply(x: float) -> float:
        if x == 0:
            return -math.inf
        if x < 0 or math.isnan(x):
            return math.nan
        return fn(x)

    return apply


def _cbrt(x: float) -> float:
    return math.copysign(abs(x) ** (1.0 / 3.0), x)


_tan = _ieee(math.tan)


# ---------------- FUNCTION / OPERATOR TABLES ----------------
@dataclass(frozen=True)
class Function:
    name: str
    apply: Callable[[float], float]


@dataclass(frozen=True)
class Operator:
    symbol: str
    priority: int
    apply: Callable[[float, float], float]

    @property
    def is_power(self) -> bool:
        return self.symbol == "^"

    def outranks(self, pending: "Operator") -> bool:
        """
        True when this operator must be reduced before the pending one on its left.
        Power always wins, which makes chains of '^' group right to left.
        """
        return self.is_power or self.priority > pending.priority


FUNCTIONS: Mapping[str, Function] = MappingProxyType({
    fn.name: fn for fn in (
        Function("sin", _ieee(math.sin)),
        Function("cos", _ieee(math.cos)),
        Function("tan", _tan),
        Function("ctg", lambda x: divide(1.0, _tan(x))),
        Function("sqrt", _ieee(math.sqrt)),
        Function("cbrt", _cbrt),
        Function("sqr", lambda x: x * x),
        Function("abs", math.fabs),
        Function("exp", _ieee(math.exp)),
        Function("ln", _logarithm(math.log)),
        Function("lg", _logarithm(math.log10)),
        Function("log2", _logarithm(math.log2)),
    )
})

OPERATORS: Mapping[str, Operator] = MappingProxyType({
    op.symbol: op for op in (
        Operator("+", 1, operator.add),
        Operator("-", 1, operator.sub),
        Operator("*", 2, operator.mul),
        Operator("/", 2, divide),
        Operator("//", 2, _int_divide),
        Operator("%", 2, _remainder),
        Operator("^", 3, _power),
    )
})

# longest first, so "//" wins over "/" and "log2(" over any shorter name
_FUNCTION_NAMES = tuple(sorted(FUNCTIONS, key=len, reverse=True))
_OPERATOR_SYMBOLS = tuple(sorted(OPERATORS, key=len, reverse=True))


# ---------------- SYMBOLIC TABLES (SymPy) ----------------
def _symbolic_trunc(q: Any) -> Any:
    return sp.sign(q) * sp.floor(sp.Abs(q))


def _symbolic_literal(value: float) -> Any:
    if math.isnan(value):
        return sp.nan
    if math.isinf(value):
        return sp.oo if value > 0 else -sp.oo
    return sp.nsimplify(value, rational=True)


def _symbolic_power(a: Any, b: Any) -> Any:
    # numeric towers fold in floating point; exact Integer powers like 9^9^9 never finish
    if all(isinstance(v, sp.Number) and v.is_extended_real for v in (a, b)):
        return _symbolic_literal(_power(float(a), float(b)))
    return a ** b


_SYMBOLIC_FUNCTIONS: Mapping[str, Callable[[Any], Any]] = MappingProxyType({
    "sin": sp.sin,
    "cos": sp.cos,
    "tan": sp.tan,
    "ctg": sp.cot,
    "sqrt": sp.sqrt,
    "cbrt": lambda a: sp.real_root(a, 3),
    "sqr": lambda a: a ** 2,
    "abs": sp.Abs,
    "exp": sp.exp,
    "ln": sp.log,
    "lg": lambda a: sp.log(a, 10),
    "log2": lambda a: sp.log(a, 2),
})

_SYMBOLIC_OPERATORS: Mapping[str, Callable[[Any, Any], Any]] = MappingProxyType({
    "+": operator.add,
    "-": operator.sub,
    "*": operator.mul,
    "/": operator.truediv,
    "//": lambda a, b: _symbolic_trunc(a / b),
    "%": lambda a, b: a - b * _symbolic_trunc(a / b),  # C fmod
    "^": _symbolic_power,
})


@dataclass(frozen=True)
class _Backend:
    functions: Mapping[str, Callable[[Any], Any]]
    operators: Mapping[str, Callable[[Any, Any], Any]]
    literal: Callable[[float], Any]


_NUMERIC = _Backend(
    functions=MappingProxyType({name: fn.apply for name, fn in FUNCTIONS.items()}),
    operators=MappingProxyType({symbol: op.apply for symbol, op in OPERATORS.items()}),
    literal=float,
)
_SYMBOLIC = _Backend(_SYMBOLIC_FUNCTIONS, _SYMBOLIC_OPERATORS, _symbolic_literal)


# ---------------- PARSE STATE ----------------
@dataclass
class _Cursor:
    """
    Position range over the normalized text plus the value bound to the variable.
    Parsing advances `pos` destructively; callers snapshot it before an alternative
    and restore it when the alternative misses.
    """
    text: str
    arg: Any
    dry: bool = False
    backend: _Backend = _NUMERIC
    pos: int = 0
    end: int = -1
    furthest: int = 0
    # function-call results by start position: (value, end position)
    calls: Dict[int, Tuple[Any, int]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.end < 0:
            self.end = len(self.text)

    def peek(self) -> str:
        return self.text[self.pos] if self.pos < self.end else ""

    def startswith(self, prefix: str) -> bool:
        return self.text.startswith(prefix, self.pos, self.end)

    def miss(self) -> None:
        # remember the deepest failure for error reporting
        self.furthest = max(self.furthest, self.pos)
        return None


@dataclass
class Operand:
    """A parsed value waiting to be combined with the next operand by `operator`."""
    value: Any
    operator: Optional[Operator]


# ---------------- GRAMMAR ----------------
def _first_match(cur: _Cursor, alternatives: Tuple[Callable[[_Cursor], Any], ...]) -> Any:
    for alternative in alternatives:
        mark = cur.pos
        value = alternative(cur)
        if value is not None:
            return value
        cur.pos = mark
    return None


def _parse_expression(cur: _Cursor) -> Any:
    return _first_match(cur, (_parse_binary, _parse_function_call, _parse_unary))


def _parse_operand(cur: _Cursor) -> Any:
    return _first_match(cur, (_parse_literal, _parse_variable, _parse_function_call, _parse_parenthesized))


def _parse_operator(cur: _Cursor) -> Optional[Operator]:
    for symbol in _OPERATOR_SYMBOLS:
        if cur.startswith(symbol):
            cur.pos += len(symbol)
            return OPERATORS[symbol]
    return cur.miss()


def _apply_operator(cur: _Cursor, op: Operator, left: Any, right: Any) -> Any:
    if cur.dry:
        return DRY_PLACEHOLDER
    return cur.backend.operators[op.symbol](left, right)


def _reduce(cur: _Cursor, pending: Operand) -> Optional[Operand]:
    """
    Combine pending.value with the operand that follows its operator.

    Operators that outrank the pending one are reduced first (recursively). The result
    carries the first operator that does not outrank it, so the caller keeps going
    left to right with the reduced value as its new left operand.
    """
    right = _parse_operand(cur)
    if right is None:
        return None
    following = Operand(right, _parse_operator(cur))
    while following.operator is not None and following.operator.outranks(pending.operator):
        following = _reduce(cur, following)
        if following is None:
            return None
    value = _apply_operator(cur, pending.operator, pending.value, following.value)
    return Operand(value, following.operator)


def _parse_binary(cur: _Cursor) -> Any:
    left = _parse_operand(cur)
    if left is None:
        return None
    pending = Operand(left, _parse_operator(cur))
    while pending.operator is not None:
        pending = _reduce(cur, pending)
        if pending is None:
            return None
    return pending.value


def _parse_literal(cur: _Cursor) -> Any:
    match = _LITERAL_RE.match(cur.text, cur.pos, cur.end)
    if match is None:
        return cur.miss()
    cur.pos = match.end()
    return cur.backend.literal(float(match.group()))


def _parse_variable(cur: _Cursor) -> Any:
    if cur.peek() != VARIABLE:
        return cur.miss()
    cur.pos += 1
    return cur.arg


def _match_function_name(cur: _Cursor) -> Optional[str]:
    for name in _FUNCTION_NAMES:
        if cur.startswith(name + "("):
            return name
    return None


def _parse_function_call(cur: _Cursor) -> Any:
    """
    The same call is tried both as an operand and as a whole expression, so each
    start position is parsed once and replayed afterwards.
    """
    start = cur.pos
    if start in cur.calls:
        value, cur.pos = cur.calls[start]
        return value
    value = _call_function(cur)
    cur.calls[start] = (value, cur.pos)
    return value


def _call_function(cur: _Cursor) -> Any:
    name = _match_function_name(cur)
    if name is None:
        return cur.miss()
    cur.pos += len(name) + 1
    argument = _parse_expression(cur)
    if argument is None:
        return None
    if cur.peek() != ")":
        return cur.miss()
    cur.pos += 1
    if cur.dry:
        return DRY_PLACEHOLDER
    return cur.backend.functions[name](argument)


def _parse_parenthesized(cur: _Cursor) -> Any:
    if cur.peek() != "(":
        return cur.miss()
    cur.pos += 1
    value = _parse_expression(cur)
    if value is None:
        return None
    if cur.peek() != ")":
        return cur.miss()
    cur.pos += 1
    return value


def _parse_unary(cur: _Cursor) -> Any:
    sign_char = cur.peek()
    if sign_char not in ("+", "-"):
        return cur.miss()
    cur.pos += 1
    value = _parse_expression(cur)
    if value is None:
        return None
    return -value if sign_char == "-" else value


def _parse(cur: _Cursor) -> Any:
    value = _parse_expression(cur)
    if value is None:
        return None
    if cur.pos != cur.end:
        return cur.miss()
    return value


# ---------------- PUBLIC API ----------------
def normalize(text: str) -> str:
    """Remove every blank character."""
    return "".join(text.split())


def check_parentheses(text: str) -> Tuple[bool, str, int]:
    """
    Track nesting depth char by char.
    Returns (True, "", -1) when balanced, otherwise (False, message, index) where index
    points at the stray ')' or at len(text) when a '(' is never closed.
    """
    depth = 0
    for index, ch in enumerate(text):
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth < 0:
                return False, "unmatched ')'", index
    if depth != 0:
        return False, f"{depth} unclosed '('", len(text)
    return True, "", -1


def _describe_miss(text: str, index: int) -> str:
    if index >= len(text):
        return "unexpected end of expression"
    return f"unexpected character {text[index]!r}"


@dataclass(frozen=True)
class ValidationResult:
    ok: bool
    message: str = ""
    position: Optional[int] = None

    def __bool__(self) -> bool:
        return self.ok


class ExpressionSyntaxError(ValueError):
    def __init__(self, message: str, position: Optional[int], source: str):
        super().__init__(f"{message} at position {position} in {source!r}")
        self.message = message
        self.position = position
        self.source = source


class Expression:
    """
    Immutable single-variable formula.

    `source` is the text as typed, `text` the normalized (blank-free) form that is parsed.
    Error positions reported by `validate` index into `source`.
    """

    __slots__ = ("_source", "_text", "_offsets")

    def __init__(self, source: str):
        kept = [(index, ch) for index, ch in enumerate(source) if not ch.isspace()]
        self._source = source
        self._text = "".join(ch for _, ch in kept)
        self._offsets = tuple(index for index, _ in kept)

    @property
    def source(self) -> str:
        return self._source

    @property
    def text(self) -> str:
        return self._text

    def _source_position(self, index: int) -> int:
        if 0 <= index < len(self._offsets):
            return self._offsets[index]
        return len(self._source)

    def validate(self) -> ValidationResult:
        if not self._text:
            return ValidationResult(False, "empty expression", self._source_position(0))

        balanced, message, index = check_parentheses(self._text)
        if not balanced:
            return ValidationResult(False, message, self._source_position(index))

        cursor = _Cursor(self._text, arg=0.0, dry=True)
        if _parse(cursor) is None:
            return ValidationResult(
                False,
                _describe_miss(self._text, cursor.furthest),
                self._source_position(cursor.furthest),
            )
        return ValidationResult(True)

    def __call__(self, x: float) -> float:
        cursor = _Cursor(self._text, arg=float(x))
        value = _parse(cursor)
        if value is None:
            # validation and evaluation disagree; should not happen for validated text
            logger.warning("expression %r did not parse at x=%r", self._text, x)
            return math.nan
        return value

    def to_sympy(self) -> Any:
        """
        Parse once more with the variable bound to a real SymPy symbol.
        Raises ExpressionSyntaxError when the text does not validate.
        """
        result = self.validate()
        if not result.ok:
            raise ExpressionSyntaxError(result.message, result.position, self._source)
        cursor = _Cursor(self._text, arg=SYMBOL, backend=_SYMBOLIC)
        value = _parse(cursor)
        if value is None:
            raise ExpressionSyntaxError(
                _describe_miss(self._text, cursor.furthest),
                self._source_position(cursor.furthest),
                self._source,
            )
        return sp.sympify(value)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Expression):
            return NotImplemented
        return self._text == other._text

    def __hash__(self) -> int:
        return hash(self._text)

    def __str__(self) -> str:
        return self._text

    def __repr__(self) -> str:
        return f"Expression({self._source!r})"


def make_function(text: str) -> Expression:
    """
    Build a callable f(x) from user text.
    Raises ExpressionSyntaxError (a ValueError) if the text does not validate.
    """
    expr = Expression(text)
    result = expr.validate()
    if not result.ok:
        raise ExpressionSyntaxError(result.message, result.position, text)
    return expr
