"""
Command-line interface for the Root Finding Project.
"""
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple
import logging

from expression import Expression
from root_finding import METHODS, Reporter, RootResult, run_method
from utils import IterationRecorder, pretty_format_number, report_approximation
from workability import analyze


@dataclass(frozen=True)
class Settings:
    a: float = 0.0
    b: float = 2.0
    digits: int = 8
    max_steps: int = 100

    @property
    def x_precision(self) -> float:
        return 10.0 ** (-self.digits)


def format_error(source: str, position: int, message: str) -> str:
    """Echo the input with a caret under the offending column."""
    return f"   {source}\n   {' ' * position}^\n   {message}"


def read_expression(ask: Callable[[str], str] = input, say: Callable[..., None] = print) -> Expression:
    """Prompt until the expression validates."""
    while True:
        expr = Expression(ask("Enter f(x): "))
        result = expr.validate()
        if result.ok:
            return expr
        say("\n❌ Invalid expression:")
        say(format_error(expr.source, result.position, result.message))


def _ask_value(ask: Callable[[str], str], say: Callable[..., None], message: str, default: Any, cast: Callable[[str], Any]) -> Any:
    while True:
        raw = ask(f"{message} [default: {default}]: ").strip()
        if not raw:
            return default
        try:
            return cast(raw)
        except ValueError:
            say("Invalid number. Please try again.")


def _positive_int(raw: str) -> int:
    value = int(raw)
    if value <= 0:
        raise ValueError(f"expected a positive integer, got {value}")
    return value


def read_settings(ask: Callable[[str], str] = input, say: Callable[..., None] = print) -> Settings:
    defaults = Settings()
    return Settings(
        a=_ask_value(ask, say, "Enter a", defaults.a, float),
        b=_ask_value(ask, say, "Enter b", defaults.b, float),
        digits=_ask_value(ask, say, "Enter d (digits)", defaults.digits, _positive_int),
        max_steps=_ask_value(ask, say, "Enter max steps", defaults.max_steps, int),
    )


def run_all(
    f: Callable[[float], float],
    settings: Settings,
    names: Optional[Iterable[str]] = None,
    echo: Optional[Reporter] = None,
    say: Optional[Callable[..., None]] = None,
) -> Tuple[Dict[str, RootResult], List[Dict[str, Any]]]:
    """
    Run the selected methods (all of them, in registry order, by default) on [a, b].
    Returns the result per method and every recorded iterate.
    """
    results: Dict[str, RootResult] = {}
    rows: List[Dict[str, Any]] = []
    for name in (names if names is not None else METHODS):
        if say is not None:
            say(f"\n📌 {METHODS[name].label} method:")
        recorder = IterationRecorder(name, forward=echo)
        results[name] = run_method(
            name, f, settings.x_precision, settings.a, settings.b, settings.max_steps, recorder
        )
        rows.extend(recorder.rows)
    return results, rows


def print_summary(results: Dict[str, RootResult], say: Callable[..., None] = print) -> None:
    # table header
    say("\n" + "=" * 72)
    say(f"{'method':<18} {'root':<26} {'steps':<7} {'status':<20}")
    say("-" * 72)

    # table rows
    for name, result in results.items():
        status = "converged" if result.ok else result.failure.value
        root = pretty_format_number(result.value, digits=16)
        say(f"{METHODS[name].label:<18} {root:<26} {result.steps:<7} {status:<20}")

    say("=" * 72)


def main(ask: Callable[[str], str] = input, say: Callable[..., None] = print) -> None:
    """Interactive run of every method"""
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")
    say("Root Finding - Numerical Project")
    expr = read_expression(ask, say)
    settings = read_settings(ask, say)

    work = analyze(expr, settings.a, settings.b, settings.x_precision)
    say("\n📌 Workability:")
    for note in work.notes:
        say(f" - {note}")

    results, _ = run_all(expr, settings, echo=report_approximation, say=say)
    print_summary(results, say)


if __name__ == "__main__":
    main()
