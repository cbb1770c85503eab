import pytest

pytest.importorskip("tkinter")

import gui  # noqa: E402
from expression import Expression  # noqa: E402
from main import Settings, run_all  # noqa: E402
from root_finding import METHODS  # noqa: E402
from workability import analyze  # noqa: E402


def test_method_choices():
    assert gui.METHOD_CHOICES[0] == gui.ALL_METHODS
    assert gui.selected_methods(gui.ALL_METHODS) == list(METHODS)
    assert gui.selected_methods("Halley") == ["halley"]
    assert gui.selected_methods("Simple iteration") == ["simple_iteration"]


def test_summary_and_table_rows():
    expr = Expression("x^2 - 2")
    settings = Settings(a=0.0, b=2.0, digits=6, max_steps=50)
    results, rows = run_all(expr, settings, names=["dichotomy", "simple_iteration"])
    lines = gui.summary_lines(results, analyze(expr, settings.a, settings.b, settings.x_precision), settings)
    assert lines[0] == "Interval: [0.0, 2.0]"
    assert any(line.startswith("Dichotomy: root = ") for line in lines)
    assert any(line.startswith("Simple iteration: failed (") for line in lines)
    assert "Workability:" in lines
    label, step, x, fx = gui.table_values(rows[0])
    assert (label, step) == ("Dichotomy", 1)
    assert x == "1"
