from typing import Any, Dict, List, Optional
import csv
import io
import os

from root_finding import Reporter

FIELDNAMES = ["method", "step", "x", "f(x)"]


def report_approximation(step: int, x: float, y: float) -> None:
    """
    Console reporter: one line per approximation.
    """
    print(f"x{step} = {x:<+22.16g} y{step} = {y:<+22.16g}")


class IterationRecorder:
    """
    Reporter that keeps every (step, x, f(x)) as a row tagged with the method name,
    optionally forwarding each call to another reporter.
    """

    def __init__(self, method: str, forward: Optional[Reporter] = None):
        self.method = method
        self.forward = forward
        self.rows: List[Dict[str, Any]] = []

    def __call__(self, step: int, x: float, y: float) -> None:
        self.rows.append({"method": self.method, "step": step, "x": x, "f(x)": y})
        if self.forward is not None:
            self.forward(step, x, y)


def iterations_to_csv_string(iterations: List[Dict[str, Any]]) -> str:
    """
    Convert iterations list (list of dicts) to CSV string.
    Columns are: method, step, x, f(x)
    """
    if not iterations:
        return ""
    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=FIELDNAMES)
    writer.writeheader()
    for row in iterations:
        clean_row = {k: (row.get(k) if row.get(k) is not None else "") for k in FIELDNAMES}
        writer.writerow(clean_row)
    return buf.getvalue()


def save_iterations_to_csv(iterations: List[Dict[str, Any]], filepath: str) -> None:
    """
    Save iterations to a CSV file at filepath. Overwrites if exists.
    """
    csv_text = iterations_to_csv_string(iterations)
    with open(filepath, "w", newline="", encoding="utf-8") as f:
        f.write(csv_text)


def ensure_dir_for_file(path: str) -> None:
    d = os.path.dirname(path)
    if d and not os.path.exists(d):
        os.makedirs(d, exist_ok=True)


def pretty_format_number(x: Any, digits: int = 8) -> str:
    """
    Format number for display with `digits` significant digits; non-numbers pass through str().
    """
    try:
        return f"{x:.{digits}g}"
    except (TypeError, ValueError):
        return str(x)
