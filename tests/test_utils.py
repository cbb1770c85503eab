import utils
from utils import (
    IterationRecorder,
    ensure_dir_for_file,
    iterations_to_csv_string,
    pretty_format_number,
    report_approximation,
    save_iterations_to_csv,
)


def test_report_approximation_format(capsys):
    report_approximation(1, 1.5, -0.125)
    expected = "x1 = " + "+1.5".ljust(22) + " y1 = " + "-0.125".ljust(22) + "\n"
    assert capsys.readouterr().out == expected


def test_recorder_keeps_rows_and_forwards():
    seen = []
    recorder = IterationRecorder("newton", forward=lambda *args: seen.append(args))
    recorder(1, 1.5, -0.125)
    recorder(2, 1.52, 0.001)
    assert recorder.rows == [
        {"method": "newton", "step": 1, "x": 1.5, "f(x)": -0.125},
        {"method": "newton", "step": 2, "x": 1.52, "f(x)": 0.001},
    ]
    assert seen == [(1, 1.5, -0.125), (2, 1.52, 0.001)]


def test_csv_string():
    assert iterations_to_csv_string([]) == ""
    text = iterations_to_csv_string([
        {"method": "newton", "step": 1, "x": 1.5, "f(x)": -0.125},
        {"method": "secant", "step": 1, "x": 2.0, "f(x)": None},
    ])
    lines = text.splitlines()
    assert lines[0] == ",".join(utils.FIELDNAMES)
    assert lines[1] == "newton,1,1.5,-0.125"
    assert lines[2] == "secant,1,2.0,"


def test_save_csv(tmp_path):
    target = tmp_path / "out" / "iterations.csv"
    ensure_dir_for_file(str(target))
    assert target.parent.is_dir()
    save_iterations_to_csv([{"method": "chord", "step": 3, "x": 1.0, "f(x)": 0.0}], str(target))
    assert target.read_text(encoding="utf-8").splitlines()[1] == "chord,3,1.0,0.0"


def test_pretty_format_number():
    assert pretty_format_number(1 / 3, digits=4) == "0.3333"
    assert pretty_format_number("", digits=8) == ""
    assert pretty_format_number(None) == "None"
