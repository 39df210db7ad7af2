import csv
import math

import pytest

from latticeflow.handler import HandlerError
from latticeflow.optimizer import (
    FDTest,
    central_differences,
    material_less,
    material_more,
    parse_parameter_range,
    step_levels,
)


def test_material_more_value_and_gradient():
    value, grad = material_more([1.0, 2.0, 3.0], 4.0, True)
    assert value == pytest.approx(2.0)
    assert grad == [1.0, 1.0, 1.0]


def test_material_less_value_and_gradient():
    value, grad = material_less([1.0, 2.0, 3.0], 4.0, True)
    assert value == pytest.approx(-2.0)
    assert grad == [-1.0, -1.0, -1.0]


def test_material_without_gradient():
    assert material_more([0.5, 0.5], 1.0, False)[1] is None
    assert material_less([0.5, 0.5], 1.0, False)[1] is None


def test_material_constraints_are_opposite():
    x = [0.3, 0.7, 1.1]
    assert material_more(x, 1.5)[0] == pytest.approx(-material_less(x, 1.5)[0])


@pytest.mark.parametrize(
    "spec, expected",
    [
        (None, (0, 10)),
        ("0", (0, 10)),
        (":3", (0, 4)),
        ("3:", (3, 7)),
        ("2:5", (2, 4)),
        ("9:9", (9, 1)),
    ],
)
def test_parse_parameter_range(spec, expected):
    assert parse_parameter_range(spec, 10) == expected


@pytest.mark.parametrize("spec", ["3", "5:2", "8:12", "-1:2", "10:"])
def test_parse_parameter_range_rejects(spec):
    with pytest.raises(HandlerError):
        parse_parameter_range(spec, 10)


def test_step_levels_endpoints_and_ratio():
    levels = step_levels(1e-4, 1e-1, 4)
    assert len(levels) == 4
    assert levels[0] == pytest.approx(1e-4)
    assert levels[-1] == pytest.approx(1e-1)
    ratios = [b / a for a, b in zip(levels, levels[1:])]
    assert all(r == pytest.approx(ratios[0]) for r in ratios)


def test_step_levels_defaults():
    levels = step_levels()
    assert len(levels) == 24
    assert levels[0] == pytest.approx(1e-11)
    assert levels[-1] == pytest.approx(1.0)


@pytest.mark.parametrize("args", [(0.0, 1.0, 3), (1e-3, -1.0, 3), (1e-3, 1.0, 1)])
def test_step_levels_rejects(args):
    with pytest.raises(HandlerError):
        step_levels(*args)


@pytest.mark.parametrize("order", [1, 2, 3])
def test_central_differences_of_quadratic(order):
    h = 0.1
    values = [(1.0 + m * h) ** 2 for m in range(-order, order + 1)]
    diffs = central_differences(values, order, h)
    assert len(diffs) == order
    assert all(d == pytest.approx(2.0) for d in diffs)


def test_central_differences_rejects_bad_length():
    with pytest.raises(ValueError):
        central_differences([1.0, 2.0], 1, 0.1)
    with pytest.raises(ValueError):
        central_differences([1.0] * 9, 4, 0.1)


def _quadratic(calls):
    def objective(x, want_gradient):
        calls.append(list(x))
        value = sum(v * v for v in x)
        grad = [2 * v for v in x] if want_gradient else None
        return value, grad
    return objective


def test_fdtest_writes_csv_and_matches_gradient(tmp_path):
    calls = []
    test = FDTest(
        _quadratic(calls), [0.5, -0.25, 1.0], [-1.0] * 3, [1.0] * 3,
        h_min=1e-4, h_max=1e-2, levels=3,
    )
    path = tmp_path / "fd.csv"
    rows = test.run(path)
    assert len(rows) == 9
    assert len(calls) == 1 + 9 * 2
    with open(path) as f:
        lines = f.read().splitlines()
    assert lines[0] == (
        "Parameter, Value, Gradient, H, RightObj1, Objective, LeftObj1, CentralDiff1"
    )
    parsed = list(csv.reader(lines[1:], skipinitialspace=True))
    assert len(parsed) == 9
    for record in parsed:
        k = int(record[0])
        grad = float(record[2])
        assert grad == pytest.approx(2 * test.start[k])
        assert float(record[-1]) == pytest.approx(grad, abs=1e-8)


def test_fdtest_parameter_range_and_order(tmp_path):
    calls = []
    test = FDTest(
        _quadratic(calls), [0.1, 0.2, 0.3, 0.4], [0.0] * 4, [2.0] * 4,
        order=4, parameter_range="1:2", h_min=1e-3, h_max=1e-1, levels=2,
    )
    assert test.order == 2
    rows = test.run(tmp_path / "fd.csv")
    assert [r["parameter"] for r in rows] == [1, 1, 2, 2]
    for row in rows:
        assert len(row["values"]) == 5
        assert len(row["differences"]) == 2


@pytest.mark.parametrize("order, half", [(7, 3), (1, 1), (3, 2), (6, 3)])
def test_fdtest_order_is_clamped_and_halved(order, half):
    test = FDTest(_quadratic([]), [0.0], [-1.0], [1.0], order=order, levels=2)
    assert test.order == half


def test_fdtest_requires_parameters():
    with pytest.raises(HandlerError):
        FDTest(_quadratic([]), [], [], [])


def test_fdtest_requires_gradient(tmp_path):
    test = FDTest(lambda x, g: (sum(x), None), [1.0], [0.0], [2.0], levels=2)
    with pytest.raises(ValueError):
        test.run(tmp_path / "fd.csv")


def test_fdtest_rows_hold_centre_value(tmp_path):
    test = FDTest(_quadratic([]), [0.5, 0.5], [-1.0, -1.0], [1.0, 1.0], levels=2)
    rows = test.run(tmp_path / "fd.csv")
    for row in rows:
        assert row["values"][test.order] == pytest.approx(0.5)
        assert math.isfinite(row["h"])