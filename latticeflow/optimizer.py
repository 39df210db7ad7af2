"""Material constraints and a finite-difference check of objective gradients."""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Callable, Sequence
from os import PathLike

from .handler import HandlerError

log = logging.getLogger(__name__)

#: An objective takes the parameter vector and whether the gradient is wanted,
#: and returns the objective value and the gradient (or None).
Objective = Callable[[Sequence[float], bool], "tuple[float, Sequence[float] | None]"]

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def _atoi(text: str) -> int:
    """Read a leading integer the lenient way; text without one reads as 0."""
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else 0


def material_more(x: Sequence[float], material: float, want_gradient: bool = False):
    """Constraint that the total material stays above ``material``.

    Returns ``(sum(x) - material, gradient)``; the gradient is None unless wanted.
    """
    total = math.fsum(x)
    log.info("Material %e (%e at start)", total, material)
    grad = [1.0] * len(x) if want_gradient else None
    return total - material, grad


def material_less(x: Sequence[float], material: float, want_gradient: bool = False):
    """Constraint that the total material stays below ``material``.

    Returns ``(material - sum(x), gradient)``; the gradient is None unless wanted.
    """
    total = math.fsum(x)
    log.info("Material %e (%e at start)", total, material)
    grad = [-1.0] * len(x) if want_gradient else None
    return material - total, grad


def parse_parameter_range(spec: str | None, total: int) -> tuple[int, int]:
    """Turn a range such as ``"2:5"``, ``":5"``, ``"3:"`` or ``"3"`` into (start, count).

    Bounds are inclusive. A bare number only moves the start, keeping the full count.
    """
    start, count = 0, total
    if spec is not None:
        colon = spec.find(":")
        if colon < 0:
            start = _atoi(spec)
        elif colon == 0:
            count = _atoi(spec[1:]) + 1
        elif colon == len(spec) - 1:
            start = _atoi(spec[:colon])
            count = total - start
        else:
            start = _atoi(spec[:colon])
            count = _atoi(spec[colon + 1:]) - start + 1
    if count < 1 or start < 0:
        raise HandlerError("You need at least one parameter in FDTest")
    if start >= total or start + count > total:
        raise HandlerError("Parameter out of bounds in FDTest")
    return start, count


def step_levels(h_min: float = 1e-11, h_max: float = 1.0, levels: int = 24) -> list[float]:
    """Relative step sizes spread evenly in logarithm from ``h_min`` to ``h_max``."""
    if h_min <= 0 or h_max <= 0:
        raise HandlerError("You need to provide a H > 0 in FDTest")
    if levels < 2:
        raise HandlerError("You need to provide a levels >= 2 in FDTest")
    lo, hi = math.log(h_min), math.log(h_max)
    return [math.exp(lo + ((hi - lo) * i) / (levels - 1)) for i in range(levels)]


def central_differences(values: Sequence[float], order: int, h: float) -> list[float]:
    """Central-difference derivatives from ``2*order+1`` samples spaced by ``h``.

    ``values[order]`` is the sample at the centre. The result holds one estimate
    per stencil width, widest first, for widths ``order`` down to 1.
    """
    if order not in (1, 2, 3):
        raise ValueError("order must be 1, 2 or 3")
    if len(values) != 2 * order + 1:
        raise ValueError(f"expected {2 * order + 1} values, got {len(values)}")

    def v(m: int) -> float:
        return values[order + m]

    out: list[float] = []
    if order >= 3:
        diff = (v(3) + 9 * (-v(2) + 5 * (v(1) - v(-1)) + v(-2)) - v(-3)) / 60
        out.append(diff / h)
    if order >= 2:
        diff = (-v(2) + 8 * (v(1) - v(-1)) + v(-2)) / 12
        out.append(diff / h)
    diff = (v(1) - v(-1)) / 2
    out.append(diff / h)
    return out


class FDTest:
    """Compares an objective's gradient with finite differences of the objective."""

    def __init__(
        self,
        objective: Objective,
        start: Sequence[float],
        lower: Sequence[float],
        upper: Sequence[float],
        order: int = 2,
        parameter_range: str | None = None,
        h_min: float = 1e-11,
        h_max: float = 1.0,
        levels: int = 24,
    ):
        self.objective = objective
        self.start = [float(v) for v in start]
        total = len(self.start)
        if total == 0:
            raise HandlerError("Error: No parameters defined!")
        if len(lower) != total or len(upper) != total:
            raise ValueError("start, lower and upper must have the same length")
        log.info("Parameters in test: %d", total)
        if order > 6:
            log.error("Too high order in FDTest")
            order = 6
        if order < 2:
            log.error("Negative order in FDTest")
            order = 2
        order += order % 2
        self.order = order // 2
        self.par_start, self.par_num = parse_parameter_range(parameter_range, total)
        log.info(
            "Parameters in test: %d:%d (%d) from %d",
            self.par_start, self.par_start + self.par_num - 1, self.par_num, total,
        )
        self.levels = step_levels(h_min, h_max, levels)
        self.dx = [(u - lo) / 2.0 for lo, u in zip(lower, upper)]

    def _header(self) -> str:
        parts = ["Parameter", "Value", "Gradient", "H"]
        parts += [f"RightObj{o}" for o in range(self.order, 0, -1)]
        parts.append("Objective")
        parts += [f"LeftObj{o + 1}" for o in range(self.order)]
        parts += [f"CentralDiff{o}" for o in range(self.order, 0, -1)]
        return ", ".join(parts)

    def run(self, path: str | PathLike) -> list[dict]:
        """Evaluate every step level of every tested parameter, writing a CSV to ``path``.

        Returns one record per row: parameter, h, values and differences.
        """
        log.info("Evaluation for testing point")
        val0, grad = self.objective(list(self.start), True)
        if grad is None:
            raise ValueError("objective returned no gradient")
        grad = list(grad)
        rows: list[dict] = []
        with open(path, "w") as f:
            f.write(self._header() + "\n")
            for k in range(self.par_start, self.par_start + self.par_num):
                log.info("Testing parameter %d", k)
                for level in self.levels:
                    h = self.dx[k] * level
                    log.info("Running h=%e", h)
                    values = []
                    for m in range(-self.order, self.order + 1):
                        if m == 0:
                            values.append(val0)
                            continue
                        x = list(self.start)
                        x[k] = self.start[k] + m * h
                        value, _ = self.objective(x, False)
                        values.append(value)
                    diffs = central_differences(values, self.order, h)
                    fields = [str(k)] + [
                        "%.16g" % v for v in (self.start[k], grad[k], h, *values, *diffs)
                    ]
                    f.write(", ".join(fields) + "\n")
                    f.flush()
                    rows.append(
                        {"parameter": k, "h": h, "values": values, "differences": diffs}
                    )
        return rows