"""Anderson acceleration of a fixed-point iteration."""

from __future__ import annotations

import logging
import math
from collections.abc import Callable

import numpy as np

log = logging.getLogger(__name__)


class AndersenAccelerator:
    """Accelerates ``state -> step(state)`` towards its fixed point.

    Keeps up to ``directions`` past states and residuals, orthogonalises the
    newest residual against the older ones and mixes the states accordingly.
    """

    def __init__(self, directions: int, times: int | None = None, eps: float = 0.0):
        if directions < 1:
            raise ValueError("directions must be at least 1")
        self.directions = int(directions)
        self.times = self.directions if times is None else int(times)
        self.eps = float(eps)
        self.residuals: list[float] = []

    def run(self, state, step: Callable[[np.ndarray], np.ndarray]) -> np.ndarray:
        """Iterate from ``state`` with ``step`` and return the final state."""
        current = np.array(state, dtype=float)
        xs: list[np.ndarray] = []
        es: list[np.ndarray] = []
        ps: list[float] = []
        self.residuals = []
        d = 0
        log.info("Size of vector in Andersen: %d", current.size)
        for _ in range(self.times):
            x0 = current.copy()
            current = np.array(step(current.copy()), dtype=float)
            e0 = current - x0
            residual = float(e0 @ e0)
            self.residuals.append(residual)
            log.info("Residual in Andersen: %g", residual)
            if not math.isfinite(residual) or residual < self.eps:
                break
            xs = [x0] + xs[: self.directions - 1]
            es = [e0] + es[: self.directions - 1]
            ps = [1.0] + ps[: self.directions - 1]
            d = min(d + 1, self.directions)

            for j in range(1, d):
                a = float(es[0] @ es[j])
                es[0] = es[0] - a * es[j]
                xs[0] = xs[0] - a * xs[j]
                ps[0] -= a * ps[j]
            a = math.sqrt(float(es[0] @ es[0]))
            es[0] = es[0] / a
            xs[0] = xs[0] / a
            ps[0] /= a

            psum = sum(p * p for p in ps[:d])
            mixed = sum(xs[i] * (ps[i] / psum) for i in range(d))
            current = np.array(step(mixed), dtype=float)
        return current