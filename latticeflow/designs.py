"""Designs that reparametrise the parameters of a child design."""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence

from .handler import Design, Handler, HandlerError, HandlerType, ParameterKind

log = logging.getLogger(__name__)


def _check_child(owner: str, child: Handler) -> None:
    if child.handler_type() != HandlerType.DESIGN:
        raise HandlerError(f"{owner} needs child of design type!")


def _unknown(kind, owner: str):
    return HandlerError(f"Unknown type {kind} in call to parameters in {owner}")


class FourierDesign(Design):
    """Describes a child's parameter series by a truncated Fourier series."""

    def __init__(self, child: Handler, modes: int = 10, lower: float = -1.0,
                 upper: float = 1.0):
        super().__init__("Fourier")
        _check_child(self._label, child)
        self.child = child
        self.child_count = child.number_of_parameters()
        if modes % 2 != 1:
            modes += 1
            log.info("number of modes in %s not odd - setting to %d", self._label, modes)
        self.modes = modes
        self.lower = float(lower)
        self.upper = float(upper)

    def number_of_parameters(self) -> int:
        return self.modes

    def _basis(self, i: int, j: int) -> float:
        i0 = (i + 1) >> 1
        arg = i0 * math.pi * 2 * j / self.child_count
        return math.sin(arg) if i & 1 else math.cos(arg)

    def _decompose(self, series: Sequence[float]) -> list[float]:
        return [
            sum(self._basis(i, j) * v for j, v in enumerate(series))
            for i in range(self.modes)
        ]

    def parameters(self, kind: ParameterKind, values: Sequence[float] | None = None):
        kind = ParameterKind(kind) if kind in ParameterKind._value2member_map_ else kind
        n2 = self.child_count
        if kind is ParameterKind.GET:
            coefs = self._decompose(self.child.parameters(kind))
            return [c / n2 if i == 0 else 2 * c / n2 for i, c in enumerate(coefs)]
        if kind is ParameterKind.SET:
            if values is None or len(values) != self.modes:
                raise ValueError(f"expected {self.modes} values")
            series = [
                sum(self._basis(i, j) * values[i] for i in range(self.modes))
                for j in range(n2)
            ]
            self.child.parameters(kind, series)
            return None
        if kind is ParameterKind.GRAD:
            return self._decompose(self.child.parameters(kind))
        if kind in (ParameterKind.UPPER, ParameterKind.LOWER):
            s = 0.5 * (self.upper - self.lower)
            sign = 1.0 if kind is ParameterKind.UPPER else -1.0
            out = [sign * s / ((i + 1) >> 1) if i else 0.0 for i in range(self.modes)]
            out[0] = self.upper if kind is ParameterKind.UPPER else self.lower
            return out
        raise _unknown(kind, self._label)


class RepeatControlDesign(Design):
    """Repeats a short control segment along the child's parameters."""

    def __init__(self, child: Handler, length: int = 1, lower: float = -1.0,
                 upper: float = 1.0, flip_level: float | None = None):
        super().__init__("RepeatControl")
        _check_child(self._label, child)
        if length < 1:
            raise ValueError("length must be at least 1")
        self.child = child
        self.child_count = child.number_of_parameters()
        self.length = int(length)
        self.lower = float(lower)
        self.upper = float(upper)
        self.flip_enabled = flip_level is not None
        self.flip_level = 0.0 if flip_level is None else float(flip_level)

    def number_of_parameters(self) -> int:
        return self.length

    def flip(self, value: float, level: float, index: int) -> float:
        """Mirror ``value`` about ``level`` on every other repetition."""
        if not self.flip_enabled:
            return value
        if (index // self.length) % 2 == 0:
            return value
        return level - value

    def _fold(self, series: Sequence[float], level: float) -> list[float]:
        out = [0.0] * self.length
        for j, v in enumerate(series):
            out[j % self.length] += self.flip(v, level, j)
        return out

    def parameters(self, kind: ParameterKind, values: Sequence[float] | None = None):
        kind = ParameterKind(kind) if kind in ParameterKind._value2member_map_ else kind
        n2 = self.child_count
        if kind is ParameterKind.GET:
            sums = self._fold(self.child.parameters(kind), self.flip_level)
            out = []
            for i, total in enumerate(sums):
                count = math.floor((n2 - i - 1.0) / self.length + 1)
                out.append(total / count if count else math.nan)
            return out
        if kind is ParameterKind.SET:
            if values is None or len(values) != self.length:
                raise ValueError(f"expected {self.length} values")
            series = [self.flip(values[j % self.length], self.flip_level, j) for j in range(n2)]
            self.child.parameters(kind, series)
            return None
        if kind is ParameterKind.GRAD:
            return self._fold(self.child.parameters(kind), 0.0)
        if kind is ParameterKind.UPPER:
            return [self.upper] * self.length
        if kind is ParameterKind.LOWER:
            return [self.lower] * self.length
        raise _unknown(kind, self._label)


def _sigmoid(t: float) -> float:
    if t >= 0:
        return 1.0 / (1.0 + math.exp(-t))
    e = math.exp(t)
    return e / (1.0 + e)


_DIRECTIONS = {"x": 0, "y": 1, "z": 2, "t": 3}
_COORD_KINDS = (ParameterKind.X, ParameterKind.Y, ParameterKind.Z, ParameterKind.T)


class ExtrudeDesign(Design):
    """Controls a child's field by one smooth front position per line along a direction."""

    def __init__(self, child: Handler, direction: str, theta: float = 1.0,
                 margin: float = 1.0):
        super().__init__("Extrude")
        _check_child(self._label, child)
        if direction not in _DIRECTIONS:
            raise HandlerError(f"{self._label} needs proper direction - {direction!r} given!")
        self.child = child
        self.child_count = child.number_of_parameters()
        self.direction = _DIRECTIONS[direction]
        self.theta = float(theta)
        self.margin = float(margin)
        self.coords = [list(child.parameters(k)) for k in _COORD_KINDS]
        d = self.direction
        others = [i for i in range(4) if i != d]
        sign = 1.0 if self.theta > 0 else -1.0
        self.order = sorted(
            range(self.child_count),
            key=lambda a: (*(self.coords[i][a] for i in others), sign * self.coords[d][a]),
        )
        self._breaks = [self._is_break(k) for k in range(self.child_count)]
        self.count = sum(self._breaks)
        self._last: list[float] | None = None
        log.info("%s with %d parameters", self._label, self.count)

    def _is_break(self, k: int) -> bool:
        if k + 1 >= self.child_count:
            return True
        a, b = self.order[k], self.order[k + 1]
        return any(self.coords[i][a] != self.coords[i][b] for i in range(4) if i != self.direction)

    def number_of_parameters(self) -> int:
        return self.count

    def _fun(self, x: float, v: float) -> float:
        return _sigmoid((x - v) / self.theta)

    def _fun_d(self, x: float, v: float) -> float:
        s = _sigmoid((x - v) / self.theta)
        return -s * (1.0 - s) / self.theta

    def _groups(self):
        """Yield (group index, child index, sorted position) along the sorted order."""
        k = 0
        for pos, j in enumerate(self.order):
            yield k, j, pos
            if self._breaks[pos]:
                k += 1

    def parameters(self, kind: ParameterKind, values: Sequence[float] | None = None):
        kind = ParameterKind(kind) if kind in ParameterKind._value2member_map_ else kind
        coord = self.coords[self.direction]
        if kind is ParameterKind.SET:
            if values is None or len(values) != self.count:
                raise ValueError(f"expected {self.count} values")
            self._last = [float(v) for v in values]
            series = [0.0] * self.child_count
            for k, j, _ in self._groups():
                series[j] = self._fun(coord[j], values[k])
            self.child.parameters(kind, series)
            return None
        if kind is ParameterKind.GRAD:
            if self._last is None:
                raise HandlerError(f"{self._label}: parameters must be set before the gradient")
            grad_child = self.child.parameters(kind)
            out = [0.0] * self.count
            for k, j, _ in self._groups():
                out[k] += self._fun_d(coord[j], self._last[k]) * grad_child[j]
            return out
        if kind in (ParameterKind.GET, ParameterKind.UPPER, ParameterKind.LOWER):
            series = self.child.parameters(kind) if kind is ParameterKind.GET else None
            out = [0.0] * self.count
            start = True
            for k, j, pos in self._groups():
                if kind is ParameterKind.UPPER and out[k] < coord[j]:
                    start = True
                elif kind is ParameterKind.LOWER and out[k] > coord[j]:
                    start = True
                elif kind is ParameterKind.GET and series[j] < 0.5:
                    start = True
                if start:
                    out[k] = coord[j]
                    start = False
                if self._breaks[pos]:
                    start = True
            offset = abs(self.margin * self.theta)
            shift = offset if kind is ParameterKind.UPPER else -offset
            return [v + shift for v in out]
        raise _unknown(kind, self._label)