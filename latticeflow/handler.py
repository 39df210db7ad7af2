"""Base classes for the handlers that drive a simulation run."""

from __future__ import annotations

import enum
import logging
import math
from collections.abc import Iterable, Sequence

log = logging.getLogger(__name__)


class HandlerType(enum.IntFlag):
    """Roles a handler can play in a run."""

    NONE = 0
    CALLBACK = 0x01
    ACTION = 0x02
    DESIGN = 0x04
    GENERIC = 0x10
    CONTAINER = 0x20


class ParameterKind(enum.IntEnum):
    """What a call to ``parameters`` asks a design for."""

    GET = 0x01
    SET = 0x02
    GRAD = 0x03
    LOWER = 0x04
    UPPER = 0x05
    X = 0x06
    Y = 0x07
    Z = 0x08
    T = 0x09


class HandlerError(Exception):
    """Raised when a handler is misconfigured or misused."""


class Handler:
    """A configuration element that acts at chosen iterations."""

    def __init__(self, name: str = "", start_iter: int = 0, every_iter: float = 0.0):
        self.name = name
        self.start_iter = start_iter
        self.every_iter = float(every_iter)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(name={self.name!r}, "
            f"start_iter={self.start_iter}, every_iter={self.every_iter})"
        )

    @property
    def _label(self) -> str:
        return self.name or type(self).__name__

    def handler_type(self) -> HandlerType:
        return HandlerType.NONE

    def init(self) -> None:
        raise HandlerError(f"{self._label}: init is not defined for this handler")

    def do_it(self) -> None:
        raise HandlerError(f"{self._label}: do_it is not defined for this handler")

    def finish(self) -> None:
        raise HandlerError(f"{self._label}: finish is not defined for this handler")

    def now(self, iteration: float) -> bool:
        """Whether the handler is due at ``iteration``."""
        if not self.every_iter:
            return False
        it = iteration - self.start_iter
        return math.floor(it / self.every_iter) > math.floor((it - 1) / self.every_iter)

    def next(self, iteration: float) -> int:
        """Iterations left until the handler is next due, or -1 if never."""
        if not self.every_iter:
            return -1
        it = iteration - self.start_iter
        k = math.floor(it / self.every_iter)
        return int(-math.floor(-(k + 1) * self.every_iter) - it)

    def prev(self, iteration: float) -> int:
        """Iterations back to the previous due point when running in reverse."""
        if not self.every_iter:
            return -1
        it = iteration - self.start_iter
        k = math.floor((it - 1) / self.every_iter)
        return int(it + math.floor(-k * self.every_iter))

    def number_of_parameters(self) -> int:
        return 0

    def parameters(self, kind: ParameterKind, values: Sequence[float] | None = None):
        raise HandlerError(f"{self._label}: handler has no parameters")


class Action(Handler):
    """A handler that does its work once, when it is initialised."""

    def handler_type(self) -> HandlerType:
        return HandlerType.ACTION

    def init(self) -> None:
        if self.every_iter:
            log.info("Setting action %s at %g iterations", self._label, self.every_iter)

    def do_it(self) -> None:
        return None

    def finish(self) -> None:
        return None


class Callback(Handler):
    """A handler called periodically during iteration."""

    def handler_type(self) -> HandlerType:
        return HandlerType.CALLBACK

    def init(self) -> None:
        if self.every_iter:
            log.info("Setting callback %s at %g iterations", self._label, self.every_iter)
        else:
            log.info("Callback %s with no Iterations attribute", self._label)

    def do_it(self) -> None:
        return None

    def finish(self) -> None:
        return None


class Design(Callback):
    """A handler that exposes optimisation parameters."""

    def handler_type(self) -> HandlerType:
        return HandlerType.DESIGN

    def init(self) -> None:
        if self.every_iter:
            raise HandlerError(
                f"Design element {self._label} should not have an Iterations parameter"
            )
        log.info("Design %s with no Iterations attribute", self._label)

    def get_parameters(self) -> list[float]:
        return self.parameters(ParameterKind.GET)

    def set_parameters(self, values: Sequence[float]) -> None:
        self.parameters(ParameterKind.SET, values)

    def get_gradient(self) -> list[float]:
        return self.parameters(ParameterKind.GRAD)


class NullHandler(Handler):
    """A handler for elements that need nothing done."""

    def handler_type(self) -> HandlerType:
        return HandlerType.GENERIC

    def init(self) -> None:
        return None

    def do_it(self) -> None:
        return None

    def finish(self) -> None:
        return None


class DesignGroup:
    """The concatenated parameter vector of all design handlers in a list."""

    def __init__(self, handlers: Iterable[Handler]):
        self.handlers = list(handlers)
        self._count: int | None = None

    def _designs(self) -> list[Handler]:
        return [h for h in self.handlers if h.handler_type() == HandlerType.DESIGN]

    def number_of_parameters(self) -> int:
        """Total parameter count; fixed at the first call."""
        if self._count is None:
            total = 0
            for design in self._designs():
                log.info("Getting number of parameters from %s", design.name)
                total += design.number_of_parameters()
            self._count = total
        return self._count

    def parameters(self, kind: ParameterKind, values: Sequence[float] | None = None):
        """Spread ``values`` over the designs (SET) or collect theirs (other kinds)."""
        kind = ParameterKind(kind)
        total = self.number_of_parameters()
        setting = kind is ParameterKind.SET
        if setting:
            if values is None:
                raise ValueError("values are required to set parameters")
            values = list(values)
            if len(values) != total:
                raise ValueError(f"expected {total} values, got {len(values)}")
        collected: list[float] = []
        offset = 0
        for design in self._designs():
            size = design.number_of_parameters()
            if offset + size > total:
                offset += size
                break
            if setting:
                design.parameters(kind, values[offset:offset + size])
            else:
                collected.extend(design.parameters(kind))
            offset += size
        if offset != total:
            raise HandlerError(
                f"Number of parameters is inconsistent with the first count "
                f"(in parameters({kind.name}))"
            )
        return None if setting else collected