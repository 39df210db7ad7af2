"""Particle data exchanged with a remote force integrator."""

from __future__ import annotations

import enum
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

import numpy as np

log = logging.getLogger(__name__)

VERSION = 0x000104

CODE_HANDSHAKE = 1
CODE_FINISH = 2
CODE_PARTICLES = 3
CODE_FORCES = 4
CODE_ABORT = 0xFF

DATA_START = 0
DATA_R = 0
DATA_POS = 1
DATA_VEL = 4
DATA_ANGVEL = 7
DATA_IN = 10
DATA_FORCE = 10
DATA_MOMENT = 13
DATA_OUT = 6
DATA_SIZE = 16


class InterfaceKind(enum.Enum):
    """Which side of the exchange this interface is."""

    FORCE_CALCULATOR = "ForceCalculator"
    FORCE_INTEGRATOR = "ForceIntegrator"


class Storage(enum.Enum):
    """Layout of the particle table."""

    ARRAY_OF_STRUCTURES = "ArrayOfStructures"
    STRUCTURE_OF_ARRAYS = "StructureOfArrays"


def _zeros3() -> tuple[float, float, float]:
    return (0.0, 0.0, 0.0)


@dataclass
class Box:
    """An axis-aligned box a worker declares as its domain."""

    declared: bool = False
    lower: tuple[float, float, float] = field(default_factory=_zeros3)
    upper: tuple[float, float, float] = field(default_factory=_zeros3)


class RemoteForceInterface:
    """Holds the particle table shared between a force calculator and an integrator."""

    def __init__(
        self,
        kind: InterfaceKind = InterfaceKind.FORCE_CALCULATOR,
        rotation: bool = True,
        storage: Storage = Storage.ARRAY_OF_STRUCTURES,
    ):
        self.kind = InterfaceKind(kind)
        self.rotation = bool(rotation)
        self.storage = Storage(storage)
        self.name = self.kind.value
        self.particle_size = DATA_SIZE
        self.connected = False
        self.active = False
        self.stats = False
        self.stats_prefix = ""
        self.stats_iter = 0
        self.base_units = [1.0, 1.0, 1.0]
        self.non_trivial_units = False
        self.can_cope = True
        self.unit = [1.0] * DATA_SIZE
        self.box = Box()
        self.sizes: list[int] = []
        self.offsets: list[int] = [0]
        self._totsize = 0
        self._ntab = 0
        self._tab = np.zeros(0)

    def __repr__(self) -> str:
        return (
            f"RemoteForceInterface(kind={self.kind.name}, rotation={self.rotation}, "
            f"storage={self.storage.name}, size={self._totsize})"
        )

    @property
    def workers(self) -> int:
        return len(self.sizes)

    @property
    def mem_size(self) -> int:
        """Number of table entries in use."""
        return self._ntab

    @property
    def data(self) -> np.ndarray:
        """The raw particle table in use (a view)."""
        return self._tab[: self._ntab]

    def set_units(self, meter: float, second: float, kilogram: float) -> None:
        """Declare the base units; only allowed before connection."""
        if self.connected:
            raise RuntimeError("Units can be set only before connection is established")
        self.base_units = [float(meter), float(second), float(kilogram)]
        self.non_trivial_units = True

    def can_cope_with_units(self, flag: bool) -> None:
        """Say whether this side can convert units; only allowed before connection."""
        if self.connected:
            raise RuntimeError(
                "You can set the can_cope_with_units flag only before connection is established"
            )
        self.can_cope = bool(flag)

    def declare_simple_box(
        self, x0: float, x1: float, y0: float, y1: float, z0: float, z1: float
    ) -> Box:
        """Declare this side's domain, given in base length units."""
        m = self.base_units[0]
        self.box = Box(True, (x0 / m, y0 / m, z0 / m), (x1 / m, y1 / m, z1 / m))
        return self.box

    def set_sizes(self, sizes: Sequence[int]) -> None:
        """Set the number of particles coming from each worker."""
        values = [int(s) for s in sizes]
        if any(s < 0 for s in values):
            raise ValueError("sizes must be non-negative")
        self.sizes = values

    def alloc(self) -> None:
        """Compute offsets and grow the table to hold every particle."""
        offsets = [0]
        for s in self.sizes:
            offsets.append(offsets[-1] + s)
        self.offsets = offsets
        total = offsets[-1]
        if total != self._totsize:
            self._totsize = total
            self._ntab = total * self.particle_size
            if self._ntab > self._tab.size:
                grown = np.zeros(self._ntab)
                grown[: self._tab.size] = self._tab
                self._tab = grown

    def size(self) -> int:
        """Total number of particles."""
        return self._totsize

    def raw_index(self, i: int, j: int) -> int:
        """Position of value ``j`` of particle ``i`` in the table."""
        if not 0 <= i < self._totsize:
            raise IndexError(f"particle {i} out of range")
        if not 0 <= j < self.particle_size:
            raise IndexError(f"data index {j} out of range")
        if self.storage is Storage.ARRAY_OF_STRUCTURES:
            return i * self.particle_size + j
        return i + j * self._totsize

    def set_data(self, i: int, j: int, value: float) -> None:
        self._tab[self.raw_index(i, j)] = value * self.unit[j]

    def get_data(self, i: int, j: int) -> float:
        return float(self._tab[self.raw_index(i, j)] / self.unit[j])

    def get_pos(self, i: int, j: int) -> float:
        if not 0 <= j < 3:
            raise IndexError(f"coordinate {j} out of range")
        return self.get_data(i, DATA_POS + j)

    def get_rad(self, i: int) -> float:
        return self.get_data(i, DATA_R)

    def enable_stats(self, prefix: str | None = None, iterations: int = 1) -> None:
        """Ask for statistics written every ``iterations`` exchanges."""
        self.stats = True
        self.stats_prefix = "" if prefix is None else prefix
        self.stats_iter = max(int(iterations), 1)
        log.info("Statistics enabled for %s every %d iterations", self.name, self.stats_iter)