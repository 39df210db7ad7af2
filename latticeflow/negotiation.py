"""Agreement between the two sides of a remote force exchange, and its statistics."""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass, field
from os import PathLike
from pathlib import Path

from .rfi import (
    DATA_ANGVEL,
    DATA_FORCE,
    DATA_IN,
    DATA_MOMENT,
    DATA_POS,
    DATA_R,
    DATA_SIZE,
    DATA_START,
    DATA_VEL,
    VERSION,
)

log = logging.getLogger(__name__)

#: Number of timing slots kept by the statistics.
WAIT_SLOTS = 12


class NegotiationError(Exception):
    """Raised when the two sides cannot agree on how to exchange data."""


def _unit_triple() -> tuple[float, float, float]:
    return (1.0, 1.0, 1.0)


@dataclass
class PeerSettings:
    """What one side announces to the other before the exchange starts."""

    version: int = VERSION
    rotation: bool = True
    real_size: int = 8
    particle_values: int = DATA_IN - DATA_START
    force_values: int = DATA_SIZE - DATA_IN
    non_trivial_units: bool = False
    can_cope_with_units: bool = True
    base_units: tuple[float, float, float] = field(default_factory=_unit_triple)
    stats: bool = False
    stats_prefix: str = ""
    stats_iter: int = 0


@dataclass
class Agreement:
    """The settings the local side ends up with."""

    rotation: bool
    converts_units: bool
    unit: tuple[float, ...]
    stats: bool
    stats_prefix: str
    stats_iter: int
    particle_size: int = DATA_SIZE


def unit_factors(my_units: Sequence[float], other_units: Sequence[float]) -> list[float]:
    """Conversion factor for every particle value, from base units (m, s, kg) of both sides."""
    if len(my_units) != 3 or len(other_units) != 3:
        raise ValueError("units are given as (meter, second, kilogram)")
    meter = other_units[0] / my_units[0]
    second = other_units[1] / my_units[1]
    kilogram = other_units[2] / my_units[2]
    log.info("Unit conversion: m:%g, s:%g, kg:%g", meter, second, kilogram)
    unit = [1.0] * DATA_SIZE
    unit[DATA_R] = meter
    for i in range(3):
        unit[DATA_POS + i] = meter
        unit[DATA_VEL + i] = meter / second
        unit[DATA_ANGVEL + i] = 1.0 / second
        unit[DATA_FORCE + i] = kilogram * meter / (second * second)
        unit[DATA_MOMENT + i] = kilogram * meter * meter / (second * second)
    return unit


def negotiate(local: PeerSettings, remote: PeerSettings, local_is_calculator: bool) -> Agreement:
    """Settle what the local side uses, given both announcements."""
    if local.version != remote.version:
        raise NegotiationError("RemoteForceInterface version mismatch")
    rotation = bool(local.rotation and remote.rotation)
    log.info("Decided to calculate %s rotation", "with" if rotation else "without")
    if local.real_size != remote.real_size:
        raise NegotiationError("Sizes of float type mismatch")
    if local.particle_values * local.real_size != remote.particle_values * remote.real_size:
        raise NegotiationError("Sizes of particle data mismatch")
    if local.force_values * local.real_size != remote.force_values * remote.real_size:
        raise NegotiationError("Sizes of force data mismatch")

    unit = [1.0] * DATA_SIZE
    converts = False
    if local.non_trivial_units or remote.non_trivial_units:
        log.info("Non trivial units")
        mine = bool(local.can_cope_with_units)
        other = bool(remote.can_cope_with_units)
        if mine and other:
            if local_is_calculator:
                other = False
            else:
                mine = False
        if not mine and not other:
            raise NegotiationError("Nobody is taking care of the units!")
        if mine:
            log.info("I'm taking care of the units")
            unit = unit_factors(local.base_units, remote.base_units)
            converts = True

    stats = bool(local.stats or remote.stats)
    prefix = local.stats_prefix if local.stats_prefix != "" else remote.stats_prefix
    stats_iter = local.stats_iter if local.stats_iter != 0 else remote.stats_iter
    if stats:
        log.info("Decided to calculate with statistics")
    return Agreement(
        rotation=rotation,
        converts_units=converts,
        unit=tuple(unit),
        stats=stats,
        stats_prefix=prefix,
        stats_iter=stats_iter,
    )


class StatsRecorder:
    """Averages particle counts and wait times, appending them to a text file."""

    def __init__(self, prefix: str | PathLike | None, name: str, rank: int,
                 workers: int, iterations: int):
        if workers < 0:
            raise ValueError("workers must be non-negative")
        prefix_text = "" if prefix is None else str(prefix)
        if prefix_text == "":
            prefix_text = "RFI"
        self.path = Path("%s_%s_P%02d.txt" % (prefix_text, name, rank))
        self.workers = int(workers)
        self.iterations = max(int(iterations), 1)
        self._sizes = [0.0] * self.workers
        self._sizes_num = 0
        self._wait = [0.0] * WAIT_SLOTS
        self._wait_num = [0] * WAIT_SLOTS
        header = ["size_iter"]
        header += ["size_%03d" % i for i in range(self.workers)]
        header += ["dt_%02d" % i for i in range(WAIT_SLOTS)]
        with open(self.path, "w") as f:
            f.write(", ".join(header) + "\n")

    def record_sizes(self, sizes: Sequence[int]) -> None:
        if len(sizes) != self.workers:
            raise ValueError(f"expected {self.workers} sizes, got {len(sizes)}")
        for i, s in enumerate(sizes):
            self._sizes[i] += s
        self._sizes_num += 1

    def record_wait(self, index: int, seconds: float) -> None:
        if not 0 <= index < WAIT_SLOTS:
            raise IndexError(f"wait slot {index} out of range")
        self._wait[index] += seconds
        self._wait_num[index] += 1

    def flush(self) -> bool:
        """Append a line of averages once enough exchanges were recorded."""
        if self._sizes_num != self.iterations:
            return False
        fields = [str(self._sizes_num)]
        fields += ["%g" % (s / self._sizes_num) for s in self._sizes]
        fields += [
            "%g" % (total / count if count else math.nan)
            for total, count in zip(self._wait, self._wait_num)
        ]
        with open(self.path, "a") as f:
            f.write(", ".join(fields) + "\n")
        self._sizes = [0.0] * self.workers
        self._sizes_num = 0
        self._wait = [0.0] * WAIT_SLOTS
        self._wait_num = [0] * WAIT_SLOTS
        return True