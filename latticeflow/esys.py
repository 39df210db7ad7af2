"""Setup of a discrete-element particle run coupled to the lattice solver."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from os import PathLike

log = logging.getLogger(__name__)

PARTICLE_TYPES = ("NRotSphere", "RotSphere")
MAX_RADIUS = 10.0
INTERACTION_NAME = "lattice"

_PERIODIC = {
    "": (False, False, False),
    "x": (True, False, False),
    "y": (False, True, False),
    "z": (False, False, True),
    "x+y": (True, True, False),
    "x+z": (True, False, True),
    "y+z": (False, True, True),
    "x+y+z": (True, True, True),
}


class DivisionError(Exception):
    """Raised when the workers cannot be laid out over the domain."""


def parse_periodic(value: str | None) -> tuple[bool, bool, bool]:
    """Read a periodicity such as ``"x+y"`` into flags for x, y and z."""
    if value is None:
        return (False, False, False)
    try:
        return _PERIODIC[value]
    except KeyError:
        raise ValueError(f"Incorrect periodic option {value!r}; use e.g. x+y") from None


def _divisors(n: int) -> list[int]:
    return [d for d in range(1, n + 1) if n % d == 0]


def choose_division(workers: int, divisions: Sequence[int],
                    periodic: Sequence[bool] = (False, False, False)) -> tuple[int, int, int]:
    """Lay ``workers`` out as nx x ny x nz, fitting the solver's own division."""
    if workers < 1:
        raise DivisionError(
            "No place for workers (you need at least 2 additional processes)"
        )
    xper, yper, zper = (1 if p else 0 for p in periodic)
    nx0, ny0, nz0 = divisions
    nx0 = max(nx0, xper + 1)
    ny0 = max(ny0, yper + 1)
    nz0 = max(nz0, zper + 1)
    log.info("%dx%dx%d", nx0, ny0, nz0)
    best = 0
    nx = ny = nz = 1
    for nx1 in _divisors(nx0):
        for ny1 in _divisors(ny0):
            for nz1 in _divisors(nz0):
                tot = nx1 * ny1 * nz1
                if tot > workers or workers % tot != 0:
                    continue
                nx_ = workers // (ny1 * nz1)
                if nx_ > xper and ny1 > yper and nz1 > zper and tot > best:
                    best = tot
                    nx, ny, nz = nx_, ny1, nz1
    if best == 0:
        raise DivisionError(
            f"Cannot find a good division. Requested workers ({workers}) do not fit "
            f"well with division ({nx0}x{ny0}x{nz0})"
        )
    for flag, n, axis in zip(periodic, (nx, ny, nz), "XYZ"):
        if flag and n < 2:
            raise DivisionError(
                f"Periodic in {axis} only when there are 2 processes in this direction"
            )
    log.info("Will be running at %dx%dx%d", nx, ny, nz)
    return nx, ny, nz


def write_script(path: str | PathLike, sim: str, division: Sequence[int],
                 particle_type: str, grid_spacing: float, verlet_dist: float,
                 domain: Sequence[float], periodic: Sequence[bool], time_step: float,
                 steps: int, remote_name: str, output_prefix: str, body: str) -> str:
    """Write the particle-code run script to ``path`` and return its text."""
    if particle_type not in PARTICLE_TYPES:
        raise ValueError(f"Unknown particle type {particle_type!r}")
    nx, ny, nz = division
    sx, sy, sz = domain
    circ = ", ".join("True" if p else "False" for p in periodic)
    lines = [
        "from esys.lsm import *",
        "from esys.lsm.util import Vec3, BoundingBox",
        "from esys.lsm.geometry import *",
        "",
        f"{sim} = LsmMpi(numWorkerProcesses={nx * ny * nz}, mpiDimList=[{nx},{ny},{nz}])",
        f'{sim}.initNeighbourSearch( particleType="{particle_type}", '
        f"gridSpacing={grid_spacing:g}, verletDist={verlet_dist:g} )",
        f"{sim}.setSpatialDomain( BoundingBox(Vec3({0.0:g},{0.0:g},{0.0:g}), "
        f"Vec3({sx:g},{sy:g},{sz:g})), circDimList = [{circ}])",
        f"{sim}.setTimeStepSize({time_step:g})",
        f"{sim}.setNumTimeSteps({int(steps)})",
        f'{sim}.createInteractionGroup(\tRemoteForcePrms(name="{INTERACTION_NAME}", '
        f'remote_name="{remote_name}", max_rad={MAX_RADIUS:g}) )',
        f'output_prefix="{output_prefix}"',
        "def output_path(x):",
        "\treturn output_prefix + x",
        body,
        f"{sim}.run()",
    ]
    text = "\n".join(lines) + "\n"
    log.info("config: %s", path)
    with open(path, "w") as f:
        f.write(text)
    return text