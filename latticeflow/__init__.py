"""Handlers, design parametrisations, turbulence, acceleration and particle-coupling helpers for lattice flow solvers."""

__version__ = "0.1.0"
__all__ = [
    "handler",
    "turbulence",
    "designs",
    "optimizer",
    "andersen",
    "rfi",
    "negotiation",
    "esys",
]