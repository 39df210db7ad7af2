[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "latticeflow"
version = "0.1.0"
description = "Scheduling handlers, design parametrisations and particle-coupling helpers for lattice flow solvers"
requires-python = ">=3.10"
dependencies = ["numpy"]
keywords = ["lattice boltzmann", "cfd", "optimisation", "turbulence", "anderson acceleration", "particles"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Science/Research",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Scientific/Engineering :: Physics",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["latticeflow"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
