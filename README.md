# latticeflow

Building blocks for driving a lattice flow solver:

- handlers that decide when they fire;
- design parametrisations for optimisation;
- synthetic turbulence;
- Anderson acceleration of fixed-point iterations;
- finite-difference gradient checks;
- the data side of a remote force interface used to couple with a particle code.

## Installation

```
pip install latticeflow
```

Only `numpy` is needed at run time. Install the `test` extra to get `pytest`.

## Modules

### `latticeflow.handler`

- `Handler` is the base class. It has `name`, `start_iter` and `every_iter`.
  - `now(iteration)` tells whether the handler is due.
  - `next(iteration)` and `prev(iteration)` give the distance to the next due point, or to the previous one when running backwards. Both return -1 when `every_iter` is zero.
- `Action`, `Callback`, `Design` and `NullHandler` are the concrete kinds. They report themselves through `handler_type()`, which returns a `HandlerType` flag.
  - `Design.init()` raises `HandlerError` if the design was given an interval.
  - `Design` also has the shortcuts `get_parameters()`, `set_parameters(values)` and `get_gradient()`.
- `ParameterKind` lists what a call to `parameters(kind, values)` asks for: `GET`, `SET`, `GRAD`, `LOWER`, `UPPER`, and the coordinates `X`, `Y`, `Z`, `T`.
- `DesignGroup(handlers)` joins the parameter vectors of every design in a list.
  - The count is fixed at the first call to `number_of_parameters()`.
  - `parameters(kind, values)` raises `HandlerError` if the designs later disagree with that count.

### `latticeflow.designs`

Each design here wraps a child design and re-parametrises it. Each raises `HandlerError` if the child is not a design.

- `FourierDesign(child, modes, lower, upper)` describes the child's series by a truncated Fourier series. An even number of modes is rounded up to an odd one.
- `RepeatControlDesign(child, length, lower, upper, flip_level)` repeats a segment of `length` values along the child. If `flip_level` is given, every other repetition is mirrored about it.
- `ExtrudeDesign(child, direction, theta, margin)` uses one smooth front position per line along `"x"`, `"y"`, `"z"` or `"t"`. It reads the coordinates from the child through `ParameterKind.X` to `ParameterKind.T`. `GRAD` needs a prior `SET`.

### `latticeflow.turbulence`

- `SyntheticTurbulence(rng)` builds a set of random Fourier modes.
  - `resize(n)` sets the number of modes.
  - `set_von_karman(le, ld, lmin, lmax)` fills the modes from a von Kármán spectrum and returns the captured energy fraction.
  - `set_one_wave(wave_number)` uses a single mode.
  - `set_time_scale(value)` and `set_spread(spread)` record the time scale and a `Spread` choice.
  - `wave_set()` returns a `WaveSet` copy of the modes.
- `velocity(wave_set, x, y, z)` evaluates the perturbation at a point.
- `random_normal(n, rng)` draws Box–Muller normals.

### `latticeflow.optimizer`

- `material_more(x, material, want_gradient)` and `material_less(...)` are total-material constraints. Each returns `(value, gradient_or_None)`.
- `parse_parameter_range(spec, total)` reads `"2:5"`, `":5"`, `"3:"` or `"3"` into `(start, count)`.
- `step_levels(h_min, h_max, levels)` gives log-spaced step sizes.
- `central_differences(values, order, h)` returns derivative estimates of orders 1–3, widest stencil first.
- `FDTest(objective, start, lower, upper, order, parameter_range, h_min, h_max, levels)` compares an objective's gradient with finite differences.
  - The objective is called as `objective(x, want_gradient)` and returns `(value, gradient)`.
  - `run(path)` writes a CSV report and returns one record per row.

### `latticeflow.andersen`

`AndersenAccelerator(directions, times, eps)` accelerates an iteration.

- `run(state, step)` iterates `state -> step(state)` and returns the final state.
- Residuals are kept in `residuals`.
- It stops early on a non-finite residual or one below `eps`.

### `latticeflow.rfi`

`RemoteForceInterface(kind, rotation, storage)` holds the particle table. Each particle has 16 values: radius, position, velocity, angular velocity, force and moment.

- `set_sizes(sizes)` followed by `alloc()` lays out the table.
- `set_data` and `get_data` apply the per-value unit factors. `get_pos` and `get_rad` read position and radius.
- `raw_index` maps a particle value to its place in the table. Both `Storage` layouts are supported.
- `set_units` and `can_cope_with_units` can only be called while not connected.
- `declare_simple_box` returns a `Box`.
- `enable_stats(prefix, iterations)` switches statistics on.

### `latticeflow.negotiation`

- `negotiate(local, remote, local_is_calculator)` settles what the local side uses from two `PeerSettings`:
  - rotation;
  - who converts units;
  - the unit factors;
  - the statistics options.

  It returns an `Agreement`, or raises `NegotiationError` on a mismatch.
- `unit_factors(my_units, other_units)` gives the conversion factor for each particle value.
- `StatsRecorder(prefix, name, rank, workers, iterations)` writes `<prefix>_<name>_PNN.txt`.
  - Feed it with `record_sizes` and `record_wait`.
  - `flush()` appends a line of averages once `iterations` exchanges were recorded.

### `latticeflow.esys`

- `parse_periodic("x+y")` turns a periodicity string into per-axis flags.
- `choose_division(workers, divisions, periodic)` lays workers out to fit the solver's division. It raises `DivisionError` when no layout fits.
- `write_script(...)` writes the driver script for the particle code and returns its text.

## Example

```python
from latticeflow.handler import Callback

cb = Callback("Log", start_iter=0, every_iter=100)
cb.now(200)    # True
cb.next(150)   # 50
```

```python
from latticeflow.optimizer import central_differences

central_differences([1.0, 2.0, 3.0], order=1, h=1.0)   # [1.0]
```

## What this package does not do

- It contains no lattice solver. Handlers, designs and accelerators work against objects and callables you supply.
- There is no store of per-zone, time-dependent settings.
- `RemoteForceInterface` and `negotiate` hold and settle the data, but the package does not move it between processes.
- There is no command-line program.