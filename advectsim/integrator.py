"""
Time integration: simulation clock, CFL time-step control and the stepping
state machine.

States:
    IDLE --configure--> READY --step--> STEPPING --> READY
    any non-stepping state --teardown--> STOPPED

Steps are synchronous and strictly sequential. A failed step leaves the
field buffers and the clock exactly as they were before the call.
"""

from __future__ import annotations

import math
import warnings
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray

from .boundary import BoundaryConditions
from .errors import (
    AdvectionError,
    DegenerateVelocity,
    IntegratorStateError,
    InvalidTimeStep,
    ShapeMismatch,
)
from .schemes import AdvectionScheme, check_time_step
from .velocity import VelocityLike, VelocitySource, as_velocity_source

if TYPE_CHECKING:
    from .config import TimeConfig
    from .grid import Grid, GridSnapshot


class IntegratorState(Enum):
    IDLE = "idle"
    READY = "ready"
    STEPPING = "stepping"
    STOPPED = "stopped"


@dataclass
class SimulationClock:
    """
    Elapsed time and time-step policy of one simulation.

    Attributes
    ----------
    time : float
        Simulation time.
    step_count : int
        Number of completed steps.
    cfl : float
        Target Courant number for automatic time steps.
    max_dt : float
        Upper bound on automatic time steps; also the fallback when the
        velocity is zero everywhere.
    time_scale : float
        Simulated seconds per wall-clock second for advance_realtime().
    frame_dt : float
        Fixed step used by advance_realtime().
    pending : float
        Simulated time owed by advance_realtime() but not yet stepped.
    """
    time: float = 0.0
    step_count: int = 0
    cfl: float = 0.5
    max_dt: float = 0.1
    time_scale: float = 1.0
    frame_dt: float = 1.0 / 60.0
    pending: float = 0.0

    def __post_init__(self) -> None:
        if not self.cfl > 0:
            raise ValueError(f"cfl must be > 0, got {self.cfl}")
        check_time_step(self.max_dt)
        check_time_step(self.frame_dt)
        if self.time_scale < 0:
            raise ValueError(f"time_scale must be >= 0, got {self.time_scale}")


@dataclass(frozen=True)
class StepReport:
    """
    Outcome of one call to Integrator.step().

    Attributes
    ----------
    dt : float
        Time advanced.
    stages : int
        Number of internal sub-steps the step was split into.
    time : float
        Simulation time after the step.
    step : int
        Step count after the step.
    error : AdvectionError or None
        Non-fatal problem reported by the step (e.g. DegenerateVelocity).
    """
    dt: float
    stages: int
    time: float
    step: int
    error: AdvectionError | None = None


def create_clock(config: "TimeConfig") -> SimulationClock:
    """Create a SimulationClock from config."""
    return SimulationClock(
        cfl=config.cfl,
        max_dt=config.max_dt,
        time_scale=config.time_scale,
        frame_dt=config.frame_dt,
    )


class Integrator:
    """
    Drives a grid forward in time with one advection scheme.

    Typical use::

        integrator = Integrator()
        integrator.configure(grid, UpwindScheme(), velocity=[1.0])
        integrator.step()          # CFL-limited automatic dt
        integrator.step(0.5)       # explicit dt, sub-stepped if needed
        snap = integrator.snapshot()
    """

    def __init__(self) -> None:
        self._state = IntegratorState.IDLE
        self.grid: "Grid | None" = None
        self.scheme: AdvectionScheme | None = None
        self.velocity_source: VelocitySource | None = None
        self.clock: SimulationClock | None = None
        self._has_previous = False

    @property
    def state(self) -> IntegratorState:
        return self._state

    def _require(self, *states: IntegratorState) -> None:
        if self._state not in states:
            allowed = ", ".join(s.name for s in states)
            raise IntegratorStateError(
                f"Integrator is {self._state.name}, expected one of: {allowed}"
            )

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def configure(
        self,
        grid: "Grid",
        scheme: AdvectionScheme,
        boundary: BoundaryConditions | None = None,
        velocity: VelocityLike = None,
        clock: SimulationClock | None = None,
    ) -> None:
        """
        Load a grid, scheme, boundary conditions and velocity source.

        Parameters
        ----------
        grid : Grid
            Grid with at least one field.
        scheme : AdvectionScheme
            Scheme used by every step.
        boundary : BoundaryConditions or None
            Replaces the grid's boundary conditions if given.
        velocity : VelocitySource, array, vector, callable or None
            Velocity source; None reads grid.velocity afresh at every stage.
        clock : SimulationClock or None
            Clock to use; None keeps the current clock (or creates one).

        Raises
        ------
        ShapeMismatch
            If the boundary conditions or velocity do not fit the grid.
        IntegratorStateError
            If called while stepping or after teardown.
        """
        self._require(IntegratorState.IDLE, IntegratorState.READY)
        if not grid.fields:
            raise ShapeMismatch("Grid has no fields to advect")
        if boundary is not None and boundary.ndim != grid.ndim:
            raise ShapeMismatch(
                f"{boundary.ndim}D boundary conditions on a {grid.ndim}D grid"
            )
        source = as_velocity_source(velocity, grid)
        source.validate(grid)

        if boundary is not None:
            grid.boundary = boundary
        self.grid = grid
        self.scheme = scheme
        self.velocity_source = source
        if clock is not None:
            self.clock = clock
        elif self.clock is None:
            self.clock = SimulationClock()
        self._has_previous = False
        self._state = IntegratorState.READY

    def set_scheme(self, scheme: AdvectionScheme) -> None:
        """Swap the scheme without touching the grid or clock."""
        self._require(IntegratorState.READY)
        self.scheme = scheme

    # ------------------------------------------------------------------
    # Time-step control
    # ------------------------------------------------------------------

    def stable_dt(self, velocity: NDArray[np.float64] | None = None) -> float:
        """
        Largest dt the active scheme accepts at the clock's Courant number.

        inf for unconditionally stable schemes or a zero velocity.
        """
        self._require(IntegratorState.READY, IntegratorState.STEPPING)
        if velocity is None:
            velocity = self.velocity_source.evaluate(self.grid, self.clock.time)
        rate = self.scheme.courant_rate(velocity, self.grid.spacing)
        if not self.scheme.cfl_limited or rate == 0.0:
            return math.inf
        return min(self.clock.cfl, self.scheme.max_courant) / rate

    def _stage_count(self, dt: float, rate: float) -> int:
        if not self.scheme.cfl_limited or rate == 0.0:
            return 1
        bound = min(self.clock.cfl, self.scheme.max_courant) / rate
        if dt <= bound:
            return 1
        return math.ceil(dt / bound)

    # ------------------------------------------------------------------
    # Stepping
    # ------------------------------------------------------------------

    def step(self, dt: float | None = None) -> StepReport:
        """
        Advance every field by one step.

        Parameters
        ----------
        dt : float or None
            Requested time step. None picks cfl / courant_rate, clamped to
            clock.max_dt. A dt above the stable bound of a CFL-limited
            scheme is split into equal internal stages.

        Returns
        -------
        StepReport
            Time advanced, number of stages and any non-fatal error.

        Raises
        ------
        InvalidTimeStep, ShapeMismatch, OutOfDomain
            Buffers and clock are left at their pre-call values.
        IntegratorStateError
            If the integrator is not READY.
        """
        self._require(IntegratorState.READY)
        self._state = IntegratorState.STEPPING
        try:
            return self._step(dt)
        finally:
            self._state = IntegratorState.READY

    def _step(self, dt: float | None) -> StepReport:
        grid, scheme, clock = self.grid, self.scheme, self.clock
        error = None

        if dt is not None:
            dt = check_time_step(dt)
        velocity = self.velocity_source.evaluate(grid, clock.time)
        rate = scheme.courant_rate(velocity, grid.spacing)
        if dt is None:
            if rate == 0.0:
                dt = clock.max_dt
                error = DegenerateVelocity(
                    "Velocity is zero everywhere; no CFL time step exists"
                )
                warnings.warn(f"{error}, stepping with max_dt = {dt}", RuntimeWarning)
            else:
                dt = min(clock.cfl / rate, clock.max_dt)

        stages = self._stage_count(dt, rate)
        h = dt / stages
        fields = list(grid.fields.values())
        # Single-stage steps never write the current slot, only the spare one
        backup = [
            (
                f.active,
                f.current.copy() if stages > 1 else None,
                f.next.copy() if self._has_previous else None,
            )
            for f in fields
        ]
        grid_velocity = grid.velocity

        try:
            for k in range(stages):
                if k > 0:
                    velocity = self.velocity_source.evaluate(grid, clock.time + k * h)
                grid.velocity = velocity
                for f in fields:
                    scheme.advect(grid, grid.velocity, h, name=f.name, out=f.next)
                grid.step_swap()
        except Exception:
            for f, (active, current, spare) in zip(fields, backup):
                if f.active != active:
                    f.swap()
                if current is not None:
                    f.current[...] = current
                if spare is not None:
                    f.next[...] = spare
            grid.velocity = grid_velocity
            raise

        if stages > 1:
            # Keep the pre-step state in the spare slot for previous()
            for f, (_, current, _) in zip(fields, backup):
                f.next[...] = current

        clock.time += dt
        clock.step_count += 1
        self._has_previous = True
        return StepReport(
            dt=dt,
            stages=stages,
            time=clock.time,
            step=clock.step_count,
            error=error,
        )

    def advance_by(self, n: int, dt: float | None = None) -> list[StepReport]:
        """
        Take n steps.

        Each step is atomic; if step k fails, steps before it are kept.
        """
        if n < 0:
            raise ValueError(f"Number of steps must be >= 0, got {n}")
        return [self.step(dt) for _ in range(n)]

    def advance_realtime(self, elapsed: float) -> list[StepReport]:
        """
        Advance by wall-clock time, scaled by clock.time_scale.

        Simulated time is accumulated and consumed in fixed frame_dt steps,
        so the result depends only on the accumulated time, never on how
        often this is called.

        Parameters
        ----------
        elapsed : float
            Wall-clock seconds since the previous call.

        Returns
        -------
        list[StepReport]
            One report per step taken (possibly none).
        """
        self._require(IntegratorState.READY)
        if not math.isfinite(elapsed) or elapsed < 0:
            raise InvalidTimeStep(f"Elapsed time must be finite and >= 0, got {elapsed}")
        clock = self.clock
        clock.pending += elapsed * clock.time_scale
        reports = []
        while clock.pending >= clock.frame_dt:
            reports.append(self.step(clock.frame_dt))
            clock.pending -= clock.frame_dt
        return reports

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def snapshot(self) -> "GridSnapshot":
        """Read-only view of the grid; only available between steps."""
        self._require(IntegratorState.READY)
        return self.grid.snapshot(time=self.clock.time, step=self.clock.step_count)

    def current(self, name: str | None = None) -> NDArray[np.float64]:
        """Read-only view of a field's current values."""
        self._require(IntegratorState.READY)
        view = self.grid.field(name).current.view()
        view.flags.writeable = False
        return view

    def previous(self, name: str | None = None) -> NDArray[np.float64]:
        """Read-only view of a field's values before the last step."""
        self._require(IntegratorState.READY)
        if not self._has_previous:
            raise IntegratorStateError("No step has been taken since configure()")
        view = self.grid.field(name).next.view()
        view.flags.writeable = False
        return view

    def teardown(self) -> None:
        """Release the configuration; the integrator cannot be used afterwards."""
        self._require(IntegratorState.IDLE, IntegratorState.READY)
        self.grid = None
        self.scheme = None
        self.velocity_source = None
        self._has_previous = False
        self._state = IntegratorState.STOPPED
