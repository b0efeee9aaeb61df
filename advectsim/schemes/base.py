"""
Common contract for advection schemes.

A scheme reads the current buffer of one field, never mutates it, and
writes every cell of the output exactly once. The per-cell work has no
cross-cell write dependency within a pass, so a pass can be split into
disjoint blocks along axis 0 and run on worker threads.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING, Callable, ClassVar, Sequence

import numpy as np
from numpy.typing import NDArray

from ..errors import InvalidTimeStep, ShapeMismatch
from ..velocity import check_velocity

if TYPE_CHECKING:
    from ..grid import Grid


def check_time_step(dt: float) -> float:
    """Return dt as float, or raise InvalidTimeStep if it is not usable."""
    try:
        dt = float(dt)
    except (TypeError, ValueError) as e:
        raise InvalidTimeStep(f"Time step must be a number, got {dt!r}") from e
    if not math.isfinite(dt) or dt <= 0.0:
        raise InvalidTimeStep(f"Time step must be finite and > 0, got {dt}")
    return dt


def shift(
    padded: NDArray[np.float64],
    width: int,
    ndim: int,
    axis: int,
    offset: int,
    block: slice,
) -> NDArray[np.float64]:
    """
    Window of a ghost-padded array aligned with the interior cells of `block`.

    Parameters
    ----------
    padded : NDArray
        Array padded with `width` ghost cells on each of the `ndim` spatial axes.
    width : int
        Ghost layer width.
    ndim : int
        Number of spatial axes.
    axis : int
        Axis along which to move.
    offset : int
        Neighbour offset along `axis` (-1 = previous cell, +1 = next cell).
    block : slice
        Rows of the interior along axis 0.

    Returns
    -------
    NDArray
        View with the shape of the interior block.
    """
    index = []
    for a in range(ndim):
        if a == 0:
            lo, hi = block.start, block.stop
        else:
            lo, hi = 0, padded.shape[a] - 2 * width
        off = offset if a == axis else 0
        index.append(slice(width + lo + off, width + hi + off))
    return padded[tuple(index)]


def velocity_component(
    velocity: NDArray[np.float64],
    axis: int,
    block: slice,
    extra: int,
) -> NDArray[np.float64]:
    """Velocity along `axis` for the rows in `block`, broadcastable over `extra` trailing axes."""
    u = velocity[block][..., axis]
    return u.reshape(u.shape + (1,) * extra)


class AdvectionScheme(ABC):
    """
    Strategy producing the next state of a field.

    Parameters
    ----------
    workers : int
        Number of threads for the per-cell loop (1 = run inline).
    """

    name: ClassVar[str]
    #: Largest stable Courant number (inf for unconditionally stable schemes).
    max_courant: ClassVar[float] = 1.0

    def __init__(self, workers: int = 1):
        if workers < 1:
            raise ValueError(f"workers must be >= 1, got {workers}")
        self.workers = workers

    @property
    def cfl_limited(self) -> bool:
        """True if the scheme needs dt below a CFL bound to stay stable."""
        return math.isfinite(self.max_courant)

    def courant_rate(
        self,
        velocity: NDArray[np.float64],
        spacing: Sequence[float],
    ) -> float:
        """
        Courant number per unit time: max over cells of sum_a |u_a| / h_a.

        The stable time step at Courant number C is C / courant_rate.
        """
        rate = np.zeros(velocity.shape[:-1])
        for axis, h in enumerate(spacing):
            rate = rate + np.abs(velocity[..., axis]) / h
        return float(np.max(rate)) if rate.size else 0.0

    def advect(
        self,
        grid: "Grid",
        velocity: NDArray[np.float64],
        dt: float,
        name: str | None = None,
        out: NDArray[np.float64] | None = None,
    ) -> NDArray[np.float64]:
        """
        Compute the field one time step ahead.

        Parameters
        ----------
        grid : Grid
            Grid holding the field and its boundary conditions.
        velocity : NDArray
            Velocity, shape (*grid.shape, grid.ndim).
        dt : float
            Time step.
        name : str or None
            Field to advect (default: first field).
        out : NDArray or None
            Destination buffer (e.g. the field's next slot); allocated if None.

        Returns
        -------
        NDArray
            The new field values.

        Raises
        ------
        InvalidTimeStep
            If dt is not finite and positive.
        ShapeMismatch
            If the velocity or `out` does not match the grid.
        """
        dt = check_time_step(dt)
        velocity = check_velocity(grid, velocity)
        values = grid.field(name).current
        if out is None:
            out = np.empty_like(values)
        elif out.shape != values.shape:
            raise ShapeMismatch(
                f"Output buffer has shape {out.shape}, expected {values.shape}"
            )
        elif np.shares_memory(out, values):
            raise ValueError("Output buffer must not alias the current field values")

        self._advect(grid, values, velocity, dt, out)
        return out

    @abstractmethod
    def _advect(
        self,
        grid: "Grid",
        values: NDArray[np.float64],
        velocity: NDArray[np.float64],
        dt: float,
        out: NDArray[np.float64],
    ) -> None:
        """Write the advected values into `out`."""

    def _for_each_block(self, n_rows: int, fn: Callable[[slice], None]) -> None:
        """Run fn over disjoint row blocks of axis 0, on worker threads if enabled."""
        n_blocks = min(self.workers, n_rows)
        if n_blocks <= 1:
            fn(slice(0, n_rows))
            return

        bounds = np.linspace(0, n_rows, n_blocks + 1).astype(int)
        blocks = [slice(int(a), int(b)) for a, b in zip(bounds[:-1], bounds[1:]) if b > a]
        with ThreadPoolExecutor(max_workers=n_blocks) as pool:
            futures = [pool.submit(fn, block) for block in blocks]
            for future in futures:
                future.result()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(workers={self.workers})"
