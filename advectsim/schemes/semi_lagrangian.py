"""
Semi-Lagrangian backtrace advection.

For each cell centre, trace backward along the velocity by dt to find where
the transported value came from, then read the field there with multilinear
interpolation. Interpolation is a convex blend of neighbouring values, so
the scheme is stable for any dt: no CFL restriction, at the price of some
smoothing.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray

from ..interpolation import MultilinearInterpolator
from .base import AdvectionScheme

if TYPE_CHECKING:
    from ..grid import Grid


class SemiLagrangianScheme(AdvectionScheme):
    """
    Backtrace along the velocity and interpolate.

    Parameters
    ----------
    order : int
        1 for the Euler backtrace (source = x - u dt), 2 for the midpoint
        (RK2) backtrace.
    substeps : int
        Number of equal sub-traces the backtrace over dt is split into.
        Each sub-trace re-reads the velocity at the current trace point.
    workers : int
        Number of threads for the per-cell loop.
    """

    name = "semi-lagrangian"
    max_courant = math.inf

    def __init__(self, order: int = 1, substeps: int = 1, workers: int = 1):
        super().__init__(workers)
        if order not in (1, 2):
            raise ValueError(f"Backtrace order must be 1 or 2, got {order}")
        if substeps < 1:
            raise ValueError(f"substeps must be >= 1, got {substeps}")
        self.order = order
        self.substeps = substeps
        self._nodes_cache: tuple[tuple[int, int, tuple[int, ...]], NDArray[np.float64]] | None = None

    def __repr__(self) -> str:
        return (
            f"SemiLagrangianScheme(order={self.order}, substeps={self.substeps}, "
            f"workers={self.workers})"
        )

    def _nodes(self, grid: "Grid") -> NDArray[np.float64]:
        """Index-space cell coordinates, cached until the grid is resized."""
        key = (id(grid), grid.generation, grid.shape)
        if self._nodes_cache is None or self._nodes_cache[0] != key:
            self._nodes_cache = (key, grid.index_coordinates())
        return self._nodes_cache[1]

    def _advect(
        self,
        grid: "Grid",
        values: NDArray[np.float64],
        velocity: NDArray[np.float64],
        dt: float,
        out: NDArray[np.float64],
    ) -> None:
        nodes = self._nodes(grid)
        inv_h = 1.0 / np.asarray(grid.spacing)
        sample_field = MultilinearInterpolator(grid.boundary)
        sample_velocity = MultilinearInterpolator(grid.velocity_boundary)
        h = dt / self.substeps

        def trace(block: slice) -> None:
            point = nodes[block]
            u = velocity[block]
            for k in range(self.substeps):
                if k > 0:
                    u = sample_velocity(velocity, point)
                if self.order == 1:
                    point = point - h * u * inv_h
                else:
                    midpoint = point - 0.5 * h * u * inv_h
                    point = point - h * sample_velocity(velocity, midpoint) * inv_h
            out[block] = sample_field(values, point)

        self._for_each_block(grid.shape[0], trace)
