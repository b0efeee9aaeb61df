"""
Multilinear reconstruction of field values at off-grid points.

Linear in 1D, bilinear in 2D, trilinear in 3D: a weighted average of the
2**ndim surrounding cell values, each read through the boundary conditions.
"""

from __future__ import annotations

from itertools import product

import numpy as np
from numpy.typing import NDArray

from .boundary import BoundaryConditions
from .errors import ShapeMismatch


class MultilinearInterpolator:
    """
    Sample a field at real-valued positions in index space.

    Index space: cell i sits at coordinate i on its axis, so an integer
    point is a grid node and reproduces the stored value exactly.

    Parameters
    ----------
    boundary : BoundaryConditions
        Conditions used for neighbours outside the grid.
    """

    def __init__(self, boundary: BoundaryConditions):
        self.boundary = boundary

    def sample_at(
        self,
        values: NDArray[np.float64],
        points: NDArray[np.float64],
    ) -> NDArray[np.float64]:
        """
        Interpolate values at points.

        Parameters
        ----------
        values : NDArray
            Field values, shape (*grid_shape) or (*grid_shape, components).
        points : NDArray
            Positions in index space, shape (..., ndim).

        Returns
        -------
        NDArray
            Shape (...) for scalar fields, (..., components) for vector fields.

        Raises
        ------
        OutOfDomain
            If a strict Fixed policy refuses a neighbour outside the grid.
        """
        points = np.asarray(points, dtype=np.float64)
        ndim = self.boundary.ndim
        if points.shape[-1:] != (ndim,):
            raise ShapeMismatch(
                f"Points must have a trailing axis of length {ndim}, got {points.shape}"
            )

        lower = np.floor(points)
        frac = points - lower
        lower = lower.astype(np.intp)
        # On an exact node the upper neighbour has zero weight: reuse the node
        # so no out-of-domain read is triggered there.
        upper = np.where(frac > 0.0, lower + 1, lower)

        extra = values.ndim - ndim
        result = None
        for corner in product((0, 1), repeat=ndim):
            weight = None
            index = []
            for axis, bit in enumerate(corner):
                t = frac[..., axis]
                w = t if bit else 1.0 - t
                weight = w if weight is None else weight * w
                index.append(upper[..., axis] if bit else lower[..., axis])
            sample = self.boundary.gather(values, index)
            term = weight.reshape(weight.shape + (1,) * extra) * sample
            result = term if result is None else result + term
        return result

    def __call__(
        self,
        values: NDArray[np.float64],
        points: NDArray[np.float64],
    ) -> NDArray[np.float64]:
        return self.sample_at(values, points)
