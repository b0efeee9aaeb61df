"""
1D, 2D and 3D structured grid setup.

Array axis a is spatial axis a (x, y, z); cell i on an axis is centred at
origin + (i + 0.5) * h.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Sequence

import numpy as np
from numpy.typing import NDArray

from .boundary import BoundaryConditions, Clamped, Periodic, create_boundary
from .errors import InvalidDimension, ShapeMismatch
from .fields import Field

if TYPE_CHECKING:
    from .config import GridConfig


def _per_axis(value: float | Sequence[float], ndim: int, name: str) -> tuple[float, ...]:
    if np.ndim(value) == 0:
        return (float(value),) * ndim
    value = tuple(float(v) for v in value)
    if len(value) != ndim:
        raise InvalidDimension(
            f"{name} has {len(value)} entries but grid is {ndim}D"
        )
    return value


def _check_shape(shape: Sequence[int]) -> tuple[int, ...]:
    shape = tuple(int(n) for n in shape)
    if not 1 <= len(shape) <= 3:
        raise InvalidDimension(f"Grid must be 1D, 2D or 3D, got {len(shape)} axes")
    if any(n <= 0 for n in shape):
        raise InvalidDimension(f"Every grid axis must be > 0, got {shape}")
    return shape


@dataclass(frozen=True)
class GridSnapshot:
    """
    Read-only view of the grid for renderers and writers.

    The arrays are views of the live buffers and stay valid only until the
    next step.

    Attributes
    ----------
    shape : tuple[int, ...]
        Grid shape.
    spacing : tuple[float, ...]
        Cell size per axis.
    origin : tuple[float, ...]
        Lower corner of the domain.
    time : float
        Simulation time of the values.
    step : int
        Number of completed steps.
    fields : dict[str, NDArray]
        Read-only field values.
    velocity : NDArray
        Read-only velocity, shape (*shape, ndim).
    """
    shape: tuple[int, ...]
    spacing: tuple[float, ...]
    origin: tuple[float, ...]
    time: float
    step: int
    fields: dict[str, NDArray[np.float64]]
    velocity: NDArray[np.float64]

    @property
    def ndim(self) -> int:
        return len(self.shape)


def _read_only(values: NDArray[np.float64]) -> NDArray[np.float64]:
    view = values.view()
    view.flags.writeable = False
    return view


class Grid:
    """
    Structured grid owning the advected fields and the velocity.

    Parameters
    ----------
    shape : sequence of int
        Number of cells per axis (1 to 3 axes).
    cell_size : float or sequence of float
        Uniform or per-axis cell size.
    origin : float or sequence of float
        Lower corner of the domain.
    boundary : BoundaryConditions or None
        Field boundary conditions (default: periodic on every axis).

    Raises
    ------
    InvalidDimension
        If the shape or cell size is not usable.
    """

    def __init__(
        self,
        shape: Sequence[int],
        cell_size: float | Sequence[float] = 1.0,
        origin: float | Sequence[float] = 0.0,
        boundary: BoundaryConditions | None = None,
    ):
        self._shape = _check_shape(shape)
        self.spacing = _per_axis(cell_size, self.ndim, "cell_size")
        if any(not np.isfinite(h) or h <= 0 for h in self.spacing):
            raise InvalidDimension(f"Cell size must be > 0, got {self.spacing}")
        self.origin = _per_axis(origin, self.ndim, "origin")
        self.fields: dict[str, Field] = {}
        self._velocity = np.zeros(self._shape + (self.ndim,), dtype=np.float64)
        self.generation = 0
        self._boundary = BoundaryConditions.uniform(Periodic(), self.ndim)
        if boundary is not None:
            self.boundary = boundary

    @property
    def shape(self) -> tuple[int, ...]:
        return self._shape

    @property
    def ndim(self) -> int:
        """Number of spatial dimensions."""
        return len(self._shape)

    @property
    def n_cells(self) -> int:
        return int(np.prod(self._shape))

    @property
    def lengths(self) -> tuple[float, ...]:
        """Domain length per axis."""
        return tuple(n * h for n, h in zip(self._shape, self.spacing))

    # ------------------------------------------------------------------
    # Boundary conditions
    # ------------------------------------------------------------------

    @property
    def boundary(self) -> BoundaryConditions:
        return self._boundary

    @boundary.setter
    def boundary(self, boundary: BoundaryConditions) -> None:
        if boundary.ndim != self.ndim:
            raise ShapeMismatch(
                f"{boundary.ndim}D boundary conditions on a {self.ndim}D grid"
            )
        self._boundary = boundary

    @property
    def velocity_boundary(self) -> BoundaryConditions:
        """
        Conditions used when the velocity is read outside the domain.

        Periodic axes stay periodic; every other axis is clamped, so a
        backtrace never picks up a fixed field value as a velocity.
        """
        return BoundaryConditions([
            p if isinstance(p, Periodic) else Clamped()
            for p in self._boundary.policies
        ])

    # ------------------------------------------------------------------
    # Fields and velocity
    # ------------------------------------------------------------------

    def add_field(
        self,
        name: str,
        components: int = 1,
        initial: NDArray[np.float64] | float | None = None,
    ) -> Field:
        """Allocate a named field (zero-filled unless `initial` is given)."""
        if name in self.fields:
            raise ValueError(f"Field '{name}' already exists")
        field = Field(name, self._shape, components)
        if initial is not None:
            field.assign(initial)
        self.fields[name] = field
        return field

    def field(self, name: str | None = None) -> Field:
        """Return a field by name (default: the first one added)."""
        if not self.fields:
            raise KeyError("Grid has no fields")
        if name is None:
            return next(iter(self.fields.values()))
        if name not in self.fields:
            available = ", ".join(self.fields)
            raise KeyError(f"Unknown field: '{name}'. Available: {available}")
        return self.fields[name]

    @property
    def velocity(self) -> NDArray[np.float64]:
        return self._velocity

    @velocity.setter
    def velocity(self, values: NDArray[np.float64] | Sequence[float]) -> None:
        values = np.asarray(values, dtype=np.float64)
        expected = self._shape + (self.ndim,)
        if values.shape == (self.ndim,):
            values = np.broadcast_to(values, expected)
        if values.shape != expected:
            raise ShapeMismatch(
                f"Velocity must have shape {expected}, got {values.shape}"
            )
        self._velocity = np.array(values, dtype=np.float64)

    # ------------------------------------------------------------------
    # Sampling
    # ------------------------------------------------------------------

    def sample(
        self,
        coord: Sequence[int] | int,
        name: str | None = None,
    ) -> float | NDArray[np.float64]:
        """
        Field value at an integer cell coordinate.

        Out-of-range coordinates resolve through the boundary conditions.

        Parameters
        ----------
        coord : int or sequence of int
            Cell coordinate, one entry per axis.
        name : str or None
            Field name (default: first field).

        Returns
        -------
        float or NDArray
            Scalar value, or component vector for vector fields.
        """
        coord = (coord,) if np.ndim(coord) == 0 else tuple(coord)
        if len(coord) != self.ndim:
            raise ShapeMismatch(
                f"Coordinate {coord} has {len(coord)} entries but grid is {self.ndim}D"
            )
        field = self.field(name)
        value = self._boundary.gather(field.current, [int(c) for c in coord])
        if field.is_vector:
            return np.asarray(value, dtype=np.float64)
        return float(value)

    def cell_centers(self) -> tuple[NDArray[np.float64], ...]:
        """Physical cell-centre coordinates, one array of the grid shape per axis."""
        axes = [
            o + (np.arange(n) + 0.5) * h
            for n, h, o in zip(self._shape, self.spacing, self.origin)
        ]
        return tuple(np.meshgrid(*axes, indexing="ij"))

    def index_coordinates(self) -> NDArray[np.float64]:
        """Cell indices as floats, shape (*shape, ndim)."""
        axes = [np.arange(n, dtype=np.float64) for n in self._shape]
        return np.stack(np.meshgrid(*axes, indexing="ij"), axis=-1)

    def to_index_space(self, points: NDArray[np.float64]) -> NDArray[np.float64]:
        """Convert physical positions (..., ndim) to fractional cell indices."""
        points = np.asarray(points, dtype=np.float64)
        return (points - np.asarray(self.origin)) / np.asarray(self.spacing) - 0.5

    # ------------------------------------------------------------------
    # Buffer management
    # ------------------------------------------------------------------

    def step_swap(self) -> None:
        """Exchange current and next buffers of every field; O(1)."""
        for field in self.fields.values():
            field.swap()

    def resize(self, new_shape: Sequence[int]) -> None:
        """
        Reallocate every buffer for a new shape, zero-filled.

        Cell size, origin and boundary conditions are kept. Scheme caches
        keyed on `generation` are invalidated.

        Raises
        ------
        InvalidDimension
            If any axis is <= 0 or the dimensionality changes.
        """
        new_shape = _check_shape(new_shape)
        if len(new_shape) != self.ndim:
            raise InvalidDimension(
                f"Cannot resize a {self.ndim}D grid to {len(new_shape)}D"
            )
        self._shape = new_shape
        for field in self.fields.values():
            field.reallocate(new_shape)
        self._velocity = np.zeros(new_shape + (self.ndim,), dtype=np.float64)
        self.generation += 1

    def snapshot(self, time: float = 0.0, step: int = 0) -> GridSnapshot:
        """Read-only view of the current buffers."""
        return GridSnapshot(
            shape=self._shape,
            spacing=self.spacing,
            origin=self.origin,
            time=time,
            step=step,
            fields={name: _read_only(f.current) for name, f in self.fields.items()},
            velocity=_read_only(self._velocity),
        )

    def __repr__(self) -> str:
        return (
            f"Grid(shape={self._shape}, spacing={self.spacing}, "
            f"fields={list(self.fields)})"
        )


def create_grid(config: "GridConfig") -> Grid:
    """
    Create a grid from configuration.

    Parameters
    ----------
    config : GridConfig
        Grid configuration.

    Returns
    -------
    Grid
        The computational grid, without fields.
    """
    grid = Grid(config.shape, cell_size=config.cell_size, origin=config.origin)
    grid.boundary = create_boundary(config.boundary, grid.ndim)
    return grid
