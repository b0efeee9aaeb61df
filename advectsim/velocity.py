"""
Velocity sources: where the advecting velocity comes from at each stage.

- StaticVelocity: a fixed array (or constant vector)
- GridVelocity: whatever the grid's velocity array holds when a stage starts
- ExpressionVelocity: u(x, y, z, t) evaluated from expression strings or a callable
- SelfAdvectedVelocity: a vector field of the grid transports itself (nonlinear advection)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Callable, Sequence, Union

import numpy as np
from numpy.typing import NDArray

from .errors import ShapeMismatch
from .fields import evaluate_expression

if TYPE_CHECKING:
    from .config import VelocityConfig
    from .grid import Grid


def check_velocity(grid: "Grid", velocity: NDArray[np.float64]) -> NDArray[np.float64]:
    """Validate a velocity array against the grid; return it as float64."""
    velocity = np.asarray(velocity, dtype=np.float64)
    expected = grid.shape + (grid.ndim,)
    if velocity.shape != expected:
        raise ShapeMismatch(
            f"Velocity must have shape {expected}, got {velocity.shape}"
        )
    return velocity


class VelocitySource(ABC):
    """Produces the velocity array for a given grid state and time."""

    @abstractmethod
    def evaluate(self, grid: "Grid", t: float) -> NDArray[np.float64]:
        """Velocity of shape (*grid.shape, grid.ndim) at time t."""

    def validate(self, grid: "Grid") -> None:
        """Raise ShapeMismatch if this source cannot drive the grid."""
        check_velocity(grid, self.evaluate(grid, 0.0))


class StaticVelocity(VelocitySource):
    """
    Time-independent velocity.

    Parameters
    ----------
    values : NDArray or sequence of float
        Full array (*shape, ndim) or one constant vector (ndim,).
    """

    def __init__(self, values: NDArray[np.float64] | Sequence[float]):
        self.values = np.asarray(values, dtype=np.float64)

    def evaluate(self, grid: "Grid", t: float) -> NDArray[np.float64]:
        if self.values.shape == (grid.ndim,):
            return np.broadcast_to(self.values, grid.shape + (grid.ndim,))
        return self.values


class GridVelocity(VelocitySource):
    """The grid's own velocity array, read afresh at every evaluation."""

    def evaluate(self, grid: "Grid", t: float) -> NDArray[np.float64]:
        return grid.velocity


class ExpressionVelocity(VelocitySource):
    """
    Velocity given per component as expression strings or as one callable.

    Parameters
    ----------
    components : sequence of str, or callable
        Expressions in x, y, z, r, t (one per axis), or a function
        ``fn(coords, t)`` returning an array of shape (*shape, ndim).
    """

    def __init__(
        self,
        components: Sequence[str] | Callable[[tuple[NDArray[np.float64], ...], float], NDArray[np.float64]],
    ):
        self.components = components

    def evaluate(self, grid: "Grid", t: float) -> NDArray[np.float64]:
        coords = grid.cell_centers()
        if callable(self.components):
            return check_velocity(grid, self.components(coords, t))
        if len(self.components) != grid.ndim:
            raise ShapeMismatch(
                f"Velocity has {len(self.components)} components but grid is {grid.ndim}D"
            )
        return np.stack(
            [evaluate_expression(expr, coords, t) for expr in self.components],
            axis=-1,
        )


class SelfAdvectedVelocity(VelocitySource):
    """
    A vector field of the grid used as its own advecting velocity.

    Parameters
    ----------
    field : str
        Name of a vector field with one component per axis.
    """

    def __init__(self, field: str):
        self.field = field

    def evaluate(self, grid: "Grid", t: float) -> NDArray[np.float64]:
        field = grid.field(self.field)
        if grid.ndim == 1 and not field.is_vector:
            return field.current[..., np.newaxis]
        if field.components != grid.ndim:
            raise ShapeMismatch(
                f"Field '{self.field}' has {field.components} components, "
                f"cannot drive a {grid.ndim}D grid"
            )
        return field.current


VelocityLike = Union[VelocitySource, NDArray[np.float64], Sequence[float], None]


def as_velocity_source(velocity: VelocityLike, grid: "Grid") -> VelocitySource:
    """
    Coerce user input into a VelocitySource.

    None follows the grid's own velocity array; arrays and vectors become
    StaticVelocity; callables become ExpressionVelocity.
    """
    if isinstance(velocity, VelocitySource):
        return velocity
    if velocity is None:
        return GridVelocity()
    if callable(velocity):
        return ExpressionVelocity(velocity)
    return StaticVelocity(velocity)


def create_velocity(config: "VelocityConfig") -> VelocitySource:
    """Create a VelocitySource from config."""
    if config.type == "constant":
        return StaticVelocity(config.value)
    elif config.type == "expression":
        return ExpressionVelocity(config.components)
    elif config.type == "self":
        return SelfAdvectedVelocity(config.field)
    else:
        raise ValueError(f"Unknown velocity type: {config.type}")
