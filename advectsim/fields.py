"""
Field containers with expression-based initial condition evaluation.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Sequence

import numpy as np
from numpy.typing import NDArray

from .errors import ShapeMismatch

if TYPE_CHECKING:
    from .config import FieldConfig
    from .grid import Grid


# ---------------------------------------------------------------------------
# Safe expression evaluation
# ---------------------------------------------------------------------------

# Whitelist of allowed names in expressions
SAFE_NAMESPACE: dict[str, Any] = {
    # Math functions
    "sin": np.sin,
    "cos": np.cos,
    "tan": np.tan,
    "exp": np.exp,
    "log": np.log,
    "log10": np.log10,
    "sqrt": np.sqrt,
    "abs": np.abs,
    "tanh": np.tanh,
    "sinh": np.sinh,
    "cosh": np.cosh,
    "arcsin": np.arcsin,
    "arccos": np.arccos,
    "arctan": np.arctan,
    "arctan2": np.arctan2,
    "floor": np.floor,
    "ceil": np.ceil,
    "sign": np.sign,
    "heaviside": np.heaviside,
    "where": np.where,
    # Constants
    "pi": np.pi,
    "e": np.e,
    # NumPy
    "np": np,
    # Builtins needed for expressions
    "min": np.minimum,
    "max": np.maximum,
}

AXIS_NAMES = ("x", "y", "z")


def evaluate_expression(
    expr: str,
    coords: Sequence[NDArray[np.float64]],
    t: float = 0.0,
) -> NDArray[np.float64]:
    """
    Safely evaluate a math expression over grid coordinates.

    The namespace exposes 'x', 'y', 'z' (as many as there are axes),
    'r' (distance from the coordinate origin) and 't'.

    Parameters
    ----------
    expr : str
        Expression string (e.g., "exp(-((x - 2.5) / 0.5)**2)").
    coords : sequence of NDArray
        One coordinate array per axis, all of the grid shape.
    t : float
        Time, for velocity expressions.

    Returns
    -------
    NDArray
        Evaluated values at each cell, shape of the coordinate arrays.

    Raises
    ------
    ValueError
        If the expression is invalid or uses disallowed names.
    """
    namespace = SAFE_NAMESPACE.copy()
    for name, c in zip(AXIS_NAMES, coords):
        namespace[name] = c
    namespace["r"] = np.sqrt(sum(c**2 for c in coords))
    namespace["t"] = t

    try:
        result = eval(expr, {"__builtins__": {}}, namespace)
    except Exception as e:
        raise ValueError(
            f"Failed to evaluate expression: {expr!r}\n"
            f"Error: {e}"
        ) from e

    shape = coords[0].shape
    result = np.asarray(result, dtype=np.float64)
    if result.shape != shape:
        # Handle scalar expressions (constant values)
        if result.ndim == 0:
            result = np.full(shape, float(result))
        else:
            raise ValueError(
                f"Expression result has shape {result.shape}, "
                f"expected {shape}"
            )

    return result


# ---------------------------------------------------------------------------
# Field container
# ---------------------------------------------------------------------------

class Field:
    """
    A scalar or vector field stored as a two-slot arena.

    Both slots live in one contiguous array of shape (2, *grid_shape) for
    scalars or (2, *grid_shape, components) for vectors. `current` and
    `next` are views into it; swap() only flips which slot is active.

    Parameters
    ----------
    name : str
        Field name.
    shape : tuple[int, ...]
        Grid shape.
    components : int
        1 for a scalar field, 2 or 3 for a vector field.
    """

    def __init__(self, name: str, shape: tuple[int, ...], components: int = 1):
        if components not in (1, 2, 3):
            raise ShapeMismatch(
                f"Field '{name}' must have 1, 2 or 3 components, got {components}"
            )
        self.name = name
        self.components = components
        self._slots = np.zeros((2,) + self.value_shape_for(shape), dtype=np.float64)
        self._active = 0

    def value_shape_for(self, shape: tuple[int, ...]) -> tuple[int, ...]:
        """Array shape of one slot on a grid of the given shape."""
        if self.components == 1:
            return tuple(shape)
        return tuple(shape) + (self.components,)

    @property
    def is_vector(self) -> bool:
        return self.components > 1

    @property
    def shape(self) -> tuple[int, ...]:
        """Shape of one slot (grid shape plus component axis for vectors)."""
        return self._slots.shape[1:]

    @property
    def active(self) -> int:
        """Index of the slot holding the current values."""
        return self._active

    @property
    def current(self) -> NDArray[np.float64]:
        return self._slots[self._active]

    @property
    def next(self) -> NDArray[np.float64]:
        return self._slots[1 - self._active]

    def swap(self) -> None:
        """Exchange the roles of current and next (no data copy)."""
        self._active = 1 - self._active

    def assign(self, values: NDArray[np.float64] | float) -> None:
        """Copy values into the current slot."""
        values = np.asarray(values, dtype=np.float64)
        if values.ndim > 0 and values.shape != self.shape:
            raise ShapeMismatch(
                f"Field '{self.name}' expects shape {self.shape}, got {values.shape}"
            )
        self.current[...] = values

    def reallocate(self, shape: tuple[int, ...]) -> None:
        """Replace both slots with zero-filled arrays for a new grid shape."""
        self._slots = np.zeros((2,) + self.value_shape_for(shape), dtype=np.float64)
        self._active = 0

    def __repr__(self) -> str:
        return f"Field(name={self.name!r}, shape={self.shape}, components={self.components})"


def create_field(config: "FieldConfig", grid: "Grid") -> Field:
    """
    Create and initialise a field on the grid from configuration.

    Parameters
    ----------
    config : FieldConfig
        Field configuration.
    grid : Grid
        The computational grid.

    Returns
    -------
    Field
        Initialized field.
    """
    expressions = config.initial_condition
    if isinstance(expressions, str):
        expressions = [expressions]

    coords = grid.cell_centers()
    components = [evaluate_expression(expr, coords) for expr in expressions]
    if len(components) == 1:
        values = components[0]
    else:
        values = np.stack(components, axis=-1)

    return grid.add_field(config.name, components=len(components), initial=values)


def create_fields(configs: list["FieldConfig"], grid: "Grid") -> dict[str, Field]:
    """Create all fields from configuration."""
    fields = {}
    for cfg in configs:
        fields[cfg.name] = create_field(cfg, grid)
    return fields
