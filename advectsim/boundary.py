"""
Boundary policies for out-of-domain samples.

Supports:
- Periodic: coordinates wrap around the axis
- Clamped: zero-gradient, the edge cell is replicated
- Fixed: a constant value outside the domain (Dirichlet)

Policies act on one axis; BoundaryConditions composes one policy per axis,
so a 2D grid can be periodic in x and fixed in y.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, ClassVar, Sequence, Union

import numpy as np
from numpy.typing import NDArray

from .errors import OutOfDomain, ShapeMismatch

if TYPE_CHECKING:
    from .config import BoundaryConfig


@dataclass(frozen=True)
class Periodic:
    """Wrap coordinates modulo the axis length."""
    kind: ClassVar[str] = "periodic"
    pad_mode: ClassVar[str] = "wrap"

    def resolve(
        self,
        index: NDArray[np.intp],
        n: int,
    ) -> tuple[NDArray[np.intp], NDArray[np.bool_] | None]:
        return np.mod(index, n), None


@dataclass(frozen=True)
class Clamped:
    """Clamp coordinates into [0, n-1] (zero-gradient / Neumann)."""
    kind: ClassVar[str] = "clamped"
    pad_mode: ClassVar[str] = "edge"

    def resolve(
        self,
        index: NDArray[np.intp],
        n: int,
    ) -> tuple[NDArray[np.intp], NDArray[np.bool_] | None]:
        return np.clip(index, 0, n - 1), None


@dataclass(frozen=True)
class Fixed:
    """
    Constant value for any out-of-range coordinate, whichever edge.

    Attributes
    ----------
    value : float
        Value returned outside the domain.
    strict : bool
        If True, out-of-range reads are refused with OutOfDomain instead.
    """
    value: float = 0.0
    strict: bool = False
    kind: ClassVar[str] = "fixed"
    pad_mode: ClassVar[str] = "constant"

    def resolve(
        self,
        index: NDArray[np.intp],
        n: int,
    ) -> tuple[NDArray[np.intp], NDArray[np.bool_] | None]:
        outside = (index < 0) | (index >= n)
        if self.strict and np.any(outside):
            raise OutOfDomain(
                f"Fixed boundary refuses lookup outside [0, {n - 1}]"
            )
        return np.clip(index, 0, n - 1), outside


BoundaryPolicy = Union[Periodic, Clamped, Fixed]


class BoundaryConditions:
    """
    Per-axis composition of boundary policies.

    Where several Fixed axes are out of range at once (a corner), the value
    of the highest axis is used, both for ghost padding and point lookups.

    Parameters
    ----------
    policies : sequence of BoundaryPolicy
        One policy per spatial axis.
    """

    def __init__(self, policies: Sequence[BoundaryPolicy]):
        self.policies: tuple[BoundaryPolicy, ...] = tuple(policies)

    @classmethod
    def uniform(cls, policy: BoundaryPolicy, ndim: int) -> "BoundaryConditions":
        """Same policy on every axis."""
        return cls([policy] * ndim)

    @property
    def ndim(self) -> int:
        return len(self.policies)

    def __getitem__(self, axis: int) -> BoundaryPolicy:
        return self.policies[axis]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BoundaryConditions):
            return NotImplemented
        return self.policies == other.policies

    def __repr__(self) -> str:
        return f"BoundaryConditions({list(self.policies)!r})"

    def _check(self, values: NDArray[np.float64]) -> None:
        if values.ndim < self.ndim:
            raise ShapeMismatch(
                f"Array with {values.ndim} axes cannot use {self.ndim}D boundary conditions"
            )

    def gather(
        self,
        values: NDArray[np.float64],
        index: Sequence[NDArray[np.intp] | int],
    ) -> NDArray[np.float64]:
        """
        Read values at integer coordinates that may lie outside the grid.

        Parameters
        ----------
        values : NDArray
            Field values, shape (*grid_shape) or (*grid_shape, components).
        index : sequence of int arrays
            One broadcastable integer array per spatial axis.

        Returns
        -------
        NDArray
            Sampled values; trailing component axis kept for vector fields.

        Raises
        ------
        OutOfDomain
            If a strict Fixed policy is asked for an out-of-range value.
        """
        self._check(values)
        resolved = []
        outside_any = None
        fill = None
        for axis, (policy, idx) in enumerate(zip(self.policies, index)):
            idx = np.asarray(idx, dtype=np.intp)
            r, outside = policy.resolve(idx, values.shape[axis])
            resolved.append(r)
            if outside is not None:
                fill = np.where(outside, policy.value, 0.0 if fill is None else fill)
                outside_any = outside if outside_any is None else (outside_any | outside)

        out = values[tuple(resolved)]
        if outside_any is not None and np.any(outside_any):
            extra = values.ndim - self.ndim
            mask = outside_any.reshape(outside_any.shape + (1,) * extra)
            fill = np.asarray(fill).reshape(np.shape(fill) + (1,) * extra)
            out = np.where(mask, fill, out)
        return out

    def pad(
        self,
        values: NDArray[np.float64],
        width: int,
    ) -> NDArray[np.float64]:
        """
        Return a copy of values with `width` ghost cells on every spatial axis.

        Axes are padded in ascending order, so corner cells follow the same
        highest-axis rule as gather().
        """
        self._check(values)
        padded = values
        for axis, policy in enumerate(self.policies):
            pad_width = [(0, 0)] * padded.ndim
            pad_width[axis] = (width, width)
            if isinstance(policy, Fixed):
                if policy.strict:
                    raise OutOfDomain(
                        f"Fixed boundary on axis {axis} refuses ghost cells"
                    )
                padded = np.pad(padded, pad_width, mode="constant",
                                constant_values=policy.value)
            else:
                padded = np.pad(padded, pad_width, mode=policy.pad_mode)
        return padded


def create_policy(config: "BoundaryConfig") -> BoundaryPolicy:
    """Create a single-axis BoundaryPolicy from config."""
    if config.type == "periodic":
        return Periodic()
    elif config.type == "clamped":
        return Clamped()
    elif config.type == "fixed":
        return Fixed(value=config.value, strict=config.strict)
    else:
        raise ValueError(f"Unknown boundary type: {config.type}")


def create_boundary(
    config: "BoundaryConfig | list[BoundaryConfig]",
    ndim: int,
) -> BoundaryConditions:
    """
    Create BoundaryConditions from config.

    A single entry applies to every axis; a list gives one entry per axis.
    """
    if isinstance(config, list):
        if len(config) != ndim:
            raise ValueError(
                f"boundary has {len(config)} entries but grid is {ndim}D"
            )
        return BoundaryConditions([create_policy(c) for c in config])
    return BoundaryConditions.uniform(create_policy(config), ndim)
