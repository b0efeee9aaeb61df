"""
Error taxonomy for the advection engine.

Every error is recoverable at the call site: the integrator returns to its
previous state and the field buffers keep their pre-call values.
"""

from __future__ import annotations


class AdvectionError(ValueError):
    """Base class for all engine errors."""


class InvalidDimension(AdvectionError):
    """Grid shape or cell size is not usable (axis <= 0, unsupported ndim)."""


class InvalidTimeStep(AdvectionError):
    """Time step is non-positive or not finite."""


class ShapeMismatch(AdvectionError):
    """Velocity or field array does not match the grid it is used with."""


class DegenerateVelocity(AdvectionError):
    """Velocity is zero everywhere, so no CFL time step can be derived."""


class OutOfDomain(AdvectionError):
    """A boundary policy refused a lookup outside the domain."""


class IntegratorStateError(RuntimeError):
    """Operation is not allowed in the integrator's current state."""
