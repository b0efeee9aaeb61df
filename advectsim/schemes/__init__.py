"""
Advection schemes.

The set of schemes is closed: create_scheme() picks one by name.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .base import AdvectionScheme, check_time_step
from .lax_friedrichs import LaxFriedrichsScheme
from .lax_wendroff import LaxWendroffScheme
from .semi_lagrangian import SemiLagrangianScheme
from .upwind import UpwindScheme

if TYPE_CHECKING:
    from ..config import SchemeConfig

SCHEMES: dict[str, type[AdvectionScheme]] = {
    UpwindScheme.name: UpwindScheme,
    LaxWendroffScheme.name: LaxWendroffScheme,
    LaxFriedrichsScheme.name: LaxFriedrichsScheme,
    SemiLagrangianScheme.name: SemiLagrangianScheme,
}


def create_scheme(name: str, **options: Any) -> AdvectionScheme:
    """
    Create a scheme by name.

    Parameters
    ----------
    name : str
        One of "upwind", "lax-wendroff", "lax-friedrichs", "semi-lagrangian".
    **options
        Scheme-specific options (limiter, order, substeps, workers).
    """
    if name not in SCHEMES:
        available = ", ".join(sorted(SCHEMES))
        raise KeyError(f"Unknown scheme: '{name}'. Available: {available}")
    return SCHEMES[name](**options)


def create_scheme_from_config(config: "SchemeConfig") -> AdvectionScheme:
    """Create a scheme from config, passing only the options it accepts."""
    options: dict[str, Any] = {"workers": config.workers}
    if config.type == LaxWendroffScheme.name:
        options["limiter"] = config.limiter
    elif config.type == SemiLagrangianScheme.name:
        options["order"] = config.order
        options["substeps"] = config.substeps
    return create_scheme(config.type, **options)


__all__ = [
    "AdvectionScheme",
    "UpwindScheme",
    "LaxWendroffScheme",
    "LaxFriedrichsScheme",
    "SemiLagrangianScheme",
    "SCHEMES",
    "check_time_step",
    "create_scheme",
    "create_scheme_from_config",
]
