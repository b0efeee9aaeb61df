"""
AdvectSim: grid-based advection for 1D, 2D and 3D fields.

Transports scalar and vector fields through a velocity field with
upwind, Lax-Wendroff, Lax-Friedrichs or semi-Lagrangian schemes, under
periodic, clamped or fixed boundary conditions.

Usage:
    from advectsim.runner import run_from_file
    fields = run_from_file("scenario.yaml")

Or via CLI:
    python run.py scenario.yaml
"""

from .boundary import BoundaryConditions, Clamped, Fixed, Periodic
from .config import SimulationConfig, load_config
from .errors import (
    AdvectionError,
    DegenerateVelocity,
    IntegratorStateError,
    InvalidDimension,
    InvalidTimeStep,
    OutOfDomain,
    ShapeMismatch,
)
from .fields import Field, create_fields
from .grid import Grid, GridSnapshot, create_grid
from .integrator import Integrator, IntegratorState, SimulationClock, StepReport
from .interpolation import MultilinearInterpolator
from .runner import build_integrator, run_from_file, run_simulation
from .schemes import (
    AdvectionScheme,
    LaxFriedrichsScheme,
    LaxWendroffScheme,
    SemiLagrangianScheme,
    UpwindScheme,
    create_scheme,
)
from .velocity import (
    ExpressionVelocity,
    GridVelocity,
    SelfAdvectedVelocity,
    StaticVelocity,
    VelocitySource,
)

__version__ = "0.1.0"

__all__ = [
    "AdvectionError",
    "AdvectionScheme",
    "BoundaryConditions",
    "Clamped",
    "DegenerateVelocity",
    "ExpressionVelocity",
    "GridVelocity",
    "Field",
    "Fixed",
    "Grid",
    "GridSnapshot",
    "IntegratorStateError",
    "Integrator",
    "IntegratorState",
    "InvalidDimension",
    "InvalidTimeStep",
    "LaxFriedrichsScheme",
    "LaxWendroffScheme",
    "MultilinearInterpolator",
    "OutOfDomain",
    "Periodic",
    "SelfAdvectedVelocity",
    "SemiLagrangianScheme",
    "ShapeMismatch",
    "SimulationClock",
    "SimulationConfig",
    "StaticVelocity",
    "StepReport",
    "UpwindScheme",
    "VelocitySource",
    "build_integrator",
    "create_fields",
    "create_grid",
    "create_scheme",
    "load_config",
    "run_from_file",
    "run_simulation",
]
