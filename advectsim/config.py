"""
Configuration parsing and validation for advection scenarios.

Uses pydantic for strict schema validation with helpful error messages.
"""

from __future__ import annotations

import warnings
from pathlib import Path
from typing import Literal, Optional, Union

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator


SchemeName = Literal["upwind", "lax-wendroff", "lax-friedrichs", "semi-lagrangian"]
CFL_LIMITED_SCHEMES = ("upwind", "lax-wendroff", "lax-friedrichs")


# ---------------------------------------------------------------------------
# Sub-models
# ---------------------------------------------------------------------------

class BoundaryConfig(BaseModel):
    """Boundary policy for one axis (or every axis)."""
    type: Literal["periodic", "clamped", "fixed"] = Field(
        ..., description="Boundary policy type"
    )
    value: Optional[float] = Field(
        None, description="Value outside the domain (fixed)"
    )
    strict: bool = Field(
        False, description="Refuse out-of-domain reads instead of returning value (fixed)"
    )

    @model_validator(mode="after")
    def validate_bc_params(self) -> "BoundaryConfig":
        if self.type == "fixed" and self.value is None:
            raise ValueError("Fixed boundary requires 'value'")
        if self.type != "fixed" and self.strict:
            raise ValueError("'strict' only applies to fixed boundaries")
        return self


class GridConfig(BaseModel):
    """1D, 2D or 3D grid configuration."""
    shape: list[int] = Field(..., min_length=1, max_length=3, description="Cells per axis")
    cell_size: Union[float, list[float]] = Field(1.0, description="Uniform or per-axis cell size")
    origin: Union[float, list[float]] = Field(0.0, description="Lower corner of the domain")
    boundary: Union[BoundaryConfig, list[BoundaryConfig]] = Field(
        default_factory=lambda: BoundaryConfig(type="periodic"),
        description="Boundary policy, one for all axes or one per axis",
    )

    @field_validator("shape")
    @classmethod
    def validate_shape(cls, v: list[int]) -> list[int]:
        if any(n <= 0 for n in v):
            raise ValueError(f"Every grid axis must be > 0, got {v}")
        return v

    @model_validator(mode="after")
    def validate_per_axis_lengths(self) -> "GridConfig":
        ndim = self.ndim
        for name in ("cell_size", "origin", "boundary"):
            value = getattr(self, name)
            if isinstance(value, list) and len(value) != ndim:
                raise ValueError(
                    f"grid.{name} has {len(value)} entries but grid is {ndim}D"
                )
        sizes = self.cell_size if isinstance(self.cell_size, list) else [self.cell_size]
        if any(h <= 0 for h in sizes):
            raise ValueError(f"grid.cell_size must be > 0, got {self.cell_size}")
        return self

    @property
    def ndim(self) -> int:
        """Number of spatial dimensions."""
        return len(self.shape)

    @property
    def spacing(self) -> list[float]:
        """Cell size per axis."""
        if isinstance(self.cell_size, list):
            return list(self.cell_size)
        return [self.cell_size] * self.ndim

    @property
    def policies(self) -> list[BoundaryConfig]:
        """Boundary config per axis."""
        if isinstance(self.boundary, list):
            return list(self.boundary)
        return [self.boundary] * self.ndim


class SchemeConfig(BaseModel):
    """Advection scheme configuration."""
    type: SchemeName = Field(..., description="Scheme type")
    limiter: Optional[Literal["none", "clamp", "minmod", "van_leer", "superbee", "mc"]] = Field(
        "minmod", description="Limiter for lax-wendroff"
    )
    order: Literal[1, 2] = Field(1, description="Backtrace order for semi-lagrangian")
    substeps: int = Field(1, ge=1, description="Backtrace sub-traces for semi-lagrangian")
    workers: int = Field(1, ge=1, description="Worker threads for the per-cell loop")


# ---------------------------------------------------------------------------
# Velocity configuration (constant, expression-based or self-advected)
# ---------------------------------------------------------------------------

class ConstantVelocityConfig(BaseModel):
    """Constant velocity configuration."""
    type: Literal["constant"] = Field("constant", description="Velocity type")
    value: list[float] = Field(..., description="Constant velocity vector, one entry per axis")


class ExpressionVelocityConfig(BaseModel):
    """Expression-based velocity configuration (u, v, w as functions of x, y, z, t)."""
    type: Literal["expression"] = Field("expression", description="Velocity type")
    u: str = Field(..., description="Expression for the x component")
    v: Optional[str] = Field(None, description="Expression for the y component (2D/3D)")
    w: Optional[str] = Field(None, description="Expression for the z component (3D)")

    @property
    def components(self) -> list[str]:
        return [c for c in (self.u, self.v, self.w) if c is not None]


class SelfVelocityConfig(BaseModel):
    """A vector field of the scenario transports itself (nonlinear advection)."""
    type: Literal["self"] = Field("self", description="Velocity type")
    field: str = Field(..., description="Name of the self-advected vector field")


VelocityConfig = Union[ConstantVelocityConfig, ExpressionVelocityConfig, SelfVelocityConfig]


class FieldConfig(BaseModel):
    """Configuration for a single advected field."""
    name: str = Field(..., description="Field name (e.g., 'phi')")
    initial_condition: Union[str, list[str]] = Field(
        ..., description="Expression (scalar) or one expression per component (vector); "
                         "uses x, y, z, r"
    )

    @field_validator("initial_condition")
    @classmethod
    def validate_components(cls, v: Union[str, list[str]]) -> Union[str, list[str]]:
        if isinstance(v, list) and len(v) not in (1, 2, 3):
            raise ValueError(
                f"Vector initial condition needs 2 or 3 components, got {len(v)}"
            )
        return v

    @property
    def components(self) -> int:
        if isinstance(self.initial_condition, list):
            return len(self.initial_condition)
        return 1


class TimeConfig(BaseModel):
    """Time-stepping configuration."""
    n_steps: int = Field(..., gt=0, description="Number of time steps")
    dt: Optional[float] = Field(
        None, gt=0, description="Fixed time step (omit for CFL-controlled steps)"
    )
    cfl: float = Field(0.5, gt=0, description="Target Courant number")
    max_dt: float = Field(0.1, gt=0, description="Upper bound on automatic time steps")
    time_scale: float = Field(1.0, ge=0, description="Simulated seconds per wall-clock second")
    frame_dt: float = Field(1.0 / 60.0, gt=0, description="Step used for real-time pacing")

    @property
    def t_final(self) -> Optional[float]:
        """Final simulation time (only known for a fixed dt)."""
        if self.dt is None:
            return None
        return self.dt * self.n_steps


class MonitorConfig(BaseModel):
    """Output monitor configuration."""
    type: Literal["console", "txt", "png", "pdf", "svg"] = Field(
        ..., description="Monitor type"
    )
    every_n_steps: Optional[int] = Field(
        None, gt=0, description="Output every N steps"
    )
    at_times: Optional[list[float]] = Field(
        None, description="Output at specific times"
    )
    field: Optional[str] = Field(
        None, description="Field to output (png/pdf/svg/txt)"
    )
    fields: Optional[list[str]] = Field(
        None, description="Fields to output (txt)"
    )
    component: int = Field(
        0, ge=0, description="Component plotted for vector fields (png/pdf/svg)"
    )

    @model_validator(mode="after")
    def validate_output_trigger(self) -> "MonitorConfig":
        if self.every_n_steps is None and self.at_times is None:
            if self.type != "console":
                raise ValueError(
                    f"Monitor '{self.type}' requires 'every_n_steps' or 'at_times'"
                )
        return self


class OutputConfig(BaseModel):
    """Output configuration."""
    directory: str = Field("./results", description="Output directory")
    monitors: list[MonitorConfig] = Field(
        default_factory=list, description="List of output monitors"
    )


# ---------------------------------------------------------------------------
# Main configuration
# ---------------------------------------------------------------------------

class SimulationConfig(BaseModel):
    """Complete scenario configuration."""
    grid: GridConfig
    scheme: SchemeConfig
    velocity: VelocityConfig
    fields: list[FieldConfig] = Field(..., min_length=1)
    time: TimeConfig
    output: OutputConfig = Field(default_factory=OutputConfig)

    @model_validator(mode="after")
    def validate_field_names(self) -> "SimulationConfig":
        names = [f.name for f in self.fields]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Duplicate field names: {duplicates}")
        return self

    @model_validator(mode="after")
    def validate_velocity_dimension(self) -> "SimulationConfig":
        """Validate velocity dimension matches grid dimension."""
        ndim = self.grid.ndim
        vel = self.velocity
        if isinstance(vel, ConstantVelocityConfig):
            if len(vel.value) != ndim:
                raise ValueError(
                    f"velocity.value has {len(vel.value)} components but grid is {ndim}D "
                    f"(expected {ndim})"
                )
        elif isinstance(vel, ExpressionVelocityConfig):
            expected = ["u", "v", "w"][:ndim]
            given = [n for n, c in zip("uvw", (vel.u, vel.v, vel.w)) if c is not None]
            if given != expected:
                raise ValueError(
                    f"{ndim}D grid requires velocity expressions {expected}, got {given}"
                )
        elif isinstance(vel, SelfVelocityConfig):
            by_name = {f.name: f for f in self.fields}
            if vel.field not in by_name:
                raise ValueError(f"velocity.field '{vel.field}' is not a configured field")
            components = by_name[vel.field].components
            if components != ndim:
                raise ValueError(
                    f"Self-advected field '{vel.field}' has {components} components "
                    f"but grid is {ndim}D"
                )
        return self

    @model_validator(mode="after")
    def validate_strict_boundary(self) -> "SimulationConfig":
        """Finite-difference stencils always read ghost cells."""
        if self.scheme.type in CFL_LIMITED_SCHEMES:
            if any(p.strict for p in self.grid.policies):
                raise ValueError(
                    f"Strict fixed boundaries refuse ghost cells; "
                    f"scheme '{self.scheme.type}' needs them"
                )
        return self

    @model_validator(mode="after")
    def validate_cfl_warning(self) -> "SimulationConfig":
        """Warn if the configured steps will be sub-stepped."""
        if self.scheme.type not in CFL_LIMITED_SCHEMES:
            return self

        if self.time.dt is None:
            if self.time.cfl > 1.0:
                warnings.warn(
                    f"CFL = {self.time.cfl:.3f} > 1 for scheme '{self.scheme.type}'; "
                    f"steps will be split into stable sub-steps."
                )
            return self

        vel = self.velocity
        if not isinstance(vel, ConstantVelocityConfig):
            # For field-dependent velocity, skip the check (velocity varies)
            return self

        cfl = sum(
            abs(u) * self.time.dt / h for u, h in zip(vel.value, self.grid.spacing)
        )
        if self.scheme.type == "lax-friedrichs":
            cfl = self.grid.ndim * max(
                abs(u) * self.time.dt / h for u, h in zip(vel.value, self.grid.spacing)
            )
        if cfl > min(self.time.cfl, 1.0):
            warnings.warn(
                f"CFL = {cfl:.3f} exceeds the target {min(self.time.cfl, 1.0):.3f}; "
                f"each step will be split into stable sub-steps. "
                f"Consider reducing dt."
            )
        return self


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

def load_config(path: str | Path) -> SimulationConfig:
    """
    Load and validate a YAML configuration file.

    Parameters
    ----------
    path : str or Path
        Path to the YAML configuration file.

    Returns
    -------
    SimulationConfig
        Validated configuration object.

    Raises
    ------
    FileNotFoundError
        If the configuration file does not exist.
    pydantic.ValidationError
        If the configuration is invalid.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    with open(path, "r") as f:
        raw = yaml.safe_load(f)

    return SimulationConfig.model_validate(raw)
