"""
Main simulation runner (1D, 2D and 3D).

Builds the grid, fields, velocity source, scheme and clock from a
SimulationConfig, then drives the Integrator for the configured number of
steps while feeding read-only snapshots to the output monitors.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from .config import SimulationConfig, load_config
from .fields import Field, create_fields
from .grid import create_grid
from .integrator import Integrator, create_clock
from .registry import get_monitor
from .schemes import create_scheme_from_config
from .velocity import create_velocity

# Import submodule to trigger registration of monitors
from . import monitors  # noqa: F401

if TYPE_CHECKING:
    from .monitors.base import Monitor


def create_monitors(
    config: SimulationConfig,
    output_dir: Path,
) -> list["Monitor"]:
    """
    Create monitor instances from configuration.

    Parameters
    ----------
    config : SimulationConfig
        Simulation configuration.
    output_dir : Path
        Base output directory.

    Returns
    -------
    list[Monitor]
        List of monitor instances.
    """
    monitor_list = []

    for mon_cfg in config.output.monitors:
        monitor_cls = get_monitor(mon_cfg.type)

        mon_output_dir = output_dir
        if mon_cfg.type == "txt":
            mon_output_dir = output_dir / "txt"
        kwargs = {
            "output_dir": mon_output_dir,
            "every_n_steps": mon_cfg.every_n_steps,
            "at_times": mon_cfg.at_times,
        }

        if mon_cfg.type == "console":
            kwargs["total_steps"] = config.time.n_steps
        elif mon_cfg.type in ("png", "pdf", "svg"):
            kwargs["field"] = mon_cfg.field
            kwargs["component"] = mon_cfg.component
        elif mon_cfg.type == "txt":
            kwargs["field"] = mon_cfg.field
            kwargs["fields"] = mon_cfg.fields

        monitor_list.append(monitor_cls(**kwargs))

    return monitor_list


def build_integrator(config: SimulationConfig) -> Integrator:
    """
    Build a configured (READY) Integrator from a scenario.

    Parameters
    ----------
    config : SimulationConfig
        Complete simulation configuration.

    Returns
    -------
    Integrator
        Integrator holding the initialised grid, scheme, velocity and clock.
    """
    grid = create_grid(config.grid)
    create_fields(config.fields, grid)

    integrator = Integrator()
    integrator.configure(
        grid,
        create_scheme_from_config(config.scheme),
        velocity=create_velocity(config.velocity),
        clock=create_clock(config.time),
    )
    return integrator


def run_simulation(config: SimulationConfig) -> dict[str, Field]:
    """
    Run a scenario to completion.

    Parameters
    ----------
    config : SimulationConfig
        Complete simulation configuration.

    Returns
    -------
    dict[str, Field]
        Final field states.
    """
    integrator = build_integrator(config)

    output_dir = Path(config.output.directory)
    output_dir.mkdir(parents=True, exist_ok=True)
    monitor_list = create_monitors(config, output_dir)

    snapshot = integrator.snapshot()
    for monitor in monitor_list:
        monitor.on_start(snapshot)

    for _ in range(config.time.n_steps):
        report = integrator.step(config.time.dt)
        snapshot = integrator.snapshot()
        for monitor in monitor_list:
            monitor.on_step(snapshot, report.dt)

    for monitor in monitor_list:
        monitor.on_end(snapshot)

    fields = dict(integrator.grid.fields)
    integrator.teardown()
    return fields


def run_from_file(config_path: str | Path) -> dict[str, Field]:
    """
    Load configuration from YAML and run simulation.

    Parameters
    ----------
    config_path : str or Path
        Path to YAML configuration file.

    Returns
    -------
    dict[str, Field]
        Final field states.
    """
    config = load_config(config_path)
    return run_simulation(config)
