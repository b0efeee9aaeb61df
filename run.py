#!/usr/bin/env python3
"""
Command-line runner for advection scenarios.

Usage:
    python run.py scenarios/rotating_2d.yaml [--steps N] [--output DIR]

Each invocation gets its own output folder holding a copy of the scenario
file next to the snapshots its monitors write.
"""

from __future__ import annotations

import argparse
import shutil
import sys
from datetime import datetime
from pathlib import Path

EPILOG = """
Examples:
    python run.py scenarios/square_pulse_1d.yaml
    python run.py scenarios/rotating_2d.yaml --steps 50
    python run.py scenarios/burgers_1d.yaml --output /tmp/burgers

Output goes to <output>/<scenario>_YYYY-MM-DD_HH:MM:SS, where <output>
defaults to the scenario's own directory. The scenario file is copied into
that folder so a run can be reproduced from its results alone.
"""


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Advect fields on a structured grid as described by a YAML scenario.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=EPILOG,
    )
    parser.add_argument("config", type=Path, help="Scenario YAML file")
    parser.add_argument(
        "--steps",
        type=int,
        default=None,
        help="Number of steps to take instead of time.n_steps",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Parent directory for the run folder (default: next to the scenario)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Print a traceback when the run fails",
    )
    return parser.parse_args(argv)


def _prepare_run_dir(config_path: Path, parent: Path | None) -> Path:
    """Create a timestamped run folder and copy the scenario into it."""
    stamp = datetime.now().strftime("%Y-%m-%d_%H:%M:%S")
    run_dir = (parent or config_path.parent) / f"{config_path.stem}_{stamp}"
    run_dir.mkdir(parents=True, exist_ok=True)
    shutil.copy2(config_path, run_dir / config_path.name)
    return run_dir


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    config_path = args.config.resolve()
    if not config_path.is_file():
        print(f"Error: scenario not found: {config_path}", file=sys.stderr)
        return 1

    try:
        from advectsim.config import load_config
        from advectsim.runner import run_simulation

        config = load_config(config_path)
        if args.steps is not None:
            if args.steps <= 0:
                raise ValueError(f"--steps must be > 0, got {args.steps}")
            config.time.n_steps = args.steps

        run_dir = _prepare_run_dir(config_path, args.output)
        config.output.directory = str(run_dir)
        print(f"Scenario {config_path.name}: {config.grid.ndim}D grid {config.grid.shape}, "
              f"{config.scheme.type}, {config.time.n_steps} steps -> {run_dir}")

        fields = run_simulation(config)
        for name, field in fields.items():
            values = field.current
            print(f"  {name}: min={values.min():.6g} max={values.max():.6g}")
        return 0

    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
