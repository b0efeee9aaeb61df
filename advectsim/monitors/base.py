"""
Base class for output monitors.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray

if TYPE_CHECKING:
    from ..grid import GridSnapshot


def snapshot_cell_centers(snapshot: "GridSnapshot") -> tuple[NDArray[np.float64], ...]:
    """Physical cell-centre coordinates of a snapshot, one array per axis."""
    axes = [
        o + (np.arange(n) + 0.5) * h
        for n, h, o in zip(snapshot.shape, snapshot.spacing, snapshot.origin)
    ]
    return tuple(np.meshgrid(*axes, indexing="ij"))


class Monitor(ABC):
    """
    Abstract base class for output monitors.

    Monitors receive a read-only GridSnapshot after each step and decide
    whether to output based on their configuration (every_n_steps or
    at_times).
    """

    def __init__(
        self,
        output_dir: Path,
        every_n_steps: int | None = None,
        at_times: list[float] | None = None,
    ):
        """
        Initialize monitor.

        Parameters
        ----------
        output_dir : Path
            Directory for output files.
        every_n_steps : int or None
            Output every N steps.
        at_times : list[float] or None
            Output at specific times.
        """
        self.output_dir = Path(output_dir)
        self.every_n_steps = every_n_steps
        self.at_times = at_times or []
        self._times_output: set[float] = set()

    def should_output(self, step: int, t: float, dt: float) -> bool:
        """
        Check if output should occur at this step/time.

        Parameters
        ----------
        step : int
            Current step number.
        t : float
            Current simulation time.
        dt : float
            Size of the step that just finished.

        Returns
        -------
        bool
            True if output should occur.
        """
        if self.every_n_steps is not None and step % self.every_n_steps == 0:
            return True

        # at_times match within half a step
        for target_t in self.at_times:
            if target_t not in self._times_output:
                if abs(t - target_t) < 0.5 * dt:
                    self._times_output.add(target_t)
                    return True

        return False

    @abstractmethod
    def on_step(self, snapshot: "GridSnapshot", dt: float) -> None:
        """
        Called after each step; output if should_output() returns True.

        Parameters
        ----------
        snapshot : GridSnapshot
            Read-only state after the step.
        dt : float
            Size of the step that just finished.
        """

    def on_start(self, snapshot: "GridSnapshot") -> None:
        """Called before the first step. Override for setup."""

    def on_end(self, snapshot: "GridSnapshot") -> None:
        """Called after the last step. Override for finalization."""
