"""
Console output monitor with progress bar.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from tqdm import tqdm

from ..registry import register_monitor
from .base import Monitor

if TYPE_CHECKING:
    from ..grid import GridSnapshot


@register_monitor("console")
class ConsoleMonitor(Monitor):
    """
    Console output with tqdm progress bar.

    The bar shows simulation time and the last dt. With every_n_steps or
    at_times set, a line with field extrema is also written at those steps.
    """

    def __init__(
        self,
        output_dir: Path,
        every_n_steps: int | None = None,
        at_times: list[float] | None = None,
        total_steps: int | None = None,
        **kwargs,
    ):
        super().__init__(output_dir, every_n_steps, at_times)
        self.total_steps = total_steps
        self._pbar: tqdm | None = None

    def on_start(self, snapshot: "GridSnapshot") -> None:
        """Initialize progress bar."""
        if self.total_steps is not None:
            self._pbar = tqdm(total=self.total_steps, desc="Advecting", unit="step")

    def on_step(self, snapshot: "GridSnapshot", dt: float) -> None:
        """Update progress bar and optionally print field ranges."""
        if self._pbar is not None:
            self._pbar.update(1)
            self._pbar.set_postfix({"t": f"{snapshot.time:.4f}", "dt": f"{dt:.2e}"})

        if self.every_n_steps is None and not self.at_times:
            return
        if not self.should_output(snapshot.step, snapshot.time, dt):
            return

        ranges = ", ".join(
            f"{name}=[{values.min():.4g}, {values.max():.4g}]"
            for name, values in snapshot.fields.items()
        )
        tqdm.write(f"step {snapshot.step:6d}  t={snapshot.time:.4f}  {ranges}")

    def on_end(self, snapshot: "GridSnapshot") -> None:
        """Close progress bar."""
        if self._pbar is not None:
            self._pbar.close()
