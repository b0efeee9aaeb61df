"""
Plain-text (.txt) output monitor.

Writes columnar field data: one .txt file per output time with a header
(step, t) and columns for the cell-centre coordinates and field values.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import numpy as np

from ..fields import AXIS_NAMES
from ..registry import register_monitor
from .base import Monitor, snapshot_cell_centers

if TYPE_CHECKING:
    from ..grid import GridSnapshot


@register_monitor("txt")
class TxtMonitor(Monitor):
    """
    Plain-text columnar output.

    One row per cell: x [y [z]] followed by one column per scalar field or
    per component of a vector field (named name_0, name_1, ...).
    """

    def __init__(
        self,
        output_dir: Path,
        every_n_steps: int | None = None,
        at_times: list[float] | None = None,
        field: str | None = None,
        fields: list[str] | None = None,
        **kwargs,
    ):
        super().__init__(output_dir, every_n_steps, at_times)
        if field is not None:
            self.field_names = [field]
        elif fields is not None:
            self.field_names = list(fields)
        else:
            self.field_names = []
        self._frame_count = 0

    def on_start(self, snapshot: "GridSnapshot") -> None:
        """Create output directory and write the initial state."""
        self.output_dir.mkdir(parents=True, exist_ok=True)
        if not self.field_names:
            self.field_names = list(snapshot.fields)
        for name in self.field_names:
            if name not in snapshot.fields:
                raise KeyError(f"Field '{name}' not found for txt output")
        self.write(snapshot)

    def on_step(self, snapshot: "GridSnapshot", dt: float) -> None:
        """Write .txt snapshot if output is due."""
        if self.should_output(snapshot.step, snapshot.time, dt):
            self.write(snapshot)

    def write(self, snapshot: "GridSnapshot") -> Path:
        """Write one snapshot file and return its path."""
        centers = snapshot_cell_centers(snapshot)
        col_names = list(AXIS_NAMES[:snapshot.ndim])
        cols = [c.ravel() for c in centers]

        for name in self.field_names:
            values = snapshot.fields[name]
            if values.ndim == snapshot.ndim:
                col_names.append(name)
                cols.append(values.ravel())
            else:
                for k in range(values.shape[-1]):
                    col_names.append(f"{name}_{k}")
                    cols.append(values[..., k].ravel())

        data = np.column_stack(cols)

        filepath = self.output_dir / f"snapshot_{self._frame_count:05d}.txt"
        with open(filepath, "w") as f:
            f.write(f"# step={snapshot.step} t={snapshot.time:.6e}\n")
            f.write("# " + " ".join(col_names) + "\n")
            np.savetxt(f, data, fmt="%.6e", delimiter="\t")

        self._frame_count += 1
        return filepath
