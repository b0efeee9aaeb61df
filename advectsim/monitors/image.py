"""
Image output monitors (PNG, PDF, SVG).
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt

from ..registry import register_monitor
from .base import Monitor, snapshot_cell_centers

if TYPE_CHECKING:
    from ..grid import GridSnapshot


class ImageMonitor(Monitor):
    """
    Base class for image output.

    1D grids are drawn as a line plot, 2D grids as a colour map and 3D grids
    as the colour map of the middle slice along the last axis.
    """

    def __init__(
        self,
        output_dir: Path,
        every_n_steps: int | None = None,
        at_times: list[float] | None = None,
        field: str | None = None,
        component: int = 0,
        extension: str = "png",
        show_colorbar: bool | None = None,
        show_annotations: bool | None = None,
        **kwargs,
    ):
        super().__init__(output_dir, every_n_steps, at_times)
        self.field_name = field
        self.component = component
        self.extension = extension
        self.show_colorbar = show_colorbar if show_colorbar is not None else True
        self.show_annotations = show_annotations if show_annotations is not None else True
        self._frame_count = 0

    def on_start(self, snapshot: "GridSnapshot") -> None:
        """Create output directory and save the initial state."""
        self.output_dir.mkdir(parents=True, exist_ok=True)
        if self.field_name is None:
            self.field_name = next(iter(snapshot.fields))
        if self.field_name not in snapshot.fields:
            raise KeyError(f"Field '{self.field_name}' not found for image output")
        self.save(snapshot)

    def on_step(self, snapshot: "GridSnapshot", dt: float) -> None:
        """Save image if output is due."""
        if self.should_output(snapshot.step, snapshot.time, dt):
            self.save(snapshot)

    def save(self, snapshot: "GridSnapshot") -> Path:
        """Render one frame and return its path."""
        values = snapshot.fields[self.field_name]
        label = self.field_name
        if values.ndim > snapshot.ndim:
            values = values[..., self.component]
            label = f"{self.field_name}[{self.component}]"
        centers = snapshot_cell_centers(snapshot)

        if snapshot.ndim == 1:
            fig, ax = plt.subplots(figsize=(8, 4))
            ax.plot(centers[0], values, "b-", linewidth=1.5)
            ax.grid(True, alpha=0.3)
            if self.show_annotations:
                ax.set_xlabel("x")
                ax.set_ylabel(label)
        else:
            if snapshot.ndim == 3:
                mid = snapshot.shape[2] // 2
                values = values[:, :, mid]
                centers = (centers[0][:, :, mid], centers[1][:, :, mid])
            fig, ax = plt.subplots(figsize=(6, 5))
            mesh = ax.pcolormesh(centers[0], centers[1], values, shading="auto", cmap="viridis")
            ax.set_aspect("equal")
            if self.show_colorbar:
                fig.colorbar(mesh, ax=ax, label=label)
            if self.show_annotations:
                ax.set_xlabel("x")
                ax.set_ylabel("y")

        if self.show_annotations:
            ax.set_title(f"{label} at t = {snapshot.time:.4f}")
        else:
            ax.set_xticks([])
            ax.set_yticks([])

        filename = f"{self.field_name}_{self._frame_count:05d}.{self.extension}"
        filepath = self.output_dir / filename
        save_kw = {"dpi": 150, "bbox_inches": "tight"}
        if not self.show_colorbar and not self.show_annotations:
            save_kw["pad_inches"] = 0
        fig.savefig(filepath, **save_kw)
        plt.close(fig)

        self._frame_count += 1
        return filepath


@register_monitor("png")
class PNGMonitor(ImageMonitor):
    """PNG image output."""

    def __init__(self, **kwargs):
        super().__init__(extension="png", **kwargs)


@register_monitor("pdf")
class PDFMonitor(ImageMonitor):
    """PDF image output."""

    def __init__(self, **kwargs):
        super().__init__(extension="pdf", **kwargs)


@register_monitor("svg")
class SVGMonitor(ImageMonitor):
    """SVG image output."""

    def __init__(self, **kwargs):
        super().__init__(extension="svg", **kwargs)
