"""Publication-quality visualization functions."""

from __future__ import annotations

from trophic_nfd.viz.figures import (
    setup_paper_style,
    save_figure,
    plot_nd_fd,
    plot_sweep_summary,
)

__all__ = [
    "setup_paper_style",
    "save_figure",
    "plot_nd_fd",
    "plot_sweep_summary",
]
