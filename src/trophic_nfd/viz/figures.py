"""Publication-quality matplotlib figures for niche and fitness differences."""

from __future__ import annotations

from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

_LEVEL_COLORS = {"basal": "#2a9d8f", "predator": "#e76f51"}


def setup_paper_style() -> None:
    """Configure matplotlib for publication-quality figures."""
    plt.rcParams.update({
        "font.family": "serif",
        "font.size": 11,
        "axes.titlesize": 13,
        "axes.labelsize": 12,
        "xtick.labelsize": 10,
        "ytick.labelsize": 10,
        "legend.fontsize": 10,
        "figure.figsize": (8, 5),
        "figure.dpi": 150,
        "savefig.dpi": 300,
        "savefig.bbox": "tight",
        "axes.grid": True,
        "grid.alpha": 0.3,
        "axes.spines.top": False,
        "axes.spines.right": False,
    })


def save_figure(fig: plt.Figure, output_dir: str | Path, name: str) -> list[Path]:
    """Save figure as both PNG and PDF and close it."""
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    paths = [output_dir / f"{name}.png", output_dir / f"{name}.pdf"]
    for path in paths:
        fig.savefig(path, bbox_inches="tight")
    plt.close(fig)
    return paths


def plot_nd_fd(
    table: pd.DataFrame,
    ax: plt.Axes | None = None,
    title: str = "Niche vs fitness differences",
) -> plt.Figure:
    """Scatter ND against transformed fitness FD' with the coexistence line.

    Species above the line ND = FD' can invade. Rows with undefined ND or FD
    are skipped. Colours follow the trophic_level column when present.
    """
    if ax is None:
        fig, ax = plt.subplots(figsize=(6, 5))
    else:
        fig = ax.figure

    data = table[np.isfinite(table["ND"]) & np.isfinite(table["FD_transformed"])]
    if "trophic_level" in data.columns:
        for level, group in data.groupby("trophic_level"):
            ax.scatter(
                group["FD_transformed"], group["ND"], s=18, alpha=0.7,
                color=_LEVEL_COLORS.get(str(level), "0.4"), edgecolors="none",
                label=str(level).capitalize(),
            )
    else:
        ax.scatter(data["FD_transformed"], data["ND"], s=18, alpha=0.7, edgecolors="none")

    if len(data):
        lo = float(min(data["FD_transformed"].min(), data["ND"].min(), 0.0))
        hi = float(max(data["FD_transformed"].max(), data["ND"].max(), 1.0))
    else:
        lo, hi = 0.0, 1.0
    ax.plot([lo, hi], [lo, hi], "k--", linewidth=1, alpha=0.6, label="ND = FD'")
    ax.axhline(0, color="k", linewidth=0.5)
    ax.axvline(0, color="k", linewidth=0.5)

    ax.set_xlabel(r"Fitness difference $\mathcal{F}' = 1 - 1/(1 - \mathcal{F})$")
    ax.set_ylabel(r"Niche difference $\mathcal{N}$")
    ax.set_title(title)
    ax.legend(loc="upper left")
    fig.tight_layout()
    return fig


def plot_sweep_summary(
    summary: pd.DataFrame,
    parameter: str,
    axes: np.ndarray | None = None,
) -> plt.Figure:
    """Fraction computable and mean ND/FD' against a swept parameter.

    Expects the output of summarize_sweep; other swept parameters are
    averaged out.
    """
    if axes is None:
        fig, axes = plt.subplots(1, 2, figsize=(12, 4.5))
    else:
        fig = axes[0].figure

    grouped = summary.groupby([parameter, "trophic_level"], as_index=False).mean(numeric_only=True)
    for level, group in grouped.groupby("trophic_level"):
        color = _LEVEL_COLORS.get(str(level), "0.4")
        label = str(level).capitalize()
        axes[0].plot(group[parameter], group["fraction_eligible"], "o-", color=color, label=label)
        axes[1].plot(group[parameter], group["mean_ND"], "o-", color=color, label=f"{label} ND")
        axes[1].plot(
            group[parameter], group["mean_FD_transformed"], "s--", color=color,
            alpha=0.7, label=f"{label} FD'",
        )

    axes[0].set_xlabel(parameter)
    axes[0].set_ylabel("Fraction of species with computable NFD")
    axes[0].set_ylim(-0.05, 1.05)
    axes[0].legend()
    axes[1].set_xlabel(parameter)
    axes[1].set_ylabel("Mean value")
    axes[1].legend(fontsize=8)
    fig.tight_layout()
    return fig
