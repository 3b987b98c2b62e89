"""Shared plotting style settings for report figures."""

from __future__ import annotations

from dataclasses import dataclass

import matplotlib.pyplot as plt


@dataclass(frozen=True)
class PlotStyle:
    """Centralized plotting defaults used across report figures."""

    dpi: int = 300
    figsize_roc: tuple[float, float] = (6.73, 6.83)
    figsize_violin: tuple[float, float] = (5.09, 6.02)
    figsize_forest: tuple[float, float] = (4.48, 4.85)
    border_linewidth: float = 1.5
    line_width: float = 2.0
    cohort_line_width: float = 1.0
    band_alpha: float = 0.20
    point_size: float = 14.0
    point_alpha: float = 0.75
    violin_alpha: float = 0.55
    legend_fontsize: int = 8
    axis_label_fontsize: int = 11
    title_fontsize: int = 12
    palette: tuple[str, ...] = (
        "#1f77b4",
        "#d62728",
        "#2ca02c",
        "#ff7f0e",
        "#9467bd",
        "#8c564b",
        "#e377c2",
        "#7f7f7f",
    )


DEFAULT_PLOT_STYLE = PlotStyle()


def apply_plot_style(style: PlotStyle = DEFAULT_PLOT_STYLE) -> None:
    """Apply deterministic matplotlib rcParams for report plots."""
    plt.rcParams.update(
        {
            "figure.dpi": 100,
            "savefig.dpi": style.dpi,
            "savefig.facecolor": "white",
            "font.family": "DejaVu Sans",
            "axes.titlesize": style.title_fontsize,
            "axes.labelsize": style.axis_label_fontsize,
            "legend.fontsize": style.legend_fontsize,
            "axes.grid": False,
            "pdf.fonttype": 42,
        }
    )


def apply_common_theme(ax: plt.Axes, style: PlotStyle = DEFAULT_PLOT_STYLE) -> None:
    """White panel with a heavy black border and an untitled legend."""
    ax.set_facecolor("white")
    ax.figure.patch.set_facecolor("white")
    for spine in ax.spines.values():
        spine.set_visible(True)
        spine.set_color("black")
        spine.set_linewidth(style.border_linewidth)
    legend = ax.get_legend()
    if legend is not None:
        legend.set_title(None)
