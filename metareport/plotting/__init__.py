"""Plotting API for report figures."""

from metareport.plotting.forest import forest_figure
from metareport.plotting.renderer import MatplotlibRenderer, Renderer
from metareport.plotting.roc import plot_summary_roc, roc_figure, summary_roc_figure
from metareport.plotting.styles import (
    DEFAULT_PLOT_STYLE,
    PlotStyle,
    apply_common_theme,
    apply_plot_style,
)
from metareport.plotting.utils import sanitize_gene_name, save_figure
from metareport.plotting.violin import plot_violin, violin_figure

__all__ = [
    "PlotStyle",
    "DEFAULT_PLOT_STYLE",
    "apply_plot_style",
    "apply_common_theme",
    "save_figure",
    "sanitize_gene_name",
    "plot_summary_roc",
    "summary_roc_figure",
    "roc_figure",
    "plot_violin",
    "violin_figure",
    "forest_figure",
    "Renderer",
    "MatplotlibRenderer",
]
