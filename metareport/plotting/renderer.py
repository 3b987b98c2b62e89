"""Rendering capability consumed by the report driver."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

import matplotlib.pyplot as plt

from metareport.core.types import as_filter_object
from metareport.plotting.forest import forest_figure
from metareport.plotting.roc import roc_figure, summary_roc_figure
from metareport.plotting.styles import DEFAULT_PLOT_STYLE, PlotStyle
from metareport.plotting.violin import violin_figure


class Renderer(Protocol):
    """Anything that can turn report inputs into matplotlib figures."""

    def summary_roc(self, meta_object: Any, filter_object: Any, bootstrap_reps: int) -> plt.Figure: ...

    def violin(self, filter_object: Any, dataset: Any, label_column: str) -> plt.Figure: ...

    def roc(self, filter_object: Any, dataset: Any, title: str) -> plt.Figure: ...

    def forest(self, gene_name: str, meta_object: Any, **style_options: str) -> plt.Figure | None: ...


@dataclass(frozen=True)
class MatplotlibRenderer:
    """Default renderer backed by the package's own figure factories."""

    class_column: str = "class"
    seed: int = 0
    style: PlotStyle = DEFAULT_PLOT_STYLE

    def summary_roc(self, meta_object, filter_object, bootstrap_reps: int) -> plt.Figure:
        return summary_roc_figure(
            meta_object,
            as_filter_object(filter_object),
            bootstrap_reps=bootstrap_reps,
            seed=self.seed,
            class_column=self.class_column,
            style=self.style,
        )

    def violin(self, filter_object, dataset, label_column: str) -> plt.Figure:
        return violin_figure(
            as_filter_object(filter_object), dataset, label_column, style=self.style
        )

    def roc(self, filter_object, dataset, title: str) -> plt.Figure:
        return roc_figure(
            as_filter_object(filter_object),
            dataset,
            title=title,
            class_column=self.class_column,
            style=self.style,
        )

    def forest(self, gene_name: str, meta_object, **style_options: str) -> plt.Figure:
        return forest_figure(gene_name, meta_object, style=self.style, **style_options)
