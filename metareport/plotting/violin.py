"""Violin plots of the filter score across labelled sample groups."""

from __future__ import annotations

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from metareport.core.meta import filter_score
from metareport.core.types import FilterObject
from metareport.errors import RenderError
from metareport.plotting.styles import DEFAULT_PLOT_STYLE, PlotStyle, apply_common_theme


def plot_violin(
    scores: np.ndarray,
    labels: pd.Series,
    *,
    title: str,
    seed: int = 0,
    style: PlotStyle = DEFAULT_PLOT_STYLE,
) -> tuple[plt.Figure, plt.Axes]:
    """Violin per group with jittered sample points overlaid."""
    values = np.asarray(scores, dtype=float)
    groups = pd.Series(labels).astype("string").fillna("NA").to_numpy()
    if values.size != groups.size:
        raise ValueError("scores and labels length mismatch.")
    order = sorted(pd.unique(groups))

    fig, ax = plt.subplots(figsize=style.figsize_violin)
    rng = np.random.default_rng(seed)
    for i, group in enumerate(order):
        vals = values[(groups == group) & np.isfinite(values)]
        color = style.palette[i % len(style.palette)]
        # Kernel density needs two distinct values.
        if np.unique(vals).size >= 2:
            parts = ax.violinplot(
                [vals], positions=[i], showmeans=False, showmedians=True, showextrema=False
            )
            for body in parts["bodies"]:
                body.set_facecolor(color)
                body.set_edgecolor("black")
                body.set_alpha(style.violin_alpha)
            parts["cmedians"].set_color("black")
        jitter = rng.uniform(-0.08, 0.08, size=vals.size)
        ax.scatter(
            np.full(vals.size, i) + jitter,
            vals,
            s=style.point_size,
            color=color,
            alpha=style.point_alpha,
            edgecolors="black",
            linewidths=0.3,
            zorder=3,
        )

    ax.set_xticks(range(len(order)))
    ax.set_xticklabels([f"{g}\n(n={int(np.sum(groups == g))})" for g in order])
    ax.set_xlim(-0.6, len(order) - 0.4)
    ax.set_ylabel("Filter score")
    ax.set_title(title)
    apply_common_theme(ax, style)
    fig.tight_layout()
    return fig, ax


def violin_figure(
    filter_object: FilterObject,
    dataset,
    label_column: str,
    *,
    style: PlotStyle = DEFAULT_PLOT_STYLE,
) -> plt.Figure:
    uns = getattr(dataset, "uns", None) or {}
    name = str(uns.get("name", "dataset"))
    if label_column not in dataset.obs.columns:
        raise RenderError(f"Label column '{label_column}' not found in dataset '{name}'.")
    try:
        scores = filter_score(filter_object, dataset)
    except ValueError as exc:
        raise RenderError(f"Cannot score dataset '{name}': {exc}") from exc
    fig, _ = plot_violin(
        scores, dataset.obs[label_column], title=f"{name}: {label_column}", style=style
    )
    return fig
