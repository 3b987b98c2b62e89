"""ROC figure factories for signature scores."""

from __future__ import annotations

import matplotlib.pyplot as plt
import numpy as np

from metareport.core.meta import class_labels, filter_score
from metareport.core.roc import SummaryRoc, roc_for_cohort, summary_roc_curve
from metareport.core.types import FilterObject, MetaObject
from metareport.errors import RenderError
from metareport.plotting.styles import DEFAULT_PLOT_STYLE, PlotStyle, apply_common_theme


def _dataset_display_name(dataset, fallback: str) -> str:
    uns = getattr(dataset, "uns", None) or {}
    return str(uns.get("name", fallback))


def _finish_roc_axes(ax: plt.Axes, title: str, style: PlotStyle) -> None:
    ax.plot([0, 1], [0, 1], color="#888888", lw=1, linestyle="--")
    ax.set_xlim(0.0, 1.0)
    ax.set_ylim(0.0, 1.02)
    ax.set_xlabel("False Positive Rate")
    ax.set_ylabel("True Positive Rate")
    ax.set_title(title)
    ax.legend(loc="lower right", frameon=False)
    apply_common_theme(ax, style)


def plot_summary_roc(
    summary: SummaryRoc,
    *,
    title: str = "Summary ROC",
    style: PlotStyle = DEFAULT_PLOT_STYLE,
) -> tuple[plt.Figure, plt.Axes]:
    """Plot per-cohort ROC curves and the pooled curve from a precomputed `SummaryRoc`."""
    fig, ax = plt.subplots(figsize=style.figsize_roc)
    for i, curve in enumerate(summary.curves):
        ax.plot(
            curve.fpr,
            curve.tpr,
            lw=style.cohort_line_width,
            color=style.palette[i % len(style.palette)],
            alpha=0.8,
            label=f"{curve.name} (AUC={curve.auc:.2f}, n={curve.n_samples})",
        )
    if np.all(np.isfinite(summary.tpr_lower)):
        ax.fill_between(
            summary.fpr,
            summary.tpr_lower,
            summary.tpr_upper,
            color="black",
            alpha=style.band_alpha,
            linewidth=0,
        )
    label = f"Summary AUC={summary.auc:.2f}"
    if np.isfinite(summary.auc_lower):
        label += f" (95% CI {summary.auc_lower:.2f}-{summary.auc_upper:.2f})"
    ax.plot(summary.fpr, summary.tpr, lw=style.line_width, color="black", label=label)
    _finish_roc_axes(ax, title, style)
    fig.tight_layout()
    return fig, ax


def summary_roc_figure(
    meta_object: MetaObject,
    filter_object: FilterObject,
    *,
    bootstrap_reps: int = 100,
    seed: int = 0,
    class_column: str = "class",
    style: PlotStyle = DEFAULT_PLOT_STYLE,
) -> plt.Figure:
    """Score every cohort of `meta_object` and draw the summary ROC."""
    if not meta_object.datasets:
        raise RenderError(f"Meta object '{meta_object.name}' holds no datasets.")
    cohorts = []
    for name, ds in meta_object.datasets.items():
        try:
            cohorts.append(
                (
                    _dataset_display_name(ds, name),
                    class_labels(ds, class_column),
                    filter_score(filter_object, ds),
                )
            )
        except (KeyError, ValueError) as exc:
            raise RenderError(f"Cannot score dataset '{name}': {exc}") from exc
    try:
        summary = summary_roc_curve(cohorts, bootstrap_reps=bootstrap_reps, seed=seed)
    except ValueError as exc:
        raise RenderError(f"Summary ROC failed for '{meta_object.name}': {exc}") from exc
    fig, _ = plot_summary_roc(summary, title=f"Summary ROC: {meta_object.name}", style=style)
    return fig


def roc_figure(
    filter_object: FilterObject,
    dataset,
    *,
    title: str | None = None,
    class_column: str = "class",
    style: PlotStyle = DEFAULT_PLOT_STYLE,
) -> plt.Figure:
    """Single-cohort ROC curve of the filter score with AUC and 95% CI."""
    name = _dataset_display_name(dataset, "dataset")
    try:
        curve = roc_for_cohort(
            name, class_labels(dataset, class_column), filter_score(filter_object, dataset)
        )
    except (KeyError, ValueError) as exc:
        raise RenderError(f"ROC failed for dataset '{name}': {exc}") from exc

    fig, ax = plt.subplots(figsize=style.figsize_roc)
    ax.plot(
        curve.fpr,
        curve.tpr,
        lw=style.line_width,
        color=style.palette[0],
        label=f"AUC={curve.auc:.2f} (95% CI {curve.auc_lower:.2f}-{curve.auc_upper:.2f})",
    )
    _finish_roc_axes(ax, title or f"ROC: {name}", style)
    fig.tight_layout()
    return fig
