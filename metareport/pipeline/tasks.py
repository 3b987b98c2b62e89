"""Static plot task table and forest-plot work items."""

from __future__ import annotations

from dataclasses import dataclass
from functools import partial
from pathlib import Path
from typing import Any, Callable

from metareport.config import ReportConfig
from metareport.core.types import FilterObject
from metareport.plotting.styles import DEFAULT_PLOT_STYLE, PlotStyle
from metareport.plotting.utils import sanitize_gene_name

TRAINING_DIR = "training_plots"
VALIDATION_DIR = "validation_plots"
FOREST_DIR = "forest_plots"

WHTJ2_ROC_TITLE = "ROC plot for PSC Validation WHTJ2"

# (task name, cohort key, label column), in run order.
TRAINING_VIOLINS: tuple[tuple[str, str, str], ...] = (
    ("GSE135222_violinplot", "GSE135222", "group"),
    ("POPLAR_violinplot", "POPLAR", "group"),
    ("OKA_different_type_violinplot", "OKA", "HIST"),
)
VALIDATION_VIOLINS: tuple[tuple[str, str, str], ...] = (
    ("OKA_violinplot", "OKA", "group"),
    ("GSE111414_violinplot", "GSE111414", "group"),
    ("WHTJ2_violinplot", "WHTJ2", "group"),
)


@dataclass(frozen=True)
class PlotTask:
    """One declared figure: inputs to look up, how to draw it, where it goes.

    `render` is called as ``render(renderer, *inputs)`` with the bundle
    values of `required_keys` in order. `path` is relative to the output root.
    """

    name: str
    required_keys: tuple[str, ...]
    render: Callable[..., Any]
    path: Path
    figsize: tuple[float, float]


def _render_summary_roc(renderer, meta_object, filter_object, *, bootstrap_reps: int):
    return renderer.summary_roc(meta_object, filter_object, bootstrap_reps)


def _render_violin(renderer, filter_object, dataset, *, label_column: str):
    return renderer.violin(filter_object, dataset, label_column)


def _render_roc(renderer, filter_object, dataset, *, title: str):
    return renderer.roc(filter_object, dataset, title)


def _violin_task(
    name: str, cohort: str, label_column: str, subdir: str, config: ReportConfig, style: PlotStyle
) -> PlotTask:
    return PlotTask(
        name=name,
        required_keys=(config.key("filter"), cohort),
        render=partial(_render_violin, label_column=label_column),
        path=Path(subdir) / f"{name}.{config.image_format}",
        figsize=style.figsize_violin,
    )


def _summary_roc_task(
    name: str, meta_role: str, subdir: str, config: ReportConfig, style: PlotStyle
) -> PlotTask:
    return PlotTask(
        name=name,
        required_keys=(config.key(meta_role), config.key("filter")),
        render=partial(_render_summary_roc, bootstrap_reps=config.bootstrap_reps),
        path=Path(subdir) / f"{name}.{config.image_format}",
        figsize=style.figsize_roc,
    )


def build_static_tasks(
    config: ReportConfig, style: PlotStyle = DEFAULT_PLOT_STYLE
) -> list[PlotTask]:
    """Return the fixed battery of training and validation figures in run order."""
    tasks = [_summary_roc_task("training_roc_curve", "discovery_meta", TRAINING_DIR, config, style)]
    tasks.extend(
        _violin_task(name, cohort, label, TRAINING_DIR, config, style)
        for name, cohort, label in TRAINING_VIOLINS
    )
    tasks.append(
        _summary_roc_task("validation_roc_curve", "validation_meta", VALIDATION_DIR, config, style)
    )
    tasks.extend(
        _violin_task(name, cohort, label, VALIDATION_DIR, config, style)
        for name, cohort, label in VALIDATION_VIOLINS
    )
    tasks.append(
        PlotTask(
            name="WHTJ2_roc_curve",
            required_keys=(config.key("filter"), "WHTJ2"),
            render=partial(_render_roc, title=WHTJ2_ROC_TITLE),
            path=Path(VALIDATION_DIR) / f"WHTJ2_roc_curve.{config.image_format}",
            figsize=style.figsize_roc,
        )
    )
    return tasks


def forest_gene_list(filter_object: FilterObject) -> list[str]:
    """Positive then negative genes, order kept, duplicates kept."""
    return [*filter_object.pos_gene_names, *filter_object.neg_gene_names]


def forest_plot_path(gene_name: str, image_format: str) -> Path:
    return Path(FOREST_DIR) / f"{sanitize_gene_name(gene_name)}_forest_plot.{image_format}"
