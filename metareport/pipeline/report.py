"""Report driver: existence-gated figure tasks with per-task fault isolation."""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from functools import partial
from pathlib import Path
from typing import Any, Callable, Mapping

import matplotlib.pyplot as plt
import pandas as pd

from metareport.config import ReportConfig
from metareport.core.bundle import DatasetBundle
from metareport.core.types import as_filter_object, has_gene_lists
from metareport.errors import MissingInputError
from metareport.pipeline.io import DEFAULT_LOGGER_NAME, write_json
from metareport.pipeline.tasks import PlotTask, build_static_tasks, forest_gene_list, forest_plot_path
from metareport.plotting.renderer import MatplotlibRenderer, Renderer
from metareport.plotting.styles import DEFAULT_PLOT_STYLE, PlotStyle
from metareport.plotting.utils import save_figure

SUCCEEDED = "succeeded"
SKIPPED = "skipped"
FAILED = "failed"
STATUSES = (SUCCEEDED, SKIPPED, FAILED)

FOREST_BATCH_NAME = "forest_plots"
NO_GENES_REASON = "no genes in filter object"


@dataclass(frozen=True)
class TaskOutcome:
    """Terminal state of one task."""

    name: str
    status: str
    reason: str | None = None
    error: str | None = None
    path: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return dataclasses.asdict(self)


@dataclass
class ReportSummary:
    """Ordered task outcomes of one report run."""

    output_root: str
    outcomes: list[TaskOutcome] = field(default_factory=list)

    @property
    def counts(self) -> dict[str, int]:
        counts = dict.fromkeys(STATUSES, 0)
        for outcome in self.outcomes:
            counts[outcome.status] += 1
        return counts

    @property
    def n_succeeded(self) -> int:
        return self.counts[SUCCEEDED]

    @property
    def n_skipped(self) -> int:
        return self.counts[SKIPPED]

    @property
    def n_failed(self) -> int:
        return self.counts[FAILED]

    def by_status(self, status: str) -> list[TaskOutcome]:
        return [o for o in self.outcomes if o.status == status]

    def get(self, name: str) -> TaskOutcome | None:
        """First outcome recorded under `name`."""
        return next((o for o in self.outcomes if o.name == name), None)

    def to_dict(self) -> dict[str, Any]:
        return {
            "output_root": self.output_root,
            "counts": self.counts,
            "outcomes": [o.to_dict() for o in self.outcomes],
        }

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            [o.to_dict() for o in self.outcomes],
            columns=["name", "status", "reason", "error", "path"],
        )

    def write_json(self, path: str | Path) -> Path:
        return write_json(path, self.to_dict())


def _render_and_save(
    name: str,
    render: Callable[[], Any],
    out_path: Path,
    *,
    figsize: tuple[float, float],
    style: PlotStyle,
    logger: logging.Logger,
) -> TaskOutcome:
    fig = None
    open_before = set(plt.get_fignums())
    try:
        fig = render()
        if fig is None:
            logger.info("Task %s produced no figure; nothing written.", name)
            return TaskOutcome(name=name, status=SKIPPED, reason="renderer returned no figure")
        save_figure(fig, out_path, figsize=figsize, style=style, close=False)
    except Exception as exc:
        logger.warning("Task %s failed: %s: %s", name, type(exc).__name__, exc)
        logger.debug("Detailed traceback:", exc_info=exc)
        return TaskOutcome(name=name, status=FAILED, error=f"{type(exc).__name__}: {exc}")
    finally:
        if fig is not None:
            plt.close(fig)
        # Figures opened by a render that raised before returning them.
        for num in set(plt.get_fignums()) - open_before:
            plt.close(num)
    logger.info("Saved %s to %s", name, out_path.as_posix())
    return TaskOutcome(name=name, status=SUCCEEDED, path=out_path.as_posix())


def _run_static_task(
    task: PlotTask,
    bundle: DatasetBundle,
    root: Path,
    renderer: Renderer,
    style: PlotStyle,
    logger: logging.Logger,
) -> TaskOutcome:
    try:
        inputs = bundle.require(task.required_keys)
    except MissingInputError as exc:
        logger.warning("Skipping %s: %s", task.name, exc)
        return TaskOutcome(name=task.name, status=SKIPPED, reason=str(exc))
    return _render_and_save(
        task.name,
        partial(task.render, renderer, *inputs),
        root / task.path,
        figsize=task.figsize,
        style=style,
        logger=logger,
    )


def _run_forest_batch(
    bundle: DatasetBundle,
    root: Path,
    config: ReportConfig,
    renderer: Renderer,
    style: PlotStyle,
    logger: logging.Logger,
) -> list[TaskOutcome]:
    try:
        filter_obj, meta_object = bundle.require(
            (config.key("filter"), config.key("forest_meta"))
        )
    except MissingInputError as exc:
        logger.warning("Skipping forest plots: %s", exc)
        return [TaskOutcome(name=FOREST_BATCH_NAME, status=SKIPPED, reason=str(exc))]
    if not has_gene_lists(filter_obj):
        reason = f"'{config.key('filter')}' does not expose positive/negative gene lists"
        logger.warning("Skipping forest plots: %s", reason)
        return [TaskOutcome(name=FOREST_BATCH_NAME, status=SKIPPED, reason=reason)]

    try:
        genes = forest_gene_list(as_filter_object(filter_obj))
    except (TypeError, ValueError) as exc:
        reason = f"unusable gene lists in '{config.key('filter')}': {exc}"
        logger.warning("Skipping forest plots: %s", reason)
        return [TaskOutcome(name=FOREST_BATCH_NAME, status=SKIPPED, reason=reason)]
    if not genes:
        logger.info("No genes found in %s to generate forest plots.", config.key("filter"))
        return [TaskOutcome(name=FOREST_BATCH_NAME, status=SKIPPED, reason=NO_GENES_REASON)]

    logger.info("Generating forest plots for %d gene(s).", len(genes))
    outcomes = [
        _render_and_save(
            f"forest_plot:{gene}",
            partial(renderer.forest, gene, meta_object, **config.forest_colors),
            root / forest_plot_path(gene, config.image_format),
            figsize=style.figsize_forest,
            style=style,
            logger=logger,
        )
        for gene in genes
    ]
    logger.info("Finished generating forest plots.")
    return outcomes


def run_report(
    bundle: Mapping[str, Any],
    output_root: str | Path,
    *,
    config: ReportConfig | None = None,
    renderer: Renderer | None = None,
    style: PlotStyle | None = None,
    logger: logging.Logger | None = None,
) -> ReportSummary:
    """Render every figure whose inputs are present in `bundle`.

    Static tasks run first in declaration order, then one forest plot per
    filter gene. A missing input skips a task; any fault while rendering
    or saving marks that task failed and the run continues.
    """
    config = config or ReportConfig()
    style = style or dataclasses.replace(DEFAULT_PLOT_STYLE, dpi=config.dpi)
    renderer = renderer or MatplotlibRenderer(
        class_column=config.class_column, seed=config.seed, style=style
    )
    logger = logger or logging.getLogger(DEFAULT_LOGGER_NAME)
    if not isinstance(bundle, DatasetBundle):
        bundle = DatasetBundle(bundle)

    root = Path(output_root)
    root.mkdir(parents=True, exist_ok=True)
    summary = ReportSummary(output_root=root.as_posix())

    logger.info("Starting report: output_root=%s bundle_keys=%s", root.as_posix(), sorted(bundle))
    for task in build_static_tasks(config, style):
        summary.outcomes.append(_run_static_task(task, bundle, root, renderer, style, logger))
    summary.outcomes.extend(_run_forest_batch(bundle, root, config, renderer, style, logger))

    counts = summary.counts
    logger.info(
        "Report finished: succeeded=%d skipped=%d failed=%d",
        counts[SUCCEEDED],
        counts[SKIPPED],
        counts[FAILED],
    )
    return summary
