"""Report pipeline entrypoints."""

from metareport.pipeline.report import (
    FAILED,
    SKIPPED,
    SUCCEEDED,
    ReportSummary,
    TaskOutcome,
    run_report,
)
from metareport.pipeline.tasks import PlotTask, build_static_tasks, forest_gene_list, forest_plot_path

__all__ = [
    "run_report",
    "ReportSummary",
    "TaskOutcome",
    "PlotTask",
    "build_static_tasks",
    "forest_gene_list",
    "forest_plot_path",
    "SUCCEEDED",
    "SKIPPED",
    "FAILED",
]
