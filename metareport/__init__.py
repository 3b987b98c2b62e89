"""metareport public API."""

from metareport._version import __version__
from metareport.config import ReportConfig, build_report_config, load_json_config
from metareport.core.bundle import DatasetBundle, load_bundle, save_bundle
from metareport.core.meta import run_meta_analysis
from metareport.core.types import FilterObject, MetaAnalysis, MetaObject
from metareport.errors import BundleError, MetaReportError, MissingInputError, RenderError
from metareport.pipeline.report import ReportSummary, TaskOutcome, run_report

__all__ = [
    "__version__",
    "ReportConfig",
    "build_report_config",
    "load_json_config",
    "DatasetBundle",
    "load_bundle",
    "save_bundle",
    "FilterObject",
    "MetaAnalysis",
    "MetaObject",
    "run_meta_analysis",
    "MetaReportError",
    "BundleError",
    "MissingInputError",
    "RenderError",
    "ReportSummary",
    "TaskOutcome",
    "run_report",
]
