"""Core containers and statistics for report generation."""

from metareport.core.bundle import DatasetBundle, load_bundle, save_bundle
from metareport.core.meta import (
    class_labels,
    filter_score,
    hedges_g,
    pool_random_effects,
    run_meta_analysis,
)
from metareport.core.roc import RocCurve, SummaryRoc, roc_auc_ci, roc_for_cohort, summary_roc_curve
from metareport.core.types import (
    FilterObject,
    MetaAnalysis,
    MetaObject,
    as_filter_object,
    has_gene_lists,
)

__all__ = [
    "DatasetBundle",
    "load_bundle",
    "save_bundle",
    "FilterObject",
    "MetaAnalysis",
    "MetaObject",
    "as_filter_object",
    "has_gene_lists",
    "class_labels",
    "filter_score",
    "hedges_g",
    "pool_random_effects",
    "run_meta_analysis",
    "RocCurve",
    "SummaryRoc",
    "roc_auc_ci",
    "roc_for_cohort",
    "summary_roc_curve",
]
