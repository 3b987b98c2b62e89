from __future__ import annotations

import json
import logging
import os
from pathlib import Path

os.environ.setdefault("MPLCONFIGDIR", "/tmp/mpl-test")

import matplotlib

matplotlib.use("Agg", force=True)

import matplotlib.pyplot as plt
import pytest

from metareport.config import build_report_config
from metareport.core.bundle import DatasetBundle
from metareport.core.types import FilterObject
from metareport.errors import RenderError
from metareport.pipeline.report import (
    FAILED,
    FOREST_BATCH_NAME,
    NO_GENES_REASON,
    SKIPPED,
    SUCCEEDED,
    run_report,
)
from metareport.pipeline.tasks import build_static_tasks

STATIC_NAMES = [
    "training_roc_curve",
    "GSE135222_violinplot",
    "POPLAR_violinplot",
    "OKA_different_type_violinplot",
    "validation_roc_curve",
    "OKA_violinplot",
    "GSE111414_violinplot",
    "WHTJ2_violinplot",
    "WHTJ2_roc_curve",
]


class _FakeRenderer:
    def __init__(self, *, fail_genes=(), none_genes=(), fail_datasets=()):
        self.fail_genes = set(fail_genes)
        self.none_genes = set(none_genes)
        self.fail_datasets = set(fail_datasets)
        self.calls: list[tuple] = []

    @staticmethod
    def _fig():
        fig, ax = plt.subplots()
        ax.plot([0, 1], [0, 1])
        return fig

    def summary_roc(self, meta_object, filter_object, bootstrap_reps):
        self.calls.append(("summary_roc", meta_object, bootstrap_reps))
        return self._fig()

    def violin(self, filter_object, dataset, label_column):
        self.calls.append(("violin", dataset, label_column))
        if dataset in self.fail_datasets:
            raise ValueError(f"cannot draw {dataset}")
        return self._fig()

    def roc(self, filter_object, dataset, title):
        self.calls.append(("roc", dataset, title))
        return self._fig()

    def forest(self, gene_name, meta_object, **style_options):
        self.calls.append(("forest", gene_name, style_options))
        if gene_name in self.fail_genes:
            raise RenderError(f"Gene '{gene_name}' not found in meta-analysis.")
        if gene_name in self.none_genes:
            return None
        return self._fig()


def _full_bundle(pos=("CXCL9", "GZMB"), neg=("TGFB1",)) -> dict:
    return {
        "discovery_exampleMetaObj": "discovery_meta",
        "validation_exampleMetaObj": "validation_meta",
        "exampleMetaObj": "all_meta",
        "forwardRes": FilterObject(pos_gene_names=pos, neg_gene_names=neg),
        "GSE135222": "GSE135222",
        "POPLAR": "POPLAR",
        "OKA": "OKA",
        "GSE111414": "GSE111414",
        "WHTJ2": "WHTJ2",
    }


def _png_config(**extra):
    return build_report_config({"image_format": "png", "dpi": 50, **extra})


def _artifacts(root: Path) -> list[Path]:
    return sorted(p for p in root.rglob("*") if p.is_file())


def test_full_bundle_renders_every_task_in_order(tmp_path):
    renderer = _FakeRenderer()
    summary = run_report(_full_bundle(), tmp_path, config=_png_config(), renderer=renderer)

    names = [o.name for o in summary.outcomes]
    assert names == STATIC_NAMES + [
        "forest_plot:CXCL9",
        "forest_plot:GZMB",
        "forest_plot:TGFB1",
    ]
    assert summary.counts == {SUCCEEDED: 12, SKIPPED: 0, FAILED: 0}
    assert (tmp_path / "training_plots" / "training_roc_curve.png").exists()
    assert (tmp_path / "training_plots" / "OKA_different_type_violinplot.png").exists()
    assert (tmp_path / "validation_plots" / "WHTJ2_roc_curve.png").exists()
    assert (tmp_path / "forest_plots" / "CXCL9_forest_plot.png").exists()
    assert len(_artifacts(tmp_path)) == 12


def test_static_tasks_pass_expected_arguments(tmp_path):
    renderer = _FakeRenderer()
    run_report(_full_bundle(), tmp_path, config=_png_config(bootstrap_reps=7), renderer=renderer)

    summary_calls = [c for c in renderer.calls if c[0] == "summary_roc"]
    assert summary_calls == [
        ("summary_roc", "discovery_meta", 7),
        ("summary_roc", "validation_meta", 7),
    ]
    violin_calls = [c[1:] for c in renderer.calls if c[0] == "violin"]
    assert violin_calls == [
        ("GSE135222", "group"),
        ("POPLAR", "group"),
        ("OKA", "HIST"),
        ("OKA", "group"),
        ("GSE111414", "group"),
        ("WHTJ2", "group"),
    ]
    roc_calls = [c[1:] for c in renderer.calls if c[0] == "roc"]
    assert roc_calls == [("WHTJ2", "ROC plot for PSC Validation WHTJ2")]
    forest_opts = [c[2] for c in renderer.calls if c[0] == "forest"]
    assert all(set(opts.values()) == {"black"} for opts in forest_opts)


def test_task_skipped_iff_required_key_missing(tmp_path):
    config = _png_config()
    bundle = _full_bundle()
    del bundle["POPLAR"]
    del bundle["validation_exampleMetaObj"]
    summary = run_report(bundle, tmp_path, config=config, renderer=_FakeRenderer())

    for task in build_static_tasks(config):
        outcome = summary.get(task.name)
        missing = [k for k in task.required_keys if k not in bundle]
        if missing:
            assert outcome.status == SKIPPED
            assert all(k in outcome.reason for k in missing)
            assert not (tmp_path / task.path).exists()
        else:
            assert outcome.status == SUCCEEDED


def test_training_only_bundle(tmp_path):
    bundle = {
        "discovery_exampleMetaObj": "discovery_meta",
        "forwardRes": FilterObject(pos_gene_names=("CXCL9",)),
    }
    summary = run_report(bundle, tmp_path, config=_png_config(), renderer=_FakeRenderer())

    assert summary.get("training_roc_curve").status == SUCCEEDED
    for name in STATIC_NAMES[1:]:
        assert summary.get(name).status == SKIPPED
    forest = summary.get(FOREST_BATCH_NAME)
    assert forest.status == SKIPPED
    assert "exampleMetaObj" in forest.reason
    assert _artifacts(tmp_path) == [tmp_path / "training_plots" / "training_roc_curve.png"]


def test_training_only_bundle_with_forest_meta_runs_forest_batch(tmp_path):
    bundle = {
        "discovery_exampleMetaObj": "discovery_meta",
        "exampleMetaObj": "all_meta",
        "forwardRes": FilterObject(pos_gene_names=("CXCL9",), neg_gene_names=("VEGFA",)),
    }
    summary = run_report(bundle, tmp_path, config=_png_config(), renderer=_FakeRenderer())
    assert summary.get("forest_plot:CXCL9").status == SUCCEEDED
    assert summary.get("forest_plot:VEGFA").status == SUCCEEDED


def test_gene_names_are_sanitized_and_each_attempted(tmp_path):
    renderer = _FakeRenderer(fail_genes={"MYC/1"})
    bundle = _full_bundle(pos=("TP53",), neg=("MYC/1",))
    summary = run_report(bundle, tmp_path, config=_png_config(), renderer=renderer)

    forest_calls = [c[1] for c in renderer.calls if c[0] == "forest"]
    assert forest_calls == ["TP53", "MYC/1"]
    assert summary.get("forest_plot:TP53").status == SUCCEEDED
    assert summary.get("forest_plot:MYC/1").status == FAILED
    assert (tmp_path / "forest_plots" / "TP53_forest_plot.png").exists()
    assert not (tmp_path / "forest_plots" / "MYC_1_forest_plot.png").exists()

    ok = run_report(bundle, tmp_path / "second", config=_png_config(), renderer=_FakeRenderer())
    assert (tmp_path / "second" / "forest_plots" / "MYC_1_forest_plot.png").exists()
    assert ok.get("forest_plot:MYC/1").status == SUCCEEDED


def test_empty_gene_list_records_single_informational_outcome(tmp_path):
    renderer = _FakeRenderer()
    summary = run_report(_full_bundle(pos=(), neg=()), tmp_path, config=_png_config(), renderer=renderer)

    forest_outcomes = [o for o in summary.outcomes if o.name.startswith("forest")]
    assert len(forest_outcomes) == 1
    assert forest_outcomes[0].name == FOREST_BATCH_NAME
    assert forest_outcomes[0].status == SKIPPED
    assert forest_outcomes[0].reason == NO_GENES_REASON
    assert not any(c[0] == "forest" for c in renderer.calls)
    assert not (tmp_path / "forest_plots").exists()


def test_fault_on_one_gene_does_not_affect_others(tmp_path):
    genes = ("G1", "G2", "G3", "G4", "G5")
    renderer = _FakeRenderer(fail_genes={"G3"})
    summary = run_report(
        _full_bundle(pos=genes[:3], neg=genes[3:]),
        tmp_path,
        config=_png_config(),
        renderer=renderer,
    )

    forest = [o for o in summary.outcomes if o.name.startswith("forest_plot:")]
    assert [o.name for o in forest] == [f"forest_plot:{g}" for g in genes]
    assert [o.status for o in forest] == [SUCCEEDED, SUCCEEDED, FAILED, SUCCEEDED, SUCCEEDED]
    assert "G3" in forest[2].error
    files = sorted(p.name for p in (tmp_path / "forest_plots").iterdir())
    assert files == [f"{g}_forest_plot.png" for g in ("G1", "G2", "G4", "G5")]


def test_static_task_fault_is_isolated(tmp_path):
    renderer = _FakeRenderer(fail_datasets={"POPLAR"})
    summary = run_report(_full_bundle(), tmp_path, config=_png_config(), renderer=renderer)

    failed = summary.get("POPLAR_violinplot")
    assert failed.status == FAILED
    assert failed.error == "ValueError: cannot draw POPLAR"
    assert summary.n_failed == 1
    assert summary.get("OKA_different_type_violinplot").status == SUCCEEDED
    assert not (tmp_path / "training_plots" / "POPLAR_violinplot.png").exists()


def test_forest_renderer_returning_none_is_skipped(tmp_path):
    renderer = _FakeRenderer(none_genes={"GZMB"})
    summary = run_report(_full_bundle(), tmp_path, config=_png_config(), renderer=renderer)
    outcome = summary.get("forest_plot:GZMB")
    assert outcome.status == SKIPPED
    assert not (tmp_path / "forest_plots" / "GZMB_forest_plot.png").exists()


def test_duplicate_genes_are_attempted_twice(tmp_path):
    renderer = _FakeRenderer()
    summary = run_report(
        _full_bundle(pos=("CD8A",), neg=("CD8A",)), tmp_path, config=_png_config(), renderer=renderer
    )
    forest = [o for o in summary.outcomes if o.name == "forest_plot:CD8A"]
    assert len(forest) == 2
    assert [c[1] for c in renderer.calls if c[0] == "forest"] == ["CD8A", "CD8A"]
    assert len(list((tmp_path / "forest_plots").iterdir())) == 1


def test_filter_without_gene_lists_skips_forest_batch(tmp_path):
    bundle = _full_bundle()
    bundle["forwardRes"] = "opaque-filter"
    summary = run_report(bundle, tmp_path, config=_png_config(), renderer=_FakeRenderer())
    forest = summary.get(FOREST_BATCH_NAME)
    assert forest.status == SKIPPED
    assert "gene lists" in forest.reason


def test_rerun_is_idempotent(tmp_path):
    bundle = _full_bundle()
    first = run_report(bundle, tmp_path, config=_png_config(), renderer=_FakeRenderer())
    before = _artifacts(tmp_path)
    second = run_report(bundle, tmp_path, config=_png_config(), renderer=_FakeRenderer())

    assert [(o.name, o.status) for o in first.outcomes] == [
        (o.name, o.status) for o in second.outcomes
    ]
    assert _artifacts(tmp_path) == before
    assert not list(tmp_path.rglob("*.tmp"))


def test_renamed_bundle_keys_are_used(tmp_path):
    bundle = _full_bundle()
    bundle["signature"] = bundle.pop("forwardRes")
    config = _png_config(bundle_keys={"filter": "signature"})
    summary = run_report(bundle, tmp_path, config=config, renderer=_FakeRenderer())
    assert summary.n_skipped == 0
    assert summary.n_succeeded == 12


def test_summary_serialization(tmp_path):
    bundle = _full_bundle()
    del bundle["WHTJ2"]
    summary = run_report(
        DatasetBundle(bundle), tmp_path / "out", config=_png_config(), renderer=_FakeRenderer()
    )
    frame = summary.to_frame()
    assert list(frame.columns) == ["name", "status", "reason", "error", "path"]
    assert len(frame) == len(summary.outcomes)

    path = summary.write_json(tmp_path / "summary.json")
    payload = json.loads(path.read_text(encoding="utf-8"))
    assert payload["counts"] == summary.counts
    assert payload["counts"][SKIPPED] == 2
    assert payload["outcomes"][0]["name"] == "training_roc_curve"


def test_failures_are_logged_with_gene(tmp_path, caplog):
    caplog.set_level(logging.WARNING, logger="metareport")
    run_report(
        _full_bundle(pos=("BADGENE",), neg=()),
        tmp_path,
        config=_png_config(),
        renderer=_FakeRenderer(fail_genes={"BADGENE"}),
    )
    assert "forest_plot:BADGENE failed" in caplog.text


def test_interrupts_are_not_captured(tmp_path):
    class _Interrupting(_FakeRenderer):
        def summary_roc(self, meta_object, filter_object, bootstrap_reps):
            raise KeyboardInterrupt

    with pytest.raises(KeyboardInterrupt):
        run_report(_full_bundle(), tmp_path, config=_png_config(), renderer=_Interrupting())


def test_figures_opened_by_a_failing_render_are_closed(tmp_path):
    class _FailsMidDraw(_FakeRenderer):
        def violin(self, filter_object, dataset, label_column):
            self._fig()
            raise ValueError(f"cannot draw {dataset}")

        def forest(self, gene_name, meta_object, **style_options):
            self._fig()
            raise ValueError("Axis limits cannot be NaN or Inf")

    open_before = set(plt.get_fignums())
    summary = run_report(
        _full_bundle(pos=("G1", "G1", "G1"), neg=()),
        tmp_path,
        config=_png_config(),
        renderer=_FailsMidDraw(),
    )
    assert [o.status for o in summary.outcomes if o.name == "forest_plot:G1"] == [FAILED] * 3
    assert summary.get("GSE135222_violinplot").status == FAILED
    assert set(plt.get_fignums()) == open_before
    assert not (tmp_path / "forest_plots").exists()


def test_uncoercible_gene_lists_skip_forest_batch(tmp_path):
    bundle = _full_bundle()
    bundle["forwardRes"] = {"posGeneNames": 5, "negGeneNames": []}
    renderer = _FakeRenderer()
    summary = run_report(bundle, tmp_path, config=_png_config(), renderer=renderer)

    assert [o.name for o in summary.outcomes] == [*STATIC_NAMES, FOREST_BATCH_NAME]
    assert summary.n_succeeded == 9
    forest = summary.get(FOREST_BATCH_NAME)
    assert forest.status == SKIPPED
    assert "unusable gene lists" in forest.reason
    assert not [c for c in renderer.calls if c[0] == "forest"]


def test_scalar_gene_lists_are_not_split(tmp_path):
    bundle = _full_bundle()
    bundle["forwardRes"] = {"posGeneNames": "TP53", "negGeneNames": "MYC"}
    renderer = _FakeRenderer()
    summary = run_report(bundle, tmp_path, config=_png_config(), renderer=renderer)
    assert [c[1] for c in renderer.calls if c[0] == "forest"] == ["TP53", "MYC"]
    assert summary.get("forest_plot:TP53").status == SUCCEEDED
