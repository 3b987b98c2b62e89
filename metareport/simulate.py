"""Deterministic synthetic cohorts and bundles for demos and tests."""

from __future__ import annotations

from typing import Any, Sequence

import anndata as ad
import numpy as np
import pandas as pd

from metareport.core.meta import run_meta_analysis
from metareport.core.types import FilterObject

DEMO_POS_GENES = ("CXCL9", "GZMB", "PRF1")
DEMO_NEG_GENES = ("TGFB1", "VEGFA")
DEMO_NOISE_GENES = ("ACTB", "GAPDH", "RPLP0", "B2M", "PTPRC")

TRAINING_COHORTS = {"GSE135222": 27, "POPLAR": 60, "OKA": 40}
VALIDATION_COHORTS = {"GSE111414": 30, "WHTJ2": 24}


def make_cohort(
    name: str,
    n_samples: int,
    *,
    pos_genes: Sequence[str] = DEMO_POS_GENES,
    neg_genes: Sequence[str] = DEMO_NEG_GENES,
    noise_genes: Sequence[str] = DEMO_NOISE_GENES,
    effect: float = 1.0,
    case_fraction: float = 0.4,
    seed: int = 0,
) -> ad.AnnData:
    """Simulate a log-scale expression cohort with a binary response.

    Cases (``class == 1``) are shifted up by `effect` on `pos_genes` and
    down on `neg_genes`. `obs` carries `group`, `class` and `HIST`.
    """
    if n_samples < 4:
        raise ValueError("n_samples must be >= 4.")
    rng = np.random.default_rng(seed)
    n_cases = min(n_samples - 2, max(2, int(round(case_fraction * n_samples))))
    labels = np.zeros(n_samples, dtype=int)
    labels[rng.choice(n_samples, size=n_cases, replace=False)] = 1

    genes = list(dict.fromkeys([*pos_genes, *neg_genes, *noise_genes]))
    X = rng.normal(loc=6.0, scale=1.0, size=(n_samples, len(genes)))
    for j, gene in enumerate(genes):
        if gene in pos_genes:
            X[labels == 1, j] += effect
        elif gene in neg_genes:
            X[labels == 1, j] -= effect

    obs = pd.DataFrame(
        {
            "class": labels,
            "group": np.where(labels == 1, "Responder", "Non-responder"),
            "HIST": rng.choice(["LUAD", "LUSC"], size=n_samples),
        },
        index=[f"{name}_s{i}" for i in range(n_samples)],
    )
    adata = ad.AnnData(X=X, obs=obs, var=pd.DataFrame(index=genes))
    adata.uns["name"] = str(name)
    return adata


def make_demo_bundle(seed: int = 0) -> dict[str, Any]:
    """Build a complete bundle with every key the default report looks up."""
    cohorts: dict[str, ad.AnnData] = {}
    for i, (name, n) in enumerate({**TRAINING_COHORTS, **VALIDATION_COHORTS}.items()):
        cohorts[name] = make_cohort(name, n, effect=1.0 + 0.2 * (i % 3), seed=seed + i)

    training = {k: cohorts[k] for k in TRAINING_COHORTS}
    validation = {k: cohorts[k] for k in VALIDATION_COHORTS}
    bundle: dict[str, Any] = dict(cohorts)
    bundle["discovery_exampleMetaObj"] = run_meta_analysis(training, name="discovery")
    bundle["validation_exampleMetaObj"] = run_meta_analysis(validation, name="validation")
    bundle["exampleMetaObj"] = run_meta_analysis(cohorts, name="all_cohorts")
    bundle["forwardRes"] = FilterObject(
        pos_gene_names=DEMO_POS_GENES, neg_gene_names=DEMO_NEG_GENES, name="forwardRes"
    )
    return bundle
