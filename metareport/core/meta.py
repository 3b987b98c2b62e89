"""Filter scores, per-cohort effect sizes and random-effects pooling."""

from __future__ import annotations

import logging
import math
from typing import Any, Mapping, Sequence

import numpy as np
import pandas as pd
import scipy.sparse as sp
from scipy.stats import chi2, gmean, norm

from metareport.core.types import FilterObject, MetaAnalysis, MetaObject

Z_95 = float(norm.ppf(0.975))


def _dense(X) -> np.ndarray:
    if sp.issparse(X):
        return np.asarray(X.toarray(), dtype=float)
    return np.asarray(X, dtype=float)


def _positive_shift(X) -> float:
    """Offset that makes every expression value strictly positive."""
    arr = _dense(X)
    if arr.size == 0:
        return 0.0
    minimum = float(np.nanmin(arr))
    return 0.0 if minimum > 0 else 1.0 - minimum


def _gene_block(dataset, genes: Sequence[str]) -> np.ndarray:
    """Samples x present-genes matrix; unknown genes are ignored."""
    var_names = set(map(str, dataset.var_names))
    present = [g for g in dict.fromkeys(genes) if g in var_names]
    if not present:
        return np.empty((int(dataset.n_obs), 0), dtype=float)
    return _dense(dataset[:, present].X).reshape(int(dataset.n_obs), len(present))


def class_labels(dataset, class_column: str = "class") -> np.ndarray:
    """Return the binary (0/1) outcome vector stored in `dataset.obs`."""
    if class_column not in dataset.obs.columns:
        raise KeyError(f"dataset.obs['{class_column}'] not found.")
    labels = pd.to_numeric(dataset.obs[class_column], errors="coerce").to_numpy()
    if not np.all(np.isfinite(labels)) or not set(np.unique(labels)) <= {0, 1}:
        raise ValueError(f"dataset.obs['{class_column}'] must contain only 0/1 values.")
    return labels.astype(int)


def filter_score(filter_object: FilterObject, dataset) -> np.ndarray:
    """Per-sample signature score for a cohort.

    Geometric mean of the positive genes minus the geometric mean of the
    negative genes, the latter scaled by ``n_neg / n_pos`` when both sets
    are present. Expression is shifted to be strictly positive first.
    """
    pos = _gene_block(dataset, filter_object.pos_gene_names)
    neg = _gene_block(dataset, filter_object.neg_gene_names)
    if pos.shape[1] == 0 and neg.shape[1] == 0:
        raise ValueError("None of the filter genes are measured in this dataset.")

    shift = _positive_shift(dataset.X)
    n_obs = int(dataset.n_obs)
    pos_score = gmean(pos + shift, axis=1) if pos.shape[1] else np.zeros(n_obs)
    neg_score = gmean(neg + shift, axis=1) if neg.shape[1] else np.zeros(n_obs)
    ratio = neg.shape[1] / pos.shape[1] if pos.shape[1] and neg.shape[1] else 1.0
    return np.asarray(pos_score - neg_score * ratio, dtype=float)


def hedges_g(case: np.ndarray, control: np.ndarray) -> tuple[float, float]:
    """Bias-corrected standardized mean difference and its standard error."""
    x1 = np.asarray(case, dtype=float)
    x0 = np.asarray(control, dtype=float)
    x1 = x1[np.isfinite(x1)]
    x0 = x0[np.isfinite(x0)]
    n1, n0 = x1.size, x0.size
    if n1 < 2 or n0 < 2:
        raise ValueError("Hedges' g needs at least two samples per group.")
    pooled_var = ((n1 - 1) * np.var(x1, ddof=1) + (n0 - 1) * np.var(x0, ddof=1)) / (n1 + n0 - 2)
    if pooled_var <= 0:
        raise ValueError("Hedges' g undefined for zero pooled variance.")
    d = (float(np.mean(x1)) - float(np.mean(x0))) / math.sqrt(pooled_var)
    correction = 1.0 - 3.0 / (4.0 * (n1 + n0) - 9.0)
    g = correction * d
    var = (n1 + n0) / (n1 * n0) + g * g / (2.0 * (n1 + n0))
    return float(g), float(math.sqrt(var))


def _dl_tau2(y: np.ndarray, v: np.ndarray) -> float:
    """DerSimonian-Laird between-study variance."""
    k = len(y)
    if k < 2:
        return 0.0
    w = 1.0 / v
    y_fe = np.sum(w * y) / np.sum(w)
    Q = np.sum(w * (y - y_fe) ** 2)
    c = np.sum(w) - (np.sum(w**2) / np.sum(w))
    if c <= 0:
        return 0.0
    return float(max(0.0, (Q - (k - 1)) / c))


def pool_random_effects(effects: Sequence[float], variances: Sequence[float]) -> dict[str, Any]:
    """Random-effects pooled estimate (DerSimonian-Laird)."""
    y = np.asarray(effects, dtype=float)
    v = np.asarray(variances, dtype=float)
    if y.size == 0 or y.size != v.size:
        raise ValueError("effects and variances must be non-empty and equal length.")
    if np.any(v <= 0):
        raise ValueError("variances must be strictly positive.")

    k = y.size
    if k == 1:
        tau2, Q, p_Q, I2 = 0.0, 0.0, float("nan"), 0.0
        w_re = np.array([1.0 / v[0]])
    else:
        w_fe = 1.0 / v
        y_fe = float(np.sum(w_fe * y) / np.sum(w_fe))
        Q = float(np.sum(w_fe * (y - y_fe) ** 2))
        p_Q = float(chi2.sf(Q, k - 1))
        tau2 = _dl_tau2(y, v)
        I2 = float(max(0.0, (Q - (k - 1)) / Q * 100.0)) if Q > 0 else 0.0
        w_re = 1.0 / (v + tau2)

    effect = float(np.sum(w_re * y) / np.sum(w_re))
    se = float(math.sqrt(1.0 / np.sum(w_re)))
    return {
        "effect_size": effect,
        "effect_size_se": se,
        "lower": effect - Z_95 * se,
        "upper": effect + Z_95 * se,
        "p_value": float(2.0 * norm.sf(abs(effect / se))),
        "tau2": tau2,
        "Q": Q,
        "p_Q": p_Q,
        "I2": I2,
        "n_studies": int(k),
        "weights": w_re / np.sum(w_re),
    }


def _dataset_effects(
    dataset, genes: list[str], class_column: str
) -> tuple[dict[str, float], dict[str, float]]:
    labels = class_labels(dataset, class_column)
    var_names = list(map(str, dataset.var_names))
    X = _dense(dataset.X).reshape(int(dataset.n_obs), len(var_names))
    col_of = {g: i for i, g in enumerate(var_names)}
    effects: dict[str, float] = {}
    ses: dict[str, float] = {}
    for gene in genes:
        idx = col_of.get(gene)
        if idx is None:
            continue
        try:
            g, se = hedges_g(X[labels == 1, idx], X[labels == 0, idx])
        except ValueError:
            continue
        effects[gene] = g
        ses[gene] = se
    return effects, ses


def run_meta_analysis(
    datasets: Mapping[str, Any],
    *,
    class_column: str = "class",
    name: str = "meta",
    logger: logging.Logger | None = None,
) -> MetaObject:
    """Compute per-cohort effect sizes for every gene and pool them."""
    logger = logger or logging.getLogger("metareport")
    if not datasets:
        raise ValueError("run_meta_analysis requires at least one dataset.")

    genes: list[str] = []
    for ds in datasets.values():
        genes.extend(map(str, ds.var_names))
    genes = list(dict.fromkeys(genes))

    effect_cols: dict[str, dict[str, float]] = {}
    se_cols: dict[str, dict[str, float]] = {}
    for ds_name, ds in datasets.items():
        effect_cols[ds_name], se_cols[ds_name] = _dataset_effects(ds, genes, class_column)

    effects = pd.DataFrame(effect_cols, index=genes, dtype=float)
    ses = pd.DataFrame(se_cols, index=genes, dtype=float)

    rows: list[dict[str, Any]] = []
    for gene in genes:
        mask = effects.loc[gene].notna() & ses.loc[gene].notna()
        if not bool(mask.any()):
            continue
        pooled = pool_random_effects(
            effects.loc[gene, mask].to_numpy(), ses.loc[gene, mask].to_numpy() ** 2
        )
        pooled.pop("weights")
        rows.append({"gene": gene, **pooled})

    pooled_df = pd.DataFrame(rows)
    if not pooled_df.empty:
        pooled_df = pooled_df.set_index("gene")
    keep = list(pooled_df.index)
    logger.info(
        "Meta-analysis %s: %d cohort(s), %d/%d gene(s) pooled.",
        name,
        len(datasets),
        len(keep),
        len(genes),
    )
    return MetaObject(
        datasets=dict(datasets),
        meta_analysis=MetaAnalysis(
            pooled=pooled_df,
            dataset_effect_sizes=effects.loc[keep],
            dataset_effect_se=ses.loc[keep],
        ),
        name=name,
    )
