"""ROC statistics for signature scores: single-cohort and pooled summary curves."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence

import numpy as np
from sklearn.metrics import auc, roc_auc_score, roc_curve

from metareport.core.meta import Z_95

FPR_GRID = np.linspace(0.0, 1.0, 101)


@dataclass(frozen=True)
class RocCurve:
    """ROC curve of one cohort."""

    name: str
    fpr: np.ndarray
    tpr: np.ndarray
    auc: float
    auc_lower: float
    auc_upper: float
    n_samples: int


@dataclass(frozen=True)
class SummaryRoc:
    """Sample-size weighted ROC pooled over cohorts on a common FPR grid.

    `tpr_lower` / `tpr_upper` are bootstrap percentile bands; they are NaN
    when no bootstrap replicates were requested.
    """

    fpr: np.ndarray
    tpr: np.ndarray
    tpr_lower: np.ndarray
    tpr_upper: np.ndarray
    auc: float
    auc_lower: float
    auc_upper: float
    curves: tuple[RocCurve, ...]
    bootstrap_reps: int


def _check_binary(labels: np.ndarray) -> None:
    uniq = set(np.unique(labels).tolist())
    if uniq != {0, 1}:
        raise ValueError("ROC analysis needs both classes (0 and 1) to be present.")


def roc_auc_ci(labels: Sequence[int], scores: Sequence[float]) -> tuple[float, float, float]:
    """AUC with a Hanley-McNeil 95% confidence interval."""
    y = np.asarray(labels, dtype=int)
    s = np.asarray(scores, dtype=float)
    _check_binary(y)
    a = float(roc_auc_score(y, s))
    n1 = int(np.sum(y == 1))
    n0 = int(np.sum(y == 0))
    q1 = a / (2.0 - a)
    q2 = 2.0 * a * a / (1.0 + a)
    var = (a * (1.0 - a) + (n1 - 1) * (q1 - a * a) + (n0 - 1) * (q2 - a * a)) / (n1 * n0)
    se = math.sqrt(max(var, 0.0))
    return a, max(0.0, a - Z_95 * se), min(1.0, a + Z_95 * se)


def roc_for_cohort(name: str, labels: Sequence[int], scores: Sequence[float]) -> RocCurve:
    y = np.asarray(labels, dtype=int)
    s = np.asarray(scores, dtype=float)
    fpr, tpr, _ = roc_curve(y, s)
    a, lo, hi = roc_auc_ci(y, s)
    return RocCurve(
        name=str(name),
        fpr=fpr,
        tpr=tpr,
        auc=a,
        auc_lower=lo,
        auc_upper=hi,
        n_samples=int(y.size),
    )


def _interp_tpr(labels: np.ndarray, scores: np.ndarray) -> np.ndarray:
    fpr, tpr, _ = roc_curve(labels, scores)
    out = np.interp(FPR_GRID, fpr, tpr)
    out[0] = 0.0
    out[-1] = 1.0
    return out


def _pooled_tpr(
    cohorts: Sequence[tuple[np.ndarray, np.ndarray]], weights: np.ndarray
) -> np.ndarray:
    stacked = np.vstack([_interp_tpr(y, s) for y, s in cohorts])
    return np.average(stacked, axis=0, weights=weights)


def summary_roc_curve(
    cohorts: Sequence[tuple[str, Sequence[int], Sequence[float]]],
    *,
    bootstrap_reps: int = 100,
    seed: int = 0,
) -> SummaryRoc:
    """Pool per-cohort ROC curves with a stratified bootstrap band.

    Each replicate resamples cases and controls with replacement inside
    every cohort, then recomputes the pooled curve.
    """
    if not cohorts:
        raise ValueError("summary_roc_curve requires at least one cohort.")
    prepared: list[tuple[np.ndarray, np.ndarray]] = []
    curves: list[RocCurve] = []
    for name, labels, scores in cohorts:
        y = np.asarray(labels, dtype=int)
        s = np.asarray(scores, dtype=float)
        curves.append(roc_for_cohort(name, y, s))
        prepared.append((y, s))
    weights = np.array([y.size for y, _ in prepared], dtype=float)

    tpr = _pooled_tpr(prepared, weights)
    pooled_auc = float(auc(FPR_GRID, tpr))

    lower = np.full_like(FPR_GRID, np.nan)
    upper = np.full_like(FPR_GRID, np.nan)
    auc_lower = auc_upper = float("nan")
    if bootstrap_reps > 0:
        rng = np.random.default_rng(seed)
        boot_tpr = np.empty((int(bootstrap_reps), FPR_GRID.size), dtype=float)
        boot_auc = np.empty(int(bootstrap_reps), dtype=float)
        for b in range(int(bootstrap_reps)):
            resampled = []
            for y, s in prepared:
                pos = np.flatnonzero(y == 1)
                neg = np.flatnonzero(y == 0)
                idx = np.concatenate(
                    [rng.choice(pos, size=pos.size), rng.choice(neg, size=neg.size)]
                )
                resampled.append((y[idx], s[idx]))
            boot_tpr[b] = _pooled_tpr(resampled, weights)
            boot_auc[b] = auc(FPR_GRID, boot_tpr[b])
        lower, upper = np.percentile(boot_tpr, [2.5, 97.5], axis=0)
        auc_lower, auc_upper = (float(x) for x in np.percentile(boot_auc, [2.5, 97.5]))

    return SummaryRoc(
        fpr=FPR_GRID.copy(),
        tpr=tpr,
        tpr_lower=lower,
        tpr_upper=upper,
        auc=pooled_auc,
        auc_lower=auc_lower,
        auc_upper=auc_upper,
        curves=tuple(curves),
        bootstrap_reps=int(bootstrap_reps),
    )
