"""Typed containers for filter and meta-analysis objects."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

import pandas as pd


def _gene_tuple(genes: Any) -> tuple[str, ...]:
    """Normalize a gene list; a bare string is a single gene."""
    if genes is None:
        return ()
    if isinstance(genes, str):
        return (genes,) if genes else ()
    try:
        return tuple(str(g) for g in genes)
    except TypeError as exc:
        raise TypeError(
            f"Gene list must be a string or an iterable of strings, got {type(genes).__name__}."
        ) from exc


@dataclass(frozen=True)
class FilterObject:
    """Fitted gene filter: positively and negatively associated marker genes.

    Gene order is preserved and duplicates are kept as given.
    """

    pos_gene_names: tuple[str, ...] = ()
    neg_gene_names: tuple[str, ...] = ()
    name: str = "filter"

    def __post_init__(self) -> None:
        object.__setattr__(self, "pos_gene_names", _gene_tuple(self.pos_gene_names))
        object.__setattr__(self, "neg_gene_names", _gene_tuple(self.neg_gene_names))

    @property
    def all_gene_names(self) -> list[str]:
        return [*self.pos_gene_names, *self.neg_gene_names]


@dataclass(frozen=True)
class MetaAnalysis:
    """Pooled and per-cohort effect sizes.

    - `pooled`: indexed by gene, columns `effect_size`, `effect_size_se`,
      `lower`, `upper`, `p_value`, `tau2`, `Q`, `I2`, `n_studies`.
    - `dataset_effect_sizes` / `dataset_effect_se`: genes x cohorts.
    """

    pooled: pd.DataFrame
    dataset_effect_sizes: pd.DataFrame
    dataset_effect_se: pd.DataFrame

    @property
    def genes(self) -> list[str]:
        return [str(g) for g in self.pooled.index]


@dataclass(frozen=True)
class MetaObject:
    """Collection of cohorts plus an optional fitted meta-analysis."""

    datasets: dict[str, Any] = field(default_factory=dict)
    meta_analysis: MetaAnalysis | None = None
    name: str = "meta"


_POS_KEYS = ("pos_gene_names", "posGeneNames")
_NEG_KEYS = ("neg_gene_names", "negGeneNames")


def has_gene_lists(obj: Any) -> bool:
    """Return True if `obj` exposes both a positive and a negative gene list."""
    if isinstance(obj, FilterObject):
        return True
    if isinstance(obj, Mapping):
        return any(k in obj for k in _POS_KEYS) and any(k in obj for k in _NEG_KEYS)
    return all(hasattr(obj, k) for k in ("pos_gene_names", "neg_gene_names"))


def as_filter_object(obj: Any) -> FilterObject:
    """Coerce a filter-like object (dataclass, mapping, attribute holder)."""
    if isinstance(obj, FilterObject):
        return obj
    if not has_gene_lists(obj):
        raise TypeError(
            f"Object of type {type(obj).__name__} does not expose positive and negative gene lists."
        )
    if isinstance(obj, Mapping):
        pos = next(obj[k] for k in _POS_KEYS if k in obj)
        neg = next(obj[k] for k in _NEG_KEYS if k in obj)
        name = str(obj.get("name", "filter"))
    else:
        pos = obj.pos_gene_names
        neg = obj.neg_gene_names
        name = str(getattr(obj, "name", "filter"))
    return FilterObject(
        pos_gene_names=_gene_tuple(pos),
        neg_gene_names=_gene_tuple(neg),
        name=name,
    )
