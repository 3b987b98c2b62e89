"""Per-gene forest plots of cohort effect sizes."""

from __future__ import annotations

import math

import matplotlib.pyplot as plt
import numpy as np
from matplotlib.patches import Polygon, Rectangle

from metareport.core.meta import Z_95
from metareport.core.types import MetaObject
from metareport.errors import RenderError
from metareport.plotting.styles import DEFAULT_PLOT_STYLE, PlotStyle, apply_common_theme


def forest_figure(
    gene_name: str,
    meta_object: MetaObject,
    *,
    box_color: str = "black",
    whisker_color: str = "black",
    zero_line_color: str = "black",
    summary_color: str = "black",
    text_color: str = "black",
    style: PlotStyle = DEFAULT_PLOT_STYLE,
) -> plt.Figure:
    """Forest plot of Hedges' g per cohort with the pooled summary diamond."""
    meta = meta_object.meta_analysis
    if meta is None:
        raise RenderError(f"Meta object '{meta_object.name}' has no meta-analysis results.")
    if gene_name not in meta.pooled.index:
        raise RenderError(f"Gene '{gene_name}' not found in meta-analysis '{meta_object.name}'.")

    effects = meta.dataset_effect_sizes.loc[gene_name]
    ses = meta.dataset_effect_se.loc[gene_name]
    keep = effects.notna() & ses.notna()
    effects = effects[keep]
    ses = ses[keep]
    pooled = meta.pooled.loc[gene_name]
    mu = float(pooled["effect_size"])
    lo = float(pooled["lower"])
    hi = float(pooled["upper"])
    if not np.all(np.isfinite([mu, lo, hi])):
        raise RenderError(f"Pooled estimate for gene '{gene_name}' is not finite.")

    k = int(effects.size)
    fig, ax = plt.subplots(figsize=style.figsize_forest)
    y_pos = np.arange(k, 0, -1, dtype=float)
    weights = 1.0 / np.square(ses.to_numpy(dtype=float))
    rel = weights / weights.max() if k else weights
    max_side = 0.35
    for y, (name, g), se, w in zip(y_pos, effects.items(), ses.to_numpy(), rel):
        ci_lo, ci_hi = g - Z_95 * se, g + Z_95 * se
        ax.plot([ci_lo, ci_hi], [y, y], color=whisker_color, lw=1)
        side = max_side * math.sqrt(float(w))
        ax.add_patch(
            Rectangle(
                (g - side / 2, y - side / 2),
                width=side,
                height=side,
                facecolor=box_color,
                edgecolor=box_color,
            )
        )

    ax.add_patch(
        Polygon(
            [[lo, 0.0], [mu, 0.25], [hi, 0.0], [mu, -0.25]],
            closed=True,
            facecolor=summary_color,
            edgecolor=summary_color,
        )
    )
    ax.axvline(0.0, color=zero_line_color, lw=1, linestyle="--")

    ax.set_yticks([*y_pos, 0.0])
    ax.set_yticklabels([*map(str, effects.index), "Summary"], color=text_color)
    span = [lo, hi, 0.0]
    if k:
        span.extend((effects - Z_95 * ses).tolist())
        span.extend((effects + Z_95 * ses).tolist())
    x_min, x_max = min(span), max(span)
    pad = 0.1 * (x_max - x_min or 1.0)
    ax.set_xlim(x_min - pad, x_max + pad)
    ax.set_ylim(-0.8, k + 0.8)
    ax.set_xlabel("Standardized Mean Difference", color=text_color)
    ax.set_title(
        f"{gene_name}  g={mu:.2f} [{lo:.2f}, {hi:.2f}]",
        color=text_color,
        fontsize=style.title_fontsize - 2,
    )
    ax.tick_params(colors=text_color)
    apply_common_theme(ax, style)
    fig.tight_layout()
    return fig
