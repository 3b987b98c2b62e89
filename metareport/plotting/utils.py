"""Shared plotting utilities used by figure factories."""

from __future__ import annotations

import re
from pathlib import Path

import matplotlib.figure
import matplotlib.pyplot as plt

from metareport.plotting.styles import DEFAULT_PLOT_STYLE, PlotStyle

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


def sanitize_gene_name(name: str) -> str:
    """Map every character outside ``[A-Za-z0-9_.-]`` to ``_``.

    Distinct names that differ only in mapped characters collide
    (``"MYC/1"`` and ``"MYC 1"`` both become ``"MYC_1"``).
    """
    return _UNSAFE_CHARS.sub("_", str(name))


def save_figure(
    fig: matplotlib.figure.Figure,
    out_path: str | Path,
    *,
    figsize: tuple[float, float] | None = None,
    style: PlotStyle = DEFAULT_PLOT_STYLE,
    close: bool = True,
) -> Path:
    """Save a figure through a temporary sibling file and atomic rename.

    The temporary file is removed if saving fails, so a failed save never
    leaves a partial artifact at `out_path`.
    """
    out = Path(out_path)
    out.parent.mkdir(parents=True, exist_ok=True)
    fmt = out.suffix.lstrip(".").lower() or "pdf"
    tmp = out.with_name(out.name + ".tmp")
    try:
        if figsize is not None:
            fig.set_size_inches(*figsize)
        fig.savefig(tmp, format=fmt, dpi=style.dpi, facecolor="white")
        tmp.replace(out)
    finally:
        tmp.unlink(missing_ok=True)
        if close:
            plt.close(fig)
    return out
