"""Configuration loading utilities for report runs."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

SUPPORTED_IMAGE_FORMATS = ("pdf", "png", "svg")

DEFAULT_BUNDLE_KEYS: dict[str, str] = {
    "filter": "forwardRes",
    "discovery_meta": "discovery_exampleMetaObj",
    "validation_meta": "validation_exampleMetaObj",
    "forest_meta": "exampleMetaObj",
}

DEFAULT_FOREST_COLORS: dict[str, str] = {
    "box_color": "black",
    "whisker_color": "black",
    "zero_line_color": "black",
    "summary_color": "black",
    "text_color": "black",
}


@dataclass(frozen=True)
class ReportConfig:
    """Settings for one report run.

    `bundle_keys` and `forest_colors` are stored as read-only mappings and
    left out of the hash.
    """

    image_format: str = "pdf"
    bootstrap_reps: int = 100
    seed: int = 0
    class_column: str = "class"
    dpi: int = 300
    bundle_keys: Mapping[str, str] = field(
        default_factory=lambda: dict(DEFAULT_BUNDLE_KEYS), hash=False
    )
    forest_colors: Mapping[str, str] = field(
        default_factory=lambda: dict(DEFAULT_FOREST_COLORS), hash=False
    )

    def __post_init__(self) -> None:
        object.__setattr__(self, "bundle_keys", MappingProxyType(dict(self.bundle_keys)))
        object.__setattr__(self, "forest_colors", MappingProxyType(dict(self.forest_colors)))

    def key(self, role: str) -> str:
        return self.bundle_keys.get(role, DEFAULT_BUNDLE_KEYS[role])


def load_json_config(path: str | Path) -> dict[str, Any]:
    """Load and validate a report config from a JSON file."""
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")
    if config_path.suffix.lower() != ".json":
        raise ValueError(
            f"Unsupported config format for '{config_path}'. Use a .json config file."
        )

    try:
        with open(config_path, "r", encoding="utf-8") as fh:
            data = json.load(fh)
    except json.JSONDecodeError as exc:
        raise ValueError(
            f"Invalid JSON in config '{config_path}' at line {exc.lineno}, "
            f"column {exc.colno}: {exc.msg}"
        ) from exc

    if not isinstance(data, dict):
        raise ValueError(
            f"Invalid config root in '{config_path}': expected JSON object, got {type(data).__name__}."
        )
    return data


def _safe_image_format(value: Any) -> str:
    fmt = str(value or "pdf").strip().lower().lstrip(".")
    if fmt not in SUPPORTED_IMAGE_FORMATS:
        logging.getLogger("metareport").warning(
            "Unsupported image_format=%s; falling back to pdf.", value
        )
        return "pdf"
    return fmt


def _merge_str_dict(
    defaults: Mapping[str, str], overrides: Any, name: str
) -> dict[str, str]:
    merged = dict(defaults)
    if overrides is None:
        return merged
    if not isinstance(overrides, Mapping):
        raise ValueError(f"Config field '{name}' must be a JSON object.")
    unknown = sorted(set(overrides) - set(defaults))
    if unknown:
        raise ValueError(f"Unknown {name} entries: {', '.join(unknown)}")
    merged.update({str(k): str(v) for k, v in overrides.items()})
    return merged


def build_report_config(params: Mapping[str, Any] | None = None) -> ReportConfig:
    """Build a `ReportConfig` from a loose parameter mapping."""
    params = dict(params or {})
    bootstrap_reps = int(params.get("bootstrap_reps", 100))
    if bootstrap_reps < 0:
        raise ValueError("bootstrap_reps must be >= 0.")
    return ReportConfig(
        image_format=_safe_image_format(params.get("image_format", "pdf")),
        bootstrap_reps=bootstrap_reps,
        seed=int(params.get("seed", 0)),
        class_column=str(params.get("class_column", "class")),
        dpi=int(params.get("dpi", 300)),
        bundle_keys=_merge_str_dict(
            DEFAULT_BUNDLE_KEYS, params.get("bundle_keys"), "bundle_keys"
        ),
        forest_colors=_merge_str_dict(
            DEFAULT_FOREST_COLORS, params.get("forest_colors"), "forest_colors"
        ),
    )
