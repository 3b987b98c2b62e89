"""Read-only dataset bundle and its pickle serialization."""

from __future__ import annotations

import logging
import pickle
from pathlib import Path
from types import MappingProxyType
from typing import Any, Iterable, Iterator, Mapping

from metareport.errors import BundleError, MissingInputError


class DatasetBundle(Mapping[str, Any]):
    """Immutable mapping from symbolic dataset names to dataset objects."""

    def __init__(self, items: Mapping[str, Any] | None = None, *, source: str | None = None):
        self._items = MappingProxyType(dict(items or {}))
        self.source = source

    def __getitem__(self, key: str) -> Any:
        return self._items[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return f"DatasetBundle(keys={sorted(self._items)!r}, source={self.source!r})"

    def missing(self, keys: Iterable[str]) -> list[str]:
        """Return required keys absent from the bundle, in the given order."""
        return [k for k in keys if k not in self._items]

    def require(self, keys: Iterable[str]) -> tuple[Any, ...]:
        """Resolve `keys` in order, raising `MissingInputError` if any are absent."""
        keys = list(keys)
        missing = self.missing(keys)
        if missing:
            raise MissingInputError(missing)
        return tuple(self._items[k] for k in keys)


def load_bundle(
    path: str | Path,
    *,
    missing_ok: bool = True,
    logger: logging.Logger | None = None,
) -> DatasetBundle:
    """Load a pickled `dict` into a `DatasetBundle`.

    A missing file yields an empty bundle (logged as a warning) when
    `missing_ok` is set, so every downstream task reports itself skipped.
    """
    logger = logger or logging.getLogger("metareport")
    bundle_path = Path(path)
    if not bundle_path.exists():
        if not missing_ok:
            raise FileNotFoundError(f"Bundle file not found: {bundle_path}")
        logger.warning(
            "Bundle file not found: %s; continuing with an empty bundle.",
            bundle_path.as_posix(),
        )
        return DatasetBundle({}, source=bundle_path.as_posix())

    try:
        with open(bundle_path, "rb") as fh:
            payload = pickle.load(fh)
    except (
        pickle.UnpicklingError,
        EOFError,
        AttributeError,
        ImportError,
        ValueError,
        TypeError,
        KeyError,
        IndexError,
    ) as exc:
        raise BundleError(
            f"Could not read bundle '{bundle_path}': {exc}",
            context={"path": bundle_path.as_posix()},
        ) from exc

    if isinstance(payload, DatasetBundle):
        payload = dict(payload)
    if not isinstance(payload, Mapping):
        raise BundleError(
            f"Invalid bundle root in '{bundle_path}': expected a mapping, got {type(payload).__name__}.",
            context={"path": bundle_path.as_posix()},
        )
    bad_keys = [k for k in payload if not isinstance(k, str)]
    if bad_keys:
        raise BundleError(
            f"Bundle keys must be strings; got {bad_keys[:5]!r}",
            context={"path": bundle_path.as_posix()},
        )
    logger.info(
        "Loaded bundle %s with %d object(s): %s",
        bundle_path.as_posix(),
        len(payload),
        ", ".join(sorted(payload)),
    )
    return DatasetBundle(payload, source=bundle_path.as_posix())


def save_bundle(items: Mapping[str, Any], path: str | Path) -> Path:
    """Pickle a bundle mapping with atomic replacement."""
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    tmp = out.with_suffix(out.suffix + ".tmp")
    with open(tmp, "wb") as fh:
        pickle.dump(dict(items), fh, protocol=pickle.HIGHEST_PROTOCOL)
    tmp.replace(out)
    return out
