"""Error hierarchy for metareport."""

from __future__ import annotations

from typing import Any, Iterable, Mapping


class MetaReportError(Exception):
    """Base exception for metareport failures."""

    def __init__(self, message: str, *, context: Mapping[str, Any] | None = None) -> None:
        super().__init__(message)
        self.context = dict(context) if context else {}

    def log_message(self) -> str:
        if not self.context:
            return str(self)
        return f"{self}: {self.context}"


class BundleError(MetaReportError):
    """Dataset bundle could not be read or has the wrong shape."""


class MissingInputError(MetaReportError):
    """One or more required bundle keys are absent."""

    def __init__(self, missing_keys: Iterable[str]) -> None:
        self.missing_keys = tuple(missing_keys)
        quoted = ", ".join(f"'{k}'" for k in self.missing_keys)
        super().__init__(
            f"required input(s) not found: {quoted}",
            context={"missing_keys": list(self.missing_keys)},
        )


class RenderError(MetaReportError):
    """A figure could not be rendered from the given inputs."""


__all__ = [
    "MetaReportError",
    "BundleError",
    "MissingInputError",
    "RenderError",
]
