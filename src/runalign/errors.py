"""Error hierarchy for runalign."""

from __future__ import annotations

from typing import Any, Mapping, Optional


class RunAlignError(Exception):
    """Base exception for runalign failures."""

    def __init__(
        self,
        message: str,
        *,
        user_message: Optional[str] = None,
        context: Optional[Mapping[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.user_message = message if user_message is None else user_message
        self.context = dict(context) if context else {}

    def log_message(self) -> str:
        if not self.context:
            return str(self)
        return f"{self}: {self.context}"


class ConfigError(RunAlignError):
    """Configuration loading or validation error."""


class ValidationError(RunAlignError):
    """Malformed run data or request payload."""


class AlignmentError(RunAlignError):
    """Backbone selection or cross-run alignment error."""


class DownsampleError(RunAlignError):
    """Shape-preserving reduction could not be computed."""


class TransportError(RunAlignError):
    """Failure while handing a request across the worker boundary."""


__all__ = [
    "RunAlignError",
    "ConfigError",
    "ValidationError",
    "AlignmentError",
    "DownsampleError",
    "TransportError",
]
