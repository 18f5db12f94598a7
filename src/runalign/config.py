"""Structured engine config and loading helpers."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path
from typing import Any, Optional, Sequence, Union

from omegaconf import OmegaConf
from omegaconf.errors import OmegaConfBaseException
import yaml

from runalign.errors import ConfigError
from runalign.models import BURST_STATUS_KEY, DISTANCE_KEY, AxisKey

DEFAULT_DOWNSAMPLE_THRESHOLD = 2000


@dataclass
class EngineConfig:
    downsample_threshold: int = DEFAULT_DOWNSAMPLE_THRESHOLD
    x_axis: str = DISTANCE_KEY
    burst_status_key: str = BURST_STATUS_KEY
    log_level: str = "INFO"
    worker_name_prefix: str = "runalign-worker"

    def __post_init__(self) -> None:
        if isinstance(self.downsample_threshold, bool) or not isinstance(
            self.downsample_threshold, int
        ):
            raise ConfigError("downsample_threshold must be an integer.")
        if self.downsample_threshold <= 0:
            raise ConfigError(
                f"downsample_threshold must be > 0, got {self.downsample_threshold}."
            )
        try:
            AxisKey.parse(self.x_axis)
        except Exception as exc:
            raise ConfigError(str(exc)) from exc
        if not isinstance(self.burst_status_key, str) or not self.burst_status_key:
            raise ConfigError("burst_status_key must be a non-empty string.")
        if not isinstance(logging.getLevelName(str(self.log_level).upper()), int):
            raise ConfigError(f"Unknown log_level: {self.log_level!r}.")

    @property
    def axis(self) -> AxisKey:
        return AxisKey.parse(self.x_axis)


def _read_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise ConfigError(f"Config not found: {path}")
    try:
        with path.open("r", encoding="utf-8") as handle:
            payload = yaml.safe_load(handle)
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"Failed to load config from {path}: {exc}") from exc
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ConfigError(f"Config {path} must contain a mapping.")
    # Allow the engine section to live under a top-level key.
    section = payload.get("runalign", payload)
    if not isinstance(section, dict):
        raise ConfigError(f"Config {path}: 'runalign' must be a mapping.")
    return section


def load_engine_config(
    path: Optional[Union[str, Path]] = None,
    *,
    overrides: Optional[Sequence[str]] = None,
) -> EngineConfig:
    """Merge YAML file values and ``key=value`` overrides onto the defaults."""
    base = OmegaConf.structured(EngineConfig)
    layers = [base]
    if path is not None:
        layers.append(OmegaConf.create(_read_yaml(Path(path))))
    if overrides:
        layers.append(OmegaConf.from_dotlist([item for item in overrides if item]))
    try:
        merged = OmegaConf.merge(*layers)
        values = OmegaConf.to_container(merged, resolve=True)
    except OmegaConfBaseException as exc:
        raise ConfigError(f"Invalid engine config: {exc}") from exc
    if not isinstance(values, dict):
        raise ConfigError("Resolved engine config must be a mapping.")
    return EngineConfig(**values)


def format_config(config: EngineConfig) -> str:
    return OmegaConf.to_yaml(OmegaConf.structured(config))


__all__ = [
    "DEFAULT_DOWNSAMPLE_THRESHOLD",
    "EngineConfig",
    "format_config",
    "load_engine_config",
]
