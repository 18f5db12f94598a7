"""Typed records and run containers shared by the alignment pipeline."""

from __future__ import annotations

from collections.abc import Iterator, Mapping as MappingABC
from dataclasses import dataclass, field
from enum import Enum
import math
import numbers
from typing import Any, Mapping, NamedTuple, Optional, Sequence, Union

from runalign.errors import ValidationError

TIMESTAMP_KEY = "TIMESTAMP"
DISTANCE_KEY = "SPLINE.DISTANCE"
BURST_STATUS_KEY = "BURST_LOGGING_STATUS"

# Columns with a fixed meaning; never treated as catalog metrics.
RESERVED_KEYS = frozenset({TIMESTAMP_KEY, DISTANCE_KEY, BURST_STATUS_KEY})

MetricValue = Union[bool, int, float, str]


class AxisKey(str, Enum):
    """Supported x-axis columns."""

    TIMESTAMP = TIMESTAMP_KEY
    DISTANCE = DISTANCE_KEY

    @classmethod
    def parse(cls, value: Any) -> "AxisKey":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            text = value.strip()
            for member in cls:
                if text == member.value or text.lower() == member.name.lower():
                    return member
        options = ", ".join(
            f"{member.value!r}/{member.name.lower()!r}" for member in cls
        )
        raise ValidationError(
            f"Unknown x-axis key {value!r}. Expected one of: {options}.",
            context={"x_axis": value},
        )


def prefixed_key(run_id: str, metric_key: str) -> str:
    return f"{run_id}:{metric_key}"


def split_prefixed_key(key: str) -> Optional[tuple[str, str]]:
    run_id, sep, metric_key = key.partition(":")
    if not sep or not run_id or not metric_key:
        return None
    return run_id, metric_key


def _coerce_value(key: str, value: Any) -> MetricValue:
    if isinstance(value, (bool, str)):
        return value
    if isinstance(value, numbers.Integral):
        return int(value)
    if isinstance(value, numbers.Real):
        return float(value)
    raise ValidationError(
        f"Metric {key!r} has unsupported value {value!r}; expected number, bool or string.",
        context={"key": key, "type": type(value).__name__},
    )


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class Record(MappingABC):
    """Immutable ordered metric map.

    A key that is not stored is *absent*, which is distinct from any value
    (including ``0``, ``False`` and ``""``). ``None`` cannot be stored.
    """

    __slots__ = ("_values",)

    def __init__(self, values: Optional[Mapping[str, Any]] = None) -> None:
        normalized: dict[str, MetricValue] = {}
        for key, value in (values or {}).items():
            if not isinstance(key, str) or not key:
                raise ValidationError(
                    f"Metric keys must be non-empty strings, got {key!r}."
                )
            if value is None:
                continue
            normalized[key] = _coerce_value(key, value)
        self._values = normalized

    @classmethod
    def _trusted(cls, values: dict[str, MetricValue]) -> "Record":
        record = cls.__new__(cls)
        record._values = values
        return record

    def __getitem__(self, key: str) -> MetricValue:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._values!r})"

    def is_absent(self, key: str) -> bool:
        return key not in self._values

    def number(self, key: str) -> float:
        """Return the numeric value of ``key`` or NaN when absent/non-numeric."""
        value = self._values.get(key)
        if is_number(value):
            return float(value)
        return math.nan

    def to_dict(self) -> dict[str, MetricValue]:
        return dict(self._values)


class Sample(Record):
    """One row of a run's performance log."""

    __slots__ = ()


class MergedFrame(Record):
    """One aligned row keyed by the backbone's x value."""

    __slots__ = ("x",)

    def __init__(self, values: Optional[Mapping[str, Any]] = None, *, x: float) -> None:
        super().__init__(values)
        self.x = float(x)

    @classmethod
    def build(cls, values: dict[str, MetricValue], x: float) -> "MergedFrame":
        frame = cls._trusted(values)
        frame.x = x
        return frame

    def __repr__(self) -> str:
        return f"MergedFrame(x={self.x!r}, {self._values!r})"


@dataclass(frozen=True)
class AvailableMetric:
    key: str
    label: str
    is_percentage: bool = False

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AvailableMetric":
        key = data.get("key")
        if not isinstance(key, str) or not key.strip():
            raise ValidationError("availableMetrics[].key must be a non-empty string.")
        label = data.get("label") or key
        is_percentage = data.get("isPercentage", data.get("is_percentage", False))
        return cls(key=key, label=str(label), is_percentage=bool(is_percentage))

    def to_dict(self) -> dict[str, Any]:
        return {"key": self.key, "label": self.label, "isPercentage": self.is_percentage}


@dataclass(frozen=True)
class Event:
    """Discrete run event (lap start, checkpoint, stutter, ...)."""

    timestamp: float
    name: Optional[str] = None
    attributes: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Event":
        if not isinstance(data, MappingABC):
            raise ValidationError("events[] entries must be mappings.")
        raw_ts = data.get("Timestamp", data.get("timestamp"))
        timestamp = float(raw_ts) if is_number(raw_ts) else 0.0
        raw_name = data.get("EventName", data.get("name"))
        name = str(raw_name) if raw_name not in (None, "") else None
        extras = {
            key: value
            for key, value in data.items()
            if key not in {"Timestamp", "timestamp", "EventName", "name"}
        }
        return cls(timestamp=timestamp, name=name, attributes=extras)

    def to_dict(self) -> dict[str, Any]:
        payload = dict(self.attributes)
        payload["Timestamp"] = self.timestamp
        if self.name is not None:
            payload["EventName"] = self.name
        return payload


@dataclass
class Run:
    id: str
    session_id: str
    name: str
    samples: list[Sample] = field(default_factory=list)
    available_metrics: list[AvailableMetric] = field(default_factory=list)
    events: list[Event] = field(default_factory=list)

    @property
    def metric_keys(self) -> list[str]:
        return [metric.key for metric in self.available_metrics]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Run":
        if not isinstance(data, MappingABC):
            raise ValidationError("runs[] entries must be mappings.")
        run_id = data.get("id")
        if not isinstance(run_id, str) or not run_id.strip():
            raise ValidationError("runs[].id must be a non-empty string.")
        rows = data.get("performanceLogs", data.get("samples")) or []
        if not isinstance(rows, Sequence) or isinstance(rows, str):
            raise ValidationError(
                f"Run {run_id!r} samples must be a list of mappings.",
                context={"run_id": run_id},
            )
        samples = []
        for index, row in enumerate(rows):
            if not isinstance(row, MappingABC):
                raise ValidationError(
                    f"Run {run_id!r} sample {index} must be a mapping.",
                    context={"run_id": run_id, "index": index},
                )
            samples.append(Sample(row))
        metrics = [
            AvailableMetric.from_dict(entry)
            for entry in data.get("availableMetrics", data.get("available_metrics")) or []
        ]
        events = [Event.from_dict(entry) for entry in data.get("events") or []]
        return cls(
            id=run_id,
            session_id=str(data.get("sessionId", data.get("session_id", ""))),
            name=str(data.get("name") or run_id),
            samples=samples,
            available_metrics=metrics,
            events=events,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "sessionId": self.session_id,
            "name": self.name,
            "performanceLogs": [sample.to_dict() for sample in self.samples],
            "availableMetrics": [metric.to_dict() for metric in self.available_metrics],
            "events": [event.to_dict() for event in self.events],
        }


@dataclass(frozen=True)
class ActiveSelection:
    """Caller-owned view state passed in per invocation."""

    x_axis: AxisKey
    run_ids: tuple[str, ...]
    metric_keys: tuple[str, ...]

    @classmethod
    def for_runs(
        cls,
        runs: Sequence[Run],
        x_axis: Any,
        metric_keys: Sequence[str],
    ) -> "ActiveSelection":
        return cls(
            x_axis=AxisKey.parse(x_axis),
            run_ids=tuple(run.id for run in runs),
            metric_keys=tuple(metric_keys),
        )


class RenderedPoint(NamedTuple):
    x: float
    y: Optional[float]

    def to_dict(self) -> dict[str, Optional[float]]:
        return {"x": self.x, "y": self.y}


@dataclass(frozen=True)
class EventMarker:
    run_id: str
    name: str
    x: Optional[float]

    @property
    def projectable(self) -> bool:
        return self.x is not None and not math.isnan(self.x)

    def to_dict(self) -> dict[str, Any]:
        return {"runId": self.run_id, "name": self.name, "x": self.x}


@dataclass(frozen=True)
class BurstInterval:
    start: float
    end: float

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValueError(
                f"Burst interval start {self.start} exceeds end {self.end}."
            )

    def to_list(self) -> list[float]:
        return [self.start, self.end]


__all__ = [
    "ActiveSelection",
    "AvailableMetric",
    "AxisKey",
    "BURST_STATUS_KEY",
    "BurstInterval",
    "DISTANCE_KEY",
    "Event",
    "EventMarker",
    "MergedFrame",
    "MetricValue",
    "RESERVED_KEYS",
    "Record",
    "RenderedPoint",
    "Run",
    "Sample",
    "TIMESTAMP_KEY",
    "is_number",
    "prefixed_key",
    "split_prefixed_key",
]
