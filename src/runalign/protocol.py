"""Request/response envelopes for the chart worker boundary."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictInt,
    ValidationError as PydanticValidationError,
    field_validator,
    model_validator,
)

from runalign.errors import RunAlignError, ValidationError
from runalign.models import ActiveSelection, AxisKey, Run


class ChartRequest(BaseModel):
    """``{runs, xAxisKey, renderedMetricKeys, downsampleThreshold}``."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    # Converted to Run objects by the validator below.
    runs: list[Any] = Field(default_factory=list)
    x_axis: Optional[AxisKey] = Field(default=None, alias="xAxisKey")
    rendered_metric_keys: list[str] = Field(
        default_factory=list, alias="renderedMetricKeys"
    )
    downsample_threshold: Optional[StrictInt] = Field(
        default=None, alias="downsampleThreshold", gt=0
    )

    @field_validator("runs", mode="before")
    @classmethod
    def _coerce_runs(cls, value: Any) -> list[Run]:
        if value is None:
            return []
        if isinstance(value, (str, bytes)) or not hasattr(value, "__iter__"):
            raise ValueError("runs must be a list of run objects.")
        runs = []
        for index, entry in enumerate(value):
            if isinstance(entry, Run):
                runs.append(entry)
                continue
            try:
                runs.append(Run.from_dict(entry))
            except ValidationError as exc:
                raise ValueError(f"runs[{index}]: {exc}") from exc
        return runs

    @field_validator("x_axis", mode="before")
    @classmethod
    def _coerce_axis(cls, value: Any) -> Optional[AxisKey]:
        if value is None:
            return None
        try:
            return AxisKey.parse(value)
        except ValidationError as exc:
            raise ValueError(str(exc)) from exc

    @model_validator(mode="after")
    def _unique_run_ids(self) -> "ChartRequest":
        seen: set[str] = set()
        for run in self.runs:
            if run.id in seen:
                raise ValueError(f"Duplicate run id {run.id!r}.")
            seen.add(run.id)
        return self

    def selection(self) -> ActiveSelection:
        if self.x_axis is None:
            raise ValidationError("xAxisKey is required.")
        return ActiveSelection.for_runs(
            self.runs, self.x_axis, self.rendered_metric_keys
        )


class ChartResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    labels: list[Optional[float]] = Field(default_factory=list)
    datasets: dict[str, list[dict[str, Optional[float]]]] = Field(default_factory=dict)
    full_merged_frames: list[dict[str, Any]] = Field(
        default_factory=list, alias="fullMergedFrames"
    )
    event_markers: list[dict[str, Any]] = Field(
        default_factory=list, alias="eventMarkers"
    )
    burst_intervals: list[tuple[float, float]] = Field(
        default_factory=list, alias="burstIntervals"
    )


class ErrorBody(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    error: ErrorBody


def _format_pydantic_error(exc: PydanticValidationError) -> str:
    parts = []
    for item in exc.errors():
        location = ".".join(str(part) for part in item.get("loc", ())) or "<request>"
        parts.append(f"{location}: {item.get('msg')}")
    return "Invalid chart request: " + "; ".join(parts)


def parse_request(
    payload: Any,
    *,
    default_threshold: Optional[int] = None,
    default_axis: Optional[AxisKey] = None,
) -> ChartRequest:
    """Validate a wire payload.

    A missing ``xAxisKey`` or ``downsampleThreshold`` is filled from the
    given defaults; without a default it is an error.
    """
    if isinstance(payload, ChartRequest):
        request = payload
    else:
        if not isinstance(payload, Mapping):
            raise ValidationError("Chart request must be a mapping.")
        try:
            request = ChartRequest.model_validate(dict(payload))
        except PydanticValidationError as exc:
            raise ValidationError(_format_pydantic_error(exc)) from exc
    updates: dict[str, Any] = {}
    if request.x_axis is None:
        if default_axis is None:
            raise ValidationError("xAxisKey is required.")
        updates["x_axis"] = AxisKey.parse(default_axis)
    if request.downsample_threshold is None:
        if default_threshold is None:
            raise ValidationError("downsampleThreshold is required.")
        updates["downsample_threshold"] = default_threshold
    if updates:
        request = request.model_copy(update=updates)
    return request


def error_payload(exc: BaseException) -> dict[str, Any]:
    if isinstance(exc, RunAlignError):
        message = exc.user_message
    else:
        message = str(exc) or type(exc).__name__
    return ErrorResponse(error=ErrorBody(message=message)).model_dump()


def is_error_payload(payload: Mapping[str, Any]) -> bool:
    return "error" in payload


__all__ = [
    "ChartRequest",
    "ChartResponse",
    "ErrorBody",
    "ErrorResponse",
    "error_payload",
    "is_error_payload",
    "parse_request",
]
