"""End-to-end chart data computation: normalize, merge, reduce, annotate."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
import math
from typing import Any, Optional, Sequence

from runalign.annotations import extract_burst_intervals, project_events
from runalign.backbone import select_backbone
from runalign.config import EngineConfig
from runalign.downsample import (
    build_datasets,
    build_labels,
    downsample_frames,
    representative_key,
)
from runalign.merge import merge_frames
from runalign.models import (
    BURST_STATUS_KEY,
    AxisKey,
    BurstInterval,
    EventMarker,
    MergedFrame,
    RenderedPoint,
    Run,
)
from runalign.normalize import normalize_runs
from runalign.protocol import ChartRequest, ChartResponse, parse_request

_LOGGER = logging.getLogger("runalign.pipeline")


def _finite_or_none(value: Any) -> Any:
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return value


def _json_safe(values: dict[str, Any]) -> dict[str, Any]:
    return {key: _finite_or_none(value) for key, value in values.items()}


@dataclass
class ChartResult:
    labels: list[float] = field(default_factory=list)
    datasets: dict[str, list[RenderedPoint]] = field(default_factory=dict)
    full_merged_frames: list[MergedFrame] = field(default_factory=list)
    event_markers: list[EventMarker] = field(default_factory=list)
    burst_intervals: list[BurstInterval] = field(default_factory=list)
    backbone_id: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.labels and not self.datasets

    def to_payload(self) -> dict[str, Any]:
        """Wire payload; NaN and infinite numbers are emitted as ``None``."""
        response = ChartResponse(
            labels=[_finite_or_none(x) for x in self.labels],
            datasets={
                key: [_json_safe(point.to_dict()) for point in points]
                for key, points in self.datasets.items()
            },
            full_merged_frames=[
                _json_safe(frame.to_dict()) for frame in self.full_merged_frames
            ],
            event_markers=[_json_safe(marker.to_dict()) for marker in self.event_markers],
            burst_intervals=[(item.start, item.end) for item in self.burst_intervals],
        )
        return response.model_dump(by_alias=True)


def process_chart_data(
    runs: Sequence[Run],
    axis: AxisKey,
    metric_keys: Sequence[str],
    threshold: int,
    *,
    burst_status_key: str = BURST_STATUS_KEY,
) -> ChartResult:
    """Align ``runs`` on a common grid and prepare render-ready output.

    An empty run set or an empty metric selection yields an empty result.
    Inputs are not modified.
    """
    if threshold <= 0:
        raise ValueError("threshold must be a positive integer.")
    if not runs or not metric_keys:
        _LOGGER.debug(
            "Nothing to chart (runs=%d, metrics=%d).", len(runs), len(metric_keys)
        )
        return ChartResult()

    sorted_runs = normalize_runs(runs, axis)
    backbone = select_backbone(sorted_runs, axis)
    others = [run for run in sorted_runs if run is not backbone]
    frames = merge_frames(backbone, others, axis)

    reduced = downsample_frames(
        frames, representative_key(backbone, metric_keys), threshold
    )
    run_ids = [run.id for run in sorted_runs]
    result = ChartResult(
        labels=build_labels(reduced),
        datasets=build_datasets(reduced, run_ids, metric_keys),
        full_merged_frames=frames,
        event_markers=project_events(sorted_runs, frames, axis),
        burst_intervals=extract_burst_intervals(frames, run_ids, burst_status_key),
        backbone_id=backbone.id,
    )
    _LOGGER.info(
        "Charted %d runs on %s: backbone=%s frames=%d rendered=%d bursts=%d.",
        len(sorted_runs),
        axis.value,
        backbone.id,
        len(frames),
        len(reduced),
        len(result.burst_intervals),
    )
    return result


def process_request(
    request: ChartRequest,
    *,
    config: Optional[EngineConfig] = None,
) -> ChartResult:
    config = config or EngineConfig()
    request = parse_request(
        request,
        default_threshold=config.downsample_threshold,
        default_axis=config.axis,
    )
    selection = request.selection()
    return process_chart_data(
        request.runs,
        selection.x_axis,
        selection.metric_keys,
        request.downsample_threshold,
        burst_status_key=config.burst_status_key,
    )


def run_chart_request(
    payload: Any,
    *,
    config: Optional[EngineConfig] = None,
) -> dict[str, Any]:
    """Validate a wire payload and return the success response payload."""
    config = config or EngineConfig()
    request = parse_request(
        payload,
        default_threshold=config.downsample_threshold,
        default_axis=config.axis,
    )
    return process_request(request, config=config).to_payload()


__all__ = [
    "ChartResult",
    "process_chart_data",
    "process_request",
    "run_chart_request",
]
