"""Point inspection: compare every run's metrics at one merged frame."""

from __future__ import annotations

from dataclasses import dataclass, field
import math
from typing import Any, Mapping, Optional, Sequence

from runalign.models import (
    DISTANCE_KEY,
    RESERVED_KEYS,
    TIMESTAMP_KEY,
    AvailableMetric,
    MergedFrame,
    MetricValue,
    Run,
    split_prefixed_key,
)
from runalign.search import find_closest_index

UNKNOWN_SESSION = "Unknown"


@dataclass(frozen=True)
class PointDetails:
    headers: list[tuple[str, str]] = field(default_factory=list)
    rows: list[dict[str, Any]] = field(default_factory=list)
    run_ids: list[str] = field(default_factory=list)
    distance: Optional[MetricValue] = None
    timestamp: Optional[MetricValue] = None


def find_frame_at(frames: Sequence[MergedFrame], x: float) -> Optional[MergedFrame]:
    """Frame whose x is closest to ``x`` (frames sorted by x, NaN last)."""
    xs = []
    for frame in frames:
        if math.isnan(frame.x):
            break
        xs.append(frame.x)
    idx = find_closest_index(xs, x)
    if idx < 0:
        return None
    return frames[idx]


def _first_with_suffix(frame: MergedFrame, suffix: str) -> Optional[MetricValue]:
    for key, value in frame.items():
        if key.endswith(suffix):
            return value
    return None


def _metric_label(key: str, catalog: Mapping[str, AvailableMetric]) -> str:
    metric = catalog.get(key)
    if metric is not None:
        return metric.label
    return key.replace(".", " ")


def point_details(
    frame: Optional[MergedFrame],
    runs: Sequence[Run],
    *,
    selected_run_ids: Optional[Sequence[str]] = None,
    session_names: Optional[Mapping[str, str]] = None,
    metrics: Optional[Sequence[AvailableMetric]] = None,
) -> PointDetails:
    """Build a metric-by-run comparison table for ``frame``.

    Rows are sorted by metric label; run columns are ordered by session
    name (falling back to the run id).
    """
    if frame is None:
        return PointDetails()
    session_names = session_names or {}
    selected = set(selected_run_ids) if selected_run_ids is not None else {
        run.id for run in runs
    }
    if metrics is None:
        metrics = [item for run in runs for item in run.available_metrics]
    catalog: dict[str, AvailableMetric] = {}
    for metric in metrics:
        catalog.setdefault(metric.key, metric)

    by_metric: dict[str, dict[str, Any]] = {}
    for prefixed, value in frame.items():
        parts = split_prefixed_key(prefixed)
        if parts is None:
            continue
        run_id, metric_key = parts
        if run_id not in selected or metric_key in RESERVED_KEYS:
            continue
        row = by_metric.setdefault(
            metric_key, {"metric": _metric_label(metric_key, catalog)}
        )
        row[run_id] = value

    session_by_run = {run.id: run.session_id for run in runs}

    def _session_label(run_id: str) -> Optional[str]:
        return session_names.get(session_by_run.get(run_id, ""))

    run_ids = sorted(
        selected, key=lambda run_id: (_session_label(run_id) or run_id, run_id)
    )
    headers = [("metric", "Metric")] + [
        (run_id, _session_label(run_id) or UNKNOWN_SESSION) for run_id in run_ids
    ]
    rows = sorted(by_metric.values(), key=lambda row: row["metric"])
    return PointDetails(
        headers=headers,
        rows=rows,
        run_ids=run_ids,
        distance=_first_with_suffix(frame, f":{DISTANCE_KEY}"),
        timestamp=_first_with_suffix(frame, f":{TIMESTAMP_KEY}"),
    )


__all__ = ["PointDetails", "UNKNOWN_SESSION", "find_frame_at", "point_details"]
