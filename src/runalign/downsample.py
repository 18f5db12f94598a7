"""Shape-preserving point reduction for rendering."""

from __future__ import annotations

import logging
import math
from typing import Optional, Sequence

import numpy as np

from runalign.errors import DownsampleError
from runalign.models import MergedFrame, RenderedPoint, Run, is_number, prefixed_key

_LOGGER = logging.getLogger("runalign.downsample")

MIN_LTTB_THRESHOLD = 3


def lttb_indices(xs: Sequence[float], ys: Sequence[float], threshold: int) -> list[int]:
    """Largest-triangle-three-buckets selection.

    Returns ``threshold`` ascending indices into ``xs``/``ys``; the first and
    last points are always kept. Each interior bucket keeps the point that
    spans the largest triangle with the previously kept point and the mean of
    the following bucket.
    """
    x = np.asarray(xs, dtype=float)
    y = np.asarray(ys, dtype=float)
    count = x.shape[0]
    if y.shape[0] != count:
        raise DownsampleError(
            f"x/y length mismatch: {count} != {y.shape[0]}.",
            context={"x": count, "y": y.shape[0]},
        )
    if threshold >= count:
        return list(range(count))
    if threshold < MIN_LTTB_THRESHOLD:
        raise DownsampleError(
            f"LTTB needs a threshold of at least {MIN_LTTB_THRESHOLD}, got {threshold}.",
            context={"threshold": threshold},
        )
    if not (np.isfinite(x).all() and np.isfinite(y).all()):
        raise DownsampleError("LTTB input contains non-finite coordinates.")

    every = (count - 2) / (threshold - 2)
    selected = [0]
    anchor = 0
    for bucket in range(threshold - 2):
        avg_start = int(math.floor((bucket + 1) * every)) + 1
        avg_end = min(int(math.floor((bucket + 2) * every)) + 1, count)
        avg_x = x[avg_start:avg_end].mean()
        avg_y = y[avg_start:avg_end].mean()

        range_start = int(math.floor(bucket * every)) + 1
        range_end = int(math.floor((bucket + 1) * every)) + 1
        ax, ay = x[anchor], y[anchor]
        areas = np.abs(
            (ax - avg_x) * (y[range_start:range_end] - ay)
            - (ax - x[range_start:range_end]) * (avg_y - ay)
        )
        anchor = range_start + int(np.argmax(areas))
        selected.append(anchor)
    selected.append(count - 1)
    return selected


def stride_indices(length: int, threshold: int) -> list[int]:
    """Keep every ``ceil(length / threshold)``-th index starting at 0."""
    if threshold <= 0:
        raise ValueError("threshold must be a positive integer.")
    if length <= threshold:
        return list(range(length))
    factor = math.ceil(length / threshold)
    return list(range(0, length, factor))


def downsample_frames(
    frames: Sequence[MergedFrame],
    representative_key: Optional[str],
    threshold: int,
) -> list[MergedFrame]:
    """Reduce ``frames`` to at most ``threshold`` entries.

    Sequences already within the threshold are returned unchanged. Otherwise
    LTTB runs on ``representative_key`` (absent values count as 0); without a
    representative key, or when LTTB fails, uniform striding is used instead.
    """
    if threshold <= 0:
        raise ValueError("threshold must be a positive integer.")
    if len(frames) <= threshold:
        return list(frames)

    if representative_key:
        try:
            xs = [frame.x for frame in frames]
            ys = [_y_or_zero(frame, representative_key) for frame in frames]
            indices = lttb_indices(xs, ys, threshold)
            return [frames[idx] for idx in indices]
        except Exception as exc:
            _LOGGER.warning(
                "LTTB downsampling on %s failed (%s); using uniform stride.",
                representative_key,
                exc,
            )
    indices = stride_indices(len(frames), threshold)
    return [frames[idx] for idx in indices]


def _y_or_zero(frame: MergedFrame, key: str) -> float:
    value = frame.get(key)
    if is_number(value):
        return float(value)
    return 0.0


def representative_key(backbone: Run, metric_keys: Sequence[str]) -> Optional[str]:
    if not metric_keys:
        return None
    return prefixed_key(backbone.id, metric_keys[0])


def build_labels(frames: Sequence[MergedFrame]) -> list[float]:
    return [frame.x for frame in frames]


def build_datasets(
    frames: Sequence[MergedFrame],
    run_ids: Sequence[str],
    metric_keys: Sequence[str],
) -> dict[str, list[RenderedPoint]]:
    """Series per ``runId:metricKey`` sampled at the kept frames' x values."""
    datasets: dict[str, list[RenderedPoint]] = {}
    for run_id in run_ids:
        for metric_key in metric_keys:
            data_key = prefixed_key(run_id, metric_key)
            points = []
            for frame in frames:
                value = frame.get(data_key)
                points.append(
                    RenderedPoint(frame.x, float(value) if is_number(value) else None)
                )
            datasets[data_key] = points
    return datasets


__all__ = [
    "MIN_LTTB_THRESHOLD",
    "build_datasets",
    "build_labels",
    "downsample_frames",
    "lttb_indices",
    "representative_key",
    "stride_indices",
]
