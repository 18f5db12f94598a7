"""Event markers and burst-logging intervals projected onto the x grid."""

from __future__ import annotations

import math
from typing import Optional, Sequence

from runalign.models import (
    BURST_STATUS_KEY,
    TIMESTAMP_KEY,
    AxisKey,
    BurstInterval,
    EventMarker,
    MergedFrame,
    Run,
    prefixed_key,
)
from runalign.search import find_closest_index


def build_time_map(
    frames: Sequence[MergedFrame],
    run_id: str,
) -> list[tuple[float, float]]:
    """``(timestamp, x)`` pairs of one run, sorted by timestamp.

    Frames where the run has no numeric timestamp or the frame has no
    numeric x are dropped.
    """
    time_key = prefixed_key(run_id, TIMESTAMP_KEY)
    pairs = []
    for frame in frames:
        timestamp = frame.number(time_key)
        if math.isnan(timestamp) or math.isnan(frame.x):
            continue
        pairs.append((timestamp, frame.x))
    pairs.sort(key=lambda pair: pair[0])
    return pairs


def _project(
    timestamp: float,
    axis: AxisKey,
    times: Sequence[float],
    xs: Sequence[float],
) -> Optional[float]:
    if math.isnan(timestamp):
        return None
    if axis is AxisKey.TIMESTAMP:
        return timestamp
    idx = find_closest_index(times, timestamp)
    if idx < 0:
        return None
    return xs[idx]


def project_events(
    runs: Sequence[Run],
    frames: Sequence[MergedFrame],
    axis: AxisKey,
) -> list[EventMarker]:
    """Place every run's events on the active axis.

    On the timestamp axis an event sits at its own timestamp. On the
    distance axis it takes the x of the merged frame whose run timestamp is
    closest. Events that cannot be placed keep ``x=None`` and should not be
    drawn. Unnamed events are labelled ``Event <n>`` by overall position.
    """
    markers: list[EventMarker] = []
    for run in runs:
        if not run.events:
            continue
        times: list[float] = []
        xs: list[float] = []
        if axis is not AxisKey.TIMESTAMP:
            for timestamp, x in build_time_map(frames, run.id):
                times.append(timestamp)
                xs.append(x)
        for event in run.events:
            name = event.name or f"Event {len(markers)}"
            markers.append(
                EventMarker(
                    run_id=run.id,
                    name=name,
                    x=_project(event.timestamp, axis, times, xs),
                )
            )
    return markers


def is_bursting(
    frame: MergedFrame,
    run_ids: Sequence[str],
    status_key: str = BURST_STATUS_KEY,
) -> bool:
    for run_id in run_ids:
        value = frame.get(prefixed_key(run_id, status_key))
        if value is True or value == "true":
            return True
    return False


def extract_burst_intervals(
    frames: Sequence[MergedFrame],
    run_ids: Sequence[str],
    status_key: str = BURST_STATUS_KEY,
) -> list[BurstInterval]:
    """Contiguous x ranges where any run reports burst logging.

    An interval spans from the first to the last bursting frame of a run of
    consecutive bursting frames. Runs without any x extent (a single frame,
    or repeated identical x) produce nothing. Frames with a NaN x are ignored.
    """
    intervals: list[BurstInterval] = []
    start: Optional[float] = None
    last: Optional[float] = None
    for frame in frames:
        if math.isnan(frame.x):
            continue
        if is_bursting(frame, run_ids, status_key):
            if start is None:
                start = frame.x
            last = frame.x
            continue
        if start is not None and last is not None and start != last:
            intervals.append(BurstInterval(start, last))
        start = last = None
    if start is not None and last is not None and start != last:
        intervals.append(BurstInterval(start, last))
    return intervals


__all__ = [
    "build_time_map",
    "extract_burst_intervals",
    "is_bursting",
    "project_events",
]
