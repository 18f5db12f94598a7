"""Frame merging: one namespaced wide record per backbone sample."""

from __future__ import annotations

import logging
import math
from typing import Sequence

from runalign.align import AlignedRun, prepare_runs
from runalign.models import (
    BURST_STATUS_KEY,
    DISTANCE_KEY,
    TIMESTAMP_KEY,
    AxisKey,
    MergedFrame,
    MetricValue,
    Run,
    Sample,
    prefixed_key,
)
from runalign.normalize import x_value

_LOGGER = logging.getLogger("runalign.merge")

# Copied for every run next to its catalog metrics.
_CARRIED_KEYS = (TIMESTAMP_KEY, DISTANCE_KEY, BURST_STATUS_KEY)


def _copy_run_fields(
    target: dict[str, MetricValue],
    run: Run,
    sample: Sample,
) -> None:
    for key in run.metric_keys:
        value = sample.get(key)
        if value is not None:
            target[prefixed_key(run.id, key)] = value
    for key in _CARRIED_KEYS:
        value = sample.get(key)
        if value is not None:
            target[prefixed_key(run.id, key)] = value


def merge_frames(
    backbone: Run,
    others: Sequence[Run],
    axis: AxisKey,
) -> list[MergedFrame]:
    """Merge sorted runs onto the backbone's x grid.

    Every run contributes its full metric catalog, not only the rendered
    subset. A run contributes nothing to frames past its last recorded x, and
    frames whose backbone x is NaN carry the backbone's own fields only.
    """
    aligned_others: list[AlignedRun] = prepare_runs(
        [run for run in others if run.samples], axis
    )
    frames: list[MergedFrame] = []
    gaps = 0
    for sample in backbone.samples:
        values: dict[str, MetricValue] = {}
        for key in (TIMESTAMP_KEY, axis.value):
            raw = sample.get(key)
            if raw is not None:
                values[key] = raw
        _copy_run_fields(values, backbone, sample)

        base_x = x_value(sample, axis)
        if not math.isnan(base_x):
            for aligned in aligned_others:
                match = aligned.locate(base_x)
                if match is None:
                    gaps += 1
                    continue
                _copy_run_fields(values, aligned.run, match)
        frames.append(MergedFrame.build(values, base_x))

    _LOGGER.debug(
        "Merged %d frames on backbone %s against %d runs (%d gaps).",
        len(frames),
        backbone.id,
        len(aligned_others),
        gaps,
    )
    return frames


__all__ = ["merge_frames"]
