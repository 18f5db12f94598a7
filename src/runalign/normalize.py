"""Run normalization: order samples by the active x-axis column."""

from __future__ import annotations

from dataclasses import replace
import math
from typing import Sequence

from runalign.models import AxisKey, Run, Sample


def x_value(sample: Sample, axis: AxisKey) -> float:
    """Return the sample's x value, NaN when missing or non-numeric."""
    return sample.number(axis.value)


def _sort_key(sample: Sample, axis: AxisKey) -> tuple[int, float]:
    value = x_value(sample, axis)
    if math.isnan(value):
        return (1, 0.0)
    return (0, value)


def sort_samples(samples: Sequence[Sample], axis: AxisKey) -> list[Sample]:
    """Sort ascending by x; NaN/non-numeric x values go last.

    The sort is stable, so samples sharing an x value (and all NaN samples)
    keep their input order.
    """
    return sorted(samples, key=lambda sample: _sort_key(sample, axis))


def normalize_run(run: Run, axis: AxisKey) -> Run:
    """Return a copy of ``run`` with samples sorted for ``axis``."""
    return replace(run, samples=sort_samples(run.samples, axis))


def normalize_runs(runs: Sequence[Run], axis: AxisKey) -> list[Run]:
    return [normalize_run(run, axis) for run in runs]


__all__ = ["normalize_run", "normalize_runs", "sort_samples", "x_value"]
