"""Backbone selection: the run whose x-domain reaches furthest."""

from __future__ import annotations

import math
from typing import Sequence

from runalign.errors import AlignmentError
from runalign.models import AxisKey, Run
from runalign.normalize import x_value


def max_x(run: Run, axis: AxisKey) -> float:
    """Largest recorded x of a sorted run, ``-inf`` when it has none.

    Samples with a NaN x sort to the tail, so the scan walks back past them
    to the last numeric value.
    """
    for sample in reversed(run.samples):
        value = x_value(sample, axis)
        if not math.isnan(value):
            return value
    return -math.inf


def select_backbone(runs: Sequence[Run], axis: AxisKey) -> Run:
    """Return the run with the strictly greatest max x; first one wins ties."""
    if not runs:
        raise AlignmentError("Cannot select a backbone from an empty run set.")
    best = runs[0]
    best_max = max_x(best, axis)
    for run in runs[1:]:
        candidate = max_x(run, axis)
        if candidate > best_max:
            best, best_max = run, candidate
    return best


__all__ = ["max_x", "select_backbone"]
