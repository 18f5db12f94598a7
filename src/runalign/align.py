"""Cross-run alignment against the backbone grid."""

from __future__ import annotations

from dataclasses import dataclass
import math
from typing import Optional, Sequence

from runalign.models import AxisKey, Run, Sample
from runalign.normalize import x_value
from runalign.search import find_closest_index


@dataclass(frozen=True)
class AlignedRun:
    """A sorted run with its x column and domain bound precomputed."""

    run: Run
    xs: tuple[float, ...]
    max_x: float

    @property
    def id(self) -> str:
        return self.run.id

    def locate(self, value: float) -> Optional[Sample]:
        idx = align_index(self, value)
        if idx < 0:
            return None
        return self.run.samples[idx]


def prepare_run(run: Run, axis: AxisKey) -> AlignedRun:
    """Build the lookup table for an already sorted run.

    Samples with a NaN x sit at the tail after normalization, so the numeric
    prefix indexes ``run.samples`` one-to-one.
    """
    xs: list[float] = []
    for sample in run.samples:
        value = x_value(sample, axis)
        if math.isnan(value):
            break
        xs.append(value)
    upper = xs[-1] if xs else -math.inf
    return AlignedRun(run=run, xs=tuple(xs), max_x=upper)


def prepare_runs(runs: Sequence[Run], axis: AxisKey) -> list[AlignedRun]:
    return [prepare_run(run, axis) for run in runs]


def align_index(aligned: AlignedRun, value: float) -> int:
    """Index of the sample closest to ``value`` or ``-1`` for a gap.

    A gap is reported for a NaN ``value``, a run without numeric x values,
    and any ``value`` beyond the run's recorded end (no extrapolation).
    """
    if math.isnan(value) or not aligned.xs:
        return -1
    if value > aligned.max_x:
        return -1
    return find_closest_index(aligned.xs, value)


__all__ = ["AlignedRun", "align_index", "prepare_run", "prepare_runs"]
