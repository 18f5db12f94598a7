"""Nearest-neighbour lookup on sorted numeric sequences."""

from __future__ import annotations

from bisect import bisect_left
import math
from typing import Sequence


def find_closest_index(values: Sequence[float], target: float) -> int:
    """Return the index of the value closest to ``target``.

    ``values`` must be sorted ascending and free of NaN. Returns ``-1`` for an
    empty sequence or a NaN target. Targets below the first value clamp to
    ``0`` and targets above the last value clamp to the last index. An exact
    match returns the lowest index holding that value; when ``target`` lies
    strictly between two samples that are equally close, the lower index wins.
    """
    count = len(values)
    if count == 0 or math.isnan(target):
        return -1
    if target <= values[0]:
        return 0
    if target > values[-1]:
        return count - 1

    idx = bisect_left(values, target)
    if values[idx] == target:
        return idx
    # Converged between idx - 1 and idx; pick the closer neighbour.
    left = idx - 1
    if target - values[left] <= values[idx] - target:
        return left
    return idx


__all__ = ["find_closest_index"]
