from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Callable, Optional, Sequence

import pytest


def pytest_configure() -> None:
    src_root = Path(__file__).resolve().parents[1] / "src"
    src_path = str(src_root)
    if src_path not in sys.path:
        sys.path.insert(0, src_path)


def _build_run(
    run_id: str,
    xs: Sequence[Any],
    metrics: Optional[dict[str, Sequence[Any]]] = None,
    *,
    x_key: str = "SPLINE.DISTANCE",
    timestamps: Optional[Sequence[Any]] = None,
    burst: Optional[Sequence[Any]] = None,
    events: Optional[Sequence[dict[str, Any]]] = None,
    session_id: str = "session-1",
):
    from runalign.models import AvailableMetric, Event, Run, Sample

    metrics = metrics or {}
    samples = []
    for idx, x in enumerate(xs):
        row: dict[str, Any] = {}
        if x is not None:
            row[x_key] = x
        if timestamps is not None and timestamps[idx] is not None:
            row["TIMESTAMP"] = timestamps[idx]
        if burst is not None and burst[idx] is not None:
            row["BURST_LOGGING_STATUS"] = burst[idx]
        for key, values in metrics.items():
            if values[idx] is not None:
                row[key] = values[idx]
        samples.append(Sample(row))
    return Run(
        id=run_id,
        session_id=session_id,
        name=f"Run {run_id}",
        samples=samples,
        available_metrics=[
            AvailableMetric(key=key, label=key.replace(".", " "))
            for key in metrics
        ],
        events=[Event.from_dict(entry) for entry in events or []],
    )


@pytest.fixture
def make_run() -> Callable[..., Any]:
    return _build_run
