"""Tabular exports of merged frames (zoom-range extraction, DataFrame, Parquet)."""

from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import Any, Mapping, Optional, Sequence, Union

import pandas as pd
import pyarrow as pa
import pyarrow.parquet as pq

from runalign.details import UNKNOWN_SESSION
from runalign.errors import ValidationError
from runalign.models import (
    TIMESTAMP_KEY,
    AvailableMetric,
    AxisKey,
    MergedFrame,
    Run,
    is_number,
    prefixed_key,
)

_LOGGER = logging.getLogger("runalign.export")

MISSING_TEXT = "N/A"


def frames_in_range(
    frames: Sequence[MergedFrame],
    x_min: float,
    x_max: float,
) -> list[MergedFrame]:
    if x_min > x_max:
        x_min, x_max = x_max, x_min
    return [frame for frame in frames if x_min <= frame.x <= x_max]


def _format_number(value: Any) -> str:
    if is_number(value) and not math.isnan(value):
        return f"{value:.3f}"
    return ""


def _format_metric(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if is_number(value):
        return f"{value:.3f}"
    if isinstance(value, str) and value.strip():
        return value
    return MISSING_TEXT


def _metric_header(key: str, catalog: Mapping[str, AvailableMetric]) -> str:
    metric = catalog.get(key)
    if metric is None:
        return key
    return metric.label.replace(" ", ".")


def extract_range(
    frames: Sequence[MergedFrame],
    runs: Sequence[Run],
    axis: AxisKey,
    metric_keys: Sequence[str],
    x_min: float,
    x_max: float,
    *,
    session_names: Optional[Mapping[str, str]] = None,
) -> pd.DataFrame:
    """One row per frame and run inside ``[x_min, x_max]``.

    Columns are ``Run, Session, <axis>, TIMESTAMP`` followed by the metric
    labels. Numbers are rendered with three decimals and missing values as
    ``N/A``; rows where every metric is missing are dropped.
    """
    selected = frames_in_range(frames, x_min, x_max)
    if not selected:
        raise ValidationError(
            f"No data found in the selected range [{x_min}, {x_max}].",
            user_message="No data found in the selected zoom range.",
            context={"x_min": x_min, "x_max": x_max},
        )
    session_names = session_names or {}
    catalog: dict[str, AvailableMetric] = {}
    for run in runs:
        for metric in run.available_metrics:
            catalog.setdefault(metric.key, metric)

    columns = ["Run", "Session", axis.value, TIMESTAMP_KEY] + [
        _metric_header(key, catalog) for key in metric_keys
    ]
    rows = []
    for frame in selected:
        x_text = _format_number(frame.x)
        for run in runs:
            values = [
                _format_metric(frame.get(prefixed_key(run.id, key)))
                for key in metric_keys
            ]
            if all(value == MISSING_TEXT for value in values):
                continue
            rows.append(
                [
                    run.name,
                    session_names.get(run.session_id, UNKNOWN_SESSION),
                    x_text,
                    _format_number(frame.get(prefixed_key(run.id, TIMESTAMP_KEY))),
                    *values,
                ]
            )
    _LOGGER.debug("Extracted %d rows from %d frames.", len(rows), len(selected))
    return pd.DataFrame(rows, columns=columns)


def rows_to_csv(table: pd.DataFrame) -> str:
    return table.to_csv(index=False)


def frames_to_dataframe(
    frames: Sequence[MergedFrame],
    *,
    x_column: str = "x",
) -> pd.DataFrame:
    """Wide table of merged frames; absent fields become NaN."""
    records = []
    for frame in frames:
        record = frame.to_dict()
        record[x_column] = frame.x
        records.append(record)
    table = pd.DataFrame.from_records(records)
    if x_column in table.columns:
        ordered = [x_column] + [col for col in table.columns if col != x_column]
        table = table[ordered]
    return table


def _arrow_safe(table: pd.DataFrame) -> pd.DataFrame:
    # Columns mixing bools, numbers and strings cannot map to one Arrow type.
    safe = table.copy()
    for column in safe.columns:
        if safe[column].dtype != object:
            continue
        kinds = {type(value) for value in safe[column].dropna()}
        if len(kinds) > 1:
            safe[column] = safe[column].map(
                lambda value: None if value is None or value != value else str(value)
            )
    return safe


def write_frames_parquet(
    frames: Sequence[MergedFrame],
    path: Union[str, Path],
) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    table = pa.Table.from_pandas(
        _arrow_safe(frames_to_dataframe(frames)), preserve_index=False
    )
    pq.write_table(table, path)
    _LOGGER.info("Wrote %d merged frames to %s.", len(frames), path)
    return path


__all__ = [
    "MISSING_TEXT",
    "extract_range",
    "frames_in_range",
    "frames_to_dataframe",
    "rows_to_csv",
    "write_frames_parquet",
]
