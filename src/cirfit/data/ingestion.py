# src/cirfit/data/ingestion.py
"""
Load an observation series from a tabular file.

Hard validations (raise DataSourceError):
    - File exists and has a supported suffix
    - Required timestamp and value columns are present
    - Timestamps parse, values are numeric and not missing

Soft validations (logged as warnings):
    - Duplicate timestamps
    - Irregular gaps (> 2x median spacing)
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import numpy as np
import pandas as pd

from cirfit.errors import DataSourceError, InvalidInputError
from cirfit.sde.schemas import ObservationSeries

LOGGER = logging.getLogger(__name__)

DEFAULT_PERIODS_PER_YEAR = 252


def _read_table(path: Path) -> pd.DataFrame:
    suffix = path.suffix.lower()
    if suffix == ".csv":
        return pd.read_csv(path)
    if suffix in {".parquet", ".pq"}:
        return pd.read_parquet(path)
    raise DataSourceError(f"Unsupported data file type: {path.suffix}")


def _warn_on_spacing(timestamps: pd.Series) -> None:
    dup_count = int(timestamps.duplicated().sum())
    if dup_count > 0:
        LOGGER.warning("Found %d duplicate timestamps", dup_count)

    diffs = timestamps.diff().dt.total_seconds().dropna()
    if len(diffs) > 0:
        median_gap = float(np.median(diffs))
        large_gaps = int((diffs > 2 * median_gap).sum())
        if large_gaps > 0:
            LOGGER.warning("Irregular sampling: %d gaps wider than 2x median", large_gaps)


def frame_to_series(
    df: pd.DataFrame,
    value_column: str,
    timestamp_column: str = "timestamp",
    dt: Optional[float] = None,
    periods_per_year: int = DEFAULT_PERIODS_PER_YEAR,
) -> ObservationSeries:
    """
    Validate ``df``, sort it by timestamp and extract ``value_column``.

    When ``dt`` is not given, one row per period is assumed:
    ``dt = 1 / periods_per_year``.
    """
    required = {timestamp_column, value_column}
    missing = required - set(df.columns)
    if missing:
        raise DataSourceError(
            f"Data missing required columns: {sorted(missing)}. "
            f"Present: {df.columns.tolist()}"
        )

    if not pd.api.types.is_numeric_dtype(df[value_column]):
        raise DataSourceError(f"Column '{value_column}' is not numeric")

    if df[value_column].isna().any():
        n_missing = int(df[value_column].isna().sum())
        raise DataSourceError(f"'{value_column}' contains {n_missing} missing values")

    try:
        timestamps = pd.to_datetime(df[timestamp_column], errors="raise")
    except (ValueError, TypeError) as e:
        raise DataSourceError(
            f"Column '{timestamp_column}' could not be parsed as datetime"
        ) from e

    frame = (
        pd.DataFrame({"timestamp": timestamps, "value": df[value_column].astype(float)})
        .sort_values("timestamp", kind="mergesort")
        .reset_index(drop=True)
    )
    _warn_on_spacing(frame["timestamp"])

    if dt is None:
        if periods_per_year <= 0:
            raise DataSourceError("periods_per_year must be positive")
        dt = 1.0 / periods_per_year

    try:
        return ObservationSeries.from_values(frame["value"].to_numpy(), dt)
    except InvalidInputError as e:
        raise DataSourceError(f"Invalid observations in '{value_column}': {e}") from e


def load_observation_series(
    path: str | Path,
    value_column: str,
    timestamp_column: str = "timestamp",
    dt: Optional[float] = None,
    periods_per_year: int = DEFAULT_PERIODS_PER_YEAR,
) -> ObservationSeries:
    path = Path(path)
    if not path.exists():
        raise DataSourceError(f"Data path does not exist: {path}")

    LOGGER.info("Loading observations from %s (column=%s)", path, value_column)
    df = _read_table(path)
    series = frame_to_series(
        df,
        value_column=value_column,
        timestamp_column=timestamp_column,
        dt=dt,
        periods_per_year=periods_per_year,
    )
    LOGGER.info("Loaded %d observations, dt=%.6g", series.values.size, series.dt)
    return series


__all__ = ["frame_to_series", "load_observation_series"]
