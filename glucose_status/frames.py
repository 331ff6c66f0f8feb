"""pandas helpers for moving readings in and out of DataFrames."""
from __future__ import annotations

from dataclasses import asdict
from typing import Iterable

import pandas as pd

from .models import Reading, SensorType

READING_COLUMNS = [
    "timestamp",
    "value",
    "recalculated",
    "smoothed",
    "sensor",
    "filled_gap",
    "is_valid",
    "noise",
    "trend_arrow",
    "utc_offset",
    "nightscout_id",
]

_SENSOR_LABELS = {sensor.value: sensor for sensor in SensorType}


def readings_to_frame(readings: Iterable[Reading]) -> pd.DataFrame:
    """Return readings as a frame ordered oldest first, with a UTC ``time`` column."""

    rows = [asdict(reading) for reading in readings]
    if not rows:
        return pd.DataFrame(columns=[*READING_COLUMNS, "time"])
    frame = pd.DataFrame(rows, columns=READING_COLUMNS)
    frame["sensor"] = frame["sensor"].map(lambda sensor: SensorType(sensor).value)
    frame["time"] = pd.to_datetime(frame["timestamp"], unit="ms", utc=True)
    return frame.sort_values("timestamp").reset_index(drop=True)


def readings_from_frame(
    frame: pd.DataFrame,
    *,
    sensor: SensorType = SensorType.UNKNOWN,
    time_column: str = "timestamp",
    value_column: str = "glucose_mg_dL",
) -> list[Reading]:
    """Build readings from a frame of timestamped glucose values.

    ``time_column`` may hold datetimes, ISO strings or epoch milliseconds.
    An optional ``sensor`` column holds sensor labels; empty cells take
    ``sensor`` and unknown labels drop the row, like an unparsable time or
    value. Duplicates per (time, sensor) keep the last row and the result is
    ordered oldest first.
    """

    if frame.empty:
        return []

    df = frame.copy()
    times = df[time_column]
    if pd.api.types.is_numeric_dtype(times):
        df["ts_ms"] = pd.to_numeric(times, errors="coerce")
    else:
        parsed = pd.to_datetime(times, utc=True, errors="coerce")
        df["ts_ms"] = (parsed - pd.Timestamp(0, tz="UTC")) // pd.Timedelta(milliseconds=1)
    df["mg_dl"] = pd.to_numeric(df.get(value_column), errors="coerce")
    if "sensor" in df.columns:
        df["sensor"] = df["sensor"].map(lambda item: _parse_sensor(item, sensor))
    else:
        df["sensor"] = [sensor] * len(df)
    df = df.dropna(subset=["ts_ms", "mg_dl", "sensor"])
    df = df.drop_duplicates(subset=["ts_ms", "sensor"], keep="last").sort_values("ts_ms", kind="stable")

    return [
        Reading(timestamp=int(ts), value=float(value), sensor=row_sensor)
        for ts, value, row_sensor in zip(df["ts_ms"], df["mg_dl"], df["sensor"])
    ]


def _parse_sensor(item: object, default: SensorType) -> SensorType | None:
    if isinstance(item, SensorType):
        return item
    if item is None or (pd.api.types.is_scalar(item) and pd.isna(item)):
        return default
    return _SENSOR_LABELS.get(str(item))
