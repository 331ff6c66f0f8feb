"""Short, immediate and long average deltas over recent history."""
from __future__ import annotations

from typing import Sequence

import numpy as np

from .models import DeltaSummary, Reading
from .settings import DeltaSettings

_MINUTE_MS = 60_000.0


def usable(reading: Reading, error_threshold: float) -> bool:
    """Readings that may take part in trend math."""

    return reading.value > error_threshold and not reading.filled_gap


def _inside(minutes: float, bounds: tuple[float, float]) -> bool:
    low, high = bounds
    return low < minutes < high


def _mean(values: list[float]) -> float:
    return float(np.mean(values)) if values else 0.0


def aggregate_deltas(readings: Sequence[Reading], settings: DeltaSettings | None = None) -> DeltaSummary:
    """Bucket per-sample deltas by age; ``readings`` are newest first.

    Each delta is normalised to mg/dL per 5 minutes. The immediate bucket is a
    subset of the short one and falls back to it when empty.
    """

    settings = settings or DeltaSettings()
    if len(readings) < 2:
        return DeltaSummary()

    now = readings[0]
    last: list[float] = []
    short: list[float] = []
    long: list[float] = []
    stop_after = settings.long_window[1]

    for then in readings[1:]:
        if not usable(then, settings.error_threshold):
            continue
        minutes_ago = (now.timestamp - then.timestamp) / _MINUTE_MS
        if minutes_ago >= stop_after:
            break
        if minutes_ago <= 0:
            continue
        avg_delta = (now.recalculated - then.recalculated) / minutes_ago * 5
        if _inside(minutes_ago, settings.short_window):
            short.append(avg_delta)
            if _inside(minutes_ago, settings.last_window):
                last.append(avg_delta)
        elif _inside(minutes_ago, settings.long_window):
            long.append(avg_delta)

    short_avg = _mean(short)
    return DeltaSummary(
        delta=_mean(last) if last else short_avg,
        short_avg_delta=short_avg,
        long_avg_delta=_mean(long),
    )
