"""Build the newest-first windows the status provider reads from the store."""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Sequence

from .models import Reading
from .settings import StatusSettings
from .store import ReadingStore

_MINUTE_MS = 60_000


def bucket_readings(readings: Sequence[Reading], settings: StatusSettings | None = None) -> list[Reading]:
    """Thin a newest-first stream to the standard 5 minute cadence.

    Standard-cadence streams pass through unchanged. For high-frequency
    streams a reading is kept once it is at least one bucket (less the
    tolerance) older than the previously kept one. Kept readings use their
    smoothed value as the recalculated value when one exists.
    """

    settings = settings or StatusSettings()
    if not readings:
        return []
    if not readings[0].sensor.is_high_frequency:
        return [_prefer_smoothed(reading) for reading in readings]

    min_step = (settings.bucket_minutes - settings.bucket_tolerance_minutes) * _MINUTE_MS
    bucketed = [_prefer_smoothed(readings[0])]
    last_kept = readings[0].timestamp
    for reading in readings[1:]:
        if last_kept - reading.timestamp >= min_step:
            bucketed.append(_prefer_smoothed(reading))
            last_kept = reading.timestamp
    return bucketed


def _prefer_smoothed(reading: Reading) -> Reading:
    if reading.smoothed is None or reading.recalculated == reading.smoothed:
        return reading
    return replace(reading, recalculated=reading.smoothed)


@dataclass(frozen=True)
class ReadingWindows:
    bucketed: tuple[Reading, ...]
    raw: tuple[Reading, ...]


class StoreWindowSource:
    """Reads the recent window of the newest sensor stream from a store."""

    def __init__(self, store: ReadingStore, settings: StatusSettings | None = None) -> None:
        self._store = store
        self._settings = settings or StatusSettings()

    def windows(self) -> ReadingWindows:
        latest = self._store.latest_reading()
        if latest is None:
            return ReadingWindows(bucketed=(), raw=())
        start = latest.timestamp - int(self._settings.window_lookback_minutes * _MINUTE_MS)
        oldest_first = self._store.readings_between(start, latest.timestamp, latest.sensor)
        raw = [reading for reading in reversed(oldest_first) if reading.is_valid]
        return ReadingWindows(bucketed=tuple(bucket_readings(raw, self._settings)), raw=tuple(raw))
