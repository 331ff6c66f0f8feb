"""Duration glucose has stayed within a narrow band around its running mean."""
from __future__ import annotations

from typing import Sequence

from .deltas import usable
from .models import Reading, StabilityWindow
from .settings import StabilitySettings

_MINUTE_MS = 60_000.0


def stability_window(readings: Sequence[Reading], settings: StabilitySettings | None = None) -> StabilityWindow:
    """Walk back from the newest reading while values stay within the band.

    The run ends at the first out-of-band reading or at a gap longer than
    ``max_gap_minutes`` since the previously accepted reading.
    """

    settings = settings or StabilitySettings()
    if not readings:
        return StabilityWindow(minutes=0.0, average=0.0)

    now = readings[0]
    total = now.recalculated
    average = total
    accepted = 1
    minutes = 0.0
    low, high = 1 - settings.band, 1 + settings.band

    for then in readings[1:]:
        if not usable(then, settings.error_threshold):
            continue
        minutes_ago = (now.timestamp - then.timestamp) / _MINUTE_MS
        if minutes_ago - minutes > settings.max_gap_minutes:
            break
        if not average * low < then.recalculated < average * high:
            break
        accepted += 1
        total += then.recalculated
        average = total / accepted
        minutes = minutes_ago

    return StabilityWindow(minutes=minutes, average=average)
