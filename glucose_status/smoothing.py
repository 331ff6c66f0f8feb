"""Double-exponential smoothing of high-frequency CGM streams.

A weighted blend of first- and second-order exponential smoothing: the first
order reacts quickly to changing glucose, the second order follows the trend
but lags. Only the newest ``update_window`` values are written back, since the
estimate is noisiest at the edges of the window.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np

from .models import Reading
from .settings import SmoothingSettings

_MINUTE_MS = 60_000


@dataclass(frozen=True)
class SmoothingOutcome:
    """Result of one smoothing cycle over a newest-first window."""

    readings: tuple[Reading, ...]
    changed: tuple[Reading, ...]
    window_size: int
    applied: bool
    insufficient_data: bool = False


def applies_to(readings: Sequence[Reading], settings: SmoothingSettings) -> bool:
    """True when the newest readings form a high-frequency stream."""

    if len(readings) < 2 or not readings[0].sensor.is_high_frequency:
        return False
    gap = abs(readings[0].timestamp - readings[1].timestamp)
    return gap <= settings.max_cadence_minutes * _MINUTE_MS


def smoothing_window(readings: Sequence[Reading], settings: SmoothingSettings) -> int:
    """Number of newest readings forming an unbroken, error-free chain."""

    window = settings.window_size
    if len(readings) <= window:
        # keep one older reading as the seed buffer
        window = max(len(readings) - 1, 0)

    for i in range(window):
        gap_minutes = (readings[i].timestamp - readings[i + 1].timestamp) / _MINUTE_MS
        if gap_minutes > settings.max_gap_minutes:
            return i + 1
        if readings[i].value <= settings.error_threshold:
            return i
    return window


def first_order(values: Sequence[float], alpha: float) -> list[float]:
    """Exponential smoothing of ``values`` ordered oldest first."""

    level = values[0]
    smoothed: list[float] = []
    for value in values:
        level = level + alpha * (value - level)
        smoothed.append(level)
    return smoothed


def second_order(values: Sequence[float], alpha: float, beta: float = 1.0) -> list[float]:
    """Holt-style smoothing of ``values`` ordered oldest first."""

    level = values[0]
    trend = values[1] - values[0]
    smoothed = [level]
    for value in values[1:]:
        next_level = alpha * value + (1 - alpha) * (level + trend)
        trend = beta * (next_level - level) + (1 - beta) * trend
        level = next_level
        smoothed.append(level)
    return smoothed


def smooth(readings: Sequence[Reading], settings: SmoothingSettings | None = None) -> SmoothingOutcome:
    """Smooth a newest-first window and fill ``smoothed`` on its newest entries."""

    settings = settings or SmoothingSettings()
    data = list(readings)
    if not applies_to(data, settings):
        return SmoothingOutcome(readings=tuple(data), changed=(), window_size=0, applied=False)

    window = smoothing_window(data, settings)
    if window < settings.min_window:
        targets = [max(reading.value, settings.floor) for reading in data[: settings.update_window]]
        return _write_tail(data, targets, window, insufficient=True)

    values = [reading.value for reading in reversed(data[:window])]
    o1 = np.asarray(first_order(values, settings.first_order_alpha))
    o2 = np.asarray(second_order(values, settings.second_order_alpha, settings.second_order_beta))
    weight = settings.first_order_weight
    blended = (weight * o1 + (1 - weight) * o2)[::-1]

    tail = blended[: settings.update_window]
    targets = [max(float(np.round(value)), settings.floor) for value in tail]
    return _write_tail(data, targets, window, insufficient=False)


def _write_tail(data: list[Reading], targets: list[float], window: int, *, insufficient: bool) -> SmoothingOutcome:
    changed: list[Reading] = []
    for i, target in enumerate(targets):
        if data[i].smoothed != target:
            data[i] = data[i].with_smoothed(target)
            changed.append(data[i])
    return SmoothingOutcome(
        readings=tuple(data),
        changed=tuple(changed),
        window_size=window,
        applied=True,
        insufficient_data=insufficient,
    )
