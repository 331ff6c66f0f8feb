"""Assemble the glucose status snapshot consumed by the dosing algorithm."""
from __future__ import annotations

import logging
import time
from typing import Callable, Optional, Sequence

from .deltas import aggregate_deltas
from .models import GlucoseStatus, Reading
from .regression import fit_quadratic, use_high_frequency_raw
from .settings import PipelineSettings
from .stability import stability_window

Clock = Callable[[], int]


def system_clock() -> int:
    """Current time in epoch milliseconds."""

    return int(time.time() * 1000)


class GlucoseStatusProvider:
    """Combines trend, stability and regression outputs into one snapshot."""

    def __init__(self, settings: PipelineSettings | None = None, clock: Clock | None = None) -> None:
        self._settings = settings or PipelineSettings()
        self._clock = clock or system_clock

    def get_status(
        self,
        bucketed: Sequence[Reading],
        raw: Optional[Sequence[Reading]] = None,
        *,
        allow_old_data: bool = False,
    ) -> Optional[GlucoseStatus]:
        """Return the current status or ``None`` when no usable data exists.

        ``bucketed`` is the standard-cadence series and ``raw`` the unsmoothed
        sensor stream, both newest first. ``raw`` defaults to ``bucketed``.
        """

        if not bucketed:
            logging.debug("No glucose history; status unavailable")
            return None
        raw = bucketed if raw is None else raw

        now = bucketed[0]
        stale_before = self._clock() - self._settings.status.stale_after_minutes * 60_000
        if now.timestamp < stale_before and not allow_old_data:
            logging.debug(f"Newest reading at {now.timestamp} is stale; status unavailable")
            return None

        if len(bucketed) == 1:
            logging.debug("Single reading; returning minimal status")
            return GlucoseStatus(
                glucose=now.recalculated,
                timestamp=now.timestamp,
                stability_average=now.recalculated,
            ).as_rounded()

        deltas = aggregate_deltas(bucketed, self._settings.deltas)
        stability = stability_window(bucketed, self._settings.stability)

        regression_settings = self._settings.regression
        high_frequency = use_high_frequency_raw(raw, regression_settings)
        series = raw if high_frequency else bucketed
        logging.debug(f"Quadratic fit source: {'1-minute raw' if high_frequency else 'standard smoothed'}")
        fit = fit_quadratic(series, high_frequency_raw=high_frequency, settings=regression_settings)

        status = GlucoseStatus(
            glucose=now.recalculated,
            timestamp=now.timestamp,
            noise=0.0,
            delta=deltas.delta,
            short_avg_delta=deltas.short_avg_delta,
            long_avg_delta=deltas.long_avg_delta,
            stability_minutes=stability.minutes,
            stability_average=stability.average,
            use_high_frequency_raw=fit.use_high_frequency_raw,
            fit_minutes=fit.minutes,
            delta_prev=fit.delta_prev,
            delta_next=fit.delta_next,
            acceleration=fit.acceleration,
            a0=fit.a0,
            a1=fit.a1,
            a2=fit.a2,
            correlation=fit.correlation,
        )
        logging.debug(status.describe())
        return status.as_rounded()
