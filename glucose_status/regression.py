"""Adaptive quadratic regression over recent glucose history.

Scans backwards from the newest reading, growing the fitted prefix one sample
at a time, and keeps the prefix whose least-squares parabola explains the most
variance. Time is scaled to 5 minute units and glucose to units of 50 mg/dL so
the power sums stay of similar magnitude.

After https://www.codeproject.com/Articles/63170/Least-Squares-Regression-for-Quadratic-Curve-Fitti
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from .models import Reading, RegressionFit
from .settings import RegressionSettings

_MINUTE_MS = 60_000.0


@dataclass
class PowerSums:
    """Running sums for the 3x3 normal equations of ``y = a*t^2 + b*t + c``."""

    n: int = 0
    st: float = 0.0
    st2: float = 0.0
    st3: float = 0.0
    st4: float = 0.0
    sy: float = 0.0
    sty: float = 0.0
    st2y: float = 0.0

    def add(self, t: float, y: float) -> None:
        self.n += 1
        self.st += t
        self.st2 += t ** 2
        self.st3 += t ** 3
        self.st4 += t ** 4
        self.sy += y
        self.sty += t * y
        self.st2y += t ** 2 * y

    def solve(self) -> Optional[tuple[float, float, float]]:
        """Solve for ``(a, b, c)`` by Cramer's rule; ``None`` when singular."""

        n, st, st2, st3, st4 = self.n, self.st, self.st2, self.st3, self.st4
        sy, sty, st2y = self.sy, self.sty, self.st2y
        det = st4 * (st2 * n - st * st) - st3 * (st3 * n - st * st2) + st2 * (st3 * st - st2 * st2)
        if det == 0.0:
            return None
        det_a = st2y * (st2 * n - st * st) - sty * (st3 * n - st * st2) + sy * (st3 * st - st2 * st2)
        det_b = st4 * (sty * n - sy * st) - st3 * (st2y * n - sy * st2) + st2 * (st2y * st - sty * st2)
        det_c = st4 * (st2 * sy - st * sty) - st3 * (st3 * sy - st * st2y) + st2 * (st3 * sty - st2 * st2y)
        return det_a / det, det_b / det, det_c / det


def r_squared(t: np.ndarray, y: np.ndarray, a: float, b: float, c: float, flat_value: float = 0.64) -> float:
    """Coefficient of determination; ``flat_value`` when ``y`` has no variance."""

    ss_tot = float(np.sum((y - y.mean()) ** 2))
    if ss_tot == 0.0:
        return flat_value
    ss_res = float(np.sum((y - (a * t ** 2 + b * t + c)) ** 2))
    return 1.0 - ss_res / ss_tot


def use_high_frequency_raw(raw: Sequence[Reading], settings: RegressionSettings | None = None) -> bool:
    """Fit raw per-minute values when the newest raw readings are close together."""

    settings = settings or RegressionSettings()
    if len(raw) < 2 or not raw[0].sensor.is_high_frequency:
        return False
    return raw[0].timestamp - raw[1].timestamp < settings.high_frequency_cadence_minutes * _MINUTE_MS


def fit_quadratic(
    readings: Sequence[Reading],
    *,
    high_frequency_raw: bool = False,
    settings: RegressionSettings | None = None,
) -> RegressionFit:
    """Best-correlated quadratic fit over a newest-first window.

    With ``high_frequency_raw`` the raw sensor values are fitted and the minimum
    fit duration is the high-frequency one; otherwise recalculated (smoothed)
    values of the standard-cadence series are used.
    """

    settings = settings or RegressionSettings()
    min_fit_minutes = (
        settings.min_fit_minutes_high_frequency if high_frequency_raw else settings.min_fit_minutes_standard
    )
    if not readings:
        return RegressionFit(use_high_frequency_raw=high_frequency_raw)

    scale_t = settings.scale_time_seconds
    scale_bg = settings.scale_bg
    time0 = readings[0].timestamp
    max_step = settings.max_gap_minutes * 60 / scale_t

    sums = PowerSums()
    times: list[float] = []
    values: list[float] = []
    t_last = 0.0
    best_corr = 0.0
    best: Optional[RegressionFit] = None

    for reading in readings:
        if reading.filled_gap:
            continue
        bg = reading.value if high_frequency_raw else reading.recalculated
        t = (reading.timestamp - time0) / 1000.0 / scale_t
        elapsed_minutes = -t * scale_t / 60.0
        if elapsed_minutes > settings.max_lookback_minutes:
            break
        if reading.value <= settings.error_threshold or t < t_last - max_step:
            break

        t_last = t
        y = bg / scale_bg
        sums.add(t, y)
        times.append(t)
        values.append(y)

        if sums.n < settings.min_points or elapsed_minutes <= min_fit_minutes:
            continue
        solution = sums.solve()
        if solution is None:
            continue
        a, b, c = solution
        corr = r_squared(np.asarray(times), np.asarray(values), a, b, c, settings.flat_series_correlation)
        if corr >= best_corr:
            best_corr = corr
            delta5 = 5 * 60 / scale_t
            best = RegressionFit(
                minutes=elapsed_minutes,
                delta_prev=-scale_bg * (a * delta5 ** 2 - b * delta5),
                delta_next=scale_bg * (a * delta5 ** 2 + b * delta5),
                acceleration=2 * a * scale_bg,
                a0=c * scale_bg,
                a1=b * scale_bg,
                a2=a * scale_bg,
                correlation=corr,
                use_high_frequency_raw=high_frequency_raw,
            )

    if best is None:
        logging.debug(f"Quadratic fit unavailable after {sums.n} points over {-t_last * scale_t / 60.0:.1f} min")
        return RegressionFit(minutes=-t_last * scale_t / 60.0 + 0.0, use_high_frequency_raw=high_frequency_raw)
    return best
