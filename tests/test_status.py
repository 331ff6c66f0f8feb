from __future__ import annotations

import pytest

from glucose_status.models import Reading, SensorType
from glucose_status.settings import PipelineSettings
from glucose_status.status import GlucoseStatusProvider

T0 = 1_700_000_000_000
MINUTE = 60_000


def _provider(now: int = T0, settings: PipelineSettings | None = None) -> GlucoseStatusProvider:
    return GlucoseStatusProvider(settings, clock=lambda: now)


def _five_minute(values, sensor=SensorType.DEXCOM_G6):
    return [Reading(timestamp=T0 - 5 * i * MINUTE, value=v, sensor=sensor) for i, v in enumerate(values)]


def test_no_history_gives_no_status():
    assert _provider().get_status([]) is None


def test_stale_history_gives_no_status():
    readings = _five_minute([100.0] * 5)
    assert _provider(now=T0 + 8 * MINUTE).get_status(readings) is None


def test_stale_history_allowed_on_request():
    readings = _five_minute([100.0] * 5)
    status = _provider(now=T0 + 60 * MINUTE).get_status(readings, allow_old_data=True)

    assert status is not None
    assert status.glucose == 100.0


def test_stale_threshold_from_settings():
    settings = PipelineSettings.from_mapping({"status": {"stale_after_minutes": 10}})
    readings = _five_minute([100.0] * 5)
    assert _provider(now=T0 + 8 * MINUTE, settings=settings).get_status(readings) is not None


def test_single_reading_gives_minimal_status():
    reading = Reading(timestamp=T0, value=123.44, sensor=SensorType.DEXCOM_G6)
    status = _provider().get_status([reading])

    assert status.glucose == 123.4
    assert status.timestamp == T0
    assert status.stability_average == 123.4
    assert status.delta == 0.0
    assert status.fit_minutes == 0.0
    assert status.a0 == 0.0
    assert status.correlation == 0.0


def test_constant_series():
    status = _provider().get_status(_five_minute([100.0] * 10))

    assert status.glucose == 100.0
    assert status.delta == 0.0
    assert status.short_avg_delta == 0.0
    assert status.long_avg_delta == 0.0
    assert status.a1 == 0.0
    assert status.a2 == 0.0
    assert status.correlation == 0.64
    assert status.stability_minutes == 45.0
    assert status.stability_average == 100.0
    assert status.use_high_frequency_raw is False


def test_linear_ramp():
    # +2 mg/dL per minute
    status = _provider().get_status(_five_minute([200.0 - 10.0 * i for i in range(10)]))

    assert status.delta == pytest.approx(10.0)
    assert status.short_avg_delta == pytest.approx(10.0)
    assert status.long_avg_delta == pytest.approx(10.0)
    assert status.a1 == pytest.approx(10.0)
    assert status.a2 == pytest.approx(0.0)
    assert status.acceleration == pytest.approx(0.0)
    assert status.delta_next == pytest.approx(10.0)
    assert status.stability_minutes < 45.0


def test_values_are_rounded():
    values = [143.27, 139.91, 137.03, 131.44, 128.58, 120.13, 118.71, 111.09, 109.52]
    status = _provider().get_status(_five_minute(values))

    assert status.glucose == round(status.glucose, 1)
    assert status.delta == round(status.delta, 2)
    assert status.correlation == round(status.correlation, 4)
    assert status.a0 == round(status.a0, 1)


def test_high_frequency_raw_window_is_fitted():
    raw = [
        Reading(timestamp=T0 - m * MINUTE, value=150 - 0.8 * m, sensor=SensorType.LIBRE_2)
        for m in range(0, 40)
    ]
    bucketed = raw[::5]
    status = _provider().get_status(bucketed, raw)

    assert status.use_high_frequency_raw is True
    assert status.a1 == pytest.approx(4.0)
    assert status.fit_minutes > 20.0


def test_standard_window_used_without_dense_raw_data():
    bucketed = _five_minute([200.0 - 10.0 * i for i in range(10)], sensor=SensorType.LIBRE_2)
    status = _provider().get_status(bucketed, bucketed)

    assert status.use_high_frequency_raw is False
    assert status.a1 == pytest.approx(10.0)


def test_status_is_deterministic():
    readings = _five_minute([143.0, 139.5, 137.0, 131.0, 128.5, 120.0, 118.0, 111.0, 109.5])
    assert _provider().get_status(readings) == _provider().get_status(readings)
