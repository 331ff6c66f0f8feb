from __future__ import annotations

from glucose_status.models import Reading, SensorType
from glucose_status.store import InMemoryReadingStore
from glucose_status.windows import StoreWindowSource, bucket_readings

T0 = 1_700_000_000_000
MINUTE = 60_000


def _stream(minutes_ago, sensor=SensorType.LIBRE_2, **kwargs):
    return [Reading(timestamp=T0 - m * MINUTE, value=100.0 + m, sensor=sensor, **kwargs) for m in minutes_ago]


def test_high_frequency_stream_thinned_to_five_minutes():
    bucketed = bucket_readings(_stream(range(0, 21)))
    assert [(T0 - r.timestamp) // MINUTE for r in bucketed] == [0, 5, 10, 15, 20]


def test_bucketing_tolerates_jitter():
    readings = [Reading(timestamp=T0 - int(m * MINUTE), value=100.0, sensor=SensorType.LIBRE_2) for m in (0, 1, 2, 3, 4.6, 5.5, 9.2, 9.8)]
    bucketed = bucket_readings(readings)
    assert [r.timestamp for r in bucketed] == [T0, T0 - int(4.6 * MINUTE), T0 - int(9.2 * MINUTE)]


def test_standard_stream_passes_through():
    readings = _stream([0, 5, 10], sensor=SensorType.DEXCOM_G6)
    assert bucket_readings(readings) == readings


def test_smoothed_value_replaces_recalculated():
    readings = [Reading(timestamp=T0, value=100.0, sensor=SensorType.LIBRE_2, smoothed=97.0)]
    assert bucket_readings(readings)[0].recalculated == 97.0


def test_store_windows_cover_lookback_of_newest_sensor():
    readings = _stream(range(0, 70)) + _stream([2, 7], sensor=SensorType.DEXCOM_G6)
    readings += _stream([3], is_valid=False)
    store = InMemoryReadingStore.from_readings(readings)

    windows = StoreWindowSource(store).windows()

    assert windows.raw[0].timestamp == T0
    assert windows.raw[-1].timestamp == T0 - 50 * MINUTE
    assert all(r.sensor == SensorType.LIBRE_2 for r in windows.raw)
    assert len(windows.bucketed) == 11


def test_store_windows_empty_store():
    windows = StoreWindowSource(InMemoryReadingStore()).windows()
    assert windows.bucketed == ()
    assert windows.raw == ()
