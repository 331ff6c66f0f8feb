from __future__ import annotations

from glucose_status.ingest import ingest_batch, merge_reading, reconcile
from glucose_status.models import Calibration, GlucoseUnit, Reading, SensorType, TherapyEventType
from glucose_status.payloads import IncomingCalibration, IncomingGlucoseValue, IngestBatch
from glucose_status.store import InMemoryReadingStore

T0 = 1_700_000_000_000
MINUTE = 60_000


def _value(minutes_ago: int, value: float, **kwargs) -> IncomingGlucoseValue:
    kwargs.setdefault("sourceSensor", SensorType.DEXCOM_G6)
    return IncomingGlucoseValue(timestamp=T0 - minutes_ago * MINUTE, value=value, **kwargs)


def _batch(*values: IncomingGlucoseValue, **kwargs) -> IngestBatch:
    return IngestBatch(glucoseValues=list(values), **kwargs)


def test_new_values_are_inserted():
    store = InMemoryReadingStore()
    result = ingest_batch(store, _batch(_value(0, 100.0), _value(5, 98.0)))

    assert len(result.inserted) == 2
    assert not result.updated
    assert len(store) == 2
    assert store.write_count == 1


def test_reingesting_same_batch_writes_nothing():
    store = InMemoryReadingStore()
    batch = _batch(_value(0, 100.0), _value(5, 98.0, nightscoutId="abc"))
    ingest_batch(store, batch)

    result = ingest_batch(store, batch)

    assert result.is_empty
    assert store.write_count == 1


def test_changed_value_is_updated():
    store = InMemoryReadingStore()
    ingest_batch(store, _batch(_value(0, 100.0)))

    result = ingest_batch(store, _batch(_value(0, 104.0)))

    assert [r.value for r in result.updated] == [104.0]
    assert store.find_reading(T0, SensorType.DEXCOM_G6).value == 104.0


def test_soft_delete_survives_update():
    store = InMemoryReadingStore.from_readings(
        [Reading(timestamp=T0, value=100.0, sensor=SensorType.DEXCOM_G6, is_valid=False, nightscout_id="ns-1")]
    )

    ingest_batch(store, _batch(_value(0, 101.0)))

    stored = store.find_reading(T0, SensorType.DEXCOM_G6)
    assert stored.value == 101.0
    assert stored.is_valid is False
    assert stored.nightscout_id == "ns-1"


def test_annotation_id_patch_only():
    store = InMemoryReadingStore()
    ingest_batch(store, _batch(_value(0, 100.0)))

    result = ingest_batch(store, _batch(_value(0, 100.0, nightscoutId="ns-9")))

    assert not result.updated
    assert [r.nightscout_id for r in result.updated_annotation] == ["ns-9"]
    assert store.find_reading(T0, SensorType.DEXCOM_G6).nightscout_id == "ns-9"


def test_stored_smoothed_value_is_kept():
    current = Reading(timestamp=T0, value=100.0, sensor=SensorType.LIBRE_2, smoothed=99.0)
    incoming = Reading(timestamp=T0, value=100.0, sensor=SensorType.LIBRE_2)

    assert merge_reading(incoming, current).smoothed == 99.0
    assert merge_reading(incoming, None) is incoming


def test_changed_value_clears_stored_smoothed_value():
    current = Reading(timestamp=T0, value=100.0, sensor=SensorType.LIBRE_2, smoothed=99.0)
    corrected = Reading(timestamp=T0, value=180.0, sensor=SensorType.LIBRE_2)

    merged = merge_reading(corrected, current)

    assert merged.smoothed is None
    assert merged.recalculated == 180.0


def test_same_timestamp_different_sensor_is_a_new_row():
    store = InMemoryReadingStore()
    ingest_batch(store, _batch(_value(0, 100.0)))

    result = ingest_batch(store, _batch(_value(0, 100.0, sourceSensor=SensorType.LIBRE_2)))

    assert len(result.inserted) == 1
    assert len(store) == 2


def test_duplicate_within_batch_keeps_last():
    store = InMemoryReadingStore()
    write, result = reconcile(
        store,
        [
            Reading(timestamp=T0, value=100.0, sensor=SensorType.DEXCOM_G6),
            Reading(timestamp=T0, value=102.0, sensor=SensorType.DEXCOM_G6),
        ],
    )

    assert [r.value for r in write.readings] == [102.0]
    assert len(result.inserted) == 1
    assert len(result.updated) == 1


def test_calibrations_and_sensor_change_are_deduplicated():
    store = InMemoryReadingStore()
    batch = _batch(
        calibrations=[
            IncomingCalibration(timestamp=T0, value=5.5, glucoseUnit=GlucoseUnit.MMOL),
            IncomingCalibration(timestamp=T0, value=5.5, glucoseUnit=GlucoseUnit.MMOL),
        ],
        sensorInsertionTime=T0 - 60 * MINUTE,
    )

    first = ingest_batch(store, batch)
    second = ingest_batch(store, batch)

    assert len(first.calibrations_inserted) == 1
    assert first.calibrations_inserted[0].glucose_unit == GlucoseUnit.MMOL
    assert len(first.sensor_insertions_inserted) == 1
    assert second.is_empty
    assert [e.type for e in store.events()] == [TherapyEventType.SENSOR_CHANGE, TherapyEventType.FINGER_STICK_BG_VALUE]


def test_reconcile_does_not_touch_store():
    store = InMemoryReadingStore()
    write, _ = reconcile(
        store,
        [Reading(timestamp=T0, value=100.0)],
        [Calibration(timestamp=T0, value=100.0)],
    )

    assert len(write.readings) == 1
    assert len(write.events) == 1
    assert len(store) == 0
    assert store.write_count == 0
