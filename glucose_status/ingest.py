"""Merge incoming CGM samples and therapy markers into the reading store."""
from __future__ import annotations

import logging
from dataclasses import replace
from typing import Iterable, Optional

from .models import Calibration, IngestResult, Reading, TherapyEvent, TherapyEventType
from .payloads import IngestBatch, convert_calibration, convert_glucose_value
from .store import ReadingStore, WriteBatch


def merge_reading(incoming: Reading, current: Optional[Reading]) -> Reading:
    """Incoming content, keeping what the store owns on an existing row.

    The stored validity flag survives (a user may have deleted the row), the
    stored annotation id is kept when the incoming one is missing, and the
    stored smoothed value is kept only while the sensor value is unchanged.
    """

    if current is None:
        return incoming
    keep_smoothed = current.smoothed is not None and current.value == incoming.value
    return replace(
        incoming,
        is_valid=current.is_valid,
        nightscout_id=incoming.nightscout_id if incoming.nightscout_id is not None else current.nightscout_id,
        smoothed=current.smoothed if keep_smoothed else incoming.smoothed,
    )


def reconcile(
    store: ReadingStore,
    readings: Iterable[Reading],
    calibrations: Iterable[Calibration] = (),
    sensor_insertion_time: Optional[int] = None,
) -> tuple[WriteBatch, IngestResult]:
    """Stage the writes needed to bring ``store`` in line with one batch."""

    result = IngestResult()
    staged: dict[tuple, Reading] = {}

    for incoming in readings:
        current = staged.get(incoming.key) or store.find_reading(incoming.timestamp, incoming.sensor)
        merged = merge_reading(incoming, current)
        if current is None:
            staged[merged.key] = merged
            result.inserted.append(merged)
        elif not current.content_equals(merged):
            staged[merged.key] = merged
            result.updated.append(merged)
        elif current.nightscout_id is None and incoming.nightscout_id is not None:
            patched = replace(current, nightscout_id=incoming.nightscout_id)
            staged[patched.key] = patched
            result.updated_annotation.append(patched)

    events: dict[tuple[TherapyEventType, int], TherapyEvent] = {}

    def _stage_event(event: TherapyEvent) -> bool:
        if event.key in events or store.find_event(event.type, event.timestamp) is not None:
            return False
        events[event.key] = event
        return True

    for calibration in calibrations:
        event = TherapyEvent(
            type=TherapyEventType.FINGER_STICK_BG_VALUE,
            timestamp=calibration.timestamp,
            glucose=calibration.value,
            glucose_unit=calibration.glucose_unit,
        )
        if _stage_event(event):
            result.calibrations_inserted.append(event)

    if sensor_insertion_time is not None:
        event = TherapyEvent(type=TherapyEventType.SENSOR_CHANGE, timestamp=sensor_insertion_time)
        if _stage_event(event):
            result.sensor_insertions_inserted.append(event)

    return WriteBatch(readings=tuple(staged.values()), events=tuple(events.values())), result


def ingest_batch(store: ReadingStore, batch: IngestBatch) -> IngestResult:
    """Reconcile a source delivery and write it to the store in one step."""

    write, result = reconcile(
        store,
        (convert_glucose_value(value) for value in batch.glucoseValues),
        (convert_calibration(calibration) for calibration in batch.calibrations),
        batch.sensorInsertionTime,
    )
    store.apply(write)
    if not write.is_empty:
        logging.info(
            f"Ingested CGM batch: inserted={len(result.inserted)} updated={len(result.updated)} "
            f"annotated={len(result.updated_annotation)} calibrations={len(result.calibrations_inserted)} "
            f"sensor_changes={len(result.sensor_insertions_inserted)}"
        )
    return result
