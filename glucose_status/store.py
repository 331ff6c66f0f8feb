"""Reading store contract and an in-memory implementation."""
from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional, Protocol, Sequence, Tuple

import pandas as pd

from .frames import readings_to_frame
from .models import Reading, SensorType, TherapyEvent, TherapyEventType


@dataclass(frozen=True)
class WriteBatch:
    """Changes staged by one ingestion or smoothing cycle."""

    readings: Tuple[Reading, ...] = ()
    events: Tuple[TherapyEvent, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.readings and not self.events


class ReadingStore(Protocol):
    """Persistence contract used by ingest, smoothing and status assembly."""

    def find_reading(self, timestamp: int, sensor: SensorType) -> Optional[Reading]:
        ...

    def readings_between(
        self, start: int, end: int, sensor: Optional[SensorType] = None
    ) -> Sequence[Reading]:
        """Return readings with ``start <= timestamp <= end``, oldest first."""
        ...

    def latest_reading(self, sensor: Optional[SensorType] = None) -> Optional[Reading]:
        ...

    def find_event(self, event_type: TherapyEventType, timestamp: int) -> Optional[TherapyEvent]:
        ...

    def apply(self, batch: WriteBatch) -> None:
        """Upsert readings by (timestamp, sensor) and insert events, all or nothing."""
        ...


@dataclass
class InMemoryReadingStore:
    """Dictionary-backed store keyed by (timestamp, sensor)."""

    _readings: Dict[Tuple[int, SensorType], Reading] = field(default_factory=dict)
    _events: Dict[Tuple[TherapyEventType, int], TherapyEvent] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)
    write_count: int = 0

    @classmethod
    def from_readings(cls, readings: Iterable[Reading]) -> "InMemoryReadingStore":
        store = cls()
        store.apply(WriteBatch(readings=tuple(readings)))
        store.write_count = 0
        return store

    def find_reading(self, timestamp: int, sensor: SensorType) -> Optional[Reading]:
        return self._readings.get((timestamp, sensor))

    def readings_between(
        self, start: int, end: int, sensor: Optional[SensorType] = None
    ) -> list[Reading]:
        selected = [
            reading
            for reading in self._readings.values()
            if start <= reading.timestamp <= end and (sensor is None or reading.sensor == sensor)
        ]
        return sorted(selected, key=lambda r: r.timestamp)

    def latest_reading(self, sensor: Optional[SensorType] = None) -> Optional[Reading]:
        candidates = [r for r in self._readings.values() if sensor is None or r.sensor == sensor]
        if not candidates:
            return None
        return max(candidates, key=lambda r: r.timestamp)

    def find_event(self, event_type: TherapyEventType, timestamp: int) -> Optional[TherapyEvent]:
        return self._events.get((event_type, timestamp))

    def events(self) -> list[TherapyEvent]:
        return sorted(self._events.values(), key=lambda e: (e.timestamp, e.type.value))

    def apply(self, batch: WriteBatch) -> None:
        if batch.is_empty:
            return
        with self._lock:
            readings = dict(self._readings)
            events = dict(self._events)
            for reading in batch.readings:
                readings[reading.key] = reading
            for event in batch.events:
                events.setdefault(event.key, event)
            self._readings = readings
            self._events = events
            self.write_count += 1

    def __len__(self) -> int:
        return len(self._readings)

    def to_frame(self) -> pd.DataFrame:
        return readings_to_frame(self._readings.values())
