"""Pull-based pipeline: ingest, smooth and assemble glucose status."""
from __future__ import annotations

import logging
from typing import Optional

from .ingest import ingest_batch
from .models import GlucoseStatus, IngestResult, Reading, SensorType
from .payloads import IngestBatch
from .settings import PipelineSettings
from .smoothing import smooth
from .status import Clock, GlucoseStatusProvider, system_clock
from .store import ReadingStore, WriteBatch
from .windows import StoreWindowSource

_MINUTE_MS = 60_000


class GlucosePipeline:
    """Runs each stage against a reading store on demand."""

    def __init__(
        self,
        store: ReadingStore,
        *,
        settings: PipelineSettings | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._store = store
        self._settings = settings or PipelineSettings()
        self._clock = clock or system_clock
        self._provider = GlucoseStatusProvider(self._settings, self._clock)
        self._windows = StoreWindowSource(store, self._settings.status)

    @property
    def settings(self) -> PipelineSettings:
        return self._settings

    def ingest(self, batch: IngestBatch) -> IngestResult:
        """Merge ``batch`` into the store, then smooth every stream it touched."""

        result = ingest_batch(self._store, batch)
        sensors = {value.sourceSensor for value in batch.glucoseValues}
        result.smoothed.extend(self.smooth(sensors))
        return result

    def smooth(self, sensors: set[SensorType]) -> list[Reading]:
        """Run one smoothing cycle per sensor stream and persist the changed tail."""

        smoothing = self._settings.smoothing
        changed: list[Reading] = []
        for sensor in sorted(sensors, key=lambda s: s.value):
            latest = self._store.latest_reading(sensor)
            if latest is None:
                continue
            start = latest.timestamp - int(smoothing.lookback_minutes * _MINUTE_MS)
            stream = self._store.readings_between(start, latest.timestamp, sensor)
            window = [reading for reading in reversed(stream) if reading.is_valid]
            outcome = smooth(window, smoothing)
            if outcome.applied:
                logging.debug(
                    f"Smoothed {sensor.value}: window={outcome.window_size} "
                    f"insufficient={outcome.insufficient_data} changed={len(outcome.changed)}"
                )
            changed.extend(outcome.changed)
        self._store.apply(WriteBatch(readings=tuple(changed)))
        return changed

    def status(self, *, allow_old_data: bool = False) -> Optional[GlucoseStatus]:
        windows = self._windows.windows()
        return self._provider.get_status(windows.bucketed, windows.raw, allow_old_data=allow_old_data)
