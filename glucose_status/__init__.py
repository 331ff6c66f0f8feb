"""CGM glucose status pipeline."""

from .engine import GlucosePipeline
from .models import (
    Calibration,
    DeltaSummary,
    GlucoseStatus,
    GlucoseUnit,
    IngestResult,
    Reading,
    RegressionFit,
    SensorType,
    StabilityWindow,
    TherapyEvent,
    TherapyEventType,
)
from .payloads import IncomingCalibration, IncomingGlucoseValue, IngestBatch
from .settings import PipelineSettings
from .status import GlucoseStatusProvider
from .store import InMemoryReadingStore, ReadingStore, WriteBatch

__all__ = [
    "Calibration",
    "DeltaSummary",
    "GlucosePipeline",
    "GlucoseStatus",
    "GlucoseStatusProvider",
    "GlucoseUnit",
    "IncomingCalibration",
    "IncomingGlucoseValue",
    "IngestBatch",
    "IngestResult",
    "InMemoryReadingStore",
    "PipelineSettings",
    "Reading",
    "ReadingStore",
    "RegressionFit",
    "SensorType",
    "StabilityWindow",
    "TherapyEvent",
    "TherapyEventType",
    "WriteBatch",
]
