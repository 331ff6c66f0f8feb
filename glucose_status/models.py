"""Core data models for CGM readings and glucose status snapshots."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional


class SensorType(str, Enum):
    """Source sensor of a reading."""

    UNKNOWN = "Unknown"
    DEXCOM_G5 = "DexcomG5"
    DEXCOM_G6 = "DexcomG6"
    DEXCOM_G7 = "DexcomG7"
    MEDTRONIC = "Medtronic"
    EVERSENSE = "Eversense"
    LIBRE_1 = "Libre1"
    LIBRE_2 = "Libre2"
    LIBRE_2_NATIVE = "Libre2Native"
    LIBRE_3 = "Libre3"

    @property
    def is_high_frequency(self) -> bool:
        """True for sensors delivering roughly one reading per minute."""

        return self in _HIGH_FREQUENCY_SENSORS


_HIGH_FREQUENCY_SENSORS = frozenset(
    {SensorType.LIBRE_1, SensorType.LIBRE_2, SensorType.LIBRE_2_NATIVE, SensorType.LIBRE_3}
)


@dataclass(frozen=True)
class Reading:
    """One CGM sample as held by the reading store.

    ``value`` is what the sensor reported, ``recalculated`` the display value
    used for trend math and ``smoothed`` the denoised value written back by the
    smoothing engine.
    """

    timestamp: int
    value: float
    sensor: SensorType = SensorType.UNKNOWN
    recalculated: Optional[float] = None
    smoothed: Optional[float] = None
    filled_gap: bool = False
    is_valid: bool = True
    noise: Optional[float] = None
    trend_arrow: str = "NONE"
    utc_offset: int = 0
    nightscout_id: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "value", float(self.value))
        if self.recalculated is None:
            object.__setattr__(self, "recalculated", self.value)

    @property
    def key(self) -> tuple[int, SensorType]:
        return (self.timestamp, self.sensor)

    def content_equals(self, other: "Reading") -> bool:
        """Compare everything except the external annotation id."""

        return (
            self.timestamp == other.timestamp
            and self.utc_offset == other.utc_offset
            and self.value == other.value
            and self.recalculated == other.recalculated
            and self.smoothed == other.smoothed
            and self.trend_arrow == other.trend_arrow
            and self.noise == other.noise
            and self.sensor == other.sensor
            and self.filled_gap == other.filled_gap
            and self.is_valid == other.is_valid
        )

    def with_smoothed(self, smoothed: float) -> "Reading":
        return replace(self, smoothed=smoothed)


class TherapyEventType(str, Enum):
    FINGER_STICK_BG_VALUE = "FINGER_STICK_BG_VALUE"
    SENSOR_CHANGE = "SENSOR_CHANGE"


class GlucoseUnit(str, Enum):
    MGDL = "mg/dl"
    MMOL = "mmol"


@dataclass(frozen=True)
class TherapyEvent:
    """Calibration or sensor-insertion marker."""

    type: TherapyEventType
    timestamp: int
    glucose: Optional[float] = None
    glucose_unit: GlucoseUnit = GlucoseUnit.MGDL

    @property
    def key(self) -> tuple[TherapyEventType, int]:
        return (self.type, self.timestamp)


@dataclass(frozen=True)
class Calibration:
    timestamp: int
    value: float
    glucose_unit: GlucoseUnit = GlucoseUnit.MGDL


@dataclass
class IngestResult:
    """What a single ingestion batch changed in the store."""

    inserted: list[Reading] = field(default_factory=list)
    updated: list[Reading] = field(default_factory=list)
    updated_annotation: list[Reading] = field(default_factory=list)
    smoothed: list[Reading] = field(default_factory=list)
    calibrations_inserted: list[TherapyEvent] = field(default_factory=list)
    sensor_insertions_inserted: list[TherapyEvent] = field(default_factory=list)

    def all(self) -> list[Reading]:
        return [*self.inserted, *self.updated]

    @property
    def is_empty(self) -> bool:
        return not (
            self.inserted
            or self.updated
            or self.updated_annotation
            or self.smoothed
            or self.calibrations_inserted
            or self.sensor_insertions_inserted
        )


@dataclass(frozen=True)
class DeltaSummary:
    """Average rates of change, all in mg/dL per 5 minutes."""

    delta: float = 0.0
    short_avg_delta: float = 0.0
    long_avg_delta: float = 0.0


@dataclass(frozen=True)
class StabilityWindow:
    """How long glucose stayed inside the band, and its mean over that run."""

    minutes: float
    average: float


@dataclass(frozen=True)
class RegressionFit:
    """Best quadratic fit found by the backward scan.

    Coefficients are in mg/dL with time measured in 5 minute units relative to
    the newest sample, i.e. ``bg(t) = a2*t^2 + a1*t + a0``.
    """

    minutes: float = 0.0
    delta_prev: float = 0.0
    delta_next: float = 0.0
    acceleration: float = 0.0
    a0: float = 0.0
    a1: float = 0.0
    a2: float = 0.0
    correlation: float = 0.0
    use_high_frequency_raw: bool = False


def _round(value: float, digits: int) -> float:
    rounded = round(value, digits)
    return rounded + 0.0  # normalise -0.0


@dataclass(frozen=True)
class GlucoseStatus:
    """Immutable snapshot handed to the dosing algorithm."""

    glucose: float
    timestamp: int
    noise: float = 0.0
    delta: float = 0.0
    short_avg_delta: float = 0.0
    long_avg_delta: float = 0.0
    stability_minutes: float = 0.0
    stability_average: float = 0.0
    use_high_frequency_raw: bool = False
    fit_minutes: float = 0.0
    delta_prev: float = 0.0
    delta_next: float = 0.0
    acceleration: float = 0.0
    a0: float = 0.0
    a1: float = 0.0
    a2: float = 0.0
    correlation: float = 0.0

    def as_rounded(self) -> "GlucoseStatus":
        return replace(
            self,
            glucose=_round(self.glucose, 1),
            noise=_round(self.noise, 2),
            delta=_round(self.delta, 2),
            short_avg_delta=_round(self.short_avg_delta, 2),
            long_avg_delta=_round(self.long_avg_delta, 2),
            stability_minutes=_round(self.stability_minutes, 1),
            stability_average=_round(self.stability_average, 1),
            fit_minutes=_round(self.fit_minutes, 1),
            delta_prev=_round(self.delta_prev, 2),
            delta_next=_round(self.delta_next, 2),
            acceleration=_round(self.acceleration, 2),
            a0=_round(self.a0, 1),
            a1=_round(self.a1, 2),
            a2=_round(self.a2, 2),
            correlation=_round(self.correlation, 4),
        )

    def describe(self) -> str:
        return (
            f"Glucose: {self.glucose:.1f} mg/dl "
            f"Noise: {self.noise:.1f} "
            f"Delta: {self.delta:.1f} mg/dl "
            f"Short avg. delta: {self.short_avg_delta:.2f} mg/dl "
            f"Long avg. delta: {self.long_avg_delta:.2f} mg/dl "
            f"Range length: {self.stability_minutes:.1f} min "
            f"Range average: {self.stability_average:.1f} mg/dl "
            f"1-minute raw fit: {self.use_high_frequency_raw} "
            f"Parabola length: {self.fit_minutes:.1f} min "
            f"Parabola last delta: {self.delta_prev:.2f} mg/dl "
            f"Parabola next delta: {self.delta_next:.2f} mg/dl "
            f"Fit correlation: {self.correlation:.4f} "
            f"Acceleration: {self.acceleration:.2f} mg/dl/(5m)^2 "
            f"Parabola a0: {self.a0:.1f} a1: {self.a1:.2f} a2: {self.a2:.2f}"
        )
