"""
Incoming CGM source payload models.
"""
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .models import Calibration, GlucoseUnit, Reading, SensorType


class IncomingGlucoseValue(BaseModel):
    """
    Model for a glucose value delivered by a CGM source.
    """
    model_config = ConfigDict(frozen=True)

    timestamp: int = Field(description="Epoch milliseconds")
    value: float = Field(description="Sensor glucose in mg/dL")
    raw: Optional[float] = Field(default=None, description="Previously smoothed value, if the source carries one")
    noise: Optional[float] = Field(default=None, description="Sensor noise")
    trendArrow: str = Field(default="NONE", description="Trend arrow")
    sourceSensor: SensorType = Field(default=SensorType.UNKNOWN, description="Source sensor")
    isValid: bool = Field(default=True, description="Validity flag")
    utcOffset: int = Field(default=0, description="UTC offset in milliseconds")
    nightscoutId: Optional[str] = Field(default=None, description="External annotation id")


class IncomingCalibration(BaseModel):
    """
    Model for a finger-stick calibration delivered with a CGM batch.
    """
    model_config = ConfigDict(frozen=True)

    timestamp: int = Field(description="Epoch milliseconds")
    value: float = Field(description="Calibration glucose")
    glucoseUnit: GlucoseUnit = Field(default=GlucoseUnit.MGDL, description="Unit of value")


class IngestBatch(BaseModel):
    """
    Model for one CGM source delivery.
    """
    model_config = ConfigDict(frozen=True)

    glucoseValues: List[IncomingGlucoseValue] = Field(default_factory=list, description="Glucose values")
    calibrations: List[IncomingCalibration] = Field(default_factory=list, description="Calibrations")
    sensorInsertionTime: Optional[int] = Field(default=None, description="Sensor insertion time, epoch ms")


def convert_glucose_value(payload: IncomingGlucoseValue) -> Reading:
    """Convert an incoming payload into a store ``Reading``."""

    return Reading(
        timestamp=payload.timestamp,
        value=payload.value,
        sensor=payload.sourceSensor,
        smoothed=payload.raw,
        is_valid=payload.isValid,
        noise=payload.noise,
        trend_arrow=payload.trendArrow,
        utc_offset=payload.utcOffset,
        nightscout_id=payload.nightscoutId,
    )


def convert_calibration(payload: IncomingCalibration) -> Calibration:
    return Calibration(timestamp=payload.timestamp, value=payload.value, glucose_unit=payload.glucoseUnit)
