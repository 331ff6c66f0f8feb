"""Boundary between the glucose status and an external dosing algorithm.

The dosing decision itself lives outside this package. Callers build an
immutable ``DosingRequest`` from a status snapshot plus other signals and hand
it to any function matching ``DosingDecisionFunction``.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Protocol

from pydantic import BaseModel, ConfigDict, Field

from .models import GlucoseStatus

STEP_WINDOWS_MINUTES = (5, 10, 15, 30, 60)


class ActivityProvider(Protocol):
    """Read-only view of movement and step-count heuristics."""

    def recent_steps(self, minutes: int) -> int:
        ...

    def phone_moved(self) -> bool:
        ...


@dataclass(frozen=True)
class ActivitySignals:
    steps_5m: int = 0
    steps_10m: int = 0
    steps_15m: int = 0
    steps_30m: int = 0
    steps_60m: int = 0
    phone_moved: bool = False

    @classmethod
    def collect(cls, provider: ActivityProvider) -> "ActivitySignals":
        counts = [int(provider.recent_steps(minutes)) for minutes in STEP_WINDOWS_MINUTES]
        return cls(*counts, phone_moved=bool(provider.phone_moved()))


class GlucoseStatusPayload(BaseModel):
    """
    Model for the glucose status as passed to the dosing algorithm.
    """
    model_config = ConfigDict(frozen=True)

    glucose: float = Field(description="Current glucose, mg/dL")
    noise: float = Field(default=0.0, description="Sensor noise")
    delta: float = Field(description="Delta, mg/dL per 5 min")
    short_avgdelta: float = Field(description="Short average delta")
    long_avgdelta: float = Field(description="Long average delta")
    date: int = Field(description="Timestamp of the newest reading, epoch ms")
    dura_ISF_minutes: float = Field(description="Stability window length")
    dura_ISF_average: float = Field(description="Stability window average")
    useFSL1minuteSmooth: bool = Field(description="Whether 1-minute raw data was fitted")
    parabola_fit_correlation: float = Field(description="R squared of the quadratic fit")
    parabola_fit_minutes: float = Field(description="Quadratic fit length")
    parabola_fit_last_delta: float = Field(description="5 minute slope into the newest reading")
    parabola_fit_next_delta: float = Field(description="5 minute slope out of the newest reading")
    parabola_fit_a0: float = Field(description="Quadratic coefficient a0")
    parabola_fit_a1: float = Field(description="Quadratic coefficient a1")
    parabola_fit_a2: float = Field(description="Quadratic coefficient a2")
    bg_acceleration: float = Field(description="Glucose acceleration")

    @classmethod
    def from_status(cls, status: GlucoseStatus, *, always_use_short_avg: bool = False) -> "GlucoseStatusPayload":
        return cls(
            glucose=status.glucose,
            noise=status.noise,
            delta=status.short_avg_delta if always_use_short_avg else status.delta,
            short_avgdelta=status.short_avg_delta,
            long_avgdelta=status.long_avg_delta,
            date=status.timestamp,
            dura_ISF_minutes=status.stability_minutes,
            dura_ISF_average=status.stability_average,
            useFSL1minuteSmooth=status.use_high_frequency_raw,
            parabola_fit_correlation=round(status.correlation, 4),
            parabola_fit_minutes=status.fit_minutes,
            parabola_fit_last_delta=round(status.delta_prev, 1),
            parabola_fit_next_delta=round(status.delta_next, 1),
            parabola_fit_a0=round(status.a0, 1),
            parabola_fit_a1=round(status.a1, 2),
            parabola_fit_a2=round(status.a2, 2),
            bg_acceleration=round(status.acceleration, 2),
        )


class DosingRequest(BaseModel):
    """
    Model for everything handed to the dosing algorithm in one invocation.
    """
    model_config = ConfigDict(frozen=True)

    glucose_status: GlucoseStatusPayload
    profile: Dict[str, Any] = Field(default_factory=dict, description="Profile and tuning values")
    activity: Dict[str, Any] = Field(default_factory=dict, description="Step counts and movement")
    microbolus_allowed: bool = Field(default=False, description="Whether SMBs may be issued")
    flat_bgs_detected: bool = Field(default=False, description="Whether the sensor reports a flat line")
    current_time: int = Field(description="Invocation time, epoch ms")


class DosingRequestBuilder:
    """Collects request parts and produces an immutable ``DosingRequest``."""

    def __init__(self, current_time: int) -> None:
        self._current_time = current_time
        self._status: Optional[GlucoseStatusPayload] = None
        self._profile: Dict[str, Any] = {}
        self._activity: Dict[str, Any] = {}
        self._microbolus_allowed = False
        self._flat_bgs_detected = False

    def with_status(self, status: GlucoseStatus, *, always_use_short_avg: bool = False) -> "DosingRequestBuilder":
        self._status = GlucoseStatusPayload.from_status(status, always_use_short_avg=always_use_short_avg)
        return self

    def with_profile(self, values: Mapping[str, Any]) -> "DosingRequestBuilder":
        self._profile.update(values)
        return self

    def with_activity(self, signals: ActivitySignals) -> "DosingRequestBuilder":
        self._activity = {
            "recentSteps5Minutes": signals.steps_5m,
            "recentSteps10Minutes": signals.steps_10m,
            "recentSteps15Minutes": signals.steps_15m,
            "recentSteps30Minutes": signals.steps_30m,
            "recentSteps60Minutes": signals.steps_60m,
            "phone_moved": signals.phone_moved,
        }
        return self

    def with_flags(self, *, microbolus_allowed: bool = False, flat_bgs_detected: bool = False) -> "DosingRequestBuilder":
        self._microbolus_allowed = microbolus_allowed
        self._flat_bgs_detected = flat_bgs_detected
        return self

    def build(self) -> DosingRequest:
        if self._status is None:
            raise ValueError("A glucose status is required to build a dosing request")
        return DosingRequest(
            glucose_status=self._status,
            profile=dict(self._profile),
            activity=dict(self._activity),
            microbolus_allowed=self._microbolus_allowed,
            flat_bgs_detected=self._flat_bgs_detected,
            current_time=self._current_time,
        )


class DosingDecisionFunction(Protocol):
    def __call__(self, request: DosingRequest) -> Mapping[str, Any]:
        ...


def run_decision(decide: DosingDecisionFunction, request: DosingRequest) -> Mapping[str, Any]:
    """Invoke the external decision function with logging on both sides."""

    logging.debug(f"Glucose status: {request.glucose_status.model_dump_json()}")
    logging.debug(f"Profile: {request.profile}")
    logging.debug(f"Activity: {request.activity}")
    result = decide(request)
    logging.debug(f"Dosing result: {dict(result)}")
    return result
