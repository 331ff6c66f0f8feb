"""Tunable constants for the glucose status pipeline."""
from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from typing import Any, Mapping


@dataclass(frozen=True)
class SmoothingSettings:
    """Double-exponential smoothing of high-frequency sensor streams."""

    window_size: int = 45
    update_window: int = 10
    min_window: int = 4
    lookback_minutes: float = 125.0
    max_cadence_minutes: float = 1.5
    max_gap_minutes: float = 2.5
    first_order_alpha: float = 0.5
    second_order_alpha: float = 0.4
    # Damping of the second-order trend; 1.0 reduces it to a plain first difference.
    second_order_beta: float = 1.0
    first_order_weight: float = 0.4
    error_threshold: float = 39.0
    floor: float = 40.0

    def __post_init__(self) -> None:
        if self.window_size < 0:
            raise ValueError("window_size must be >= 0")
        if self.update_window < 0:
            raise ValueError("update_window must be >= 0")
        if self.min_window < 2:
            raise ValueError("min_window must be >= 2")
        for name in ("first_order_alpha", "second_order_alpha", "second_order_beta", "first_order_weight"):
            if not 0.0 <= getattr(self, name) <= 1.0:
                raise ValueError(f"{name} must be within [0, 1]")


@dataclass(frozen=True)
class DeltaSettings:
    short_window: tuple[float, float] = (2.5, 17.5)
    last_window: tuple[float, float] = (2.5, 7.5)
    long_window: tuple[float, float] = (17.5, 42.5)
    error_threshold: float = 39.0


@dataclass(frozen=True)
class StabilitySettings:
    band: float = 0.05
    max_gap_minutes: float = 13.0
    error_threshold: float = 39.0


@dataclass(frozen=True)
class RegressionSettings:
    """Adaptive quadratic fit over the recent history."""

    max_lookback_minutes: float = 47.5
    max_gap_minutes: float = 7.5
    high_frequency_cadence_minutes: float = 3.0
    min_fit_minutes_high_frequency: float = 20.0
    min_fit_minutes_standard: float = 15.0
    min_points: int = 4
    scale_time_seconds: float = 300.0
    scale_bg: float = 50.0
    flat_series_correlation: float = 0.64
    error_threshold: float = 39.0

    def __post_init__(self) -> None:
        if self.min_points < 3:
            raise ValueError("min_points must be >= 3 for a quadratic fit")
        if self.scale_time_seconds <= 0 or self.scale_bg <= 0:
            raise ValueError("scale factors must be positive")


@dataclass(frozen=True)
class StatusSettings:
    stale_after_minutes: float = 7.0
    window_lookback_minutes: float = 50.0
    bucket_minutes: float = 5.0
    bucket_tolerance_minutes: float = 0.5


@dataclass(frozen=True)
class PipelineSettings:
    """All pipeline settings grouped by component."""

    smoothing: SmoothingSettings = field(default_factory=SmoothingSettings)
    deltas: DeltaSettings = field(default_factory=DeltaSettings)
    stability: StabilitySettings = field(default_factory=StabilitySettings)
    regression: RegressionSettings = field(default_factory=RegressionSettings)
    status: StatusSettings = field(default_factory=StatusSettings)

    @classmethod
    def from_mapping(cls, overrides: Mapping[str, Mapping[str, Any]] | None = None) -> "PipelineSettings":
        """Build settings from ``{"section": {"key": value}}`` overrides.

        Keys not given fall back to the defaults. Unknown sections or keys
        raise ``ValueError``.
        """

        settings = cls()
        if not overrides:
            return settings
        sections = {f.name for f in fields(cls)}
        updates: dict[str, Any] = {}
        for section, values in overrides.items():
            if section not in sections:
                raise ValueError(f"Unknown settings section '{section}'")
            current = getattr(settings, section)
            known = {f.name for f in fields(current)}
            unknown = set(values) - known
            if unknown:
                raise ValueError(f"Unknown {section} settings: {', '.join(sorted(unknown))}")
            updates[section] = replace(current, **dict(values))
        return replace(settings, **updates)
