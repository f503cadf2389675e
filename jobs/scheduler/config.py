"""Scheduler configuration."""

from __future__ import annotations

from dataclasses import dataclass

from common.config import Settings


@dataclass(frozen=True)
class SchedulerConfig:
    """Configuración de las cadencias del scheduler."""
    calc_interval_seconds: float
    extract_interval_seconds: float
    equipment_timeout_seconds: float
    sigma_threshold: float
    feed_timeout_seconds: float
    feed_retry_attempts: int
    status_interval_seconds: float = 300.0
    extract: bool = True
    with_pulse: bool = False
    once: bool = False

    @classmethod
    def from_settings(cls, settings: Settings, **overrides) -> "SchedulerConfig":
        values = dict(
            calc_interval_seconds=settings.calc_interval_seconds,
            extract_interval_seconds=settings.extract_interval_seconds,
            equipment_timeout_seconds=settings.equipment_timeout_seconds,
            sigma_threshold=settings.sigma_threshold,
            feed_timeout_seconds=settings.feed_timeout_seconds,
            feed_retry_attempts=settings.feed_retry_attempts,
        )
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
