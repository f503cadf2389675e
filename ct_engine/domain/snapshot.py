"""Snapshots de métricas de CT."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class WindowKind(Enum):
    REALTIME = "realtime"
    HOUR = "hour"
    SHIFT = "shift"


@dataclass(frozen=True)
class MetricsSnapshot:
    """Métricas de un equipo para una ventana.

    Solo se conserva el snapshot actual por equipo+ventana; el histórico,
    si existe, es responsabilidad del store externo.
    """

    equipment_id: str
    window: WindowKind
    ct_equipo: Optional[float] = None  # estación a estación
    ct_proceso: Optional[float] = None  # completion a completion
    pieces_ok: int = 0
    pieces_ng: int = 0
    valid_sample_count: int = 0
    outliers_removed: int = 0
    std_dev: float = 0.0
    last_serial: Optional[str] = None
    last_observed_at: Optional[datetime] = None
    window_label: Optional[str] = None
    window_start: Optional[datetime] = None

    @property
    def pieces_total(self) -> int:
        return self.pieces_ok + self.pieces_ng


@dataclass(frozen=True)
class PulseSnapshot:
    """Pulso en tiempo real: se emite solo al detectar un completion nuevo."""

    equipment_id: str
    ct_equipo: Optional[float]
    ct_proceso: Optional[float]
    last_serial: Optional[str]
    last_observed_at: datetime
    buffer_size: int
    emitted_at: datetime

    def to_snapshot(self) -> MetricsSnapshot:
        return MetricsSnapshot(
            equipment_id=self.equipment_id,
            window=WindowKind.REALTIME,
            ct_equipo=self.ct_equipo,
            ct_proceso=self.ct_proceso,
            valid_sample_count=self.buffer_size,
            last_serial=self.last_serial,
            last_observed_at=self.last_observed_at,
            window_label=WindowKind.REALTIME.value,
        )
