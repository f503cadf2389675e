"""Agregador de ventana (última hora / turno actual).

Convierte el conjunto ordenado de escaneos de una ventana en un
MetricsSnapshot:

  - Serie de proceso: deltas BCMP -> BCMP (siempre, cualquier tipo de equipo).
  - Serie de equipo: PAIRED_STAGE -> duraciones BREQ -> BCMP, con fallback a
    la serie de proceso si no sobrevive ningún par; SINGLE_STAGE -> la
    serie de proceso.

Ambas series pasan por el filtro ±2σ de forma independiente.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional, Sequence

from ..domain.classification import is_completion, is_ng, is_ok
from ..domain.scan_event import EquipmentType, ScanEvent
from ..domain.snapshot import MetricsSnapshot, WindowKind
from .outlier_filter import DEFAULT_SIGMA_THRESHOLD, filter_outliers
from .pairing import WINDOW_MAX_DURATION_SECONDS, consecutive_completion_deltas, paired_durations

logger = logging.getLogger(__name__)


class WindowAggregator:
    def __init__(
        self,
        sigma_threshold: float = DEFAULT_SIGMA_THRESHOLD,
        max_duration: float = WINDOW_MAX_DURATION_SECONDS,
    ) -> None:
        self._sigma = sigma_threshold
        self._max_duration = max_duration

    def aggregate(
        self,
        equipment_id: str,
        window_events: Sequence[ScanEvent],
        equipment_type: EquipmentType,
        window: WindowKind = WindowKind.HOUR,
        window_label: Optional[str] = None,
        window_start: Optional[datetime] = None,
    ) -> MetricsSnapshot:
        process_series = consecutive_completion_deltas(window_events, self._max_duration)

        if equipment_type.is_paired:
            equipment_series = paired_durations(equipment_type, window_events, self._max_duration)
            if not equipment_series:
                # Sin pares válidos (p.ej. faltan BREQ): CT de equipo = CT de proceso
                equipment_series = process_series
        else:
            equipment_series = process_series

        equipo = filter_outliers(equipment_series, self._sigma)
        proceso = filter_outliers(process_series, self._sigma)

        last_completion = next(
            (e for e in reversed(window_events) if is_completion(e.status)), None
        )

        snapshot = MetricsSnapshot(
            equipment_id=equipment_id,
            window=window,
            ct_equipo=equipo.average,
            ct_proceso=proceso.average,
            pieces_ok=sum(1 for e in window_events if is_ok(e.status)),
            pieces_ng=sum(1 for e in window_events if is_ng(e.status)),
            valid_sample_count=equipo.valid_count,
            outliers_removed=equipo.outliers_removed,
            std_dev=equipo.std_dev,
            last_serial=last_completion.serial_number if last_completion else None,
            last_observed_at=last_completion.timestamp if last_completion else None,
            window_label=window_label or window.value,
            window_start=window_start,
        )

        logger.debug(
            "[CT] equipment=%s window=%s ct_equipo=%s ct_proceso=%s n=%d outliers=%d",
            equipment_id,
            window.value,
            _fmt(snapshot.ct_equipo),
            _fmt(snapshot.ct_proceso),
            snapshot.valid_sample_count,
            snapshot.outliers_removed,
        )
        return snapshot


def _fmt(value: Optional[float]) -> str:
    return f"{value:.1f}" if value is not None else "-"
