"""Upsert del snapshot actual por equipo en equipment_metrics.

Una fila por equipo con las columnas de las tres ventanas
(realtime / hour / shift). El último snapshot reemplaza al anterior.
"""

from __future__ import annotations

import logging
from typing import Any, Dict

from sqlalchemy import text
from sqlalchemy.engine import Engine

from ..domain.shift_calendar import ShiftWindow
from ..domain.snapshot import MetricsSnapshot, PulseSnapshot

logger = logging.getLogger(__name__)

_UPSERT_WINDOWS_SQL = """
INSERT INTO equipment_metrics (
    equipment_id,
    ct_equipo_hour, ct_proceso_hour, pieces_ok_hour, pieces_ng_hour,
    samples_hour, outliers_hour, stddev_hour,
    ct_equipo_shift, ct_proceso_shift, pieces_ok_shift, pieces_ng_shift,
    samples_shift, outliers_shift, stddev_shift,
    shift_name, shift_start, calculated_at
) VALUES (
    :equipment_id,
    :ct_equipo_hour, :ct_proceso_hour, :pieces_ok_hour, :pieces_ng_hour,
    :samples_hour, :outliers_hour, :stddev_hour,
    :ct_equipo_shift, :ct_proceso_shift, :pieces_ok_shift, :pieces_ng_shift,
    :samples_shift, :outliers_shift, :stddev_shift,
    :shift_name, :shift_start, NOW()
)
ON CONFLICT (equipment_id) DO UPDATE SET
    ct_equipo_hour = EXCLUDED.ct_equipo_hour,
    ct_proceso_hour = EXCLUDED.ct_proceso_hour,
    pieces_ok_hour = EXCLUDED.pieces_ok_hour,
    pieces_ng_hour = EXCLUDED.pieces_ng_hour,
    samples_hour = EXCLUDED.samples_hour,
    outliers_hour = EXCLUDED.outliers_hour,
    stddev_hour = EXCLUDED.stddev_hour,
    ct_equipo_shift = EXCLUDED.ct_equipo_shift,
    ct_proceso_shift = EXCLUDED.ct_proceso_shift,
    pieces_ok_shift = EXCLUDED.pieces_ok_shift,
    pieces_ng_shift = EXCLUDED.pieces_ng_shift,
    samples_shift = EXCLUDED.samples_shift,
    outliers_shift = EXCLUDED.outliers_shift,
    stddev_shift = EXCLUDED.stddev_shift,
    shift_name = EXCLUDED.shift_name,
    shift_start = EXCLUDED.shift_start,
    calculated_at = NOW()
"""

_UPSERT_REALTIME_SQL = """
INSERT INTO equipment_metrics (
    equipment_id, ct_equipo_realtime, ct_proceso_realtime, last_serial, last_scan_at, realtime_at
) VALUES (
    :equipment_id, :ct_equipo, :ct_proceso, :last_serial, :last_scan_at, :realtime_at
)
ON CONFLICT (equipment_id) DO UPDATE SET
    ct_equipo_realtime = EXCLUDED.ct_equipo_realtime,
    ct_proceso_realtime = EXCLUDED.ct_proceso_realtime,
    last_serial = EXCLUDED.last_serial,
    last_scan_at = EXCLUDED.last_scan_at,
    realtime_at = EXCLUDED.realtime_at
"""


def window_params(
    equipment_id: str,
    hour: MetricsSnapshot,
    shift: MetricsSnapshot,
    shift_window: ShiftWindow,
) -> Dict[str, Any]:
    for snap in (hour, shift):
        if snap.equipment_id != equipment_id:
            raise ValueError(f"snapshot for {snap.equipment_id} passed as {equipment_id}")

    params: Dict[str, Any] = {"equipment_id": equipment_id}
    for suffix, snap in (("hour", hour), ("shift", shift)):
        params[f"ct_equipo_{suffix}"] = snap.ct_equipo
        params[f"ct_proceso_{suffix}"] = snap.ct_proceso
        params[f"pieces_ok_{suffix}"] = snap.pieces_ok
        params[f"pieces_ng_{suffix}"] = snap.pieces_ng
        params[f"samples_{suffix}"] = snap.valid_sample_count
        params[f"outliers_{suffix}"] = snap.outliers_removed
        params[f"stddev_{suffix}"] = snap.std_dev
    params["shift_name"] = shift_window.name
    params["shift_start"] = shift_window.start
    return params


class MetricsRepository:
    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def upsert_window_snapshots(
        self,
        equipment_id: str,
        hour: MetricsSnapshot,
        shift: MetricsSnapshot,
        shift_window: ShiftWindow,
    ) -> None:
        params = window_params(equipment_id, hour, shift, shift_window)
        with self._engine.begin() as conn:
            conn.execute(text(_UPSERT_WINDOWS_SQL), params)

    def upsert_realtime(self, pulse: PulseSnapshot) -> None:
        with self._engine.begin() as conn:
            conn.execute(
                text(_UPSERT_REALTIME_SQL),
                {
                    "equipment_id": pulse.equipment_id,
                    "ct_equipo": pulse.ct_equipo,
                    "ct_proceso": pulse.ct_proceso,
                    "last_serial": pulse.last_serial,
                    "last_scan_at": pulse.last_observed_at,
                    "realtime_at": pulse.emitted_at,
                },
            )
