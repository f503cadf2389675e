"""Lecturas de raw_scans para el agregador de ventana."""

from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import List, Sequence, Tuple

from sqlalchemy import text
from sqlalchemy.engine import Engine

from ..domain.scan_event import EquipmentProfile, EquipmentType, ScanEvent

logger = logging.getLogger(__name__)


class ScanRepository:
    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def list_equipment_profiles(self) -> List[EquipmentProfile]:
        """Equipos con escaneos; sin fila de diseño se asume BREQ_BCMP."""
        with self._engine.connect() as conn:
            rows = conn.execute(
                text(
                    """
                    SELECT DISTINCT rs.equipment_id,
                           COALESCE(ed.equipment_type, 'BREQ_BCMP') AS equipment_type,
                           ed.design_ct
                    FROM raw_scans rs
                    LEFT JOIN equipment_design ed ON rs.equipment_id = ed.equipment_id
                    ORDER BY rs.equipment_id
                    """
                )
            ).mappings().all()

        return [
            EquipmentProfile(
                equipment_id=str(r["equipment_id"]),
                equipment_type=EquipmentType.parse(r["equipment_type"]),
                design_ct=float(r["design_ct"]) if r["design_ct"] is not None else None,
            )
            for r in rows
        ]

    def get_scans_since(self, equipment_id: str, since: datetime) -> List[ScanEvent]:
        with self._engine.connect() as conn:
            rows = conn.execute(
                text(
                    """
                    SELECT serial_number, status, scanned_at
                    FROM raw_scans
                    WHERE equipment_id = :equipment_id AND scanned_at >= :since
                    ORDER BY scanned_at ASC
                    """
                ),
                {"equipment_id": equipment_id, "since": since},
            ).fetchall()

        return [
            ScanEvent(
                equipment_id=equipment_id,
                serial_number=str(r[0]),
                status=str(r[1]),
                timestamp=r[2],
            )
            for r in rows
        ]


class RawScanRepository:
    """Inserción idempotente de escaneos extraídos del feed."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def insert_batch(self, events: Sequence[ScanEvent]) -> Tuple[int, int]:
        """Inserta escaneos; devuelve (insertados, duplicados)."""
        if not events:
            return 0, 0

        inserted = 0
        duplicates = 0
        with self._engine.begin() as conn:
            for event in events:
                result = conn.execute(
                    text(
                        """
                        INSERT INTO raw_scans (equipment_id, serial_number, status, scanned_at, raw_data)
                        VALUES (:equipment_id, :serial_number, :status, :scanned_at, CAST(:raw_data AS JSONB))
                        ON CONFLICT (equipment_id, serial_number, scanned_at) DO NOTHING
                        """
                    ),
                    {
                        "equipment_id": event.equipment_id,
                        "serial_number": event.serial_number,
                        "status": event.status,
                        "scanned_at": event.timestamp,
                        "raw_data": json.dumps(event.metadata or {}),
                    },
                )
                if result.rowcount and result.rowcount > 0:
                    inserted += 1
                else:
                    duplicates += 1
        return inserted, duplicates
