from __future__ import annotations

from typing import List

from sqlalchemy import text
from sqlalchemy.engine import Engine

from ..domain.scan_event import EquipmentProfile, EquipmentType


class EquipmentRepository:
    """Lectura de equipment_design (propiedad del colaborador de configuración)."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def list_active_feeds(self) -> List[EquipmentProfile]:
        with self._engine.connect() as conn:
            rows = conn.execute(
                text(
                    """
                    SELECT equipment_id, csv_url, design_ct,
                           COALESCE(equipment_type, 'BREQ_BCMP') AS equipment_type
                    FROM equipment_design
                    WHERE is_active = true AND csv_url IS NOT NULL
                    ORDER BY equipment_id
                    """
                )
            ).mappings().all()

        return [
            EquipmentProfile(
                equipment_id=str(r["equipment_id"]),
                equipment_type=EquipmentType.parse(r["equipment_type"]),
                design_ct=float(r["design_ct"]) if r["design_ct"] is not None else None,
                feed_url=r["csv_url"],
            )
            for r in rows
        ]
