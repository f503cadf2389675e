"""Modelos de dominio de escaneos y equipos.

Los escaneos llegan ya normalizados desde el colaborador de ingesta; el
motor solo los lee.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class EquipmentType(Enum):
    """Clasificación del equipo según cómo se mide su CT."""

    SINGLE_STAGE = "BCMP_ONLY"  # solo completions: CT = BCMP -> BCMP
    PAIRED_STAGE = "BREQ_BCMP"  # entrada + completion: CT = BREQ -> BCMP

    @classmethod
    def parse(cls, raw: Optional[str]) -> "EquipmentType":
        """Resuelve el token almacenado en equipment_design.

        Un token desconocido no debe tumbar el ciclo: se trata como
        SINGLE_STAGE.
        """
        token = (raw or "").strip().upper()
        for member in cls:
            if member.value == token:
                return member
        logger.warning("UNKNOWN_EQUIPMENT_TYPE value=%r fallback=%s", raw, cls.SINGLE_STAGE.value)
        return cls.SINGLE_STAGE

    @property
    def is_paired(self) -> bool:
        return self is EquipmentType.PAIRED_STAGE


@dataclass(frozen=True)
class ScanEvent:
    """Un escaneo de la estación. Inmutable.

    `timestamp` es hora de pared naive (sin zona horaria), tal como la
    reporta el equipo.
    """

    equipment_id: str
    serial_number: str
    status: str
    timestamp: datetime
    metadata: Dict[str, Any] = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class EquipmentProfile:
    """Configuración de un equipo leída del colaborador de configuración."""

    equipment_id: str
    equipment_type: EquipmentType = EquipmentType.PAIRED_STAGE
    design_ct: Optional[float] = None  # informativo, no se usa como filtro
    feed_url: Optional[str] = None
