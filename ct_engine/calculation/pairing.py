"""Emparejamiento BREQ -> BCMP y deltas entre completions.

- PairingEngine: duraciones entrada->completion por serial (PAIRED_STAGE).
- BoundedEntryCache: cache acotada de entradas pendientes, con desalojo
  del más antiguo, para equipos que emiten BREQ sin completar nunca.
- consecutive_completion_deltas: CT de proceso (BCMP -> BCMP).
"""

from __future__ import annotations

from collections import OrderedDict
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from ..domain.classification import is_completion, is_entry
from ..domain.scan_event import EquipmentType, ScanEvent

WINDOW_MAX_DURATION_SECONDS = 300.0
PULSE_MAX_DURATION_SECONDS = 600.0
DEFAULT_ENTRY_CACHE_SIZE = 100


def _within_bounds(duration: float, max_duration: float) -> bool:
    # Cotas contra anomalías de reloj y rezagados de otros turnos
    return 0 < duration < max_duration


class BoundedEntryCache:
    """Entradas pendientes serial -> timestamp, con capacidad máxima.

    Re-registrar un serial sobrescribe su timestamp (gana la última
    entrada). Al superar la capacidad se desaloja la entrada más antigua.
    """

    def __init__(self, max_size: int = DEFAULT_ENTRY_CACHE_SIZE) -> None:
        if max_size < 1:
            raise ValueError("max_size must be >= 1")
        self._max_size = max_size
        self._entries: "OrderedDict[str, datetime]" = OrderedDict()
        self._evicted = 0

    def record(self, serial: str, timestamp: datetime) -> None:
        self._entries[serial] = timestamp
        if len(self._entries) > self._max_size:
            self._entries.popitem(last=False)
            self._evicted += 1

    def pop(self, serial: str) -> Optional[datetime]:
        return self._entries.pop(serial, None)

    def __contains__(self, serial: object) -> bool:
        return serial in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def max_size(self) -> int:
        return self._max_size

    @property
    def evicted(self) -> int:
        return self._evicted


class PairingEngine:
    """Empareja cada BREQ con su BCMP posterior por serial.

    El estado pendiente vive en la instancia; `observe` lo consume en orden
    temporal. Un completion sin entrada previa se descarta para el
    emparejamiento (sigue contando como pieza en otros cálculos).
    """

    def __init__(self, max_duration: float = WINDOW_MAX_DURATION_SECONDS) -> None:
        self._max_duration = max_duration
        self._pending: Dict[str, datetime] = {}

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def observe(
        self,
        equipment_type: EquipmentType,
        ordered_events: Iterable[ScanEvent],
    ) -> List[float]:
        if not equipment_type.is_paired:
            return []

        durations: List[float] = []
        for event in ordered_events:
            if is_entry(event.status):
                self._pending[event.serial_number] = event.timestamp
            elif is_completion(event.status):
                entry_ts = self._pending.pop(event.serial_number, None)
                if entry_ts is None:
                    continue
                duration = (event.timestamp - entry_ts).total_seconds()
                if _within_bounds(duration, self._max_duration):
                    durations.append(duration)
        return durations


def paired_durations(
    equipment_type: EquipmentType,
    ordered_events: Iterable[ScanEvent],
    max_duration: float = WINDOW_MAX_DURATION_SECONDS,
) -> List[float]:
    """Emparejamiento de una sola pasada con estado desechable."""
    return PairingEngine(max_duration=max_duration).observe(equipment_type, ordered_events)


def consecutive_completion_deltas(
    ordered_events: Iterable[ScanEvent],
    max_duration: float = WINDOW_MAX_DURATION_SECONDS,
) -> List[float]:
    deltas: List[float] = []
    last_ts: Optional[datetime] = None
    for event in ordered_events:
        if not is_completion(event.status):
            continue
        if last_ts is not None:
            delta = (event.timestamp - last_ts).total_seconds()
            if _within_bounds(delta, max_duration):
                deltas.append(delta)
        last_ts = event.timestamp
    return deltas
