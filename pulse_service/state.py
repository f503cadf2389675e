from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Deque, Optional

from ct_engine.calculation.pairing import DEFAULT_ENTRY_CACHE_SIZE, BoundedEntryCache
from ct_engine.domain.scan_event import EquipmentType

DEFAULT_BUFFER_SIZE = 30


@dataclass
class EquipmentPulseState:
    """Estado en memoria de un equipo entre polls.

    Vive lo que vive el proceso; solo lo toca el camino de su equipo.
    """

    equipment_id: str
    equipment_type: EquipmentType
    buffer_size: int = DEFAULT_BUFFER_SIZE
    entry_cache_size: int = DEFAULT_ENTRY_CACHE_SIZE
    last_completion_serial: Optional[str] = None
    last_completion_at: Optional[datetime] = None
    completion_times: Deque[datetime] = field(init=False)
    paired_durations: Deque[float] = field(init=False)
    entry_cache: BoundedEntryCache = field(init=False)

    def __post_init__(self) -> None:
        self.completion_times = deque(maxlen=self.buffer_size)
        self.paired_durations = deque(maxlen=self.buffer_size)
        self.entry_cache = BoundedEntryCache(self.entry_cache_size)

    def is_new_completion(self, timestamp: datetime) -> bool:
        return self.last_completion_at is None or timestamp > self.last_completion_at
