"""Calendario de turnos.

Resuelve una hora de pared al turno en curso y a su inicio. Soporta
turnos que cruzan medianoche.

TURNOS por defecto (planta):
  - 1st Shift: 07:00 - 16:30
  - 7th Shift: 16:30 - 22:16
  - 9th Shift: 22:16 - 06:40 (cruza medianoche)
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional, Sequence

logger = logging.getLogger(__name__)

_SHIFT_ENTRY_RE = re.compile(r"^\s*(?P<name>[^=]+?)\s*=\s*(\d{1,2}):(\d{2})\s*-\s*(\d{1,2}):(\d{2})\s*$")


@dataclass(frozen=True)
class ShiftDefinition:
    name: str
    start_hour: int
    start_minute: int
    end_hour: int
    end_minute: int
    crosses_midnight: bool = False

    @property
    def start_minutes(self) -> int:
        return self.start_hour * 60 + self.start_minute

    @property
    def end_minutes(self) -> int:
        return self.end_hour * 60 + self.end_minute

    def contains(self, minute_of_day: int) -> bool:
        if self.crosses_midnight:
            return minute_of_day >= self.start_minutes or minute_of_day < self.end_minutes
        return self.start_minutes <= minute_of_day < self.end_minutes


@dataclass(frozen=True)
class ShiftWindow:
    """Turno resuelto para un instante dado. No se persiste."""

    name: str
    start: datetime
    crosses_midnight: bool = False


DEFAULT_SHIFTS: tuple[ShiftDefinition, ...] = (
    ShiftDefinition("1st Shift", 7, 0, 16, 30),
    ShiftDefinition("7th Shift", 16, 30, 22, 16),
    ShiftDefinition("9th Shift", 22, 16, 6, 40, crosses_midnight=True),
)


class ShiftCalendar:
    """Tabla fija y ordenada de turnos."""

    def __init__(self, shifts: Sequence[ShiftDefinition] = DEFAULT_SHIFTS) -> None:
        if not shifts:
            raise ValueError("ShiftCalendar requires at least one shift")
        self._shifts: List[ShiftDefinition] = list(shifts)

    @property
    def shifts(self) -> List[ShiftDefinition]:
        return list(self._shifts)

    def resolve(self, now: Optional[datetime] = None) -> ShiftWindow:
        now = now or datetime.now()
        minute_of_day = now.hour * 60 + now.minute

        for shift in self._shifts:
            if shift.contains(minute_of_day):
                return self._window_for(now, shift)

        # Hueco en la tabla: se usa el primer turno configurado
        logger.warning("SHIFT_GAP minute_of_day=%d fallback=%s", minute_of_day, self._shifts[0].name)
        return self._window_for(now, self._shifts[0])

    @staticmethod
    def _window_for(now: datetime, shift: ShiftDefinition) -> ShiftWindow:
        start = now.replace(
            hour=shift.start_hour, minute=shift.start_minute, second=0, microsecond=0
        )
        if shift.crosses_midnight and now.hour * 60 + now.minute < shift.end_minutes:
            start -= timedelta(days=1)
        return ShiftWindow(name=shift.name, start=start, crosses_midnight=shift.crosses_midnight)

    @classmethod
    def from_table(cls, table: Optional[str]) -> "ShiftCalendar":
        """Construye el calendario desde `SHIFT_TABLE`.

        Formato: ``"1st Shift=07:00-16:30;9th Shift=22:16-06:40"``. Un turno
        cuyo fin es <= inicio cruza medianoche. Sin tabla, la de planta.
        """
        if not table or not table.strip():
            return cls()

        shifts: List[ShiftDefinition] = []
        for chunk in table.split(";"):
            if not chunk.strip():
                continue
            match = _SHIFT_ENTRY_RE.match(chunk)
            if not match:
                raise ValueError(f"Invalid shift entry: {chunk!r}")
            sh, sm, eh, em = (int(match.group(i)) for i in range(2, 6))
            if not (0 <= sh < 24 and 0 <= eh < 24 and 0 <= sm < 60 and 0 <= em < 60):
                raise ValueError(f"Invalid shift time: {chunk!r}")
            shifts.append(
                ShiftDefinition(
                    name=match.group("name"),
                    start_hour=sh,
                    start_minute=sm,
                    end_hour=eh,
                    end_minute=em,
                    crosses_midnight=(eh * 60 + em) <= (sh * 60 + sm),
                )
            )
        return cls(shifts)
