"""Estimador de CT en tiempo real a partir del tail del feed.

En cada poll:
  - BREQ -> se registra en la cache de entradas del equipo.
  - BCMP estrictamente más nuevo que el último visto -> buffer de
    timestamps y, para BREQ_BCMP, duración contra la cache de entradas.
  - Sin BCMP nuevo -> no hay pulso.

ct_proceso = (ts_más_nuevo - ts_más_viejo) / (n - 1) sobre el buffer.
ct_equipo  = ct_proceso (BCMP_ONLY) o media del buffer de duraciones.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Dict, Iterable, Optional, Sequence

from ct_engine.calculation.pairing import DEFAULT_ENTRY_CACHE_SIZE, PULSE_MAX_DURATION_SECONDS
from ct_engine.domain.classification import is_completion, is_entry
from ct_engine.domain.scan_event import EquipmentProfile, ScanEvent
from ct_engine.domain.snapshot import PulseSnapshot

from .state import DEFAULT_BUFFER_SIZE, EquipmentPulseState

logger = logging.getLogger(__name__)


class PulseEstimator:
    def __init__(
        self,
        buffer_size: int = DEFAULT_BUFFER_SIZE,
        entry_cache_size: int = DEFAULT_ENTRY_CACHE_SIZE,
        max_duration: float = PULSE_MAX_DURATION_SECONDS,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._buffer_size = buffer_size
        self._entry_cache_size = entry_cache_size
        self._max_duration = max_duration
        self._clock = clock
        self._states: Dict[str, EquipmentPulseState] = {}

    def register(self, profiles: Iterable[EquipmentProfile]) -> None:
        """Crea el estado de cada equipo una sola vez (al arrancar)."""
        for profile in profiles:
            if profile.equipment_id not in self._states:
                self._states[profile.equipment_id] = self._new_state(profile)

    def state_for(self, equipment_id: str) -> Optional[EquipmentPulseState]:
        return self._states.get(equipment_id)

    @property
    def equipment_count(self) -> int:
        return len(self._states)

    def _new_state(self, profile: EquipmentProfile) -> EquipmentPulseState:
        return EquipmentPulseState(
            equipment_id=profile.equipment_id,
            equipment_type=profile.equipment_type,
            buffer_size=self._buffer_size,
            entry_cache_size=self._entry_cache_size,
        )

    def process_tail(
        self,
        profile: EquipmentProfile,
        events: Sequence[ScanEvent],
    ) -> Optional[PulseSnapshot]:
        state = self._states.get(profile.equipment_id)
        if state is None:
            # Equipo no registrado al arrancar
            state = self._new_state(profile)
            self._states[profile.equipment_id] = state

        paired = state.equipment_type.is_paired
        new_completion = False

        for event in events:
            if is_entry(event.status):
                state.entry_cache.record(event.serial_number, event.timestamp)
                continue

            if not is_completion(event.status) or not state.is_new_completion(event.timestamp):
                continue

            state.completion_times.append(event.timestamp)

            if paired:
                entry_ts = state.entry_cache.pop(event.serial_number)
                if entry_ts is not None:
                    duration = (event.timestamp - entry_ts).total_seconds()
                    if 0 < duration < self._max_duration:
                        state.paired_durations.append(duration)

            state.last_completion_serial = event.serial_number
            state.last_completion_at = event.timestamp
            new_completion = True

        if not new_completion:
            return None

        ct_proceso = self._throughput_ct(state)
        if paired:
            ct_equipo = self._mean_paired(state)
        else:
            ct_equipo = ct_proceso

        pulse = PulseSnapshot(
            equipment_id=profile.equipment_id,
            ct_equipo=ct_equipo,
            ct_proceso=ct_proceso,
            last_serial=state.last_completion_serial,
            last_observed_at=state.last_completion_at,
            buffer_size=len(state.completion_times),
            emitted_at=self._clock(),
        )
        logger.debug(
            "[PULSE] equipment=%s serial=%s ct_equipo=%s ct_proceso=%s buffer=%d",
            pulse.equipment_id,
            pulse.last_serial,
            pulse.ct_equipo,
            pulse.ct_proceso,
            pulse.buffer_size,
        )
        return pulse

    def _in_range(self, value: float) -> bool:
        return 0 < value <= self._max_duration

    def _throughput_ct(self, state: EquipmentPulseState) -> Optional[float]:
        times = state.completion_times
        if len(times) < 2:
            return None
        span = (times[-1] - times[0]).total_seconds()
        value = span / (len(times) - 1)
        return value if self._in_range(value) else None

    def _mean_paired(self, state: EquipmentPulseState) -> Optional[float]:
        if not state.paired_durations:
            return None
        value = sum(state.paired_durations) / len(state.paired_durations)
        return value if self._in_range(value) else None
