"""Ciclo de recálculo de CT (última hora + turno actual).

Por ciclo: se resuelve el turno, se listan los equipos con escaneos y cada
equipo se procesa en paralelo (lectura + agregación + upsert en un
thread, con timeout). Un equipo que falla o se pasa de tiempo se omite en
este ciclo; el siguiente lo recupera.

El thread de un equipo abandonado por timeout no se puede cortar: queda
registrado como en curso, no escribe su snapshot, y mientras siga vivo
los ciclos siguientes saltan ese equipo.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError

from ct_engine.calculation.window_aggregator import WindowAggregator
from ct_engine.domain.scan_event import EquipmentProfile, ScanEvent
from ct_engine.domain.shift_calendar import ShiftCalendar, ShiftWindow
from ct_engine.domain.snapshot import MetricsSnapshot, WindowKind
from ct_engine.repositories import MetricsRepository, ScanRepository

logger = logging.getLogger(__name__)

HOUR_WINDOW = timedelta(hours=1)


@dataclass
class CycleResult:
    updated: int = 0
    failed: int = 0
    timed_out: int = 0
    elapsed_seconds: float = 0.0


class MetricsCalculator:
    def __init__(
        self,
        scan_repo: ScanRepository,
        metrics_repo: MetricsRepository,
        calendar: Optional[ShiftCalendar] = None,
        aggregator: Optional[WindowAggregator] = None,
        equipment_timeout: float = 20.0,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._scan_repo = scan_repo
        self._metrics_repo = metrics_repo
        self._calendar = calendar or ShiftCalendar()
        self._aggregator = aggregator or WindowAggregator()
        self._equipment_timeout = equipment_timeout
        self._clock = clock
        self._inflight: Dict[str, asyncio.Future] = {}

    @property
    def inflight(self) -> List[str]:
        return [eq for eq, fut in self._inflight.items() if not fut.done()]

    def compute_equipment(
        self,
        profile: EquipmentProfile,
        now: datetime,
        shift_window: ShiftWindow,
        abandoned: Optional[threading.Event] = None,
    ) -> Optional[Tuple[MetricsSnapshot, MetricsSnapshot]]:
        """Agrega y persiste hora y turno de un equipo (bloqueante).

        Si `abandoned` está marcado al llegar al upsert no se escribe nada
        y se devuelve None.
        """
        hour_start = now - HOUR_WINDOW
        since = min(hour_start, shift_window.start)
        events = self._scan_repo.get_scans_since(profile.equipment_id, since)

        hour_events = _events_since(events, hour_start)
        shift_events = _events_since(events, shift_window.start)

        hour = self._aggregator.aggregate(
            profile.equipment_id,
            hour_events,
            profile.equipment_type,
            window=WindowKind.HOUR,
            window_start=hour_start,
        )
        shift = self._aggregator.aggregate(
            profile.equipment_id,
            shift_events,
            profile.equipment_type,
            window=WindowKind.SHIFT,
            window_label=shift_window.name,
            window_start=shift_window.start,
        )
        if abandoned is not None and abandoned.is_set():
            logger.debug("[Calculator] equipment=%s abandoned, snapshot discarded", profile.equipment_id)
            return None
        self._metrics_repo.upsert_window_snapshots(profile.equipment_id, hour, shift, shift_window)
        return hour, shift

    async def _process(
        self,
        profile: EquipmentProfile,
        now: datetime,
        shift_window: ShiftWindow,
        result: CycleResult,
    ) -> None:
        equipment_id = profile.equipment_id
        previous = self._inflight.get(equipment_id)
        if previous is not None and not previous.done():
            result.timed_out += 1
            logger.warning("[Calculator] equipment=%s previous computation still running, skipped", equipment_id)
            return

        abandoned = threading.Event()
        future = asyncio.ensure_future(
            asyncio.to_thread(self.compute_equipment, profile, now, shift_window, abandoned)
        )
        future.add_done_callback(_consume_result)
        self._inflight[equipment_id] = future
        try:
            # shield: el future sigue vivo hasta que termina el thread
            await asyncio.wait_for(asyncio.shield(future), timeout=self._equipment_timeout)
            result.updated += 1
        except asyncio.TimeoutError:
            abandoned.set()
            result.timed_out += 1
            logger.warning(
                "[Calculator] equipment=%s timeout after %.0fs",
                equipment_id,
                self._equipment_timeout,
            )
        except SQLAlchemyError as e:
            result.failed += 1
            logger.error("[Calculator] equipment=%s err=%s", equipment_id, e)
        except Exception as e:
            result.failed += 1
            logger.exception("[Calculator] equipment=%s unexpected error: %s", equipment_id, e)

    async def run_cycle(self) -> CycleResult:
        started = time.monotonic()
        now = self._clock()
        shift_window = self._calendar.resolve(now)
        result = CycleResult()

        profiles = await asyncio.to_thread(self._scan_repo.list_equipment_profiles)
        await asyncio.gather(*(self._process(p, now, shift_window, result) for p in profiles))

        result.elapsed_seconds = time.monotonic() - started
        logger.info(
            "[Calculator] %d equipments updated in %.2fs (shift=%s failed=%d timeout=%d)",
            result.updated,
            result.elapsed_seconds,
            shift_window.name,
            result.failed,
            result.timed_out,
        )
        return result


def _consume_result(future: asyncio.Future) -> None:
    # Un thread abandonado puede terminar con error cuando ya nadie lo espera
    if future.cancelled():
        return
    exc = future.exception()
    if exc is not None:
        logger.debug("[Calculator] background computation ended with error: %s", exc)


def _events_since(events: List[ScanEvent], since: datetime) -> List[ScanEvent]:
    return [e for e in events if e.timestamp >= since]
