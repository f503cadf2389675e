"""Loop de polling del pulso en tiempo real.

Cada `poll_seconds`: para todos los equipos activos en paralelo se baja el
tail del feed, se pasa por el estimador y, si hay pulso, se escribe en las
columnas realtime de equipment_metrics y se publica al transporte.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError

from ct_engine.domain.scan_event import EquipmentProfile, ScanEvent
from ct_engine.domain.snapshot import PulseSnapshot
from ct_engine.infrastructure.feed_client import FeedClient, FeedFetchError
from ct_engine.repositories import EquipmentRepository, MetricsRepository

from .estimator import PulseEstimator
from .publisher import PulsePublisher

logger = logging.getLogger(__name__)

STATUS_INTERVAL_SECONDS = 300.0


@dataclass
class MonitorStats:
    started_at: float = field(default_factory=time.monotonic)
    polls: int = 0
    pulses: int = 0
    fetch_errors: int = 0
    persist_errors: int = 0
    publish_errors: int = 0


class PulseMonitor:
    """Uso:
        monitor = PulseMonitor(equipment_repo, metrics_repo, feed, publisher, estimator)
        await monitor.start()
        ...
        await monitor.stop()
    """

    def __init__(
        self,
        equipment_repo: EquipmentRepository,
        metrics_repo: MetricsRepository,
        feed_client: FeedClient,
        publisher: PulsePublisher,
        estimator: PulseEstimator,
        poll_seconds: float = 5.0,
        tail_lines: int = 50,
        equipment_timeout: float = 20.0,
        status_interval: float = STATUS_INTERVAL_SECONDS,
    ) -> None:
        self._equipment_repo = equipment_repo
        self._metrics_repo = metrics_repo
        self._feed = feed_client
        self._publisher = publisher
        self._estimator = estimator
        self._poll_seconds = poll_seconds
        self._tail_lines = tail_lines
        self._equipment_timeout = equipment_timeout
        self._status_interval = status_interval

        self._profiles: List[EquipmentProfile] = []
        self._running = False
        self._task: Optional[asyncio.Task] = None
        self._last_status = time.monotonic()
        self._stats = MonitorStats()

    @property
    def profiles(self) -> List[EquipmentProfile]:
        return list(self._profiles)

    async def load_equipment(self) -> int:
        profiles = await asyncio.to_thread(self._equipment_repo.list_active_feeds)
        self._profiles = [p for p in profiles if p.feed_url]
        self._estimator.register(self._profiles)
        logger.info("[RT] Monitoring %d equipments", len(self._profiles))
        for p in self._profiles:
            logger.info("[RT]   %s type=%s", p.equipment_id, p.equipment_type.value)
        return len(self._profiles)

    async def start(self) -> None:
        if self._running:
            return
        await self.load_equipment()
        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        logger.info("[RT] PulseMonitor started: poll=%.1fs tail=%d", self._poll_seconds, self._tail_lines)

    async def stop(self) -> None:
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        logger.info("[RT] PulseMonitor stopped")

    async def _run_loop(self) -> None:
        while self._running:
            try:
                await self.poll_once()
                self._maybe_log_status()
                await asyncio.sleep(self._poll_seconds)
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.exception("[RT] Poll loop error: %s", e)
                await asyncio.sleep(self._poll_seconds)

    async def poll_once(self) -> int:
        """Un poll sobre todos los equipos. Devuelve cuántos pulsos se emitieron."""
        self._stats.polls += 1
        if not self._profiles:
            return 0

        results = await asyncio.gather(
            *(self._poll_with_timeout(p) for p in self._profiles),
        )
        emitted = sum(1 for pulse in results if pulse is not None)
        self._stats.pulses += emitted
        return emitted

    async def _poll_with_timeout(self, profile: EquipmentProfile) -> Optional[PulseSnapshot]:
        # El timeout acota solo la descarga; persistir y publicar van fuera
        try:
            events = await asyncio.wait_for(
                self._feed.fetch_events(
                    profile.feed_url,
                    profile.equipment_id,
                    tail_lines=self._tail_lines,
                ),
                timeout=self._equipment_timeout,
            )
        except (FeedFetchError, asyncio.TimeoutError) as e:
            self._stats.fetch_errors += 1
            logger.debug("[RT] equipment=%s skipped: %s", profile.equipment_id, str(e) or "timeout")
            return None
        except Exception as e:
            self._stats.fetch_errors += 1
            logger.exception("[RT] equipment=%s unexpected fetch error: %s", profile.equipment_id, e)
            return None
        return await self._handle_events(profile, events)

    async def _handle_events(self, profile: EquipmentProfile, events: Sequence[ScanEvent]) -> Optional[PulseSnapshot]:
        pulse = self._estimator.process_tail(profile, events)
        if pulse is None:
            return None

        try:
            await asyncio.to_thread(self._metrics_repo.upsert_realtime, pulse)
        except SQLAlchemyError as e:
            self._stats.persist_errors += 1
            logger.warning("[RT] equipment=%s persist failed: %s", profile.equipment_id, e)

        if not await self._publisher.publish(pulse):
            self._stats.publish_errors += 1

        logger.info(
            "[RT] %s serial=%s ct_equipo=%s ct_proceso=%s",
            pulse.equipment_id,
            pulse.last_serial,
            _fmt(pulse.ct_equipo),
            _fmt(pulse.ct_proceso),
        )
        return pulse

    def _maybe_log_status(self) -> None:
        now = time.monotonic()
        if now - self._last_status < self._status_interval:
            return
        self._last_status = now
        uptime_min = (now - self._stats.started_at) / 60
        logger.info(
            "[RT] Status: uptime=%.0fmin polls=%d pulses=%d fetch_errors=%d",
            uptime_min,
            self._stats.polls,
            self._stats.pulses,
            self._stats.fetch_errors,
        )

    def get_stats(self) -> dict:
        return {
            "running": self._running,
            "equipments": len(self._profiles),
            "polls": self._stats.polls,
            "pulses": self._stats.pulses,
            "fetch_errors": self._stats.fetch_errors,
            "persist_errors": self._stats.persist_errors,
            "publish_errors": self._stats.publish_errors,
        }


def _fmt(value: Optional[float]) -> str:
    return f"{value:.1f}s" if value is not None else "-"
