"""Tarea periódica asyncio con guard de no-solapamiento.

Si al disparar el timer la invocación anterior sigue corriendo, el disparo
se descarta (no se encola). La primera invocación es inmediata.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, Set

logger = logging.getLogger(__name__)


class PeriodicTask:
    def __init__(
        self,
        name: str,
        interval_seconds: float,
        func: Callable[[], Awaitable[Any]],
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")
        self.name = name
        self._interval = interval_seconds
        self._func = func

        self._busy = False
        self._running = False
        self._task: Optional[asyncio.Task] = None
        self._inflight: Set[asyncio.Task] = set()

        self.runs = 0
        self.skipped = 0
        self.failures = 0

    @property
    def is_busy(self) -> bool:
        return self._busy

    async def fire(self) -> bool:
        """Ejecuta una invocación. False si se descartó por solapamiento."""
        if self._busy:
            self.skipped += 1
            logger.debug("[%s] previous run still active, skipping", self.name)
            return False

        self._busy = True
        try:
            await self._func()
            self.runs += 1
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.failures += 1
            logger.exception("[%s] run failed: %s", self.name, e)
        finally:
            self._busy = False
        return True

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        logger.info("[%s] started: every %.0fs", self.name, self._interval)

    async def stop(self) -> None:
        self._running = False
        pending = list(self._inflight)
        if self._task:
            pending.append(self._task)
        for task in pending:
            task.cancel()
        for task in pending:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._inflight.clear()
        logger.info("[%s] stopped", self.name)

    async def _run_loop(self) -> None:
        while self._running:
            # El tick no espera a la invocación: el guard decide si corre
            task = asyncio.create_task(self.fire())
            self._inflight.add(task)
            task.add_done_callback(self._inflight.discard)
            await asyncio.sleep(self._interval)
