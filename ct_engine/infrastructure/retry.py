"""Retry con backoff exponencial para operaciones async.

Usado en el borde del colaborador (descarga del feed de equipos). Dentro de
un ciclo de agregación no se reintenta nada.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Tuple, Type, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryConfig:
    """Configuración para retry con backoff."""

    max_attempts: int = 3
    base_delay: float = 0.5  # segundos
    max_delay: float = 5.0  # segundos
    exponential_base: float = 2.0
    jitter: bool = True
    retryable_exceptions: Tuple[Type[BaseException], ...] = (Exception,)

    def calculate_delay(self, attempt: int) -> float:
        """Delay en segundos para el intento `attempt` (1-indexed)."""
        delay = self.base_delay * (self.exponential_base ** (attempt - 1))
        delay = min(delay, self.max_delay)

        if self.jitter:
            # Jitter de ±25%
            jitter_range = delay * 0.25
            delay += random.uniform(-jitter_range, jitter_range)

        return max(0.0, delay)


async def retry_async(
    func: Callable[[], Awaitable[T]],
    config: Optional[RetryConfig] = None,
    label: str = "",
) -> T:
    """Ejecuta `func` reintentando las excepciones configuradas.

    Raises:
        La última excepción si se agotan los reintentos.
    """
    config = config or RetryConfig()

    for attempt in range(1, config.max_attempts + 1):
        try:
            return await func()
        except config.retryable_exceptions as e:
            if attempt == config.max_attempts:
                logger.warning(
                    "RETRY_EXHAUSTED op=%s attempts=%d err=%s", label, attempt, e
                )
                raise

            delay = config.calculate_delay(attempt)
            logger.debug(
                "RETRY op=%s attempt=%d/%d delay=%.2fs err=%s",
                label, attempt, config.max_attempts, delay, e,
            )
            await asyncio.sleep(delay)

    raise RuntimeError("Retry loop completed without result")
