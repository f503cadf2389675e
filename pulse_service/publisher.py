"""Publicación de pulsos de CT hacia el dashboard.

Dos transportes:
  - redis: XADD al stream `ct:pulses` (maxlen aproximado) + PUBLISH al
    canal `rt-pulse` para los suscriptores websocket.
  - http:  POST JSON al endpoint interno del dashboard.

Un fallo de publicación se loguea y nunca interrumpe el loop.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, Optional, Protocol

import httpx
import redis.asyncio as aioredis
from pydantic import BaseModel, field_validator

from common.config import Settings
from ct_engine.domain.snapshot import PulseSnapshot

logger = logging.getLogger(__name__)

DEFAULT_STREAM = "ct:pulses"
DEFAULT_CHANNEL = "rt-pulse"
DEFAULT_MAX_LEN = 10000
HTTP_TIMEOUT_SECONDS = 2.0


class PulsePayload(BaseModel):
    equipment_id: str
    ct_equipo: Optional[float] = None
    ct_proceso: Optional[float] = None
    last_serial: Optional[str] = None
    last_scan_at: Optional[datetime] = None
    buffer_size: int = 0
    timestamp: datetime

    @field_validator("ct_equipo", "ct_proceso")
    @classmethod
    def round_ct(cls, v: Optional[float]) -> Optional[float]:
        return round(v, 2) if v is not None else None

    @classmethod
    def from_pulse(cls, pulse: PulseSnapshot) -> "PulsePayload":
        return cls(
            equipment_id=pulse.equipment_id,
            ct_equipo=pulse.ct_equipo,
            ct_proceso=pulse.ct_proceso,
            last_serial=pulse.last_serial,
            last_scan_at=pulse.last_observed_at,
            buffer_size=pulse.buffer_size,
            timestamp=pulse.emitted_at,
        )

    def to_stream_fields(self) -> Dict[str, str]:
        """Campos planos para XADD (Redis no acepta None)."""
        data = self.model_dump(mode="json")
        return {k: "" if v is None else str(v) for k, v in data.items()}


class PulsePublisher(Protocol):
    async def publish(self, pulse: PulseSnapshot) -> bool: ...

    async def close(self) -> None: ...


class RedisPulsePublisher:
    def __init__(
        self,
        client: aioredis.Redis,
        stream_name: str = DEFAULT_STREAM,
        channel: str = DEFAULT_CHANNEL,
        max_len: int = DEFAULT_MAX_LEN,
    ) -> None:
        self._client = client
        self._stream = stream_name
        self._channel = channel
        self._max_len = max_len

    async def publish(self, pulse: PulseSnapshot) -> bool:
        payload = PulsePayload.from_pulse(pulse)
        try:
            await self._client.xadd(
                self._stream,
                payload.to_stream_fields(),
                maxlen=self._max_len,
                approximate=True,
            )
            await self._client.publish(self._channel, payload.model_dump_json())
            logger.debug("[REDIS] Published pulse: equipment=%s", pulse.equipment_id)
            return True
        except Exception as e:
            logger.warning("[REDIS] Publish failed: equipment=%s err=%s", pulse.equipment_id, e)
            return False

    async def close(self) -> None:
        await self._client.aclose()

    @property
    def stream_name(self) -> str:
        return self._stream


class HttpPulsePublisher:
    def __init__(
        self,
        client: httpx.AsyncClient,
        url: str,
        timeout_seconds: float = HTTP_TIMEOUT_SECONDS,
    ) -> None:
        self._client = client
        self._url = url
        self._timeout = timeout_seconds

    async def publish(self, pulse: PulseSnapshot) -> bool:
        payload = PulsePayload.from_pulse(pulse)
        try:
            response = await self._client.post(
                self._url,
                content=payload.model_dump_json(),
                headers={"Content-Type": "application/json"},
                timeout=self._timeout,
            )
            response.raise_for_status()
            return True
        except httpx.HTTPError as e:
            # El dashboard puede no estar arriba; el pulso queda en BD igual
            logger.warning("[HTTP] Pulse POST failed: equipment=%s err=%s", pulse.equipment_id, e)
            return False

    async def close(self) -> None:
        await self._client.aclose()


def build_publisher(settings: Settings) -> PulsePublisher:
    if settings.pulse_transport == "http":
        logger.info("[PULSE] transport=http url=%s", settings.rt_pulse_url)
        return HttpPulsePublisher(httpx.AsyncClient(), settings.rt_pulse_url)

    if settings.pulse_transport != "redis":
        logger.warning("[PULSE] Unknown PULSE_TRANSPORT=%s, using redis", settings.pulse_transport)

    logger.info("[PULSE] transport=redis url=%s", settings.redis_url.split("@")[-1])
    client = aioredis.Redis.from_url(
        settings.redis_url,
        socket_timeout=5.0,
        socket_connect_timeout=5.0,
    )
    return RedisPulsePublisher(client)
