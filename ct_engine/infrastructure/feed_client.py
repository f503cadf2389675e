"""Cliente del feed CSV de los equipos.

Los equipos publican su historial de escaneos como una página HTML con el
CSV dentro de tags <xmp>...</xmp> (fallback: <pre>). Columnas fijas, sin
header:

  0: SerialNumber
  1: Line
  2: ModelID
  3: EquipmentType (COVERPRESS, CONTINUITY, ...)
  4: StationID
  5: Status (BREQ, BCMP OK, BCMP NG, ...)
  6: DateTime (MM/DD/YYYY HH:mm:ss)

Las filas incompletas o con fecha inválida se descartan aquí; el motor
recibe solo ScanEvent bien formados.
"""

from __future__ import annotations

import csv
import logging
import re
from datetime import datetime
from typing import List, Optional

import httpx

from ..domain.scan_event import ScanEvent
from .retry import RetryConfig, retry_async

logger = logging.getLogger(__name__)

_XMP_RE = re.compile(r"<xmp>([\s\S]*?)</xmp>", re.IGNORECASE)
_PRE_RE = re.compile(r"<pre>([\s\S]*?)</pre>", re.IGNORECASE)
_DATETIME_FORMAT = "%m/%d/%Y %H:%M:%S"
MIN_COLUMNS = 7


class FeedFetchError(Exception):
    """Fallo transitorio al descargar el feed de un equipo."""


def extract_csv_block(raw: Optional[str]) -> str:
    if not raw:
        return ""
    match = _XMP_RE.search(raw) or _PRE_RE.search(raw)
    if not match:
        return ""
    return match.group(1).strip()


def parse_datetime(value: str) -> Optional[datetime]:
    try:
        return datetime.strptime(value.strip(), _DATETIME_FORMAT)
    except ValueError:
        return None


def parse_feed(raw: Optional[str], equipment_id: str, tail_lines: Optional[int] = None) -> List[ScanEvent]:
    """Parsea el HTML del equipo a ScanEvents en orden de aparición."""
    block = extract_csv_block(raw)
    if not block:
        logger.debug("[FEED] equipment=%s sin bloque <xmp>/<pre>", equipment_id)
        return []

    lines = [line for line in block.splitlines() if line.strip()]
    if tail_lines is not None:
        # lines[-0:] devolvería todo
        lines = lines[-tail_lines:] if tail_lines > 0 else []

    events: List[ScanEvent] = []
    skipped = 0
    for row in csv.reader(lines, skipinitialspace=True):
        if len(row) < MIN_COLUMNS:
            skipped += 1
            continue

        serial = row[0].strip()
        status = row[5].strip()
        timestamp = parse_datetime(row[6])
        if not serial or not status or timestamp is None:
            skipped += 1
            continue

        events.append(
            ScanEvent(
                equipment_id=equipment_id,
                serial_number=serial,
                status=status,
                timestamp=timestamp,
                metadata={
                    "line": row[1].strip(),
                    "model_id": row[2].strip(),
                    "equipment_type": row[3].strip(),
                    "station_id": row[4].strip(),
                },
            )
        )

    if skipped:
        logger.debug("[FEED] equipment=%s filas descartadas=%d", equipment_id, skipped)
    return events


class FeedClient:
    """Descarga y parsea el feed de un equipo, con retry acotado."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        timeout_seconds: float = 4.0,
        retry: Optional[RetryConfig] = None,
    ) -> None:
        self._client = client
        self._timeout = timeout_seconds
        self._retry = retry or RetryConfig(
            max_attempts=3,
            base_delay=0.5,
            max_delay=2.0,
            retryable_exceptions=(FeedFetchError,),
        )

    async def fetch_raw(self, url: str, equipment_id: str) -> str:
        async def _get() -> str:
            try:
                response = await self._client.get(
                    url,
                    timeout=self._timeout,
                    headers={"Accept": "text/csv,text/plain,*/*"},
                )
                response.raise_for_status()
            except httpx.HTTPError as e:
                raise FeedFetchError(f"{equipment_id}: {e}") from e
            return response.text

        return await retry_async(_get, self._retry, label=f"feed:{equipment_id}")

    async def fetch_events(
        self,
        url: str,
        equipment_id: str,
        tail_lines: Optional[int] = None,
    ) -> List[ScanEvent]:
        raw = await self.fetch_raw(url, equipment_id)
        return parse_feed(raw, equipment_id, tail_lines=tail_lines)
