"""Extracción de escaneos desde los feeds hacia raw_scans."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError

from ct_engine.domain.scan_event import EquipmentProfile
from ct_engine.infrastructure.feed_client import FeedClient, FeedFetchError
from ct_engine.repositories import EquipmentRepository, RawScanRepository

logger = logging.getLogger(__name__)


@dataclass
class ExtractResult:
    inserted: int = 0
    duplicates: int = 0
    failed: int = 0
    elapsed_seconds: float = 0.0


class ScanExtractor:
    def __init__(
        self,
        equipment_repo: EquipmentRepository,
        raw_scan_repo: RawScanRepository,
        feed_client: FeedClient,
        equipment_timeout: float = 20.0,
    ) -> None:
        self._equipment_repo = equipment_repo
        self._raw_scan_repo = raw_scan_repo
        self._feed = feed_client
        self._equipment_timeout = equipment_timeout

    async def _extract_equipment(self, profile: EquipmentProfile, result: ExtractResult) -> None:
        async def _do() -> None:
            events = await self._feed.fetch_events(profile.feed_url, profile.equipment_id)
            inserted, duplicates = await asyncio.to_thread(self._raw_scan_repo.insert_batch, events)
            result.inserted += inserted
            result.duplicates += duplicates

        try:
            await asyncio.wait_for(_do(), timeout=self._equipment_timeout)
        except (FeedFetchError, asyncio.TimeoutError) as e:
            result.failed += 1
            logger.warning("[Extractor] equipment=%s fetch failed: %s", profile.equipment_id, str(e) or "timeout")
        except SQLAlchemyError as e:
            result.failed += 1
            logger.error("[Extractor] equipment=%s err=%s", profile.equipment_id, e)
        except Exception as e:
            result.failed += 1
            logger.exception("[Extractor] equipment=%s unexpected error: %s", profile.equipment_id, e)

    async def run_cycle(self) -> ExtractResult:
        started = time.monotonic()
        result = ExtractResult()

        profiles = await asyncio.to_thread(self._equipment_repo.list_active_feeds)
        await asyncio.gather(*(self._extract_equipment(p, result) for p in profiles if p.feed_url))

        result.elapsed_seconds = time.monotonic() - started
        if result.inserted:
            logger.info("[Extractor] +%d records (%d dups)", result.inserted, result.duplicates)
        else:
            logger.debug("[Extractor] no new records (%d dups)", result.duplicates)
        return result
