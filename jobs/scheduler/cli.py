"""CLI entry point for the CT scheduler."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import time
from typing import List

import httpx

from common.config import Settings, get_settings
from common.db import check_connection, dispose_engine, get_engine
from ct_engine.calculation.window_aggregator import WindowAggregator
from ct_engine.domain.shift_calendar import ShiftCalendar
from ct_engine.infrastructure.feed_client import FeedClient, FeedFetchError
from ct_engine.infrastructure.retry import RetryConfig
from ct_engine.infrastructure.schema import ensure_schema
from ct_engine.repositories import (
    EquipmentRepository,
    MetricsRepository,
    RawScanRepository,
    ScanRepository,
)

from .config import SchedulerConfig
from .extractor import ScanExtractor
from .periodic import PeriodicTask
from .runner import MetricsCalculator

logger = logging.getLogger(__name__)


def _status_logger(tasks: List[PeriodicTask]):
    started = time.monotonic()

    async def _log_status() -> None:
        uptime_min = (time.monotonic() - started) / 60
        parts = " ".join(f"{t.name}={t.runs}/{t.skipped}/{t.failures}" for t in tasks)
        logger.info("[Scheduler] Status: uptime=%.0fmin runs/skipped/failed %s", uptime_min, parts)

    return _log_status


async def _run(cfg: SchedulerConfig, settings: Settings) -> int:
    engine = get_engine()
    if not await asyncio.to_thread(check_connection, engine):
        logger.error("[Scheduler] Cannot reach the database, exiting")
        return 1
    await asyncio.to_thread(ensure_schema, engine)

    calculator = MetricsCalculator(
        scan_repo=ScanRepository(engine),
        metrics_repo=MetricsRepository(engine),
        calendar=ShiftCalendar.from_table(settings.shift_table),
        aggregator=WindowAggregator(sigma_threshold=cfg.sigma_threshold),
        equipment_timeout=cfg.equipment_timeout_seconds,
    )

    if cfg.once:
        try:
            await calculator.run_cycle()
        finally:
            dispose_engine()
        return 0

    retry = RetryConfig(
        max_attempts=cfg.feed_retry_attempts,
        base_delay=0.5,
        max_delay=2.0,
        retryable_exceptions=(FeedFetchError,),
    )

    async with httpx.AsyncClient() as http:
        feed = FeedClient(http, timeout_seconds=cfg.feed_timeout_seconds, retry=retry)
        tasks: List[PeriodicTask] = [
            PeriodicTask("Calculator", cfg.calc_interval_seconds, calculator.run_cycle),
        ]
        if cfg.extract:
            extractor = ScanExtractor(
                equipment_repo=EquipmentRepository(engine),
                raw_scan_repo=RawScanRepository(engine),
                feed_client=feed,
                equipment_timeout=cfg.equipment_timeout_seconds,
            )
            tasks.insert(0, PeriodicTask("Extractor", cfg.extract_interval_seconds, extractor.run_cycle))

        status = PeriodicTask("Status", cfg.status_interval_seconds, _status_logger(list(tasks)))

        monitor = None
        publisher = None
        if cfg.with_pulse:
            # Import tardío: el monitor solo hace falta con --with-pulse
            from pulse_service.estimator import PulseEstimator
            from pulse_service.monitor import PulseMonitor
            from pulse_service.publisher import build_publisher

            publisher = build_publisher(settings)
            monitor = PulseMonitor(
                equipment_repo=EquipmentRepository(engine),
                metrics_repo=MetricsRepository(engine),
                feed_client=FeedClient(http, timeout_seconds=settings.feed_timeout_seconds, retry=retry),
                publisher=publisher,
                estimator=PulseEstimator(
                    buffer_size=settings.pulse_buffer_size,
                    entry_cache_size=settings.entry_cache_size,
                ),
                poll_seconds=settings.pulse_poll_seconds,
                tail_lines=settings.feed_tail_lines,
                equipment_timeout=settings.equipment_timeout_seconds,
            )

        try:
            for task in tasks:
                await task.start()
            await status.start()
            if monitor is not None:
                await monitor.start()
            await asyncio.Event().wait()
        finally:
            if monitor is not None:
                await monitor.stop()
            if publisher is not None:
                await publisher.close()
            await status.stop()
            for task in tasks:
                await task.stop()
            dispose_engine()
    return 0


def main() -> None:
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler()],
    )

    p = argparse.ArgumentParser(description="CT scheduler (extractor + hour/shift calculator)")
    p.add_argument("--calc-seconds", type=float, default=None)
    p.add_argument("--extract-seconds", type=float, default=None)
    p.add_argument("--equipment-timeout", type=float, default=None)
    p.add_argument("--no-extract", action="store_true", help="do not run the feed extractor")
    p.add_argument("--with-pulse", action="store_true", help="also run the real-time pulse monitor")
    p.add_argument("--once", action="store_true", help="run a single recompute cycle and exit")
    args = p.parse_args()

    cfg = SchedulerConfig.from_settings(
        settings,
        calc_interval_seconds=args.calc_seconds,
        extract_interval_seconds=args.extract_seconds,
        equipment_timeout_seconds=args.equipment_timeout,
        extract=not args.no_extract,
        with_pulse=bool(args.with_pulse),
        once=bool(args.once),
    )

    logger.info("CT Scheduler started")
    logger.info(
        "Config: calc=%.0fs extract=%s timeout=%.0fs sigma=%.1f",
        cfg.calc_interval_seconds,
        f"{cfg.extract_interval_seconds:.0f}s" if cfg.extract else "off",
        cfg.equipment_timeout_seconds,
        cfg.sigma_threshold,
    )

    try:
        code = asyncio.run(_run(cfg, settings))
    except KeyboardInterrupt:
        logger.info("CT Scheduler interrupted")
        code = 0
    sys.exit(code)


if __name__ == "__main__":
    main()
