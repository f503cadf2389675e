"""CLI entry point for the real-time pulse monitor."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

import httpx

from common.config import get_settings
from common.db import check_connection, dispose_engine, get_engine
from ct_engine.infrastructure.feed_client import FeedClient, FeedFetchError
from ct_engine.infrastructure.retry import RetryConfig
from ct_engine.repositories import EquipmentRepository, MetricsRepository

from .estimator import PulseEstimator
from .monitor import PulseMonitor
from .publisher import build_publisher

logger = logging.getLogger(__name__)


async def _run(args: argparse.Namespace) -> int:
    settings = get_settings()
    engine = get_engine()
    if not await asyncio.to_thread(check_connection, engine):
        return 1

    retry = RetryConfig(
        max_attempts=settings.feed_retry_attempts,
        base_delay=0.5,
        max_delay=2.0,
        retryable_exceptions=(FeedFetchError,),
    )
    publisher = build_publisher(settings)

    async with httpx.AsyncClient() as http:
        monitor = PulseMonitor(
            equipment_repo=EquipmentRepository(engine),
            metrics_repo=MetricsRepository(engine),
            feed_client=FeedClient(http, timeout_seconds=settings.feed_timeout_seconds, retry=retry),
            publisher=publisher,
            estimator=PulseEstimator(
                buffer_size=settings.pulse_buffer_size,
                entry_cache_size=settings.entry_cache_size,
            ),
            poll_seconds=args.poll_seconds or settings.pulse_poll_seconds,
            tail_lines=settings.feed_tail_lines,
            equipment_timeout=settings.equipment_timeout_seconds,
        )
        try:
            if args.once:
                await monitor.load_equipment()
                emitted = await monitor.poll_once()
                logger.info("[RT] Single poll done: pulses=%d", emitted)
                return 0

            await monitor.start()
            # Corre hasta Ctrl+C / SIGTERM
            await asyncio.Event().wait()
        finally:
            await monitor.stop()
            await publisher.close()
            dispose_engine()
    return 0


def main() -> None:
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler()],
    )

    p = argparse.ArgumentParser(description="Real-time CT pulse monitor")
    p.add_argument("--poll-seconds", type=float, default=None)
    p.add_argument("--once", action="store_true", help="run a single poll and exit")
    args = p.parse_args()

    logger.info("RT Pulse Monitor started")
    try:
        code = asyncio.run(_run(args))
    except KeyboardInterrupt:
        logger.info("RT Pulse Monitor interrupted")
        code = 0
    sys.exit(code)


if __name__ == "__main__":
    main()
