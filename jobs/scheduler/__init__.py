"""Scheduler del motor de CT.

Modules:
- config: SchedulerConfig dataclass
- periodic: PeriodicTask (timer asyncio con guard de no-solapamiento)
- runner: MetricsCalculator (ciclo de recálculo hora + turno)
- extractor: ScanExtractor (feed -> raw_scans)
- cli: CLI entry point (main)
"""

from .config import SchedulerConfig
from .extractor import ScanExtractor
from .periodic import PeriodicTask
from .runner import MetricsCalculator

__all__ = ["SchedulerConfig", "ScanExtractor", "PeriodicTask", "MetricsCalculator"]
