"""Fixtures compartidos por los tests del motor de CT."""

from datetime import datetime, timedelta
from typing import Callable

import pytest

from ct_engine.domain.scan_event import ScanEvent

BASE_TIME = datetime(2026, 3, 10, 8, 0, 0)


@pytest.fixture
def base_time() -> datetime:
    return BASE_TIME


@pytest.fixture
def make_event() -> Callable[..., ScanEvent]:
    """Factory: make_event("S1", "BREQ", 12) -> ScanEvent a BASE_TIME + 12s."""

    def _make(serial: str, status: str, offset_seconds: float, equipment_id: str = "EQ-01") -> ScanEvent:
        return ScanEvent(
            equipment_id=equipment_id,
            serial_number=serial,
            status=status,
            timestamp=BASE_TIME + timedelta(seconds=offset_seconds),
        )

    return _make
