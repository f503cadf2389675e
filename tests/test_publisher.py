"""Tests de publicación de pulsos (Redis / HTTP)."""

import json
from datetime import datetime
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from ct_engine.domain.snapshot import PulseSnapshot
from pulse_service.publisher import (
    HttpPulsePublisher,
    PulsePayload,
    RedisPulsePublisher,
)


@pytest.fixture
def pulse() -> PulseSnapshot:
    return PulseSnapshot(
        equipment_id="EQ-01",
        ct_equipo=12.3456,
        ct_proceso=None,
        last_serial="SN9",
        last_observed_at=datetime(2026, 3, 10, 8, 0, 12),
        buffer_size=4,
        emitted_at=datetime(2026, 3, 10, 8, 0, 15),
    )


@pytest.fixture
def mock_redis():
    client = MagicMock()
    client.xadd = AsyncMock(return_value=b"1-0")
    client.publish = AsyncMock(return_value=1)
    client.aclose = AsyncMock()
    return client


class TestPulsePayload:
    def test_rounds_to_two_decimals(self, pulse):
        payload = PulsePayload.from_pulse(pulse)
        assert payload.ct_equipo == 12.35
        assert payload.ct_proceso is None
        assert payload.last_scan_at == pulse.last_observed_at
        assert payload.timestamp == pulse.emitted_at

    def test_stream_fields_are_flat_strings(self, pulse):
        fields = PulsePayload.from_pulse(pulse).to_stream_fields()
        assert fields["equipment_id"] == "EQ-01"
        assert fields["ct_proceso"] == ""
        assert fields["buffer_size"] == "4"
        assert all(isinstance(v, str) for v in fields.values())


class TestRedisPulsePublisher:
    @pytest.mark.asyncio
    async def test_publishes_to_stream_and_channel(self, mock_redis, pulse):
        publisher = RedisPulsePublisher(mock_redis)

        assert await publisher.publish(pulse) is True

        args, kwargs = mock_redis.xadd.call_args
        assert args[0] == "ct:pulses"
        assert kwargs["maxlen"] == 10000
        assert kwargs["approximate"] is True

        channel, message = mock_redis.publish.call_args.args
        assert channel == "rt-pulse"
        assert json.loads(message)["equipment_id"] == "EQ-01"

    @pytest.mark.asyncio
    async def test_failure_is_reported_not_raised(self, mock_redis, pulse):
        mock_redis.xadd.side_effect = ConnectionError("redis down")
        publisher = RedisPulsePublisher(mock_redis)

        assert await publisher.publish(pulse) is False
        mock_redis.publish.assert_not_called()


class TestHttpPulsePublisher:
    @pytest.mark.asyncio
    async def test_posts_json(self, pulse):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["body"] = json.loads(request.content)
            seen["path"] = request.url.path
            return httpx.Response(200, json={"ok": True})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            publisher = HttpPulsePublisher(http, "http://dash.local/api/internal/rt-pulse")
            assert await publisher.publish(pulse) is True

        assert seen["path"] == "/api/internal/rt-pulse"
        assert seen["body"]["ct_equipo"] == 12.35
        assert seen["body"]["last_serial"] == "SN9"

    @pytest.mark.asyncio
    async def test_server_error_is_swallowed(self, pulse):
        transport = httpx.MockTransport(lambda request: httpx.Response(500))
        async with httpx.AsyncClient(transport=transport) as http:
            publisher = HttpPulsePublisher(http, "http://dash.local/api/internal/rt-pulse")
            assert await publisher.publish(pulse) is False
