"""Tests for the events directory client."""

from datetime import datetime, timezone

import httpx
import pytest

from integrations.base import RetryConfig
from integrations.events_client import EventsClient
from models.signals import Available, Unavailable


TODAY_PAYLOAD = {
    "date": "2026-03-14",
    "events": [
        {
            "eventId": "EVT-001",
            "sport": "Football",
            "competition": "Premier League",
            "homeTeam": "Arsenal",
            "awayTeam": "Chelsea",
            "kickoff": "2026-03-14T14:00:00Z",
            "expectedEnd": "2026-03-14T16:00:00Z",
            "demandMultiplier": 2.0,
            "status": "scheduled",
        }
    ],
}

DEMAND_PAYLOAD = {
    "Timestamp": "2026-03-14T14:50:00Z",
    "Multiplier": 2.0,
    "Reason": "Arsenal vs Chelsea in progress",
}


def _client(handler) -> EventsClient:
    return EventsClient(
        base_url="http://events.test",
        timeout=0.5,
        retry_config=RetryConfig(max_retries=1, base_delay_seconds=0.0, jitter=False),
        transport=httpx.MockTransport(handler),
    )


class TestGetTodayEvents:
    @pytest.mark.asyncio
    async def test_parses_events(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/events/today"
            return httpx.Response(200, json=TODAY_PAYLOAD)

        async with _client(handler) as client:
            result = await client.get_today_events()

        assert isinstance(result, Available)
        (event,) = result.value
        assert event.event_id == "EVT-001"
        assert event.kickoff == datetime(2026, 3, 14, 14, 0, tzinfo=timezone.utc)
        assert event.expected_end == datetime(2026, 3, 14, 16, 0, tzinfo=timezone.utc)
        assert event.demand_multiplier == 2.0
        assert event.description == "Arsenal vs Chelsea"

    @pytest.mark.asyncio
    async def test_empty_list_is_available(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"date": "2026-03-14", "events": []})

        async with _client(handler) as client:
            result = await client.get_today_events()

        assert result.is_available
        assert result.value == []

    @pytest.mark.asyncio
    async def test_server_error_is_unavailable_after_retry(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(503, text="maintenance")

        async with _client(handler) as client:
            result = await client.get_today_events()

        assert isinstance(result, Unavailable)
        assert "503" in result.reason
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_not_found_is_not_retried(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(404)

        async with _client(handler) as client:
            result = await client.get_today_events()

        assert not result.is_available
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_timeout_is_unavailable(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        async with _client(handler) as client:
            result = await client.get_today_events()

        assert isinstance(result, Unavailable)
        assert "timed out" in result.reason

    @pytest.mark.asyncio
    async def test_connection_error_is_unavailable(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with _client(handler) as client:
            result = await client.get_today_events()

        assert isinstance(result, Unavailable)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "response",
        [
            httpx.Response(200, text="<html>not json</html>"),
            httpx.Response(200, json=["not", "an", "object"]),
            httpx.Response(200, json={"events": [{"eventId": "EVT-002"}]}),
            httpx.Response(200, json={"events": [{"kickoff": "soon", "expectedEnd": "later"}]}),
            httpx.Response(200, json={"events": ["EVT-001"]}),
            httpx.Response(
                200,
                json={"events": [{"eventId": "EVT-003", "kickoff": None, "expectedEnd": None}]},
            ),
            httpx.Response(
                200,
                json={"events": [{"eventId": "EVT-004", "kickoff": 1710424800, "expectedEnd": 1710432000}]},
            ),
        ],
    )
    async def test_malformed_payload_is_unavailable(self, response):
        async with _client(lambda request: response) as client:
            result = await client.get_today_events()

        assert isinstance(result, Unavailable)


class TestGetDemandMultiplier:
    @pytest.mark.asyncio
    async def test_parses_pascal_case_payload(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/events/demand-multiplier"
            return httpx.Response(200, json=DEMAND_PAYLOAD)

        async with _client(handler) as client:
            result = await client.get_demand_multiplier()

        assert isinstance(result, Available)
        assert result.value.multiplier == 2.0
        assert result.value.reason == "Arsenal vs Chelsea in progress"
        assert result.value.timestamp == datetime(2026, 3, 14, 14, 50, tzinfo=timezone.utc)

    @pytest.mark.asyncio
    async def test_parses_camel_case_payload(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"multiplier": 1.0, "reason": "No active events"})

        async with _client(handler) as client:
            result = await client.get_demand_multiplier()

        assert result.value.multiplier == 1.0
        assert result.value.timestamp is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload",
        [
            {"reason": "missing"},
            {"multiplier": -1.0},
            {"multiplier": "lots"},
            {"multiplier": None},
        ],
    )
    async def test_invalid_multiplier_is_unavailable(self, payload):
        async with _client(lambda request: httpx.Response(200, json=payload)) as client:
            result = await client.get_demand_multiplier()

        assert isinstance(result, Unavailable)

    @pytest.mark.asyncio
    async def test_seven_digit_fraction_timestamp(self):
        payload = {
            "Timestamp": "2026-03-14T12:20:33.1234567Z",
            "Multiplier": 1.5,
            "Reason": "Pre-match build-up",
        }
        async with _client(lambda request: httpx.Response(200, json=payload)) as client:
            result = await client.get_demand_multiplier()

        assert isinstance(result, Available)
        assert result.value.multiplier == 1.5
        assert result.value.timestamp == datetime(
            2026, 3, 14, 12, 20, 33, 123456, tzinfo=timezone.utc
        )

    @pytest.mark.asyncio
    @pytest.mark.parametrize("timestamp", [12345, "yesterday-ish", ["2026-03-14"]])
    async def test_unreadable_timestamp_keeps_multiplier(self, timestamp):
        payload = {"Timestamp": timestamp, "Multiplier": 2.0, "Reason": "Match day"}
        async with _client(lambda request: httpx.Response(200, json=payload)) as client:
            result = await client.get_demand_multiplier()

        assert isinstance(result, Available)
        assert result.value.multiplier == 2.0
        assert result.value.timestamp is None
