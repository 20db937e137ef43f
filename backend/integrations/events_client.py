"""
Events Directory Client

Fetches today's fixtures and the live demand multiplier from the events
service. Both calls resolve to ``Available``/``Unavailable``; failures are
logged and never raised.
"""

from typing import Optional

import httpx

from integrations.base import (
    BaseUpstreamClient,
    CircuitBreakerConfig,
    MalformedPayloadError,
    RetryConfig,
    UpstreamError,
)
from models.signals import Available, DemandMultiplier, Event, SignalResult

TODAY_EVENTS_ENDPOINT = "/events/today"
DEMAND_MULTIPLIER_ENDPOINT = "/events/demand-multiplier"


class EventsClient(BaseUpstreamClient):
    """
    Async client for the events directory.

    Usage:
        async with EventsClient(base_url="http://localhost:5001") as client:
            events = await client.get_today_events()
            demand = await client.get_demand_multiplier()
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 5.0,
        retry_config: Optional[RetryConfig] = None,
        circuit_breaker_config: Optional[CircuitBreakerConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(
            base_url=base_url,
            client_name="events",
            timeout=timeout,
            retry_config=retry_config,
            circuit_breaker_config=circuit_breaker_config,
            transport=transport,
        )

    def _parse_events(self, data) -> list[Event]:
        if not isinstance(data, dict) or not isinstance(data.get("events"), list):
            raise MalformedPayloadError(
                "Expected an object with an 'events' list",
                api_name=self.client_name,
            )
        try:
            return [Event.from_dict(item) for item in data["events"]]
        except (KeyError, TypeError, ValueError) as e:
            raise MalformedPayloadError(
                f"Invalid event entry: {e}",
                api_name=self.client_name,
            ) from e

    def _parse_demand(self, data) -> DemandMultiplier:
        if not isinstance(data, dict):
            raise MalformedPayloadError(
                "Expected a demand multiplier object",
                api_name=self.client_name,
            )
        try:
            return DemandMultiplier.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            raise MalformedPayloadError(
                f"Invalid demand multiplier: {e}",
                api_name=self.client_name,
            ) from e

    async def get_today_events(self) -> SignalResult[list[Event]]:
        """Today's scheduled events; an empty list is still ``Available``."""
        try:
            data = await self.get_json(TODAY_EVENTS_ENDPOINT)
            events = self._parse_events(data)
        except UpstreamError as e:
            return self.unavailable("get_today_events", e)

        self.logger.info("today_events_fetched", count=len(events))
        return Available(events)

    async def get_demand_multiplier(self) -> SignalResult[DemandMultiplier]:
        try:
            data = await self.get_json(DEMAND_MULTIPLIER_ENDPOINT)
            reading = self._parse_demand(data)
        except UpstreamError as e:
            return self.unavailable("get_demand_multiplier", e)

        self.logger.info(
            "demand_multiplier_fetched",
            multiplier=reading.multiplier,
            reason=reading.reason,
        )
        return Available(reading)
