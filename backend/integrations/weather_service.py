"""
Open-Meteo Integration for Weather-Aware Surge Forecasting

Provides the hourly temperature and precipitation probability that feed the
weather signal. Open-Meteo needs no API key; the free forecast endpoint
returns one day of hourly data in GMT.

Successful responses are cached in memory for the configured TTL. Failures
are never cached so the next request retries the provider.
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
from integrations.cache import CacheConfig, InMemoryCache
from models.signals import Available, SignalResult, WeatherSeries

# Central London (the default venue catchment)
DEFAULT_LAT = 51.5
DEFAULT_LON = -0.1

FORECAST_ENDPOINT = "/v1/forecast"
HOURLY_FIELDS = "temperature_2m,precipitation_probability"
CACHE_KEY = "weather_hourly_data"


class WeatherService(BaseUpstreamClient):
    """
    Async client for the Open-Meteo forecast API.

    Usage:
        async with WeatherService() as service:
            weather = await service.get_hourly_weather()
    """

    def __init__(
        self,
        base_url: str = "https://api.open-meteo.com",
        latitude: float = DEFAULT_LAT,
        longitude: float = DEFAULT_LON,
        timeout: float = 3.0,
        cache_ttl_seconds: int = 1800,
        cache: Optional[InMemoryCache] = None,
        retry_config: Optional[RetryConfig] = None,
        circuit_breaker_config: Optional[CircuitBreakerConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(
            base_url=base_url,
            client_name="open_meteo",
            timeout=timeout,
            retry_config=retry_config,
            circuit_breaker_config=circuit_breaker_config,
            transport=transport,
        )
        self.latitude = latitude
        self.longitude = longitude
        self.cache_ttl_seconds = cache_ttl_seconds
        self.cache = cache or InMemoryCache(
            CacheConfig(default_ttl_seconds=cache_ttl_seconds, key_prefix="weather")
        )

    def _query_params(self) -> dict:
        return {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "hourly": HOURLY_FIELDS,
            "forecast_days": 1,
        }

    def _parse_weather(self, data) -> WeatherSeries:
        """Parse an Open-Meteo response into a WeatherSeries."""
        if not isinstance(data, dict):
            raise MalformedPayloadError(
                "Expected a JSON object",
                api_name=self.client_name,
            )
        try:
            return WeatherSeries.from_open_meteo(data)
        except (TypeError, ValueError) as e:
            raise MalformedPayloadError(
                f"Invalid hourly data: {e}",
                api_name=self.client_name,
            ) from e

    async def get_hourly_weather(self) -> SignalResult[WeatherSeries]:
        """Hourly weather for today, served from cache when fresh."""
        cached = await self.cache.get(CACHE_KEY)
        if cached is not None:
            self.logger.info("weather_cache_hit")
            return Available(cached)

        try:
            data = await self.get_json(FORECAST_ENDPOINT, params=self._query_params())
            series = self._parse_weather(data)
        except UpstreamError as e:
            return self.unavailable("get_hourly_weather", e)

        await self.cache.set(CACHE_KEY, series, ttl=self.cache_ttl_seconds)
        self.logger.info(
            "weather_fetched",
            hours=len(series.times),
            cache_ttl_seconds=self.cache_ttl_seconds,
        )
        return Available(series)
