"""
External API Integrations

Clients for the upstream signal sources:

- Events directory: today's fixtures and the live demand multiplier
- Open-Meteo: hourly temperature and precipitation probability

All clients support:
- Async/await with httpx
- Automatic retry with exponential backoff
- Circuit breaker pattern
- Structured logging
- Failures resolved to ``Unavailable`` instead of raised
"""

from .base import (
    BaseUpstreamClient,
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitState,
    RetryConfig,
    # Errors
    UpstreamError,
    UpstreamTimeoutError,
    UpstreamStatusError,
    MalformedPayloadError,
    CircuitBreakerOpenError,
)
from .cache import CacheConfig, InMemoryCache
from .events_client import EventsClient
from .weather_service import WeatherService

__all__ = [
    "BaseUpstreamClient",
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitState",
    "RetryConfig",
    "UpstreamError",
    "UpstreamTimeoutError",
    "UpstreamStatusError",
    "MalformedPayloadError",
    "CircuitBreakerOpenError",
    "CacheConfig",
    "InMemoryCache",
    "EventsClient",
    "WeatherService",
]
