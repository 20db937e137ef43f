"""
Pytest Configuration and Shared Fixtures

This module provides common fixtures and configuration for all tests.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Sequence
from unittest.mock import AsyncMock

import pytest

# Add backend directory to path for imports
import sys
from pathlib import Path

backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

from models.signals import (  # noqa: E402
    Available,
    DemandMultiplier,
    Event,
    Unavailable,
    WeatherSeries,
    hour_key,
)


# =============================================================================
# SAMPLE DATA FACTORIES
# =============================================================================


FIXED_NOW = datetime(2026, 3, 14, 12, 20, tzinfo=timezone.utc)


def make_event(
    kickoff: datetime,
    duration_minutes: int = 120,
    event_id: str = "EVT-001",
    demand_multiplier: float = 1.0,
    home_team: Optional[str] = "Arsenal",
    away_team: Optional[str] = "Chelsea",
) -> Event:
    """Build an Event whose expected end is ``duration_minutes`` after kickoff."""
    return Event(
        event_id=event_id,
        kickoff=kickoff,
        expected_end=kickoff + timedelta(minutes=duration_minutes),
        demand_multiplier=demand_multiplier,
        sport="Football",
        competition="Premier League",
        home_team=home_team,
        away_team=away_team,
    )


def make_weather_series(
    day: datetime,
    temperature: Optional[float] = 8.5,
    rain_probability: Optional[float] = 15.0,
    overrides: Optional[dict] = None,
) -> WeatherSeries:
    """
    Build a 24-hour WeatherSeries for ``day`` with constant readings.

    ``overrides`` maps an hour of day to a ``(temperature, rain)`` pair.
    """
    overrides = overrides or {}
    start = day.replace(hour=0, minute=0, second=0, microsecond=0)
    times, temperatures, rains = [], [], []
    for hour in range(24):
        moment = start + timedelta(hours=hour)
        temp, rain = overrides.get(hour, (temperature, rain_probability))
        times.append(hour_key(moment))
        temperatures.append(temp)
        rains.append(rain)
    return WeatherSeries(
        times=tuple(times),
        temperatures=tuple(temperatures),
        rain_probabilities=tuple(rains),
    )


def make_open_meteo_payload(series: WeatherSeries) -> dict:
    """Render a WeatherSeries as an Open-Meteo forecast response."""
    return {
        "latitude": 51.5,
        "longitude": -0.1,
        "timezone": "GMT",
        "hourly": {
            "time": list(series.times),
            "temperature_2m": list(series.temperatures),
            "precipitation_probability": list(series.rain_probabilities),
        },
    }


def make_events_provider(
    events: Optional[Sequence[Event]] = None,
    multiplier: Optional[float] = 1.0,
) -> AsyncMock:
    """
    Fake events directory. ``events=None`` or ``multiplier=None`` makes the
    corresponding call resolve to Unavailable.
    """
    provider = AsyncMock()
    provider.get_today_events.return_value = (
        Available(list(events)) if events is not None else Unavailable("events down")
    )
    provider.get_demand_multiplier.return_value = (
        Available(DemandMultiplier(multiplier=multiplier, reason="test"))
        if multiplier is not None
        else Unavailable("events down")
    )
    return provider


def make_weather_provider(series: Optional[WeatherSeries] = None) -> AsyncMock:
    """Fake weather provider; ``series=None`` resolves to Unavailable."""
    provider = AsyncMock()
    provider.get_hourly_weather.return_value = (
        Available(series) if series is not None else Unavailable("weather down")
    )
    return provider


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def kickoff(fixed_now) -> datetime:
    """Kickoff at 14:00 on the fixed test day."""
    return fixed_now.replace(hour=14, minute=0)


@pytest.fixture
def sample_event(kickoff) -> Event:
    return make_event(kickoff, demand_multiplier=2.0)


@pytest.fixture
def sample_weather(fixed_now) -> WeatherSeries:
    return make_weather_series(fixed_now)
