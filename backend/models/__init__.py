"""
Data Models

Upstream signal records and the surge API response models.
"""

from models.signals import (
    Available,
    Unavailable,
    SignalResult,
    Event,
    DemandMultiplier,
    WeatherSeries,
)

from models.surge import (
    SurgeIntensity,
    Confidence,
    SurgeBreakdown,
    HourlyForecast,
    SignalSummary,
    ForecastResponse,
    PeakResponse,
)

__all__ = [
    # Upstream signals
    "Available",
    "Unavailable",
    "SignalResult",
    "Event",
    "DemandMultiplier",
    "WeatherSeries",
    # Surge responses
    "SurgeIntensity",
    "Confidence",
    "SurgeBreakdown",
    "HourlyForecast",
    "SignalSummary",
    "ForecastResponse",
    "PeakResponse",
]
