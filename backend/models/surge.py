"""
Surge Forecast Models

Pydantic response models for hourly surge forecasts. Field names are
snake_case in Python and serialised as camelCase on the wire.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class SurgeIntensity(str, Enum):
    """Categorical bucket derived from the surge score"""
    QUIET = "QUIET"
    MODERATE = "MODERATE"
    BUSY = "BUSY"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class Confidence(str, Enum):
    """How many upstream signal sources were available at forecast time"""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class SurgeBreakdown(_CamelModel):
    """Per-signal subscores (0-10) behind one hourly surge score."""

    event: float = Field(..., ge=0.0, le=10.0)
    demand: float = Field(..., ge=0.0, le=10.0)
    weather: float = Field(..., ge=0.0, le=10.0)
    time_of_day: float = Field(..., ge=0.0, le=10.0)


class HourlyForecast(_CamelModel):
    """Surge prediction for a single forecast hour."""

    hour: str = Field(..., pattern=r"^\d{2}:00$")
    surge_score: float = Field(..., ge=0.0, le=10.0)
    intensity: SurgeIntensity
    label: str
    breakdown: SurgeBreakdown


class SignalSummary(_CamelModel):
    """Which signals fed the forecast, and the current-hour weather reading."""

    events_available: bool
    weather_available: bool
    active_events: int = Field(default=0, ge=0)
    temperature: Optional[float] = None
    rain_probability: Optional[float] = None  # fraction 0-1


class ForecastResponse(_CamelModel):
    """
    Hourly surge forecast for a venue.

    ``forecast`` is ordered by ascending hour starting at the current hour.
    """

    pub_id: str
    generated_at: datetime
    confidence: Confidence
    signals: SignalSummary
    forecast: List[HourlyForecast] = Field(default_factory=list)

    @field_validator("generated_at")
    @classmethod
    def validate_generated_at_has_timezone(cls, v: datetime) -> datetime:
        """Ensure generated_at has timezone info"""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v


class PeakResponse(_CamelModel):
    """Single busiest hour derived from a forecast. Never persisted."""

    pub_id: str
    peak_hour: str
    surge_score: float = Field(..., ge=0.0, le=10.0)
    intensity: SurgeIntensity
    label: str
    confidence: Confidence
