"""
Upstream Signal Models

Immutable snapshots of the data the surge engine reads from its upstream
collaborators (events directory and weather provider), plus the two-case
result type every upstream fetch resolves to.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Generic, Optional, TypeVar, Union
import re

T = TypeVar("T")

HOUR_KEY_FORMAT = "%Y-%m-%dT%H:00"

# The events service sends 7 fractional digits; fromisoformat takes at most 6
_FRACTION_PATTERN = re.compile(r"(\.\d{6})\d+")


def _parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp, treating naive values as UTC."""
    if not isinstance(value, str):
        raise TypeError(f"timestamp must be a string, got {type(value).__name__}")
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    value = _FRACTION_PATTERN.sub(r"\1", value, count=1)
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def hour_key(moment: datetime) -> str:
    """Format a moment as the weather series hour key (``YYYY-MM-DDTHH:00``)."""
    return moment.strftime(HOUR_KEY_FORMAT)


def _optional_float(value) -> Optional[float]:
    return float(value) if value is not None else None


# =============================================================================
# RESULT TYPE
# =============================================================================


@dataclass(frozen=True)
class Available(Generic[T]):
    """An upstream fetch that succeeded."""

    value: T

    @property
    def is_available(self) -> bool:
        return True

    def value_or(self, default: T) -> T:
        return self.value


@dataclass(frozen=True)
class Unavailable:
    """An upstream fetch that failed (timeout, bad status, malformed payload)."""

    reason: str = "unavailable"

    @property
    def is_available(self) -> bool:
        return False

    def value_or(self, default: T) -> T:
        return default


SignalResult = Union[Available[T], Unavailable]


# =============================================================================
# EVENTS
# =============================================================================


@dataclass(frozen=True)
class Event:
    """A scheduled fixture published by the events directory."""

    event_id: str
    kickoff: datetime
    expected_end: datetime
    demand_multiplier: float = 1.0

    sport: Optional[str] = None
    competition: Optional[str] = None
    home_team: Optional[str] = None
    away_team: Optional[str] = None

    @property
    def description(self) -> str:
        if self.home_team and self.away_team:
            return f"{self.home_team} vs {self.away_team}"
        return self.event_id

    @classmethod
    def from_dict(cls, data: dict) -> "Event":
        """Create from an events-directory payload (camelCase keys)"""
        if not isinstance(data, dict):
            raise TypeError(f"event entry must be an object, got {type(data).__name__}")
        return cls(
            event_id=str(data.get("eventId", "")),
            kickoff=_parse_timestamp(data["kickoff"]),
            expected_end=_parse_timestamp(data["expectedEnd"]),
            demand_multiplier=float(data.get("demandMultiplier", 1.0)),
            sport=data.get("sport"),
            competition=data.get("competition"),
            home_team=data.get("homeTeam"),
            away_team=data.get("awayTeam"),
        )


@dataclass(frozen=True)
class DemandMultiplier:
    """Real-time crowd pressure published independently of any single event."""

    multiplier: float = 1.0
    reason: str = ""
    timestamp: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: dict) -> "DemandMultiplier":
        """Create from payload; the events directory emits PascalCase keys here"""
        normalized = {key.lower(): value for key, value in data.items()}
        if "multiplier" not in normalized:
            raise KeyError("multiplier")
        multiplier = float(normalized["multiplier"])
        if multiplier < 0:
            raise ValueError("multiplier must be >= 0")
        # The timestamp is informational; an unreadable one never drops the reading
        timestamp = None
        raw_timestamp = normalized.get("timestamp")
        if raw_timestamp:
            try:
                timestamp = _parse_timestamp(raw_timestamp)
            except (TypeError, ValueError):
                timestamp = None
        return cls(
            multiplier=multiplier,
            reason=str(normalized.get("reason") or ""),
            timestamp=timestamp,
        )


# =============================================================================
# WEATHER
# =============================================================================


@dataclass(frozen=True)
class WeatherSeries:
    """
    Hourly weather snapshot as parallel sequences indexed by hour.

    ``rain_probabilities`` are percentages (0-100).
    """

    times: tuple[str, ...] = field(default_factory=tuple)
    temperatures: tuple[Optional[float], ...] = field(default_factory=tuple)
    rain_probabilities: tuple[Optional[float], ...] = field(default_factory=tuple)

    def at(self, moment: datetime) -> tuple[Optional[float], Optional[float]]:
        """Return ``(temperature, rain_probability)`` for the hour containing *moment*."""
        key = hour_key(moment)
        try:
            index = self.times.index(key)
        except ValueError:
            return None, None

        temperature = self.temperatures[index] if index < len(self.temperatures) else None
        rain = self.rain_probabilities[index] if index < len(self.rain_probabilities) else None
        return temperature, rain

    @classmethod
    def from_open_meteo(cls, data: dict) -> "WeatherSeries":
        """Create from an Open-Meteo ``/v1/forecast`` response."""
        hourly = data.get("hourly")
        if not isinstance(hourly, dict):
            raise ValueError("Open-Meteo response has no hourly block")

        # Open-Meteo emits null for hours it cannot forecast
        return cls(
            times=tuple(str(t) for t in hourly.get("time", [])),
            temperatures=tuple(_optional_float(v) for v in hourly.get("temperature_2m", [])),
            rain_probabilities=tuple(
                _optional_float(v) for v in hourly.get("precipitation_probability", [])
            ),
        )
