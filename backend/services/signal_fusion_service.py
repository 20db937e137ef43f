"""
Signal Fusion Engine

Builds hourly surge forecasts for a venue by combining four independent
signals with fixed weights:

- event signal (40%): temporal zones around scheduled fixtures
- demand signal (25%): real-time demand multiplier from the events directory
- weather signal (20%): temperature and rain at the forecast hour
- time-of-day signal (15%): static trading baseline

Upstream data is fetched concurrently. A missing source never fails the
request; it lowers the forecast confidence and the affected signal falls back
to its documented default.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Protocol, Sequence

import structlog

from models.signals import (
    DemandMultiplier,
    Event,
    SignalResult,
    Unavailable,
    WeatherSeries,
)
from models.surge import (
    Confidence,
    ForecastResponse,
    HourlyForecast,
    PeakResponse,
    SignalSummary,
    SurgeBreakdown,
    SurgeIntensity,
)
from services.event_signal_calculator import (
    EventSignalCalculator,
    EventZone,
    first_active_zone,
)
from services.time_of_day_signal_calculator import TimeOfDaySignalCalculator
from services.weather_signal_calculator import WeatherSignalCalculator

logger = structlog.get_logger(__name__)


EVENT_WEIGHT = 0.40
DEMAND_WEIGHT = 0.25
WEATHER_WEIGHT = 0.20
TIME_WEIGHT = 0.15

BASELINE_MULTIPLIER = 1.0
DEMAND_SCALE = 2.5

NO_PEAK_HOUR = "N/A"
NO_PEAK_LABEL = "No forecast data available"

# Upper bounds (inclusive) of each intensity bucket; anything above is CRITICAL
INTENSITY_THRESHOLDS: tuple[tuple[float, SurgeIntensity], ...] = (
    (2.0, SurgeIntensity.QUIET),
    (4.0, SurgeIntensity.MODERATE),
    (6.0, SurgeIntensity.BUSY),
    (8.0, SurgeIntensity.HIGH),
)

ZONE_LABELS: dict[EventZone, str] = {
    EventZone.EARLY_ARRIVALS: "Early arrivals expected",
    EventZone.PRE_MATCH_BUILD: "Pre-match build-up starting",
    EventZone.PRE_MATCH_RUSH: "Kickoff approaching — rush imminent",
    EventZone.HALF_TIME: "Half-time surge — all hands on deck",
    EventZone.POST_MATCH: "Post-match surge",
    EventZone.WIND_DOWN: "Post-match wind-down",
}
FIRST_HALF_LABEL = "First half — expect rush at the bar"
SECOND_HALF_LABEL = "Second half underway"

INTENSITY_LABELS: dict[SurgeIntensity, str] = {
    SurgeIntensity.QUIET: "Normal trading expected",
    SurgeIntensity.MODERATE: "Slightly above baseline",
    SurgeIntensity.BUSY: "Noticeable demand increase",
    SurgeIntensity.HIGH: "Significant demand — prepare accordingly",
    SurgeIntensity.CRITICAL: "Peak demand — all hands on deck",
}


class EventsProvider(Protocol):
    async def get_today_events(self) -> SignalResult[list[Event]]: ...

    async def get_demand_multiplier(self) -> SignalResult[DemandMultiplier]: ...


class WeatherProvider(Protocol):
    async def get_hourly_weather(self) -> SignalResult[WeatherSeries]: ...


@dataclass(frozen=True)
class SignalSnapshot:
    """Upstream data gathered for one forecast request."""

    events: SignalResult[list[Event]]
    demand: SignalResult[DemandMultiplier]
    weather: SignalResult[WeatherSeries]

    @property
    def events_available(self) -> bool:
        return self.events.is_available

    @property
    def weather_available(self) -> bool:
        return self.weather.is_available

    @property
    def event_list(self) -> list[Event]:
        return list(self.events.value_or([]))

    @property
    def multiplier(self) -> float:
        reading = self.demand.value_or(None)
        return reading.multiplier if reading is not None else BASELINE_MULTIPLIER

    @property
    def weather_series(self) -> Optional[WeatherSeries]:
        return self.weather.value_or(None)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(moment: datetime) -> datetime:
    """Weather hours and forecast labels are keyed in UTC; naive values are taken as UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def truncate_to_hour(moment: datetime) -> datetime:
    return moment.replace(minute=0, second=0, microsecond=0)


def determine_confidence(events_available: bool, weather_available: bool) -> Confidence:
    available = int(events_available) + int(weather_available)
    if available == 2:
        return Confidence.HIGH
    if available == 1:
        return Confidence.MEDIUM
    return Confidence.LOW


def classify_intensity(score: float) -> SurgeIntensity:
    for upper_bound, intensity in INTENSITY_THRESHOLDS:
        if score <= upper_bound:
            return intensity
    return SurgeIntensity.CRITICAL


def demand_signal(multiplier: float) -> float:
    """Map a demand multiplier (baseline 1.0) onto the 0-10 signal scale."""
    return max(0.0, min(multiplier * DEMAND_SCALE, 10.0))


def fuse_signals(event: float, demand: float, weather: float, time_of_day: float) -> float:
    weighted = (
        event * EVENT_WEIGHT
        + demand * DEMAND_WEIGHT
        + weather * WEATHER_WEIGHT
        + time_of_day * TIME_WEIGHT
    )
    return max(0.0, min(round(weighted, 1), 10.0))


def generate_label(score: float, forecast_hour: datetime, events: Sequence[Event]) -> str:
    """Zone phrase for the first event with a recognisable zone, else a score phrase."""
    active = first_active_zone(forecast_hour, events)
    if active is not None:
        zone, event = active
        if zone is EventZone.IN_MATCH:
            minutes_in = (forecast_hour - event.kickoff).total_seconds() / 60.0
            return FIRST_HALF_LABEL if minutes_in < 45 else SECOND_HALF_LABEL
        return ZONE_LABELS[zone]

    return INTENSITY_LABELS[classify_intensity(score)]


def select_peak(forecast: Sequence[HourlyForecast]) -> Optional[HourlyForecast]:
    """Hour with the strictly highest score; ties go to the earliest hour."""
    peak: Optional[HourlyForecast] = None
    for entry in forecast:
        if peak is None or entry.surge_score > peak.surge_score:
            peak = entry
    return peak


class SignalFusionEngine:
    """
    Orchestrates upstream retrieval and per-hour signal fusion.

    The engine holds no per-request state; every call builds a fresh response
    from the upstream snapshot and the injected clock.
    """

    def __init__(
        self,
        events_provider: EventsProvider,
        weather_provider: WeatherProvider,
        event_calculator: Optional[EventSignalCalculator] = None,
        weather_calculator: Optional[WeatherSignalCalculator] = None,
        time_calculator: Optional[TimeOfDaySignalCalculator] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._events_provider = events_provider
        self._weather_provider = weather_provider
        self._event_calculator = event_calculator or EventSignalCalculator()
        self._weather_calculator = weather_calculator or WeatherSignalCalculator()
        self._time_calculator = time_calculator or TimeOfDaySignalCalculator()
        self._clock = clock
        self.logger = logger.bind(service="signal_fusion")

    async def gather_signals(self) -> SignalSnapshot:
        """Fetch events, demand multiplier and weather concurrently."""
        results = await asyncio.gather(
            self._events_provider.get_today_events(),
            self._events_provider.get_demand_multiplier(),
            self._weather_provider.get_hourly_weather(),
            return_exceptions=True,
        )

        resolved = []
        for source, result in zip(("events", "demand", "weather"), results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                # Providers are expected to resolve failures themselves
                self.logger.warning(
                    "signal_provider_raised",
                    source=source,
                    error=str(result),
                    error_type=type(result).__name__,
                )
                result = Unavailable(reason=f"{type(result).__name__}: {result}")
            resolved.append(result)

        return SignalSnapshot(events=resolved[0], demand=resolved[1], weather=resolved[2])

    def build_hourly_forecast(
        self,
        forecast_hour: datetime,
        events: Sequence[Event],
        demand: float,
        weather: Optional[WeatherSeries],
    ) -> HourlyForecast:
        event_score = self._event_calculator.calculate(forecast_hour, events)
        weather_score = self._weather_calculator.calculate(forecast_hour, weather)
        time_score = self._time_calculator.calculate(forecast_hour)

        surge_score = fuse_signals(event_score, demand, weather_score, time_score)

        return HourlyForecast(
            hour=forecast_hour.strftime("%H:00"),
            surge_score=surge_score,
            intensity=classify_intensity(surge_score),
            label=generate_label(surge_score, forecast_hour, events),
            breakdown=SurgeBreakdown(
                event=round(event_score, 2),
                demand=round(demand, 2),
                weather=round(weather_score, 2),
                time_of_day=round(time_score, 2),
            ),
        )

    async def get_forecast(self, pub_id: str, hours: int) -> ForecastResponse:
        """
        Forecast surge for each of the next ``hours`` hours, starting at the
        current hour.

        Raises:
            ValueError: If hours is less than 1
        """
        if hours < 1:
            raise ValueError("hours must be >= 1")

        snapshot = await self.gather_signals()

        now = as_utc(self._clock())
        events = snapshot.event_list
        weather = snapshot.weather_series
        demand = demand_signal(snapshot.multiplier)
        confidence = determine_confidence(
            snapshot.events_available, snapshot.weather_available
        )

        start = truncate_to_hour(now)
        forecast = [
            self.build_hourly_forecast(start + timedelta(hours=i), events, demand, weather)
            for i in range(hours)
        ]

        current_temperature: Optional[float] = None
        current_rain: Optional[float] = None
        if weather is not None:
            current_temperature, rain_pct = weather.at(now)
            if rain_pct is not None:
                current_rain = rain_pct / 100.0

        self.logger.info(
            "forecast_generated",
            pub_id=pub_id,
            hours=hours,
            confidence=confidence.value,
            events_available=snapshot.events_available,
            weather_available=snapshot.weather_available,
            active_events=len(events),
        )

        return ForecastResponse(
            pub_id=pub_id,
            generated_at=now,
            confidence=confidence,
            signals=SignalSummary(
                events_available=snapshot.events_available,
                weather_available=snapshot.weather_available,
                active_events=len(events),
                temperature=current_temperature,
                rain_probability=current_rain,
            ),
            forecast=forecast,
        )

    async def get_peak(self, pub_id: str, hours: int = 8) -> PeakResponse:
        """Busiest hour of the forecast window."""
        forecast = await self.get_forecast(pub_id, hours)
        return self.peak_from_forecast(forecast)

    @staticmethod
    def peak_from_forecast(forecast: ForecastResponse) -> PeakResponse:
        peak = select_peak(forecast.forecast)
        if peak is None:
            return PeakResponse(
                pub_id=forecast.pub_id,
                peak_hour=NO_PEAK_HOUR,
                surge_score=0.0,
                intensity=SurgeIntensity.QUIET,
                label=NO_PEAK_LABEL,
                confidence=forecast.confidence,
            )

        return PeakResponse(
            pub_id=forecast.pub_id,
            peak_hour=peak.hour,
            surge_score=peak.surge_score,
            intensity=peak.intensity,
            label=peak.label,
            confidence=forecast.confidence,
        )
