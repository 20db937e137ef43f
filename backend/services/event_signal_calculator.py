"""
Event Signal Calculator

Scores a forecast hour against the day's scheduled events. Each event places
the hour in exactly one temporal zone (early arrivals through wind-down);
zone scores are summed across events and the combined score is capped at 10.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, Optional, Sequence

from models.signals import Event

MAX_EVENT_SIGNAL = 10.0


class EventZone(str, Enum):
    """Where a forecast hour falls relative to one event's match window"""
    EARLY_ARRIVALS = "early_arrivals"
    PRE_MATCH_BUILD = "pre_match_build"
    PRE_MATCH_RUSH = "pre_match_rush"
    HALF_TIME = "half_time"
    IN_MATCH = "in_match"
    POST_MATCH = "post_match"
    WIND_DOWN = "wind_down"
    QUIET = "quiet"


@dataclass(frozen=True)
class ZoneTiming:
    """Minute offsets of a forecast hour relative to one event."""

    to_kickoff: float
    since_kickoff: float
    since_end: float
    before_end: bool

    @classmethod
    def between(cls, forecast_hour: datetime, event: Event) -> "ZoneTiming":
        return cls(
            to_kickoff=(event.kickoff - forecast_hour).total_seconds() / 60.0,
            since_kickoff=(forecast_hour - event.kickoff).total_seconds() / 60.0,
            since_end=(forecast_hour - event.expected_end).total_seconds() / 60.0,
            before_end=forecast_hour <= event.expected_end,
        )


@dataclass(frozen=True)
class ZoneRule:
    zone: EventZone
    applies: Callable[[ZoneTiming], bool]
    score: float


# Evaluated in order; the first matching rule wins.
ZONE_RULES: tuple[ZoneRule, ...] = (
    ZoneRule(EventZone.EARLY_ARRIVALS, lambda t: t.to_kickoff > 120, 2.0),
    ZoneRule(EventZone.PRE_MATCH_BUILD, lambda t: 60 < t.to_kickoff <= 120, 5.0),
    ZoneRule(EventZone.PRE_MATCH_RUSH, lambda t: 0 < t.to_kickoff <= 60, 8.0),
    ZoneRule(
        EventZone.HALF_TIME,
        lambda t: 45 <= t.since_kickoff <= 60 and t.before_end,
        10.0,
    ),
    ZoneRule(EventZone.IN_MATCH, lambda t: t.since_kickoff >= 0 and t.before_end, 8.0),
    ZoneRule(EventZone.POST_MATCH, lambda t: 0 <= t.since_end <= 30, 7.0),
    ZoneRule(EventZone.WIND_DOWN, lambda t: 30 < t.since_end <= 90, 4.0),
)

QUIET_RULE = ZoneRule(EventZone.QUIET, lambda t: True, 0.0)


def match_zone(forecast_hour: datetime, event: Event) -> ZoneRule:
    """Return the zone rule the forecast hour falls in for a single event."""
    timing = ZoneTiming.between(forecast_hour, event)
    for rule in ZONE_RULES:
        if rule.applies(timing):
            return rule
    return QUIET_RULE


def classify_zone(forecast_hour: datetime, event: Event) -> EventZone:
    return match_zone(forecast_hour, event).zone


def first_active_zone(
    forecast_hour: datetime,
    events: Sequence[Event],
) -> Optional[tuple[EventZone, Event]]:
    """First event (in list order) whose zone is not QUIET, with that zone."""
    for event in events:
        zone = classify_zone(forecast_hour, event)
        if zone is not EventZone.QUIET:
            return zone, event
    return None


class EventSignalCalculator:
    """Combines per-event zone scores into a single 0-10 event signal."""

    def calculate(self, forecast_hour: datetime, events: Sequence[Event]) -> float:
        if not events:
            return 0.0

        combined = sum(match_zone(forecast_hour, event).score for event in events)
        return min(combined, MAX_EVENT_SIGNAL)
