"""
Business Logic Services

Signal calculators and the fusion engine for the Surge Predictor API.
"""

from services.event_signal_calculator import EventSignalCalculator, EventZone
from services.weather_signal_calculator import WeatherSignalCalculator
from services.time_of_day_signal_calculator import TimeOfDaySignalCalculator
from services.signal_fusion_service import SignalFusionEngine

__all__ = [
    "EventSignalCalculator",
    "EventZone",
    "WeatherSignalCalculator",
    "TimeOfDaySignalCalculator",
    "SignalFusionEngine",
]
