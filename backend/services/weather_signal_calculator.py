"""
Weather Signal Calculator

Maps temperature and rain probability at a forecast hour to a 0-10
footfall-propensity score. Warmer weather draws people out; heavy rain drives
them indoors; a warm dry hour earns a sunshine bonus.
"""

from datetime import datetime
from typing import Optional

from models.signals import WeatherSeries

# Unknown weather is treated as an average hour
FALLBACK_SCORE = 5.0

MAX_TEMPERATURE_SCORE = 5.0
DEGREES_PER_POINT = 5.0

RAIN_THRESHOLD_PCT = 60.0
RAIN_MODIFIER = 3.0

SUN_RAIN_CEILING_PCT = 30.0
SUN_TEMPERATURE_FLOOR_C = 18.0
SUN_BONUS = 2.0


class WeatherSignalCalculator:
    """Scores one forecast hour from an optional hourly weather series."""

    def calculate(
        self,
        forecast_hour: datetime,
        weather: Optional[WeatherSeries],
    ) -> float:
        if weather is None:
            return FALLBACK_SCORE

        temperature, rain_probability = weather.at(forecast_hour)
        if temperature is None:
            return FALLBACK_SCORE

        return self.score(temperature, rain_probability)

    @staticmethod
    def score(temperature: float, rain_probability: Optional[float]) -> float:
        """
        Score a single reading.

        0°C maps to 0 and 25°C+ to the 5-point temperature ceiling. A missing
        rain probability earns neither the rain modifier nor the sun bonus.
        """
        temp_score = max(0.0, min(temperature / DEGREES_PER_POINT, MAX_TEMPERATURE_SCORE))

        rain_modifier = 0.0
        sun_bonus = 0.0
        if rain_probability is not None:
            if rain_probability > RAIN_THRESHOLD_PCT:
                rain_modifier = RAIN_MODIFIER
            if (
                rain_probability < SUN_RAIN_CEILING_PCT
                and temperature > SUN_TEMPERATURE_FLOOR_C
            ):
                sun_bonus = SUN_BONUS

        return min(temp_score + rain_modifier + sun_bonus, 10.0)
