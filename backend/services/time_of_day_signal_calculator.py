"""Static time-of-day baseline: typical trading rhythm by hour."""

from datetime import datetime


def _build_table() -> tuple[float, ...]:
    table = [0.0] * 24
    bands = (
        (10, 12, 2.0),  # morning trickle
        (12, 14, 5.0),  # lunch
        (14, 16, 4.0),  # afternoon
        (16, 18, 6.0),  # after work
        (18, 21, 8.0),  # evening peak
        (21, 23, 6.0),  # wind-down
    )
    for start, end, score in bands:
        for hour in range(start, end):
            table[hour] = score
    return tuple(table)


# Indexed by hour of day; hours not in a band (late night, 06-09) score 0
HOURLY_BASELINE: tuple[float, ...] = _build_table()


class TimeOfDaySignalCalculator:
    def calculate(self, forecast_hour: datetime) -> float:
        return HOURLY_BASELINE[forecast_hour.hour]
