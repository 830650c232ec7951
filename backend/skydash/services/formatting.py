from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone


COMPASS_POINTS = (
    "N", "NNE", "NE", "ENE", "E", "ESE", "SE", "SSE",
    "S", "SSW", "SW", "WSW", "W", "WNW", "NW", "NNW",
)


def round_half_up(value: float | None) -> int:
    return int(math.floor((value or 0.0) + 0.5))


def round_half_up_tenths(value: float | None) -> float:
    return math.floor((value or 0.0) * 10 + 0.5) / 10


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def temperature_symbol(units: str) -> str:
    return "°F" if units == "imperial" else "°C"


def format_temperature(value: float | None, units: str = "metric") -> str:
    return f"{round_half_up(value)}{temperature_symbol(units)}"


def format_wind_speed(value: float | None, units: str = "metric") -> str:
    label = "mph" if units == "imperial" else "m/s"
    return f"{round_half_up_tenths(value):.1f} {label}"


def format_visibility(meters: float | None) -> str:
    return f"{round_half_up_tenths((meters or 0.0) / 1000):.1f} km"


def format_pressure(hpa: float | None) -> str:
    return f"{round_half_up(hpa)} hPa"


def format_percent(value: float | None) -> str:
    return f"{round_half_up(clamp(value or 0.0, 0.0, 100.0))}%"


def wind_direction(degrees: float | None) -> str:
    return COMPASS_POINTS[round_half_up((degrees or 0.0) / 22.5) % 16]


def _local_datetime(timestamp: int | float, offset_seconds: int) -> datetime:
    return datetime.fromtimestamp(timestamp, tz=timezone(timedelta(seconds=offset_seconds)))


def format_time(timestamp: int | float | None, offset_seconds: int = 0) -> str:
    return _local_datetime(timestamp or 0, offset_seconds).strftime("%I:%M %p")


def format_day_label(
    timestamp: int | float | None,
    now: datetime | None = None,
    offset_seconds: int = 0,
) -> str:
    """Label a forecast instant relative to the caller's wall clock.

    Both instants are compared as calendar dates in the location's local
    time, so a 23:00 entry is still "Today" even when UTC has rolled over.
    """
    stamp = _local_datetime(timestamp or 0, offset_seconds)
    reference = (now or datetime.now(tz=timezone.utc)).astimezone(stamp.tzinfo)

    if stamp.date() == reference.date():
        return "Today"
    if stamp.date() == (reference + timedelta(days=1)).date():
        return "Tomorrow"
    return f"{stamp.strftime('%a, %b')} {stamp.day}"


def to_celsius(value: float | None, units: str = "metric") -> float:
    value = value or 0.0
    if units == "imperial":
        return (value - 32.0) * 5.0 / 9.0
    return value
