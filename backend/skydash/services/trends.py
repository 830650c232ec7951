from __future__ import annotations

from dataclasses import dataclass
from statistics import mean
from typing import Callable, Sequence

from skydash.schemas import ForecastPoint, Trend
from skydash.services.formatting import round_half_up


@dataclass(frozen=True)
class TrendThresholds:
    window: int = 5
    step_delta: float = 1.0
    direction_score: int = 1
    pressure_change_hpa: float = 5.0
    humid_period_pct: float = 80.0


DEFAULT_TREND_THRESHOLDS = TrendThresholds()


def _signed(value: int) -> str:
    return f"+{value}" if value > 0 else str(value)


def _step_sign(delta: float, limit: float) -> int:
    # A full one-degree step counts, so a steady +1°/day ramp reads as rising.
    if delta >= limit:
        return 1
    if delta <= -limit:
        return -1
    return 0


def _temperature_trend(points: Sequence[ForecastPoint], units: str, thresholds: TrendThresholds) -> Trend | None:
    # Steps are measured in the series' own unit (°C or °F).
    temps = [point.temperature for point in points]
    score = sum(
        _step_sign(current - previous, thresholds.step_delta)
        for previous, current in zip(temps, temps[1:])
    )
    average_step = (temps[-1] - temps[0]) / (len(temps) - 1)
    value = f"{_signed(round_half_up(average_step))}°"

    if score > thresholds.direction_score:
        return Trend(
            icon="📈",
            title="Rising Temperature",
            description="Temperatures are trending upward over the forecast period.",
            category="positive",
            value=value,
            magnitude=round(average_step, 2),
        )
    if score < -thresholds.direction_score:
        return Trend(
            icon="📉",
            title="Cooling Trend",
            description="Temperatures are expected to drop in the coming days.",
            category="negative",
            value=value,
            magnitude=round(average_step, 2),
        )
    return None


def _pressure_trend(points: Sequence[ForecastPoint], units: str, thresholds: TrendThresholds) -> Trend | None:
    change = points[-1].pressure_hpa - points[0].pressure_hpa
    value = f"{_signed(round_half_up(change))} hPa"

    if change > thresholds.pressure_change_hpa:
        return Trend(
            icon="📊",
            title="Rising Pressure",
            description="High pressure system approaching. Expect clearer skies.",
            category="positive",
            value=value,
            magnitude=round(change, 1),
        )
    if change < -thresholds.pressure_change_hpa:
        return Trend(
            icon="🌀",
            title="Falling Pressure",
            description="Low pressure system. Possible stormy weather ahead.",
            category="warning",
            value=value,
            magnitude=round(change, 1),
        )
    return None


def _humidity_trend(points: Sequence[ForecastPoint], units: str, thresholds: TrendThresholds) -> Trend | None:
    average = mean(point.humidity for point in points)
    if average <= thresholds.humid_period_pct:
        return None
    return Trend(
        icon="💧",
        title="High Humidity Period",
        description="Expect muggy conditions throughout the forecast.",
        category="info",
        value=f"{round_half_up(average)}%",
        magnitude=round(average, 1),
    )


TrendRule = Callable[[Sequence[ForecastPoint], str, TrendThresholds], Trend | None]

TREND_RULES: tuple[TrendRule, ...] = (_temperature_trend, _pressure_trend, _humidity_trend)


def generate_trends(
    points: Sequence[ForecastPoint],
    units: str = "metric",
    thresholds: TrendThresholds = DEFAULT_TREND_THRESHOLDS,
) -> list[Trend]:
    window = list(points[: thresholds.window])
    if len(window) < 2:
        return []

    trends: list[Trend] = []
    for rule in TREND_RULES:
        trend = rule(window, units, thresholds)
        if trend is not None:
            trends.append(trend)
    return trends
