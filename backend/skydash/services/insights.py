from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from skydash.schemas import ConditionCategory, CurrentConditions, Insight
from skydash.services.formatting import to_celsius


FAMILY_ORDER = ("temperature", "humidity", "wind", "visibility", "activity")


@dataclass(frozen=True)
class InsightThresholds:
    extreme_heat_c: float = 35.0
    high_temp_c: float = 30.0
    freezing_c: float = 0.0
    cold_c: float = 5.0
    very_humid_pct: float = 85.0
    dry_pct: float = 30.0
    # wind thresholds are in the snapshot's unit
    strong_wind: float = 15.0
    breezy_wind: float = 10.0
    poor_visibility_m: float = 3000.0
    reduced_visibility_m: float = 8000.0
    outdoor_min_c: float = 15.0
    outdoor_max_c: float = 28.0
    default_visibility_m: float = 10000.0


DEFAULT_INSIGHT_THRESHOLDS = InsightThresholds()


@dataclass(frozen=True)
class Readings:
    temperature_c: float
    humidity: float
    wind_speed: float
    visibility_m: float
    category: ConditionCategory


@dataclass(frozen=True)
class InsightRule:
    family: str
    applies: Callable[[Readings, InsightThresholds], bool]
    insight: Insight


def _readings(current: CurrentConditions, thresholds: InsightThresholds) -> Readings:
    visibility = current.visibility_meters
    return Readings(
        temperature_c=to_celsius(current.temperature, current.units),
        humidity=current.humidity,
        wind_speed=current.wind_speed or 0.0,
        visibility_m=visibility if visibility else thresholds.default_visibility_m,
        category=current.condition_category,
    )


INSIGHT_RULES: tuple[InsightRule, ...] = (
    InsightRule(
        family="temperature",
        applies=lambda r, t: r.temperature_c > t.extreme_heat_c,
        insight=Insight(
            icon="🔥",
            title="Extreme Heat Alert",
            description="Dangerous heat levels. Avoid prolonged sun exposure and stay hydrated.",
            severity="warning",
        ),
    ),
    InsightRule(
        family="temperature",
        applies=lambda r, t: r.temperature_c > t.high_temp_c,
        insight=Insight(
            icon="🌡️",
            title="High Temperature",
            description="Hot weather ahead. Stay cool and drink plenty of water.",
            severity="warning",
        ),
    ),
    InsightRule(
        family="temperature",
        applies=lambda r, t: r.temperature_c < t.freezing_c,
        insight=Insight(
            icon="🧊",
            title="Freezing Conditions",
            description="Temperature below freezing. Watch for ice and dress warmly.",
            severity="warning",
        ),
    ),
    InsightRule(
        family="temperature",
        applies=lambda r, t: r.temperature_c < t.cold_c,
        insight=Insight(
            icon="❄️",
            title="Cold Weather",
            description="Chilly conditions. Layer up and stay warm.",
            severity="info",
        ),
    ),
    InsightRule(
        family="humidity",
        applies=lambda r, t: r.humidity > t.very_humid_pct,
        insight=Insight(
            icon="💧",
            title="Very High Humidity",
            description="Muggy conditions. You may feel warmer than the actual temperature.",
            severity="info",
        ),
    ),
    InsightRule(
        family="humidity",
        applies=lambda r, t: r.humidity < t.dry_pct,
        insight=Insight(
            icon="🏜️",
            title="Low Humidity",
            description="Dry air conditions. Stay hydrated and use moisturizer.",
            severity="info",
        ),
    ),
    InsightRule(
        family="wind",
        applies=lambda r, t: r.wind_speed > t.strong_wind,
        insight=Insight(
            icon="💨",
            title="Strong Winds",
            description="Very windy conditions. Secure loose items and drive carefully.",
            severity="warning",
        ),
    ),
    InsightRule(
        family="wind",
        applies=lambda r, t: r.wind_speed > t.breezy_wind,
        insight=Insight(
            icon="🌬️",
            title="Breezy Conditions",
            description="Moderate winds expected. Be cautious with outdoor activities.",
            severity="info",
        ),
    ),
    InsightRule(
        family="visibility",
        applies=lambda r, t: r.visibility_m < t.poor_visibility_m,
        insight=Insight(
            icon="🌫️",
            title="Poor Visibility",
            description="Limited visibility. Use headlights and drive slowly.",
            severity="warning",
        ),
    ),
    InsightRule(
        family="visibility",
        applies=lambda r, t: r.visibility_m < t.reduced_visibility_m,
        insight=Insight(
            icon="👁️",
            title="Reduced Visibility",
            description="Visibility is somewhat limited. Exercise caution.",
            severity="info",
        ),
    ),
    InsightRule(
        family="activity",
        applies=lambda r, t: (
            r.category == ConditionCategory.CLEAR and t.outdoor_min_c < r.temperature_c < t.outdoor_max_c
        ),
        insight=Insight(
            icon="🌞",
            title="Perfect Day Outside",
            description="Ideal conditions for outdoor activities and exercise!",
            severity="tip",
        ),
    ),
    InsightRule(
        family="activity",
        applies=lambda r, t: r.category == ConditionCategory.RAIN,
        insight=Insight(
            icon="☔",
            title="Indoor Day",
            description="Great weather for indoor activities. Don't forget your umbrella!",
            severity="tip",
        ),
    ),
)


def generate_insights(
    current: CurrentConditions,
    thresholds: InsightThresholds = DEFAULT_INSIGHT_THRESHOLDS,
    rules: tuple[InsightRule, ...] = INSIGHT_RULES,
) -> list[Insight]:
    """Evaluate each family's rules in order; the first match of a family wins.

    Temperature is normalized to Celsius before comparison. Wind speed is
    compared in the snapshot's own unit (m/s or mph).
    """
    readings = _readings(current, thresholds)
    matched: dict[str, Insight] = {}
    for rule in rules:
        if rule.family in matched:
            continue
        if rule.applies(readings, thresholds):
            matched[rule.family] = rule.insight

    return [matched[family] for family in FAMILY_ORDER if family in matched]
