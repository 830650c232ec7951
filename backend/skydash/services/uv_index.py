"""Heuristic UV index estimate for providers that do not report UV.

The free OpenWeather current-weather endpoint carries no UV field, so the
dashboard derives a rough figure from latitude, cloud cover and the condition
category. The result is an approximation for display purposes and makes no
claim of meteorological accuracy.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Mapping

from skydash.schemas import ConditionCategory, CurrentConditions
from skydash.services.formatting import clamp, round_half_up


@dataclass(frozen=True)
class UvPolicy:
    ceiling: float = 11.0
    floor: float = 1.0
    latitude_divisor: float = 8.0
    # (cloud cover strictly above, multiplier); checked top-down.
    cloud_steps: tuple[tuple[float, float], ...] = ((80, 0.2), (60, 0.4), (40, 0.6), (20, 0.8))
    condition_multipliers: Mapping[ConditionCategory, float] = field(
        default_factory=lambda: {
            ConditionCategory.CLEAR: 1.2,
            ConditionCategory.CLOUDS: 0.7,
            ConditionCategory.RAIN: 0.3,
            ConditionCategory.DRIZZLE: 0.3,
            ConditionCategory.THUNDERSTORM: 0.1,
            ConditionCategory.SNOW: 0.8,
        }
    )
    default_multiplier: float = 0.9

    def __post_init__(self) -> None:
        object.__setattr__(self, "condition_multipliers", MappingProxyType(dict(self.condition_multipliers)))


DEFAULT_UV_POLICY = UvPolicy()


def _cloud_attenuation(cloud_cover: float, policy: UvPolicy) -> float:
    for threshold, multiplier in policy.cloud_steps:
        if cloud_cover > threshold:
            return multiplier
    return 1.0


def estimate_uv_index(
    current: CurrentConditions,
    now: datetime | None = None,
    policy: UvPolicy = DEFAULT_UV_POLICY,
) -> int | None:
    """Return an integer UV estimate in [0, 11], or None when it cannot be computed.

    None is only returned when sunrise, sunset or latitude is missing; callers
    should show "no estimate" rather than an error.
    """
    if current.sunrise is None or current.sunset is None or current.latitude is None:
        return None

    instant = (now or datetime.now(tz=timezone.utc)).timestamp()
    if not current.sunrise <= instant <= current.sunset:
        return 0

    estimate = max(policy.floor, policy.ceiling - abs(current.latitude) / policy.latitude_divisor)
    estimate *= _cloud_attenuation(current.cloud_cover_percent, policy)
    estimate *= policy.condition_multipliers.get(current.condition_category, policy.default_multiplier)

    return int(clamp(round_half_up(estimate), 0, policy.ceiling))
