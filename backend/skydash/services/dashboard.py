from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Protocol

from skydash.schemas import AirQualityReading, CurrentConditions, ForecastPoint
from skydash.services.air_quality import classify_air_quality, describe_pollutants
from skydash.services.formatting import (
    format_day_label,
    format_percent,
    format_pressure,
    format_temperature,
    format_time,
    format_visibility,
    format_wind_speed,
    wind_direction,
)
from skydash.services.insights import generate_insights
from skydash.services.trends import generate_trends
from skydash.services.uv_index import estimate_uv_index
from skydash.services.weather_client import sample_daily


logger = logging.getLogger(__name__)


class WeatherSource(Protocol):
    async def fetch_current(self, **kwargs: Any) -> CurrentConditions: ...

    async def fetch_forecast(self, **kwargs: Any) -> list[ForecastPoint]: ...

    async def fetch_air_quality(self, **kwargs: Any) -> AirQualityReading: ...


@dataclass
class DashboardBundle:
    current: CurrentConditions
    forecast: list[ForecastPoint] = field(default_factory=list)
    air_quality: AirQualityReading | None = None
    failed_sources: list[str] = field(default_factory=list)
    units: str = "metric"


async def collect_dashboard_data(
    client: WeatherSource,
    *,
    query: str | None = None,
    latitude: float | None = None,
    longitude: float | None = None,
    units: str = "metric",
) -> DashboardBundle:
    """Fetch current conditions, forecast and air quality together.

    Forecast and air-quality failures are recorded in ``failed_sources`` and
    never cancel each other; only a current-conditions failure propagates.
    """
    failed_sources: list[str] = []

    if latitude is not None and longitude is not None:
        current_result, forecast_result, aqi_result = await asyncio.gather(
            client.fetch_current(latitude=latitude, longitude=longitude, units=units),
            client.fetch_forecast(latitude=latitude, longitude=longitude, units=units),
            client.fetch_air_quality(latitude=latitude, longitude=longitude),
            return_exceptions=True,
        )
        if isinstance(current_result, BaseException):
            raise current_result
        current = current_result
    else:
        current = await client.fetch_current(query=query, units=units)
        if current.latitude is None or current.longitude is None:
            logger.warning("Current conditions for %s carry no coordinates; skipping forecast and air quality", query)
            return DashboardBundle(current=current, failed_sources=["forecast", "air_quality"], units=units)

        forecast_result, aqi_result = await asyncio.gather(
            client.fetch_forecast(latitude=current.latitude, longitude=current.longitude, units=units),
            client.fetch_air_quality(latitude=current.latitude, longitude=current.longitude),
            return_exceptions=True,
        )

    forecast: list[ForecastPoint] = []
    if isinstance(forecast_result, BaseException):
        logger.warning("Forecast fetch failed for %s: %s", current.name, forecast_result)
        failed_sources.append("forecast")
    else:
        forecast = forecast_result

    air_quality: AirQualityReading | None = None
    if isinstance(aqi_result, BaseException):
        logger.warning("Air quality fetch failed for %s: %s", current.name, aqi_result)
        failed_sources.append("air_quality")
    else:
        air_quality = aqi_result

    return DashboardBundle(
        current=current,
        forecast=forecast,
        air_quality=air_quality,
        failed_sources=failed_sources,
        units=units,
    )


def build_dashboard_response(
    bundle: DashboardBundle,
    *,
    now: datetime | None = None,
    hourly_points: int = 24,
    daily_points: int = 5,
    is_favorite: bool = False,
) -> dict:
    now = now or datetime.now(tz=timezone.utc)
    current = bundle.current
    units = bundle.units
    offset = current.timezone_offset_seconds
    daily = sample_daily(bundle.forecast, count=daily_points)

    aqi_code = bundle.air_quality.aqi_code if bundle.air_quality else None

    return {
        "location": {
            "id": current.location_id,
            "name": current.name,
            "country": current.country,
            "latitude": current.latitude,
            "longitude": current.longitude,
            "is_favorite": is_favorite,
        },
        "units": units,
        "current": {
            "temperature": format_temperature(current.temperature, units),
            "feels_like": format_temperature(current.feels_like, units),
            "temp_min": format_temperature(current.temp_min, units) if current.temp_min is not None else None,
            "temp_max": format_temperature(current.temp_max, units) if current.temp_max is not None else None,
            "condition": current.condition_category.value,
            "description": current.condition_description,
            "icon_code": current.icon_code,
            "humidity": format_percent(current.humidity),
            "cloud_cover": format_percent(current.cloud_cover_percent),
            "wind_speed": format_wind_speed(current.wind_speed, units),
            "wind_direction": wind_direction(current.wind_direction_degrees),
            "pressure": format_pressure(current.pressure_hpa),
            "visibility": format_visibility(current.visibility_meters if current.visibility_meters else 10000),
            "sunrise": format_time(current.sunrise, offset) if current.sunrise is not None else None,
            "sunset": format_time(current.sunset, offset) if current.sunset is not None else None,
            "uv_index": estimate_uv_index(current, now=now),
        },
        "insights": [item.model_dump() for item in generate_insights(current)],
        "trends": [item.model_dump() for item in generate_trends(daily, units=units)],
        "daily": [
            {
                "day": format_day_label(point.timestamp, now=now, offset_seconds=offset),
                "temperature": format_temperature(point.temperature, units),
                "condition": point.condition_category.value,
                "description": point.condition_description,
                "icon_code": point.icon_code,
                "humidity": format_percent(point.humidity),
                "precipitation_chance": format_percent(point.precipitation_probability * 100),
            }
            for point in daily
        ],
        "hourly": [
            {
                "time": format_time(point.timestamp, offset),
                "temperature": format_temperature(point.temperature, units),
                "condition": point.condition_category.value,
                "icon_code": point.icon_code,
                "precipitation_chance": format_percent(point.precipitation_probability * 100),
            }
            for point in bundle.forecast[:hourly_points]
        ],
        "air_quality": {
            **classify_air_quality(aqi_code).model_dump(),
            "pollutants": describe_pollutants(bundle.air_quality),
        },
        "failed_sources": list(bundle.failed_sources),
        "last_updated": now.isoformat(),
    }
