from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from time import monotonic
from typing import Any

import httpx

from skydash.config import Settings
from skydash.schemas import AirQualityReading, ConditionCategory, CurrentConditions, ForecastPoint


logger = logging.getLogger(__name__)

RETRYABLE_HTTP_STATUS = {408, 429, 500, 502, 503, 504}
FORECAST_STEPS_PER_DAY = 8


@dataclass
class WeatherClient:
    settings: Settings
    transport: httpx.AsyncBaseTransport | None = None
    _cache: dict[str, tuple[float, Any]] = field(default_factory=dict, init=False)
    _client: httpx.AsyncClient = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._client = httpx.AsyncClient(
            timeout=self.settings.request_timeout_seconds,
            transport=self.transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def geocode(self, query: str) -> list[dict]:
        query = query.strip()
        if not query:
            return []

        payload = await self._get_json(
            url=self.settings.openweather_geo_url,
            params={"q": query, "limit": 5, "appid": self.settings.openweather_api_key},
            cache_key=f"geo:{query.lower()}",
            cache_ttl_seconds=3600,
        )
        if not isinstance(payload, list):
            return []

        results: list[dict] = []
        for item in payload:
            if not isinstance(item, dict):
                continue
            latitude = _as_float(item.get("lat"))
            longitude = _as_float(item.get("lon"))
            if latitude is None or longitude is None:
                continue
            results.append(
                {
                    "name": item.get("name"),
                    "country": item.get("country"),
                    "state": item.get("state"),
                    "latitude": latitude,
                    "longitude": longitude,
                }
            )
        return results

    async def fetch_current(
        self,
        *,
        query: str | None = None,
        latitude: float | None = None,
        longitude: float | None = None,
        units: str = "metric",
    ) -> CurrentConditions:
        params: dict[str, Any] = {"units": units, "appid": self.settings.openweather_api_key}
        if latitude is not None and longitude is not None:
            params.update({"lat": latitude, "lon": longitude})
            cache_key = f"current:{round(latitude, 4)}:{round(longitude, 4)}:{units}"
        elif query and query.strip():
            params["q"] = query.strip()
            cache_key = f"current:{query.strip().lower()}:{units}"
        else:
            raise ValueError("Provide either a city query or coordinates.")

        payload = await self._get_json(
            url=f"{self.settings.openweather_base_url}/weather",
            params=params,
            cache_key=cache_key,
            cache_ttl_seconds=self.settings.api_cache_ttl_seconds,
        )
        return parse_current_conditions(payload, units=units)

    async def fetch_forecast(self, *, latitude: float, longitude: float, units: str = "metric") -> list[ForecastPoint]:
        payload = await self._get_json(
            url=f"{self.settings.openweather_base_url}/forecast",
            params={
                "lat": latitude,
                "lon": longitude,
                "units": units,
                "appid": self.settings.openweather_api_key,
            },
            cache_key=f"forecast:{round(latitude, 4)}:{round(longitude, 4)}:{units}",
            cache_ttl_seconds=self.settings.api_cache_ttl_seconds,
        )
        return parse_forecast(payload)

    async def fetch_air_quality(self, *, latitude: float, longitude: float) -> AirQualityReading:
        payload = await self._get_json(
            url=f"{self.settings.openweather_base_url}/air_pollution",
            params={"lat": latitude, "lon": longitude, "appid": self.settings.openweather_api_key},
            cache_key=f"aqi:{round(latitude, 4)}:{round(longitude, 4)}",
            cache_ttl_seconds=self.settings.api_cache_ttl_seconds,
        )
        return parse_air_quality(payload)

    async def _get_json(
        self,
        *,
        url: str,
        params: dict[str, Any] | None = None,
        cache_key: str | None = None,
        cache_ttl_seconds: int = 0,
    ) -> Any:
        if cache_key and cache_ttl_seconds > 0:
            cached = self._cache_get(cache_key)
            if cached is not None:
                logger.debug("Cache hit for %s", cache_key)
                return cached

        attempts = max(0, self.settings.api_retry_attempts)
        for attempt in range(attempts + 1):
            try:
                response = await self._client.get(url, params=params)
                response.raise_for_status()
                payload = response.json()
                if cache_key and cache_ttl_seconds > 0:
                    self._cache_set(cache_key, payload, ttl_seconds=cache_ttl_seconds)
                return payload
            except httpx.HTTPStatusError as exc:
                status_code = exc.response.status_code
                if status_code not in RETRYABLE_HTTP_STATUS or attempt >= attempts:
                    logger.warning("OpenWeather request to %s failed with HTTP %s", url, status_code)
                    raise
            except httpx.RequestError as exc:
                if attempt >= attempts:
                    logger.warning("OpenWeather request to %s failed: %s", url, exc)
                    raise
            logger.info("Retrying %s (attempt %d of %d)", url, attempt + 2, attempts + 1)
            await asyncio.sleep(0.35 * (attempt + 1))

        raise RuntimeError("Failed to fetch upstream JSON payload.")

    def _cache_get(self, key: str) -> Any | None:
        entry = self._cache.get(key)
        if entry is None:
            return None
        expires_at, payload = entry
        if monotonic() >= expires_at:
            self._cache.pop(key, None)
            return None
        return payload

    def _cache_set(self, key: str, payload: Any, *, ttl_seconds: int) -> None:
        now = monotonic()
        expired = [cached_key for cached_key, (expires_at, _) in self._cache.items() if now >= expires_at]
        for cached_key in expired:
            del self._cache[cached_key]
        self._cache[key] = (now + max(1, ttl_seconds), payload)


def parse_current_conditions(payload: dict, *, units: str = "metric") -> CurrentConditions:
    if not isinstance(payload, dict):
        raise ValueError("Current weather payload must be a JSON object.")

    main = payload.get("main")
    if not isinstance(main, dict) or not main:
        logger.error("Current weather payload is missing the 'main' block")
        raise ValueError("Response missing 'main' block")

    weather_items = payload.get("weather")
    if not isinstance(weather_items, list) or not weather_items:
        logger.error("Current weather payload is missing the 'weather' array")
        raise ValueError("Response missing 'weather' array")
    weather = weather_items[0] if isinstance(weather_items[0], dict) else {}

    wind = payload.get("wind") or {}
    clouds = payload.get("clouds") or {}
    coord = payload.get("coord") or {}
    sys_block = payload.get("sys") or {}

    return CurrentConditions(
        location_id=_as_int(payload.get("id")),
        name=payload.get("name"),
        country=sys_block.get("country"),
        temperature=_as_float(main.get("temp")) or 0.0,
        feels_like=_as_float(main.get("feels_like")) or 0.0,
        temp_min=_as_float(main.get("temp_min")),
        temp_max=_as_float(main.get("temp_max")),
        humidity=_as_float(main.get("humidity")) or 0.0,
        wind_speed=_as_float(wind.get("speed")),
        wind_direction_degrees=_as_float(wind.get("deg")),
        visibility_meters=_as_float(payload.get("visibility")),
        pressure_hpa=_as_float(main.get("pressure")),
        condition_category=ConditionCategory.from_label(weather.get("main")),
        condition_description=str(weather.get("description") or ""),
        icon_code=weather.get("icon"),
        sunrise=_as_int(sys_block.get("sunrise")),
        sunset=_as_int(sys_block.get("sunset")),
        latitude=_as_float(coord.get("lat")),
        longitude=_as_float(coord.get("lon")),
        cloud_cover_percent=_as_float(clouds.get("all")) or 0.0,
        timestamp=_as_int(payload.get("dt")),
        timezone_offset_seconds=_as_int(payload.get("timezone")) or 0,
        units=units,
    )


def parse_forecast(payload: dict) -> list[ForecastPoint]:
    entries = payload.get("list") if isinstance(payload, dict) else None
    if not isinstance(entries, list):
        raise ValueError("Response missing forecast 'list'")

    points: list[ForecastPoint] = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        stamp = _as_int(entry.get("dt"))
        main = entry.get("main") or {}
        if stamp is None or not main:
            continue
        weather_items = entry.get("weather") or [{}]
        weather = weather_items[0] if isinstance(weather_items[0], dict) else {}
        points.append(
            ForecastPoint(
                timestamp=stamp,
                temperature=_as_float(main.get("temp")) or 0.0,
                temp_min=_as_float(main.get("temp_min")),
                temp_max=_as_float(main.get("temp_max")),
                humidity=_as_float(main.get("humidity")) or 0.0,
                pressure_hpa=_as_float(main.get("pressure")) or 0.0,
                condition_category=ConditionCategory.from_label(weather.get("main")),
                condition_description=str(weather.get("description") or ""),
                icon_code=weather.get("icon"),
                precipitation_probability=_as_float(entry.get("pop")) or 0.0,
                wind_speed=_as_float((entry.get("wind") or {}).get("speed")),
            )
        )
    return points


def sample_daily(points: list[ForecastPoint], count: int = 5) -> list[ForecastPoint]:
    """Pick one 3-hourly entry per day, starting with the first."""
    return points[::FORECAST_STEPS_PER_DAY][:count]


def parse_air_quality(payload: dict) -> AirQualityReading:
    entries = payload.get("list") if isinstance(payload, dict) else None
    if not isinstance(entries, list) or not entries:
        return AirQualityReading()

    first = entries[0] if isinstance(entries[0], dict) else {}
    components = first.get("components") or {}
    pollutants = {
        str(symbol): value
        for symbol, value in ((key, _as_float(raw)) for key, raw in components.items())
        if value is not None
    }
    return AirQualityReading(
        aqi_code=_as_int((first.get("main") or {}).get("aqi")),
        pollutants=pollutants,
        timestamp=_as_int(first.get("dt")),
    )


def _as_float(value: object) -> float | None:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _as_int(value: object) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None
