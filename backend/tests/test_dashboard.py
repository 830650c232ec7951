import asyncio
from datetime import datetime, timezone

import httpx
import pytest

from skydash.schemas import AirQualityReading, ConditionCategory, CurrentConditions, ForecastPoint
from skydash.services.dashboard import DashboardBundle, build_dashboard_response, collect_dashboard_data


NOW = datetime(2025, 10, 19, 12, 0, tzinfo=timezone.utc)


def _current() -> CurrentConditions:
    return CurrentConditions(
        location_id=2643743,
        name="London",
        country="GB",
        temperature=20.0,
        feels_like=19.4,
        humidity=90,
        wind_speed=0.0,
        wind_direction_degrees=180,
        visibility_meters=10000,
        pressure_hpa=1012,
        condition_category=ConditionCategory.CLEAR,
        latitude=51.5,
        longitude=-0.12,
        sunrise=int(NOW.timestamp()) - 5 * 3600,
        sunset=int(NOW.timestamp()) + 5 * 3600,
    )


def _forecast() -> list[ForecastPoint]:
    start = int(NOW.timestamp())
    return [
        ForecastPoint(timestamp=start + idx * 10800, temperature=20 + idx // 8, humidity=60, pressure_hpa=1012)
        for idx in range(40)
    ]


class _FakeClient:
    def __init__(self, *, fail_forecast: bool = False, fail_aqi: bool = False, fail_current: bool = False):
        self.fail_forecast = fail_forecast
        self.fail_aqi = fail_aqi
        self.fail_current = fail_current
        self.calls: list[str] = []

    async def fetch_current(self, **kwargs):  # noqa: ANN003
        self.calls.append("current")
        if self.fail_current:
            raise httpx.ConnectError("current down")
        return _current()

    async def fetch_forecast(self, **kwargs):  # noqa: ANN003
        self.calls.append("forecast")
        if self.fail_forecast:
            raise httpx.ConnectError("forecast down")
        return _forecast()

    async def fetch_air_quality(self, **kwargs):  # noqa: ANN003
        self.calls.append("air_quality")
        if self.fail_aqi:
            raise httpx.ConnectError("aqi down")
        return AirQualityReading(aqi_code=2, pollutants={"pm2_5": 4.0})


def test_collect_by_query_fetches_all_sources() -> None:
    client = _FakeClient()
    bundle = asyncio.run(collect_dashboard_data(client, query="London"))

    assert client.calls[0] == "current"
    assert sorted(client.calls[1:]) == ["air_quality", "forecast"]
    assert bundle.failed_sources == []
    assert len(bundle.forecast) == 40


def test_collect_tolerates_optional_source_failures() -> None:
    client = _FakeClient(fail_forecast=True, fail_aqi=True)
    bundle = asyncio.run(collect_dashboard_data(client, latitude=51.5, longitude=-0.12))

    assert bundle.current.name == "London"
    assert bundle.forecast == []
    assert bundle.air_quality is None
    assert bundle.failed_sources == ["forecast", "air_quality"]


def test_collect_propagates_current_failure() -> None:
    client = _FakeClient(fail_current=True)
    with pytest.raises(httpx.ConnectError):
        asyncio.run(collect_dashboard_data(client, latitude=51.5, longitude=-0.12))


def test_build_dashboard_response_shapes_output() -> None:
    bundle = DashboardBundle(
        current=_current(),
        forecast=_forecast(),
        air_quality=AirQualityReading(aqi_code=2, pollutants={"pm2_5": 4.0}),
    )

    response = build_dashboard_response(bundle, now=NOW)

    assert response["location"]["name"] == "London"
    assert response["current"]["temperature"] == "20°C"
    assert response["current"]["wind_direction"] == "S"
    assert response["current"]["uv_index"] is not None
    assert [item["title"] for item in response["insights"]] == ["Very High Humidity", "Perfect Day Outside"]
    assert len(response["daily"]) == 5
    assert response["daily"][0]["day"] == "Today"
    assert response["daily"][1]["day"] == "Tomorrow"
    assert len(response["hourly"]) == 24
    assert response["trends"][0]["title"] == "Rising Temperature"
    assert response["air_quality"]["level"] == "Fair"
    assert response["air_quality"]["pollutants"][0]["label"] == "PM2.5"


def test_build_dashboard_response_without_optional_sources() -> None:
    bundle = DashboardBundle(current=_current(), failed_sources=["forecast", "air_quality"])

    response = build_dashboard_response(bundle, now=NOW)

    assert response["daily"] == []
    assert response["trends"] == []
    assert response["air_quality"]["level"] == "Unknown"
    assert response["failed_sources"] == ["forecast", "air_quality"]
    assert response["insights"]
