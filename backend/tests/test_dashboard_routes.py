import httpx
from fastapi.testclient import TestClient

from skydash import main as main_module
from skydash.schemas import AirQualityReading, ConditionCategory, CurrentConditions, ForecastPoint
from skydash.services.session import FetchSequencer, MemoryKeyValueStore, SessionRepository


def _city(name: str, location_id: int) -> CurrentConditions:
    return CurrentConditions(
        location_id=location_id,
        name=name,
        country="GB",
        temperature=12.0,
        feels_like=11.0,
        humidity=70,
        wind_speed=4.0,
        wind_direction_degrees=90,
        condition_category=ConditionCategory.RAIN,
        latitude=51.5,
        longitude=-0.12,
        sunrise=1_760_855_245,
        sunset=1_760_892_722,
    )


class _FakeDashboardWeatherClient:
    def __init__(self, *, fail_coordinates: bool = False, fail_forecast: bool = False):
        self.fail_coordinates = fail_coordinates
        self.fail_forecast = fail_forecast
        self.queries: list[str | None] = []

    async def close(self) -> None:
        return None

    async def geocode(self, query: str) -> list[dict]:
        return [{"name": "London", "country": "GB", "state": "England", "latitude": 51.5, "longitude": -0.12}]

    async def fetch_current(self, *, query=None, latitude=None, longitude=None, units="metric"):  # noqa: ANN001
        self.queries.append(query)
        if latitude is not None and self.fail_coordinates:
            raise httpx.ConnectError("coordinates lookup failed")
        if query == "Atlantis":
            request = httpx.Request("GET", "https://api.openweathermap.org/data/2.5/weather")
            raise httpx.HTTPStatusError("city not found", request=request, response=httpx.Response(404, request=request))
        return _city(query or "Here", 42 if query == "Paris" else 2643743)

    async def fetch_forecast(self, **kwargs):  # noqa: ANN003
        if self.fail_forecast:
            raise httpx.ReadTimeout("forecast timed out")
        return [
            ForecastPoint(timestamp=1_760_878_800 + idx * 10_800, temperature=12 - idx // 8, humidity=85)
            for idx in range(40)
        ]

    async def fetch_air_quality(self, **kwargs):  # noqa: ANN003
        return AirQualityReading(aqi_code=4, pollutants={"pm10": 80.0})


def _install(monkeypatch, weather_client) -> SessionRepository:
    repository = SessionRepository(MemoryKeyValueStore())
    monkeypatch.setattr(main_module, "weather_client", weather_client)
    monkeypatch.setattr(main_module, "session_repository", repository)
    monkeypatch.setattr(main_module, "fetch_sequencer", FetchSequencer())
    return repository


def test_dashboard_route_returns_insights_trends_and_air_quality(monkeypatch) -> None:
    repository = _install(monkeypatch, _FakeDashboardWeatherClient())
    client = TestClient(main_module.app)

    response = client.post("/api/dashboard", json={"location_query": "London"})

    assert response.status_code == 200
    payload = response.json()
    assert payload["location"]["name"] == "London"
    assert "Indoor Day" in [item["title"] for item in payload["insights"]]
    assert [item["title"] for item in payload["trends"]] == ["Cooling Trend", "High Humidity Period"]
    assert payload["air_quality"]["level"] == "Poor"
    assert payload["failed_sources"] == []
    assert [item.location_id for item in repository.load().history] == [2643743]


def test_dashboard_route_survives_forecast_failure(monkeypatch) -> None:
    _install(monkeypatch, _FakeDashboardWeatherClient(fail_forecast=True))
    client = TestClient(main_module.app)

    response = client.post("/api/dashboard", json={"location_query": "London"})

    assert response.status_code == 200
    payload = response.json()
    assert payload["failed_sources"] == ["forecast"]
    assert payload["trends"] == []
    assert payload["insights"]


def test_dashboard_route_falls_back_to_default_city(monkeypatch) -> None:
    fake = _FakeDashboardWeatherClient(fail_coordinates=True)
    _install(monkeypatch, fake)
    client = TestClient(main_module.app)

    response = client.post("/api/dashboard", json={"location": {"latitude": 10.0, "longitude": 10.0}})

    assert response.status_code == 200
    assert fake.queries[-1] == main_module.settings.default_city


def test_dashboard_route_maps_unknown_city_to_404(monkeypatch) -> None:
    _install(monkeypatch, _FakeDashboardWeatherClient())
    client = TestClient(main_module.app)

    response = client.post("/api/dashboard", json={"location_query": "Atlantis"})

    assert response.status_code == 404
    assert response.json()["detail"] == "City not found."


def test_favorites_routes(monkeypatch) -> None:
    _install(monkeypatch, _FakeDashboardWeatherClient())
    client = TestClient(main_module.app)
    snapshot = _city("Paris", 42).model_dump(mode="json")

    added = client.post("/api/favorites", json=snapshot)
    duplicate = client.post("/api/favorites", json=snapshot)
    listed = client.get("/api/favorites")
    removed = client.delete("/api/favorites/42")
    missing = client.delete("/api/favorites/42")

    assert added.json()["added"] is True
    assert duplicate.json()["added"] is False
    assert [item["location_id"] for item in listed.json()["favorites"]] == [42]
    assert removed.json()["favorites"] == []
    assert missing.status_code == 404


def test_preferences_routes(monkeypatch) -> None:
    _install(monkeypatch, _FakeDashboardWeatherClient())
    client = TestClient(main_module.app)

    assert client.get("/api/preferences").json() == {"theme": "dark", "units": "metric"}
    assert client.post("/api/preferences/theme/toggle").json()["theme"] == "light"
    assert client.post("/api/preferences/units/toggle").json()["units"] == "imperial"
    assert client.put("/api/preferences", json={"theme": "dark"}).json() == {"theme": "dark", "units": "imperial"}
    assert client.put("/api/preferences", json={"theme": "sepia"}).status_code == 422


def test_insight_trend_and_tier_routes() -> None:
    client = TestClient(main_module.app)

    insights = client.post("/api/insights", json={"temperature": 36, "humidity": 50, "condition_category": "Clear"})
    trends = client.post(
        "/api/trends",
        json={"points": [{"timestamp": 1_760_878_800 + idx * 86_400, "temperature": 20 + idx} for idx in range(5)]},
    )
    tier = client.get("/api/air-quality/tier", params={"code": 6})

    assert [item["title"] for item in insights.json()["insights"]] == ["Extreme Heat Alert"]
    assert insights.json()["uv_index"] is None
    assert trends.json()["trends"][0]["value"] == "+1°"
    assert tier.json()["level"] == "Unknown"
