from __future__ import annotations

import logging
from datetime import datetime, timezone

import httpx
from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

from skydash.config import configure_logging, get_settings
from skydash.schemas import CurrentConditions, DashboardRequest, DashboardState, PreferencesUpdate, TrendRequest
from skydash.services.air_quality import classify_air_quality
from skydash.services.dashboard import DashboardBundle, build_dashboard_response, collect_dashboard_data
from skydash.services.insights import generate_insights
from skydash.services.session import (
    FetchSequencer,
    SessionRepository,
    SqliteKeyValueStore,
    add_favorite,
    is_favorite,
    record_history,
    remove_favorite,
    set_theme,
    set_units,
    toggle_theme,
    toggle_units,
)
from skydash.services.trends import generate_trends
from skydash.services.uv_index import estimate_uv_index
from skydash.services.weather_client import WeatherClient


settings = get_settings()
configure_logging(settings.log_level)
logger = logging.getLogger(__name__)

weather_client = WeatherClient(settings=settings)
session_repository = SessionRepository(
    SqliteKeyValueStore(settings.state_database_path),
    default_units=settings.default_units,
)
fetch_sequencer = FetchSequencer()

if not settings.openweather_api_key:
    logger.warning("OPENWEATHER_API_KEY is not set; upstream requests will be rejected")

app = FastAPI(title=settings.app_name, version=settings.app_version)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.frontend_origins),
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("shutdown")
async def shutdown_event() -> None:
    await weather_client.close()


@app.get("/api/health")
async def health() -> dict:
    return {
        "status": "ok",
        "service": settings.app_name,
        "timestamp_utc": datetime.now(tz=timezone.utc).isoformat(),
    }


@app.get("/api/geocode")
async def geocode(query: str = Query(min_length=2, max_length=80)) -> dict:
    try:
        results = await weather_client.geocode(query=query)
    except httpx.HTTPError as exc:
        raise HTTPException(status_code=502, detail=f"Geocoding provider error: {exc}") from exc
    return {"results": results}


@app.post("/api/dashboard")
async def dashboard(payload: DashboardRequest) -> dict:
    state = session_repository.load()
    units = payload.units or state.units
    token = fetch_sequencer.issue()

    bundle, searched_by_name = await _collect_with_fallback(payload, units=units)

    state = session_repository.load()
    if searched_by_name and fetch_sequencer.is_current(token):
        state = record_history(state, bundle.current, limit=settings.history_limit)
        session_repository.save(state)
    elif searched_by_name:
        logger.info("Discarding history update for %s; a newer fetch superseded it", bundle.current.name)

    return build_dashboard_response(
        bundle,
        hourly_points=settings.hourly_points,
        daily_points=settings.daily_points,
        is_favorite=is_favorite(state, bundle.current.location_id),
    )


@app.post("/api/insights")
async def insights(current: CurrentConditions) -> dict:
    return {
        "insights": [item.model_dump() for item in generate_insights(current)],
        "uv_index": estimate_uv_index(current),
    }


@app.post("/api/trends")
async def trends(payload: TrendRequest) -> dict:
    return {"trends": [item.model_dump() for item in generate_trends(payload.points, units=payload.units)]}


@app.get("/api/air-quality/tier")
async def air_quality_tier(code: int | None = Query(default=None)) -> dict:
    return classify_air_quality(code).model_dump()


@app.get("/api/favorites")
async def list_favorites() -> dict:
    return {"favorites": _dump_favorites(session_repository.load())}


@app.post("/api/favorites")
async def create_favorite(snapshot: CurrentConditions) -> dict:
    if snapshot.location_id is None:
        raise HTTPException(status_code=400, detail="A location id is required to save a favorite.")

    state = session_repository.load()
    if is_favorite(state, snapshot.location_id):
        return {"added": False, "detail": "City is already in favorites", "favorites": _dump_favorites(state)}

    state = add_favorite(state, snapshot)
    session_repository.save(state)
    logger.info("Added %s to favorites", snapshot.name)
    return {"added": True, "detail": f"Added {snapshot.name} to favorites", "favorites": _dump_favorites(state)}


@app.delete("/api/favorites/{location_id}")
async def delete_favorite(location_id: int) -> dict:
    state = session_repository.load()
    if not is_favorite(state, location_id):
        raise HTTPException(status_code=404, detail="City is not in favorites.")

    state = remove_favorite(state, location_id)
    session_repository.save(state)
    return {"removed": True, "favorites": _dump_favorites(state)}


@app.get("/api/history")
async def history() -> dict:
    state = session_repository.load()
    return {"history": [item.model_dump(mode="json") for item in state.history]}


@app.get("/api/preferences")
async def get_preferences() -> dict:
    return _serialize_preferences(session_repository.load())


@app.put("/api/preferences")
async def update_preferences(payload: PreferencesUpdate) -> dict:
    state = session_repository.load()
    if payload.theme is not None:
        state = set_theme(state, payload.theme)
    if payload.units is not None:
        state = set_units(state, payload.units)
    session_repository.save(state)
    return _serialize_preferences(state)


@app.post("/api/preferences/theme/toggle")
async def toggle_theme_preference() -> dict:
    state = toggle_theme(session_repository.load())
    session_repository.save(state)
    return _serialize_preferences(state)


@app.post("/api/preferences/units/toggle")
async def toggle_units_preference() -> dict:
    state = toggle_units(session_repository.load())
    session_repository.save(state)
    return _serialize_preferences(state)


async def _collect_with_fallback(payload: DashboardRequest, *, units: str) -> tuple[DashboardBundle, bool]:
    if payload.location is not None:
        try:
            bundle = await collect_dashboard_data(
                weather_client,
                latitude=payload.location.latitude,
                longitude=payload.location.longitude,
                units=units,
            )
            return bundle, False
        except (httpx.HTTPError, ValueError) as exc:
            logger.info("Coordinate lookup failed (%s); falling back to %s", exc, settings.default_city)

    query = payload.location_query if payload.location is None and payload.location_query else settings.default_city
    try:
        bundle = await collect_dashboard_data(weather_client, query=query, units=units)
    except httpx.HTTPStatusError as exc:
        if exc.response.status_code == 404:
            raise HTTPException(status_code=404, detail="City not found.") from exc
        raise HTTPException(status_code=502, detail=f"Weather provider error: {exc}") from exc
    except httpx.HTTPError as exc:
        raise HTTPException(status_code=502, detail=f"Weather provider error: {exc}") from exc
    except ValueError as exc:
        raise HTTPException(status_code=502, detail=f"Malformed weather payload: {exc}") from exc
    return bundle, True


def _dump_favorites(state: DashboardState) -> list[dict]:
    return [item.model_dump(mode="json") for item in state.favorites]


def _serialize_preferences(state: DashboardState) -> dict:
    return {"theme": state.theme, "units": state.units}
