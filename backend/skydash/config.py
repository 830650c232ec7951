from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path


LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass(frozen=True)
class Settings:
    app_name: str = "SkyDash Weather API"
    app_version: str = "1.0.0"
    openweather_api_key: str = ""
    openweather_base_url: str = "https://api.openweathermap.org/data/2.5"
    openweather_geo_url: str = "https://api.openweathermap.org/geo/1.0/direct"
    default_units: str = "metric"
    default_city: str = "London"
    api_cache_ttl_seconds: int = 600
    api_retry_attempts: int = 2
    request_timeout_seconds: float = 10.0
    history_limit: int = 5
    hourly_points: int = 24
    daily_points: int = 5
    state_database_path: str = str((Path(__file__).resolve().parents[1] / "data" / "dashboard_state.db").as_posix())
    log_level: str = "INFO"
    frontend_origins: tuple[str, ...] = ("http://localhost:5173", "http://127.0.0.1:5173")


def get_settings() -> Settings:
    origins_raw = os.getenv("FRONTEND_ORIGINS", "").strip()
    units_raw = os.getenv("DEFAULT_UNITS", "").strip().lower()
    cache_ttl_raw = os.getenv("API_CACHE_TTL_SECONDS", "").strip()
    retry_attempts_raw = os.getenv("API_RETRY_ATTEMPTS", "").strip()
    timeout_raw = os.getenv("REQUEST_TIMEOUT_SECONDS", "").strip()
    history_limit_raw = os.getenv("HISTORY_LIMIT", "").strip()
    state_path_raw = os.getenv("STATE_DATABASE_PATH", "").strip()

    parsed_origins = tuple(item.strip() for item in origins_raw.split(",") if item.strip())

    try:
        cache_ttl_seconds = int(cache_ttl_raw) if cache_ttl_raw else 600
    except ValueError:
        cache_ttl_seconds = 600

    try:
        retry_attempts = int(retry_attempts_raw) if retry_attempts_raw else 2
    except ValueError:
        retry_attempts = 2

    try:
        request_timeout_seconds = float(timeout_raw) if timeout_raw else 10.0
    except ValueError:
        request_timeout_seconds = 10.0

    try:
        history_limit = int(history_limit_raw) if history_limit_raw else 5
    except ValueError:
        history_limit = 5

    return Settings(
        openweather_api_key=os.getenv("OPENWEATHER_API_KEY", "").strip(),
        openweather_base_url=os.getenv("OPENWEATHER_BASE_URL", "").strip() or Settings.openweather_base_url,
        default_units=units_raw if units_raw in {"metric", "imperial"} else Settings.default_units,
        default_city=os.getenv("DEFAULT_CITY", "").strip() or Settings.default_city,
        api_cache_ttl_seconds=max(60, cache_ttl_seconds),
        api_retry_attempts=max(0, retry_attempts),
        request_timeout_seconds=max(1.0, request_timeout_seconds),
        history_limit=max(1, history_limit),
        state_database_path=state_path_raw or Settings.state_database_path,
        log_level=os.getenv("LOG_LEVEL", "").strip().upper() or Settings.log_level,
        frontend_origins=parsed_origins or Settings.frontend_origins,
    )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
