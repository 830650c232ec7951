from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


Units = Literal["metric", "imperial"]
Theme = Literal["dark", "light"]


def _clamp_percent(value: float | None) -> float | None:
    if value is None:
        return None
    return max(0.0, min(100.0, float(value)))


class ConditionCategory(str, Enum):
    CLEAR = "Clear"
    CLOUDS = "Clouds"
    RAIN = "Rain"
    DRIZZLE = "Drizzle"
    THUNDERSTORM = "Thunderstorm"
    SNOW = "Snow"
    OTHER = "Other"

    @classmethod
    def from_label(cls, label: object) -> "ConditionCategory":
        text = str(label or "").strip().lower()
        for member in cls:
            if member.value.lower() == text:
                return member
        return cls.OTHER


class Coordinates(BaseModel):
    name: str | None = Field(default=None, description="City or place name.")
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)


class CurrentConditions(BaseModel):
    """Snapshot of the provider's current-weather record, replaced on every fetch."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    location_id: int | None = None
    name: str | None = None
    country: str | None = None
    temperature: float = 0.0
    feels_like: float = 0.0
    temp_min: float | None = None
    temp_max: float | None = None
    humidity: float = 0.0
    wind_speed: float | None = None
    wind_direction_degrees: float | None = None
    visibility_meters: float | None = None
    pressure_hpa: float | None = None
    condition_category: ConditionCategory = ConditionCategory.OTHER
    condition_description: str = ""
    icon_code: str | None = None
    sunrise: int | None = None
    sunset: int | None = None
    latitude: float | None = None
    longitude: float | None = None
    cloud_cover_percent: float = 0.0
    timestamp: int | None = None
    timezone_offset_seconds: int = 0
    units: Units = "metric"

    @field_validator("humidity", "cloud_cover_percent", mode="before")
    @classmethod
    def clamp_percentages(cls, value: object) -> float:
        return _clamp_percent(float(value)) if value is not None else 0.0

    @field_validator("condition_category", mode="before")
    @classmethod
    def coerce_category(cls, value: object) -> ConditionCategory:
        if isinstance(value, ConditionCategory):
            return value
        return ConditionCategory.from_label(value)


class ForecastPoint(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    timestamp: int
    temperature: float = 0.0
    temp_min: float | None = None
    temp_max: float | None = None
    humidity: float = 0.0
    pressure_hpa: float = 0.0
    condition_category: ConditionCategory = ConditionCategory.OTHER
    condition_description: str = ""
    icon_code: str | None = None
    precipitation_probability: float = 0.0
    wind_speed: float | None = None

    @field_validator("humidity", mode="before")
    @classmethod
    def clamp_humidity(cls, value: object) -> float:
        return _clamp_percent(float(value)) if value is not None else 0.0

    @field_validator("precipitation_probability", mode="before")
    @classmethod
    def clamp_probability(cls, value: object) -> float:
        if value is None:
            return 0.0
        return max(0.0, min(1.0, float(value)))

    @field_validator("condition_category", mode="before")
    @classmethod
    def coerce_category(cls, value: object) -> ConditionCategory:
        if isinstance(value, ConditionCategory):
            return value
        return ConditionCategory.from_label(value)


class AirQualityReading(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    aqi_code: int | None = None
    pollutants: dict[str, float] = Field(default_factory=dict)
    timestamp: int | None = None


class AirQualityTier(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: int | None
    level: str
    color: str
    description: str


class Insight(BaseModel):
    model_config = ConfigDict(frozen=True)

    icon: str
    title: str
    description: str
    severity: Literal["warning", "info", "tip"]


class Trend(BaseModel):
    model_config = ConfigDict(frozen=True)

    icon: str
    title: str
    description: str
    category: Literal["positive", "negative", "warning", "info"]
    value: str | None = None
    magnitude: float | None = None


class FavoriteCity(BaseModel):
    model_config = ConfigDict(frozen=True)

    location_id: int
    saved_at: str
    snapshot: CurrentConditions


class HistoryEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    location_id: int
    saved_at: str
    snapshot: CurrentConditions


class DashboardState(BaseModel):
    model_config = ConfigDict(frozen=True)

    favorites: tuple[FavoriteCity, ...] = ()
    history: tuple[HistoryEntry, ...] = ()
    theme: Theme = "dark"
    units: Units = "metric"


class DashboardRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    location_query: str | None = Field(
        default=None,
        description="City name to search. Falls back to the default city when no location is given.",
    )
    location: Coordinates | None = None
    units: Units | None = None

    @model_validator(mode="after")
    def normalize_query(self) -> "DashboardRequest":
        if self.location_query is not None and not self.location_query.strip():
            self.location_query = None
        return self


class TrendRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    points: list[ForecastPoint]
    units: Units = "metric"


class PreferencesUpdate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    theme: Theme | None = None
    units: Units | None = None
