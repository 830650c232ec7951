from __future__ import annotations

from skydash.schemas import AirQualityReading, AirQualityTier


AQI_TIERS = {
    1: AirQualityTier(code=1, level="Good", color="#4ade80", description="Air quality is satisfactory"),
    2: AirQualityTier(code=2, level="Fair", color="#facc15", description="Acceptable for most people"),
    3: AirQualityTier(
        code=3,
        level="Moderate",
        color="#f97316",
        description="Sensitive groups should limit outdoor activities",
    ),
    4: AirQualityTier(code=4, level="Poor", color="#ef4444", description="Everyone should limit outdoor activities"),
    5: AirQualityTier(
        code=5,
        level="Very Poor",
        color="#991b1b",
        description="Health warnings of emergency conditions",
    ),
}

UNKNOWN_TIER = AirQualityTier(code=None, level="Unknown", color="#6b7280", description="Data unavailable")

POLLUTANT_LABELS = (
    ("pm2_5", "PM2.5"),
    ("pm10", "PM10"),
    ("o3", "O₃"),
    ("no2", "NO₂"),
    ("so2", "SO₂"),
    ("co", "CO"),
    ("no", "NO"),
    ("nh3", "NH₃"),
)


def classify_air_quality(code: int | None) -> AirQualityTier:
    if code is None:
        return UNKNOWN_TIER
    return AQI_TIERS.get(code, UNKNOWN_TIER)


def describe_pollutants(reading: AirQualityReading | None) -> list[dict]:
    if reading is None:
        return []

    rows: list[dict] = []
    for symbol, label in POLLUTANT_LABELS:
        value = reading.pollutants.get(symbol)
        if value is None:
            continue
        rows.append({"symbol": symbol, "label": label, "value": round(value, 1), "unit": "μg/m³"})
    return rows
