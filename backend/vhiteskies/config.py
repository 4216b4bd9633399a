from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    app_name: str = "Vhiteskies Dashboard API"
    app_version: str = "1.0.0"
    openweather_api_key: str = ""
    openweather_base_url: str = "https://api.openweathermap.org/data/2.5"
    openweather_geo_url: str = "https://api.openweathermap.org/geo/1.0"
    openweather_tile_url: str = "https://tile.openweathermap.org/map/{layer}/{z}/{x}/{y}.png?appid={api_key}"
    units: str = "metric"
    fetch_retry_attempts: int = 3
    fetch_retry_delay_seconds: float = 1.0
    request_timeout_seconds: float = 10.0
    suggest_debounce_seconds: float = 0.4
    suggest_min_length: int = 3
    suggest_limit: int = 5
    hourly_points: int = 16
    fallback_name: str = "New York"
    fallback_country_code: str = "US"
    fallback_latitude: float = 40.7128
    fallback_longitude: float = -74.0060
    current_location_name: str = "Current location"
    initial_zoom: int = 8
    location_zoom: int = 10
    overlay_opacity: float = 0.5
    overlay_z_index: int = 100
    base_max_zoom: int = 19
    log_level: str = "INFO"
    frontend_origins: tuple[str, ...] = ("http://localhost:5173", "http://127.0.0.1:5173")


def get_settings() -> Settings:
    origins_raw = os.getenv("FRONTEND_ORIGINS", "").strip()
    api_key = os.getenv("OPENWEATHER_API_KEY", "").strip()
    retry_attempts_raw = os.getenv("FETCH_RETRY_ATTEMPTS", "").strip()
    retry_delay_raw = os.getenv("FETCH_RETRY_DELAY_SECONDS", "").strip()
    timeout_raw = os.getenv("REQUEST_TIMEOUT_SECONDS", "").strip()
    debounce_raw = os.getenv("SUGGEST_DEBOUNCE_MS", "").strip()
    fallback_lat_raw = os.getenv("FALLBACK_LATITUDE", "").strip()
    fallback_lon_raw = os.getenv("FALLBACK_LONGITUDE", "").strip()
    log_level = os.getenv("LOG_LEVEL", "").strip().upper()

    parsed_origins = tuple(item.strip() for item in origins_raw.split(",") if item.strip())

    try:
        retry_attempts = int(retry_attempts_raw) if retry_attempts_raw else 3
    except ValueError:
        retry_attempts = 3

    try:
        retry_delay = float(retry_delay_raw) if retry_delay_raw else 1.0
    except ValueError:
        retry_delay = 1.0

    try:
        timeout_seconds = float(timeout_raw) if timeout_raw else 10.0
    except ValueError:
        timeout_seconds = 10.0

    try:
        debounce_ms = int(debounce_raw) if debounce_raw else 400
    except ValueError:
        debounce_ms = 400

    try:
        fallback_latitude = float(fallback_lat_raw) if fallback_lat_raw else Settings.fallback_latitude
        fallback_longitude = float(fallback_lon_raw) if fallback_lon_raw else Settings.fallback_longitude
    except ValueError:
        fallback_latitude = Settings.fallback_latitude
        fallback_longitude = Settings.fallback_longitude

    return Settings(
        openweather_api_key=api_key,
        fetch_retry_attempts=max(1, retry_attempts),
        fetch_retry_delay_seconds=max(0.0, retry_delay),
        request_timeout_seconds=max(1.0, timeout_seconds),
        suggest_debounce_seconds=max(0, debounce_ms) / 1000,
        fallback_latitude=min(90.0, max(-90.0, fallback_latitude)),
        fallback_longitude=min(180.0, max(-180.0, fallback_longitude)),
        log_level=log_level or Settings.log_level,
        frontend_origins=parsed_origins or Settings.frontend_origins,
    )
