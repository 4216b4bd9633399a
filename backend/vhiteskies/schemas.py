from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class Location(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    country_code: str = ""
    admin_region: str | None = None
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)


class Observation(BaseModel):
    temperature: float
    feels_like: float
    wind_speed: float
    humidity: float
    pressure: float
    visibility: float = Field(default=0.0, description="Metres.")
    condition_text: str = ""
    condition_icon: str = ""
    place_name: str | None = None
    country_code: str | None = None

    @property
    def visibility_km(self) -> float:
        return round(self.visibility / 1000, 1)


class HourlyPoint(BaseModel):
    timestamp: datetime
    temperature: float
    condition_icon: str = ""
    condition_text: str = ""


class AirQuality(BaseModel):
    index: int = 1
    pm2_5: float = 0.0
    pm10: float = 0.0
    so2: float = 0.0
    no2: float = 0.0
    no: float = 0.0
    o3: float = 0.0
    co: float = 0.0
    nh3: float = 0.0

    @field_validator("index", mode="before")
    @classmethod
    def default_unknown_index(cls, value: object) -> int:
        if isinstance(value, bool):
            return 1
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        if isinstance(value, int) and 1 <= value <= 5:
            return value
        return 1

    @field_validator("pm2_5", "pm10", "so2", "no2", "no", "o3", "co", "nh3", mode="before")
    @classmethod
    def default_missing_component(cls, value: object) -> float:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
        return 0.0


class WeatherSnapshot(BaseModel):
    location: Location
    observation: Observation
    hourly: list[HourlyPoint]
    air_quality: AirQuality
    fetched_at: datetime

    @model_validator(mode="after")
    def validate_hourly(self) -> "WeatherSnapshot":
        if not self.hourly:
            raise ValueError("A snapshot needs at least one hourly entry.")
        stamps = [point.timestamp for point in self.hourly]
        if stamps != sorted(stamps):
            raise ValueError("Hourly entries must be chronological.")
        return self


class LayerSelection(str, Enum):
    PRECIPITATION = "precipitation_new"
    WIND = "wind_new"
    PRESSURE = "pressure_new"
    TEMPERATURE = "temp_new"


class Imagery(str, Enum):
    STREET = "street"
    SATELLITE = "satellite"


class Theme(str, Enum):
    DARK = "dark"
    LIGHT = "light"


class MapViewMode(BaseModel):
    imagery: Imagery = Imagery.STREET
    theme: Theme = Theme.DARK
    full_map_mode: bool = False
    sidebar_open: bool = True


class DashboardState(BaseModel):
    location: Location
    snapshot: WeatherSnapshot | None = None
    suggestions: list[Location] = Field(default_factory=list)
    query: str = ""
    layer_selection: LayerSelection = LayerSelection.PRECIPITATION
    view_mode: MapViewMode = Field(default_factory=MapViewMode)
    is_loading: bool = True
    last_error: str | None = None
    generation: int = 0


class LocateRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)
    error: str | None = Field(default=None, description="Browser geolocation failure: denied, unavailable or timeout.")

    @model_validator(mode="after")
    def validate_position_inputs(self) -> "LocateRequest":
        if self.error is None and (self.latitude is None or self.longitude is None):
            raise ValueError("Provide latitude and longitude, or the geolocation error.")
        return self


class SearchRequest(BaseModel):
    query: str = Field(default="", max_length=80)


class LayerRequest(BaseModel):
    layer: LayerSelection


class ImageryRequest(BaseModel):
    imagery: Imagery


class ThemeRequest(BaseModel):
    theme: Theme


class MapReadyRequest(BaseModel):
    container: str = Field(default="map", min_length=1, max_length=80)
