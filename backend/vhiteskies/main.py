from __future__ import annotations

import asyncio
from datetime import datetime, timezone

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from vhiteskies.config import get_settings
from vhiteskies.logging_config import setup_logging
from vhiteskies.schemas import (
    DashboardState,
    ImageryRequest,
    LayerRequest,
    LocateRequest,
    Location,
    MapReadyRequest,
    SearchRequest,
    ThemeRequest,
)
from vhiteskies.services.dashboard import DashboardController, fallback_location
from vhiteskies.services.fetcher import RetryingFetcher
from vhiteskies.services.geolocation import ReportedPosition
from vhiteskies.services.map_layers import ManifestMapSurface, MapLayerController
from vhiteskies.services.snapshot_loader import WeatherSnapshotLoader
from vhiteskies.services.suggester import LocationSuggester
from vhiteskies.services.weather_client import WeatherClient, aqi_label


settings = get_settings()
logger = setup_logging(settings.log_level)

fetcher = RetryingFetcher(settings=settings)
weather_client = WeatherClient(settings=settings, fetcher=fetcher)
map_surface = ManifestMapSurface()
controller = DashboardController(
    settings=settings,
    loader=WeatherSnapshotLoader(weather_client=weather_client),
    suggester=LocationSuggester(settings=settings, geocode=weather_client.geocode),
    map_layers=MapLayerController(map_surface, settings, fallback_location(settings)),
)
_bootstrap_task: asyncio.Task | None = None

app = FastAPI(title=settings.app_name, version=settings.app_version)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.frontend_origins),
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def startup_event() -> None:
    global _bootstrap_task
    if not settings.openweather_api_key:
        logger.warning("OPENWEATHER_API_KEY is not set; weather requests will be rejected upstream")
    _bootstrap_task = asyncio.create_task(controller.start())


@app.on_event("shutdown")
async def shutdown_event() -> None:
    if _bootstrap_task is not None and not _bootstrap_task.done():
        _bootstrap_task.cancel()
    await controller.close()
    await fetcher.close()


@app.get("/api/health")
async def health() -> dict:
    return {
        "status": "ok",
        "service": settings.app_name,
        "timestamp_utc": datetime.now(tz=timezone.utc).isoformat(),
    }


@app.get("/api/dashboard")
async def dashboard_state() -> dict:
    return _serialize_state(controller.state)


@app.post("/api/dashboard/locate")
async def locate(payload: LocateRequest) -> dict:
    position = ReportedPosition(latitude=payload.latitude, longitude=payload.longitude, error=payload.error)
    await controller.locate_me(position)
    return _serialize_state(controller.state)


@app.post("/api/dashboard/select")
async def select_location(location: Location) -> dict:
    await controller.select_location(location)
    return _serialize_state(controller.state)


@app.post("/api/dashboard/suggestions/{index}/select")
async def select_suggestion(index: int) -> dict:
    try:
        await controller.select_suggestion(index)
    except IndexError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return _serialize_state(controller.state)


@app.post("/api/dashboard/search")
async def search(payload: SearchRequest) -> dict:
    controller.search(payload.query)
    return _serialize_state(controller.state)


@app.post("/api/dashboard/layer")
async def change_layer(payload: LayerRequest) -> dict:
    controller.change_layer(payload.layer)
    return _serialize_state(controller.state)


@app.post("/api/dashboard/imagery")
async def change_imagery(payload: ImageryRequest) -> dict:
    controller.change_imagery(payload.imagery)
    return _serialize_state(controller.state)


@app.post("/api/dashboard/imagery/toggle")
async def toggle_imagery() -> dict:
    controller.toggle_imagery()
    return _serialize_state(controller.state)


@app.post("/api/dashboard/theme")
async def change_theme(payload: ThemeRequest) -> dict:
    controller.change_theme(payload.theme)
    return _serialize_state(controller.state)


@app.post("/api/dashboard/sidebar/toggle")
async def toggle_sidebar() -> dict:
    controller.toggle_sidebar()
    return _serialize_state(controller.state)


@app.post("/api/dashboard/full-map/toggle")
async def toggle_full_map() -> dict:
    controller.toggle_full_map()
    return _serialize_state(controller.state)


@app.post("/api/map/ready")
async def map_ready(payload: MapReadyRequest) -> dict:
    controller.map_ready(payload.container)
    return controller.map_layers.manifest()


@app.get("/api/map/layers")
async def map_layers() -> dict:
    return controller.map_layers.manifest()


def _serialize_state(state: DashboardState) -> dict:
    payload = state.model_dump(mode="json")
    snapshot = state.snapshot
    if snapshot is not None:
        payload["snapshot"]["air_quality"]["label"] = aqi_label(snapshot.air_quality.index)
        payload["snapshot"]["observation"]["visibility_km"] = snapshot.observation.visibility_km
    payload["sync_failed"] = state.last_error is not None
    return payload
