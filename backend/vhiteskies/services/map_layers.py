from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

from vhiteskies.config import Settings
from vhiteskies.schemas import Imagery, LayerSelection, Location, Theme

logger = logging.getLogger("vhiteskies.map")

STREET_TILE_URLS = {
    Theme.DARK: "https://{s}.basemaps.cartocdn.com/dark_all/{z}/{x}/{y}{r}.png",
    Theme.LIGHT: "https://{s}.basemaps.cartocdn.com/light_all/{z}/{x}/{y}{r}.png",
}
SATELLITE_TILE_URL = "https://server.arcgisonline.com/ArcGIS/rest/services/World_Imagery/MapServer/tile/{z}/{y}/{x}"

Center = tuple[float, float]


class MapSurface(Protocol):
    def create_map(self, container: str, center: Center, zoom: int) -> None: ...

    def add_tile_layer(self, url_template: str, options: dict[str, Any]) -> Any: ...

    def remove_layer(self, handle: Any) -> None: ...

    def set_view(self, center: Center, zoom: int) -> None: ...


@dataclass(frozen=True)
class TileLayer:
    url_template: str
    options: tuple[tuple[str, Any], ...] = ()

    def options_dict(self) -> dict[str, Any]:
        return dict(self.options)

    def to_dict(self) -> dict:
        return {"url_template": self.url_template, "options": self.options_dict()}


def base_tile_url(imagery: Imagery, theme: Theme) -> str:
    if Imagery(imagery) is Imagery.SATELLITE:
        return SATELLITE_TILE_URL
    return STREET_TILE_URLS[Theme(theme)]


def build_base_layer(settings: Settings, imagery: Imagery, theme: Theme) -> TileLayer:
    attribution = "Esri" if Imagery(imagery) is Imagery.SATELLITE else "CartoDB"
    return TileLayer(
        url_template=base_tile_url(imagery, theme),
        options=(("max_zoom", settings.base_max_zoom), ("attribution", attribution)),
    )


def build_overlay_layer(settings: Settings, layer: LayerSelection) -> TileLayer:
    # {z}/{x}/{y} stay as placeholders for the map library
    url = settings.openweather_tile_url.replace("{layer}", LayerSelection(layer).value)
    url = url.replace("{api_key}", settings.openweather_api_key)
    return TileLayer(
        url_template=url,
        options=(("opacity", settings.overlay_opacity), ("z_index", settings.overlay_z_index)),
    )


class MapLayerController:
    """Keeps at most one base layer and one weather overlay on a map surface.

    Requests made before ``ready`` are remembered and the latest of each kind
    is applied once the surface exists.
    """

    def __init__(self, surface: MapSurface, settings: Settings, initial_center: Location) -> None:
        self._surface = surface
        self._settings = settings
        self._ready = False
        self._container: str | None = None
        self._base_handle: Any = None
        self._overlay_handle: Any = None
        self._desired_base: TileLayer | None = None
        self._desired_overlay: TileLayer | None = None
        self._mounted_base: TileLayer | None = None
        self._mounted_overlay: TileLayer | None = None
        self._desired_view: tuple[Center, int] = (
            (initial_center.latitude, initial_center.longitude),
            settings.initial_zoom,
        )
        self._current_view: tuple[Center, int] | None = None

    @property
    def is_ready(self) -> bool:
        return self._ready

    @property
    def base_handle(self) -> Any:
        return self._base_handle

    @property
    def overlay_handle(self) -> Any:
        return self._overlay_handle

    def ready(self, container: str) -> None:
        if self._ready:
            logger.warning("Map surface already initialised on %s; ignoring %s", self._container, container)
            return

        center, zoom = self._desired_view
        self._surface.create_map(container, center, zoom)
        self._ready = True
        self._container = container
        self._current_view = self._desired_view

        if self._desired_base is not None:
            self._attach_base(self._desired_base)
        if self._desired_overlay is not None:
            self._attach_overlay(self._desired_overlay)

    def set_base_style(self, imagery: Imagery, theme: Theme) -> None:
        self._desired_base = build_base_layer(self._settings, imagery, theme)
        if self._ready:
            self._attach_base(self._desired_base)

    def set_overlay(self, layer: LayerSelection) -> None:
        self._desired_overlay = build_overlay_layer(self._settings, layer)
        if self._ready:
            self._attach_overlay(self._desired_overlay)

    def recenter(self, location: Location, zoom: int) -> None:
        self._desired_view = ((location.latitude, location.longitude), zoom)
        if not self._ready or self._current_view == self._desired_view:
            return
        center, zoom = self._desired_view
        self._surface.set_view(center, zoom)
        self._current_view = self._desired_view

    def manifest(self) -> dict:
        view = self._current_view or self._desired_view
        return {
            "ready": self._ready,
            "container": self._container,
            "center": list(view[0]),
            "zoom": view[1],
            "base": self._mounted_base.to_dict() if self._mounted_base else None,
            "overlay": self._mounted_overlay.to_dict() if self._mounted_overlay else None,
        }

    def _attach_base(self, layer: TileLayer) -> None:
        if self._base_handle is not None:
            self._surface.remove_layer(self._base_handle)
            self._base_handle = None
            self._mounted_base = None
        self._base_handle = self._surface.add_tile_layer(layer.url_template, layer.options_dict())
        self._mounted_base = layer

    def _attach_overlay(self, layer: TileLayer) -> None:
        if self._overlay_handle is not None:
            self._surface.remove_layer(self._overlay_handle)
            self._overlay_handle = None
            self._mounted_overlay = None
        self._overlay_handle = self._surface.add_tile_layer(layer.url_template, layer.options_dict())
        self._mounted_overlay = layer


@dataclass
class MountedLayer:
    handle: int
    url_template: str
    options: dict[str, Any]


@dataclass
class ManifestMapSurface:
    """In-process map surface whose state the browser mirrors with Leaflet."""

    container: str | None = None
    center: Center | None = None
    zoom: int | None = None
    layers: dict[int, MountedLayer] = field(default_factory=dict)
    _ids: itertools.count = field(default_factory=lambda: itertools.count(1), repr=False)

    def create_map(self, container: str, center: Center, zoom: int) -> None:
        self.container = container
        self.center = center
        self.zoom = zoom

    def add_tile_layer(self, url_template: str, options: dict[str, Any]) -> int:
        if self.container is None:
            raise RuntimeError("Map has not been created yet.")
        handle = next(self._ids)
        self.layers[handle] = MountedLayer(handle=handle, url_template=url_template, options=dict(options))
        return handle

    def remove_layer(self, handle: int) -> None:
        self.layers.pop(handle, None)

    def set_view(self, center: Center, zoom: int) -> None:
        self.center = center
        self.zoom = zoom
