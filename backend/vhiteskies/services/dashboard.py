from __future__ import annotations

import logging
from typing import Callable

from vhiteskies.config import Settings
from vhiteskies.errors import GeolocationError, NetworkError, StaleResultDiscarded
from vhiteskies.schemas import DashboardState, Imagery, LayerSelection, Location, Theme, WeatherSnapshot
from vhiteskies.services.geolocation import GeolocationProvider, UnavailableGeolocation
from vhiteskies.services.map_layers import MapLayerController
from vhiteskies.services.snapshot_loader import WeatherSnapshotLoader
from vhiteskies.services.suggester import LocationSuggester

logger = logging.getLogger("vhiteskies.dashboard")

SYNC_FAILED_MESSAGE = "Atmospheric sync failed."

StateListener = Callable[[DashboardState], None]


def fallback_location(settings: Settings) -> Location:
    return Location(
        name=settings.fallback_name,
        country_code=settings.fallback_country_code,
        latitude=settings.fallback_latitude,
        longitude=settings.fallback_longitude,
    )


class DashboardController:
    """Single owner of ``DashboardState``; every UI intent goes through here."""

    def __init__(
        self,
        *,
        settings: Settings,
        loader: WeatherSnapshotLoader,
        suggester: LocationSuggester,
        map_layers: MapLayerController,
        geolocation: GeolocationProvider | None = None,
    ) -> None:
        self.settings = settings
        self.loader = loader
        self.suggester = suggester
        self.map_layers = map_layers
        self.geolocation = geolocation or UnavailableGeolocation()
        self.state = DashboardState(location=fallback_location(settings))
        self._generation = 0
        self._listeners: list[StateListener] = []

        self.suggester.listener = self._apply_suggestions
        self.map_layers.set_base_style(self.state.view_mode.imagery, self.state.view_mode.theme)
        self.map_layers.set_overlay(self.state.layer_selection)

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def start(self) -> None:
        await self.locate_me()

    async def close(self) -> None:
        await self.suggester.close()

    async def locate_me(self, geolocation: GeolocationProvider | None = None) -> bool:
        provider = geolocation or self.geolocation
        self.state.is_loading = True
        self._notify()

        try:
            latitude, longitude = await provider.get_current_position(high_accuracy=True)
        except GeolocationError as exc:
            logger.info("%s; using fallback location %s", exc, self.settings.fallback_name)
            return await self.select_location(fallback_location(self.settings))

        location = Location(name=self.settings.current_location_name, latitude=latitude, longitude=longitude)
        return await self.select_location(location, from_device=True)

    async def select_location(self, location: Location, *, from_device: bool = False) -> bool:
        """Load a snapshot for ``location`` and commit it if still the latest request.

        Device positions (``from_device``) take the observation's place name.
        Returns True when the snapshot was committed.
        """
        self._generation += 1
        generation = self._generation
        self.state.generation = generation
        self.state.is_loading = True
        self.state.last_error = None
        self.suggester.reset()
        self.state.query = ""
        self._notify()

        try:
            snapshot = await self.loader.load(location)
        except (NetworkError, ValueError) as exc:
            logger.warning("Snapshot load for %s failed: %s", location.name, exc)
            return self._fail_load(generation, exc)
        except Exception as exc:  # noqa: BLE001 - an unexpected failure still ends the load
            logger.exception("Snapshot load for %s failed unexpectedly", location.name)
            return self._fail_load(generation, exc)

        try:
            self._ensure_latest(generation)
        except StaleResultDiscarded as stale:
            logger.debug("%s", stale)
            return False

        if from_device:
            snapshot = self._name_device_location(snapshot)
        self.state.snapshot = snapshot
        self.state.location = snapshot.location
        self.state.is_loading = False
        self.map_layers.recenter(snapshot.location, self.settings.location_zoom)
        self._notify()
        return True

    async def select_suggestion(self, index: int) -> bool:
        if index < 0 or index >= len(self.state.suggestions):
            raise IndexError(f"No suggestion at position {index}.")
        return await self.select_location(self.state.suggestions[index])

    def search(self, text: str) -> None:
        self.state.query = text
        self.suggester.submit(text)
        self._notify()

    def change_layer(self, layer: LayerSelection | str) -> None:
        self.state.layer_selection = LayerSelection(layer)
        self.map_layers.set_overlay(self.state.layer_selection)
        self._notify()

    def change_imagery(self, imagery: Imagery | str) -> None:
        self.state.view_mode.imagery = Imagery(imagery)
        self._apply_base_style()

    def change_theme(self, theme: Theme | str) -> None:
        self.state.view_mode.theme = Theme(theme)
        self._apply_base_style()

    def toggle_imagery(self) -> None:
        current = self.state.view_mode.imagery
        self.change_imagery(Imagery.STREET if current is Imagery.SATELLITE else Imagery.SATELLITE)

    def toggle_sidebar(self) -> None:
        self.state.view_mode.sidebar_open = not self.state.view_mode.sidebar_open
        self._notify()

    def toggle_full_map(self) -> None:
        self.state.view_mode.full_map_mode = not self.state.view_mode.full_map_mode
        self._notify()

    def map_ready(self, container: str) -> None:
        self.map_layers.ready(container)
        self._notify()

    def _apply_base_style(self) -> None:
        self.map_layers.set_base_style(self.state.view_mode.imagery, self.state.view_mode.theme)
        self._notify()

    def _apply_suggestions(self, suggestions: list[Location]) -> None:
        self.state.suggestions = suggestions
        self._notify()

    def _ensure_latest(self, generation: int) -> None:
        if generation != self._generation:
            raise StaleResultDiscarded(generation, self._generation)

    def _fail_load(self, generation: int, exc: Exception) -> bool:
        try:
            self._ensure_latest(generation)
        except StaleResultDiscarded as stale:
            logger.debug("%s (failed with %s)", stale, exc)
            return False
        self.state.last_error = SYNC_FAILED_MESSAGE
        self.state.is_loading = False
        self._notify()
        return False

    def _name_device_location(self, snapshot: WeatherSnapshot) -> WeatherSnapshot:
        place_name = snapshot.observation.place_name
        if not place_name:
            return snapshot
        named = snapshot.location.model_copy(
            update={"name": place_name, "country_code": snapshot.observation.country_code or ""}
        )
        return snapshot.model_copy(update={"location": named})

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self.state)
            except Exception:  # noqa: BLE001 - log and keep notifying
                logger.exception("State listener %r failed", listener)
