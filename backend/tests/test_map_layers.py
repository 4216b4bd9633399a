import pytest

from vhiteskies.schemas import Imagery, LayerSelection, Location, Theme
from vhiteskies.services.map_layers import (
    SATELLITE_TILE_URL,
    ManifestMapSurface,
    MapLayerController,
    base_tile_url,
)

NEW_YORK = Location(name="New York", country_code="US", latitude=40.7128, longitude=-74.006)
TOKYO = Location(name="Tokyo", country_code="JP", latitude=35.6895, longitude=139.6917)


class _RecordingSurface:
    """Map surface that fails loudly if a slot ever holds two layers."""

    def __init__(self) -> None:
        self.calls: list[tuple] = []
        self.mounted: dict[int, str] = {}
        self._next_handle = 0

    def create_map(self, container, center, zoom) -> None:
        self.calls.append(("create_map", container, center, zoom))

    def add_tile_layer(self, url_template, options) -> int:
        kind = _slot_of(url_template)
        assert kind not in self.mounted.values(), f"second {kind} layer attached"
        self._next_handle += 1
        self.mounted[self._next_handle] = kind
        self.calls.append(("add", self._next_handle, url_template, options))
        return self._next_handle

    def remove_layer(self, handle) -> None:
        self.calls.append(("remove", handle))
        del self.mounted[handle]

    def set_view(self, center, zoom) -> None:
        self.calls.append(("set_view", center, zoom))

    def count(self, kind: str) -> int:
        return sum(1 for value in self.mounted.values() if value == kind)


def _slot_of(url_template: str) -> str:
    return "overlay" if "tile.openweathermap.org" in url_template else "base"


@pytest.fixture
def surface() -> _RecordingSurface:
    return _RecordingSurface()


@pytest.fixture
def controller(surface, settings) -> MapLayerController:
    return MapLayerController(surface, settings, NEW_YORK)


def test_base_tile_url_ignores_theme_for_satellite() -> None:
    assert base_tile_url(Imagery.SATELLITE, Theme.DARK) == SATELLITE_TILE_URL
    assert base_tile_url(Imagery.SATELLITE, Theme.LIGHT) == SATELLITE_TILE_URL
    assert "dark_all" in base_tile_url(Imagery.STREET, Theme.DARK)
    assert "light_all" in base_tile_url(Imagery.STREET, Theme.LIGHT)


def test_operations_before_ready_touch_nothing(controller, surface) -> None:
    controller.set_base_style(Imagery.STREET, Theme.DARK)
    controller.set_overlay(LayerSelection.WIND)
    controller.recenter(TOKYO, 10)

    assert surface.calls == []
    assert controller.base_handle is None
    assert controller.overlay_handle is None


def test_ready_flushes_latest_requests_only(controller, surface) -> None:
    controller.set_base_style(Imagery.STREET, Theme.DARK)
    controller.set_base_style(Imagery.SATELLITE, Theme.LIGHT)
    controller.set_overlay(LayerSelection.WIND)
    controller.set_overlay(LayerSelection.TEMPERATURE)
    controller.recenter(TOKYO, 10)

    controller.ready("map")

    assert surface.calls[0] == ("create_map", "map", (TOKYO.latitude, TOKYO.longitude), 10)
    added = [call for call in surface.calls if call[0] == "add"]
    assert [call[2] for call in added] == [
        SATELLITE_TILE_URL,
        "https://tile.openweathermap.org/map/temp_new/{z}/{x}/{y}.png?appid=test-key",
    ]
    assert surface.count("base") == 1
    assert surface.count("overlay") == 1


def test_swaps_detach_before_attach(controller, surface) -> None:
    controller.set_base_style(Imagery.STREET, Theme.DARK)
    controller.set_overlay(LayerSelection.PRECIPITATION)
    controller.ready("map")
    first_base = controller.base_handle
    first_overlay = controller.overlay_handle
    surface.calls.clear()

    controller.set_base_style(Imagery.STREET, Theme.LIGHT)
    controller.set_overlay(LayerSelection.PRESSURE)

    assert surface.calls[0] == ("remove", first_base)
    assert surface.calls[1][0] == "add"
    assert surface.calls[2] == ("remove", first_overlay)
    assert surface.calls[3][0] == "add"
    assert surface.calls[3][3] == {"opacity": 0.5, "z_index": 100}


def test_any_call_sequence_keeps_one_layer_per_slot(controller, surface) -> None:
    sequence = [
        lambda: controller.set_overlay(LayerSelection.WIND),
        lambda: controller.set_base_style(Imagery.SATELLITE, Theme.DARK),
        lambda: controller.ready("map"),
        lambda: controller.set_base_style(Imagery.STREET, Theme.LIGHT),
        lambda: controller.set_overlay(LayerSelection.WIND),
        lambda: controller.set_base_style(Imagery.STREET, Theme.LIGHT),
        lambda: controller.set_overlay(LayerSelection.TEMPERATURE),
        lambda: controller.ready("map"),
        lambda: controller.set_base_style(Imagery.SATELLITE, Theme.LIGHT),
    ]
    for step in sequence:
        step()
        assert surface.count("base") <= 1
        assert surface.count("overlay") <= 1

    assert surface.count("base") == 1
    assert surface.count("overlay") == 1


def test_second_ready_is_ignored(controller, surface) -> None:
    controller.ready("map")
    controller.ready("other")

    assert [call for call in surface.calls if call[0] == "create_map"] == [
        ("create_map", "map", (NEW_YORK.latitude, NEW_YORK.longitude), 8)
    ]


def test_recenter_is_idempotent(controller, surface) -> None:
    controller.ready("map")
    controller.recenter(TOKYO, 10)
    controller.recenter(TOKYO, 10)

    assert [call for call in surface.calls if call[0] == "set_view"] == [
        ("set_view", (TOKYO.latitude, TOKYO.longitude), 10)
    ]


def test_manifest_surface_tracks_mounted_layers(settings) -> None:
    surface = ManifestMapSurface()
    controller = MapLayerController(surface, settings, NEW_YORK)
    controller.set_base_style(Imagery.STREET, Theme.DARK)
    controller.set_overlay(LayerSelection.PRECIPITATION)
    controller.ready("map")
    controller.set_overlay(LayerSelection.WIND)

    assert len(surface.layers) == 2
    manifest = controller.manifest()
    assert manifest["ready"] is True
    assert manifest["base"]["options"]["attribution"] == "CartoDB"
    assert "wind_new" in manifest["overlay"]["url_template"]
