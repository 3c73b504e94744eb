"""
Binding between a map widget and the interaction controller.

The widget only creates markers, projects coordinates to container pixels,
delivers pointer events and animates the view; everything it draws comes
from the controller's declarative visual state.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
import logging
import math
from typing import Protocol

from pyproj import Transformer

from festmap.constants import FOCUS_MIN_ZOOM, ZONE_RADIUS_KM
from festmap.interaction import SOURCE_MAP, InteractionController, InteractionSnapshot
from festmap.models import Coordinates, Dataset, Event, Merchant, Point
from festmap.placement import ContainerBounds
from festmap.schedule import visual_state
from festmap.zones import ZoneBuilder, event_zones

logger = logging.getLogger(__name__)

_EARTH_RADIUS_M = 6378137.0
_TILE_SIZE_PX = 256


class MapWidget(Protocol):
    @property
    def zoom(self) -> float: ...

    def create_marker_at(self, point: Coordinates, classes: list[str]) -> object: ...

    def project_to_container_point(self, point: Coordinates) -> Point: ...

    def on_marker_event(self, handle: object, event_type: str, callback: Callable[[], None]) -> None: ...

    def on_background_click(self, callback: Callable[[], None]) -> None: ...

    def fly_to(self, point: Coordinates, zoom: float) -> None: ...

    def update_marker(self, handle: object, classes: list[str]) -> None: ...

    def add_zone(self, geometry: dict[str, object], color: str) -> None: ...

    def container_size(self) -> ContainerBounds: ...

    def card_height(self) -> float | None: ...

    def trigger_ripple(self, handle: object) -> None: ...


class ListPanel(Protocol):
    def update_item(self, merchant_id: int, classes: list[str]) -> None: ...


class HeadlessMapWidget:
    """Web Mercator map widget without rendering, for replays and tests."""

    def __init__(
        self,
        center: tuple[float, float],
        zoom: float,
        width: float,
        height: float,
        card_height: float | None = None,
    ) -> None:
        self.center = Coordinates(lat=center[0], lng=center[1])
        self._zoom = zoom
        self.bounds = ContainerBounds(width=width, height=height)
        self.markers: dict[int, dict[str, object]] = {}
        self.zones: list[tuple[dict[str, object], str]] = []
        self.ripples: list[int] = []
        self.measured_card_height = card_height
        self._listeners: dict[tuple[int, str], Callable[[], None]] = {}
        self._background: list[Callable[[], None]] = []
        self._to_mercator = Transformer.from_crs("EPSG:4326", "EPSG:3857", always_xy=True)

    @property
    def zoom(self) -> float:
        return self._zoom

    def create_marker_at(self, point: Coordinates, classes: list[str]) -> int:
        handle = len(self.markers) + 1
        self.markers[handle] = {"point": point, "classes": list(classes)}
        return handle

    def project_to_container_point(self, point: Coordinates) -> Point:
        resolution = 2 * math.pi * _EARTH_RADIUS_M / (_TILE_SIZE_PX * 2**self._zoom)
        x, y = self._to_mercator.transform(point.lng, point.lat)
        cx, cy = self._to_mercator.transform(self.center.lng, self.center.lat)
        return Point(
            x=self.bounds.width / 2 + (x - cx) / resolution,
            y=self.bounds.height / 2 - (y - cy) / resolution,
        )

    def on_marker_event(self, handle: int, event_type: str, callback: Callable[[], None]) -> None:
        self._listeners[(handle, event_type)] = callback

    def on_background_click(self, callback: Callable[[], None]) -> None:
        self._background.append(callback)

    def fire(self, handle: int, event_type: str) -> None:
        callback = self._listeners.get((handle, event_type))
        if callback is not None:
            callback()

    def click_background(self) -> None:
        for callback in list(self._background):
            callback()

    def fly_to(self, point: Coordinates, zoom: float) -> None:
        self.center = point
        self._zoom = zoom

    def update_marker(self, handle: int, classes: list[str]) -> None:
        if handle in self.markers:
            self.markers[handle]["classes"] = list(classes)

    def add_zone(self, geometry: dict[str, object], color: str) -> None:
        self.zones.append((geometry, color))

    def container_size(self) -> ContainerBounds:
        return self.bounds

    def card_height(self) -> float | None:
        return self.measured_card_height

    def trigger_ripple(self, handle: int) -> None:
        if handle in self.markers:
            self.ripples.append(handle)


class HeadlessListPanel:
    """Sidebar list stand-in that keeps the last classes pushed for each item."""

    def __init__(self) -> None:
        self.items: dict[int, list[str]] = {}

    def update_item(self, merchant_id: int, classes: list[str]) -> None:
        self.items[merchant_id] = list(classes)


class MapView:
    def __init__(
        self,
        widget: MapWidget,
        controller: InteractionController,
        list_panel: ListPanel | None = None,
    ) -> None:
        self.widget = widget
        self.controller = controller
        self.list_panel = list_panel
        self._handles: dict[int, object] = {}
        self._points: dict[int, Coordinates] = {}
        controller.projector = self.anchor_for
        controller.container = widget.container_size
        controller.on_transition(self._on_transition)
        widget.on_background_click(self.background_click)

    def load(self, dataset: Dataset, zone_builder: ZoneBuilder | None = None) -> None:
        for event in dataset.events:
            self.add_merchants(event.merchants)
        self.controller.set_merchants(dataset.merchants)
        if zone_builder is not None:
            self.draw_zones(dataset.events, zone_builder)

    def add_merchants(self, merchants: Iterable[Merchant]) -> int:
        now = self.controller.clock()
        added = 0
        for merchant in merchants:
            if not merchant.has_location() or merchant.id in self._handles:
                continue
            classes = visual_state(merchant, now, reporter=self.controller.reporter).classes()
            handle = self.widget.create_marker_at(merchant.coordinates, classes)
            self._handles[merchant.id] = handle
            self._points[merchant.id] = merchant.coordinates
            self._bind(handle, merchant.id)
            added += 1
        return added

    def handle_for(self, merchant_id: int) -> object | None:
        return self._handles.get(merchant_id)

    def anchor_for(self, merchant_id: int) -> Point | None:
        point = self._points.get(merchant_id)
        if point is None:
            return None
        return self.widget.project_to_container_point(point)

    def select(self, merchant_id: int) -> None:
        self.controller.select(merchant_id)
        point = self._points.get(merchant_id)
        if point is not None:
            self.widget.fly_to(point, max(self.widget.zoom, FOCUS_MIN_ZOOM))

    def background_click(self) -> None:
        self.controller.deselect_all()

    def marker_classes(self, merchant_id: int) -> list[str] | None:
        visual = self.controller.visual(merchant_id)
        return visual.marker_classes() if visual is not None else None

    def apply(self) -> None:
        for merchant_id, visual in self.controller.visuals().items():
            if self.list_panel is not None:
                self.list_panel.update_item(merchant_id, visual.list_classes())
            handle = self._handles.get(merchant_id)
            if handle is not None:
                self.widget.update_marker(handle, visual.marker_classes())

    def refresh_markers(self) -> None:
        self.controller.refresh()
        self.apply()

    def ripple(self, merchant: Merchant) -> bool:
        handle = self._handles.get(merchant.id)
        if handle is None:
            return False
        self.widget.trigger_ripple(handle)
        return True

    def draw_zones(self, events: Iterable[Event], builder: ZoneBuilder, radius_km: float = ZONE_RADIUS_KM) -> int:
        features = event_zones(events, builder, radius_km)["features"]
        for feature in features:
            self.widget.add_zone(feature["geometry"], feature["properties"]["color"])
        return len(features)

    def hover_enter(self, merchant_id: int, source: str) -> None:
        self.controller.measure_card(self.widget.card_height())
        self.controller.hover_enter(merchant_id, source)

    def _bind(self, handle: object, merchant_id: int) -> None:
        self.widget.on_marker_event(handle, "hover-enter", lambda: self.hover_enter(merchant_id, SOURCE_MAP))
        self.widget.on_marker_event(handle, "hover-leave", lambda: self.controller.hover_leave(merchant_id))
        self.widget.on_marker_event(handle, "click", lambda: self.select(merchant_id))

    def _on_transition(self, snapshot: InteractionSnapshot) -> None:
        self.apply()
