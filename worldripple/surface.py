"""
surface.py
The map operations the overlay synchronizer and the search controller use,
and MapScene, an in-memory map that implements them.

MapScene follows web-map semantics closely enough to catch lifecycle bugs:
adding an existing source or layer fails, a layer needs its source, and a
source cannot be removed while a layer still draws from it. map_create.py
renders a scene to HTML.
"""

import copy
import itertools
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

from .boundaries import features_at
from .config import DEFAULT_CENTER, DEFAULT_ZOOM

logger = logging.getLogger(__name__)

LngLat = Tuple[float, float]

_ids = itertools.count(1)


def wrap_longitude(lng: float) -> float:
    """Bring a longitude into [-180, 180]; 180 stays 180."""
    wrapped = (float(lng) + 180.0) % 360.0 - 180.0
    return 180.0 if wrapped == -180.0 else wrapped


class MapSurfaceError(RuntimeError):
    """A map operation was rejected (duplicate ID, missing layer, source still in use ...)."""


@dataclass
class HoverEvent:
    layer_id: str
    lnglat: LngLat
    features: List[Dict[str, Any]] = field(default_factory=list)


Handler = Callable[[HoverEvent], None]


@dataclass(eq=False)
class Popup:
    lnglat: LngLat
    html: str
    owner: Optional[str] = None
    id: int = field(default_factory=lambda: next(_ids))
    surface: Optional["MapSurface"] = field(default=None, repr=False)

    def remove(self) -> None:
        if self.surface is not None:
            self.surface.remove_popup(self)


@dataclass(eq=False)
class Marker:
    lnglat: LngLat
    popup_html: Optional[str] = None
    kind: str = "search"
    properties: Dict[str, Any] = field(default_factory=dict)
    id: int = field(default_factory=lambda: next(_ids))
    surface: Optional["MapSurface"] = field(default=None, repr=False)

    def remove(self) -> None:
        if self.surface is not None:
            self.surface.remove_marker(self)


class MapSurface:
    """Interface of a renderable map. Mutating calls raise MapSurfaceError on rejection."""

    def has_source(self, source_id: str) -> bool:
        raise NotImplementedError

    def add_source(self, source_id: str, data: Dict[str, Any]) -> None:
        raise NotImplementedError

    def remove_source(self, source_id: str) -> None:
        raise NotImplementedError

    def has_layer(self, layer_id: str) -> bool:
        raise NotImplementedError

    def add_layer(self, spec: Dict[str, Any]) -> None:
        raise NotImplementedError

    def remove_layer(self, layer_id: str) -> None:
        raise NotImplementedError

    def set_paint_property(self, layer_id: str, name: str, value: Any) -> None:
        raise NotImplementedError

    def on(self, event: str, layer_id: str, handler: Handler) -> None:
        raise NotImplementedError

    def off(self, event: str, layer_id: str, handler: Handler) -> None:
        raise NotImplementedError

    def add_popup(self, lnglat: LngLat, html: str, owner: Optional[str] = None) -> Popup:
        raise NotImplementedError

    def remove_popup(self, popup: Popup) -> None:
        raise NotImplementedError

    def add_marker(self, lnglat: LngLat, popup_html: Optional[str] = None, kind: str = "search",
                   properties: Optional[Dict[str, Any]] = None) -> Marker:
        raise NotImplementedError

    def remove_marker(self, marker: Marker) -> None:
        raise NotImplementedError

    def set_cursor(self, cursor: str) -> None:
        raise NotImplementedError

    def get_center(self) -> LngLat:
        raise NotImplementedError

    def ease_to(self, center: LngLat, zoom: float, duration: float, easing: str = "linear") -> None:
        raise NotImplementedError

    def fly_to(self, center: LngLat, zoom: float, duration: float) -> None:
        raise NotImplementedError


class MapScene(MapSurface):
    def __init__(self, center: LngLat = DEFAULT_CENTER, zoom: float = DEFAULT_ZOOM):
        self.sources: Dict[str, Dict[str, Any]] = {}
        self.layers: Dict[str, Dict[str, Any]] = {}
        self.popups: List[Popup] = []
        self.markers: List[Marker] = []
        self.cursor = ""
        self.center: LngLat = (float(center[0]), float(center[1]))
        self.zoom = float(zoom)
        self.camera_moves: List[Tuple[str, Dict[str, Any]]] = []
        self._handlers: Dict[Tuple[str, str], List[Handler]] = {}
        self._hovered: Set[str] = set()

    # ----------------------------
    # Sources and layers
    # ----------------------------

    def has_source(self, source_id: str) -> bool:
        return source_id in self.sources

    def add_source(self, source_id: str, data: Dict[str, Any]) -> None:
        if source_id in self.sources:
            raise MapSurfaceError(f"There is already a source with ID \"{source_id}\".")
        self.sources[source_id] = copy.deepcopy(data)

    def remove_source(self, source_id: str) -> None:
        if source_id not in self.sources:
            raise MapSurfaceError(f"There is no source with ID \"{source_id}\".")
        users = [lid for lid, spec in self.layers.items() if spec.get("source") == source_id]
        if users:
            raise MapSurfaceError(
                f"Source \"{source_id}\" cannot be removed while layer \"{users[0]}\" is using it."
            )
        del self.sources[source_id]

    def has_layer(self, layer_id: str) -> bool:
        return layer_id in self.layers

    def add_layer(self, spec: Dict[str, Any]) -> None:
        layer_id = spec.get("id")
        if not layer_id:
            raise MapSurfaceError("Layer spec needs an \"id\".")
        if layer_id in self.layers:
            raise MapSurfaceError(f"Layer with id \"{layer_id}\" already exists on this map.")
        if spec.get("source") not in self.sources:
            raise MapSurfaceError(f"Source \"{spec.get('source')}\" not found for layer \"{layer_id}\".")
        stored = dict(spec)
        stored["paint"] = dict(spec.get("paint") or {})
        self.layers[layer_id] = stored

    def remove_layer(self, layer_id: str) -> None:
        if layer_id not in self.layers:
            raise MapSurfaceError(f"The layer \"{layer_id}\" does not exist in the map's style.")
        del self.layers[layer_id]
        self._hovered.discard(layer_id)

    def set_paint_property(self, layer_id: str, name: str, value: Any) -> None:
        if layer_id not in self.layers:
            raise MapSurfaceError(f"The layer \"{layer_id}\" does not exist in the map's style.")
        self.layers[layer_id]["paint"][name] = value

    def get_paint_property(self, layer_id: str, name: str) -> Any:
        layer = self.layers.get(layer_id)
        if layer is None:
            return None
        return layer["paint"].get(name)

    def source_features(self, source_id: str) -> List[Dict[str, Any]]:
        data = self.sources.get(source_id) or {}
        return list(data.get("features") or [])

    # ----------------------------
    # Events
    # ----------------------------

    def on(self, event: str, layer_id: str, handler: Handler) -> None:
        self._handlers.setdefault((event, layer_id), []).append(handler)

    def off(self, event: str, layer_id: str, handler: Handler) -> None:
        handlers = self._handlers.get((event, layer_id))
        if not handlers or handler not in handlers:
            return
        handlers.remove(handler)
        if not handlers:
            del self._handlers[(event, layer_id)]

    def handlers(self, event: Optional[str] = None, layer_id: Optional[str] = None) -> List[Handler]:
        out: List[Handler] = []
        for (ev, lid), registered in self._handlers.items():
            if (event is None or ev == event) and (layer_id is None or lid == layer_id):
                out.extend(registered)
        return out

    def _fire(self, event: str, layer_id: str, payload: HoverEvent) -> None:
        for handler in list(self._handlers.get((event, layer_id), [])):
            handler(payload)

    def hover(self, lng: float, lat: float) -> List[str]:
        """
        Move the pointer to (lng, lat): fire mouseleave for fill layers the
        pointer left and mouseenter for fill layers it entered. Returns the IDs
        of the layers under the pointer.
        """
        under: List[Tuple[str, List[Dict[str, Any]]]] = []
        for layer_id, spec in self.layers.items():
            if spec.get("type") != "fill":
                continue
            hits = features_at(self.source_features(spec["source"]), lng, lat)
            if hits:
                under.append((layer_id, hits))

        inside = {layer_id for layer_id, _ in under}
        for layer_id in sorted(self._hovered - inside):
            self._hovered.discard(layer_id)
            self._fire("mouseleave", layer_id, HoverEvent(layer_id, (lng, lat)))
        for layer_id, hits in under:
            if layer_id in self._hovered:
                continue
            self._hovered.add(layer_id)
            self._fire("mouseenter", layer_id, HoverEvent(layer_id, (lng, lat), hits))
        return [layer_id for layer_id, _ in under]

    def leave(self) -> None:
        """Pointer left the map."""
        for layer_id in sorted(self._hovered):
            self._fire("mouseleave", layer_id, HoverEvent(layer_id, self.center))
        self._hovered.clear()

    # ----------------------------
    # Popups, markers, cursor
    # ----------------------------

    def add_popup(self, lnglat: LngLat, html: str, owner: Optional[str] = None) -> Popup:
        popup = Popup(lnglat=tuple(lnglat), html=html, owner=owner, surface=self)
        self.popups.append(popup)
        return popup

    def remove_popup(self, popup: Popup) -> None:
        if popup in self.popups:
            self.popups.remove(popup)

    def add_marker(self, lnglat: LngLat, popup_html: Optional[str] = None, kind: str = "search",
                   properties: Optional[Dict[str, Any]] = None) -> Marker:
        marker = Marker(lnglat=tuple(lnglat), popup_html=popup_html, kind=kind,
                        properties=dict(properties or {}), surface=self)
        self.markers.append(marker)
        return marker

    def remove_marker(self, marker: Marker) -> None:
        if marker in self.markers:
            self.markers.remove(marker)

    def set_cursor(self, cursor: str) -> None:
        self.cursor = cursor

    # ----------------------------
    # Camera
    # ----------------------------

    def get_center(self) -> LngLat:
        return self.center

    def ease_to(self, center: LngLat, zoom: float, duration: float, easing: str = "linear") -> None:
        self.camera_moves.append(("ease", {"center": tuple(center), "zoom": zoom,
                                           "duration": duration, "easing": easing}))
        self.center = (wrap_longitude(center[0]), float(center[1]))
        self.zoom = float(zoom)

    def fly_to(self, center: LngLat, zoom: float, duration: float) -> None:
        self.camera_moves.append(("fly", {"center": tuple(center), "zoom": zoom, "duration": duration}))
        self.center = (wrap_longitude(center[0]), float(center[1]))
        self.zoom = float(zoom)
