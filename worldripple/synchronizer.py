"""
synchronizer.py
Keeps the overlays on a MapSurface equal to the set of active layers.

Each active layer owns three map entities, named after the layer ID:

  <id>-source        GeoJSON FeatureCollection of the layer's regions
  <id>-layer         fill layer (hover popups are attached here)
  <id>-layer-border  outline layer

sync() is idempotent: with unchanged state it issues no mutating surface call.
Colour and intensity changes only repaint; the source is built once per
activation.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from .boundaries import boundary_feature
from .config import BORDER_OPACITY_FACTOR, BORDER_WIDTH, DEFAULT_YEAR, FILL_OPACITY_FACTOR
from .history import HistoricalEvent, location_historical_events
from .layers import RegionWeight, get_region_weights
from .popups import hover_popup_html
from .state import ActiveLayerState, AppState
from .surface import HoverEvent, MapSurface, MapSurfaceError, Popup

logger = logging.getLogger(__name__)

BoundaryLookup = Callable[[str], Optional[Dict[str, Any]]]
RegionLookup = Callable[[str], Sequence[RegionWeight]]
EventLookup = Callable[[str, int], Sequence[HistoricalEvent]]


def overlay_ids(layer_id: str) -> Tuple[str, str, str]:
    """(source, fill layer, border layer) IDs of a layer's overlay."""
    return f"{layer_id}-source", f"{layer_id}-layer", f"{layer_id}-layer-border"


def fill_paint(color: str, intensity: float) -> Dict[str, Any]:
    return {"fill-color": color, "fill-opacity": intensity * FILL_OPACITY_FACTOR}


def border_paint(color: str, intensity: float) -> Dict[str, Any]:
    return {
        "line-color": color,
        "line-width": BORDER_WIDTH,
        "line-opacity": intensity * BORDER_OPACITY_FACTOR,
    }


@dataclass
class _Overlay:
    layer_id: str
    color: str
    intensity: float
    handlers: Dict[str, Callable[[HoverEvent], None]] = field(default_factory=dict)
    popups: List[Popup] = field(default_factory=list)


class MapLayerSynchronizer:
    def __init__(
        self,
        surface: MapSurface,
        boundaries: BoundaryLookup = boundary_feature,
        regions: RegionLookup = get_region_weights,
        event_lookup: EventLookup = location_historical_events,
    ):
        self.surface = surface
        self._boundaries = boundaries
        self._regions = regions
        self._event_lookup = event_lookup
        self._overlays: Dict[str, _Overlay] = {}
        self._year = DEFAULT_YEAR

    @property
    def present_layer_ids(self) -> Tuple[str, ...]:
        return tuple(self._overlays)

    @property
    def current_year(self) -> int:
        return self._year

    def sync(self, state: AppState, layer_data: Optional[Mapping[str, Any]] = None) -> None:
        """Bring the surface in line with `state`; `layer_data` is an aggregation's data map."""
        self._year = state.year
        active = {layer.id: layer for layer in state.active_layers}

        for layer_id in [lid for lid in self._overlays if lid not in active]:
            self.deactivate(layer_id)

        for layer in state.active_layers:
            overlay = self._overlays.get(layer.id)
            if overlay is None:
                has_real_data = bool(layer_data) and layer.id in layer_data
                self._activate(layer, has_real_data)
            else:
                self._repaint(overlay, layer)

    def teardown(self) -> None:
        for layer_id in list(self._overlays):
            self.deactivate(layer_id)

    # ----------------------------
    # ABSENT -> PRESENT
    # ----------------------------

    def _features(self, layer: ActiveLayerState, has_real_data: bool) -> List[Dict[str, Any]]:
        features = []
        for region in self._regions(layer.id):
            feature = self._boundaries(region.name)
            if feature is None:
                logger.warning("No boundary found for region %s (layer %s)", region.name, layer.id)
                continue
            props = feature.setdefault("properties", {})
            props.update({
                "name": props.get("name") or region.name,
                "layerId": layer.id,
                "intensity": region.intensity * layer.intensity,
                "hasRealData": has_real_data,
            })
            features.append(feature)
        return features

    def _activate(self, layer: ActiveLayerState, has_real_data: bool) -> None:
        source_id, fill_id, border_id = overlay_ids(layer.id)
        if any((self.surface.has_source(source_id), self.surface.has_layer(fill_id),
                self.surface.has_layer(border_id))):
            logger.debug("Entities for layer %s already exist on the map; not recreating", layer.id)
            return

        features = self._features(layer, has_real_data)
        if not features:
            logger.warning("No valid features for layer %s; skipping overlay", layer.id)
            return

        overlay = _Overlay(layer_id=layer.id, color=layer.color, intensity=layer.intensity)
        added: List[Tuple[str, str]] = []
        try:
            self.surface.add_source(source_id, {"type": "FeatureCollection", "features": features})
            added.append(("source", source_id))
            self.surface.add_layer({
                "id": fill_id,
                "type": "fill",
                "source": source_id,
                "paint": fill_paint(layer.color, layer.intensity),
            })
            added.append(("layer", fill_id))
            self.surface.add_layer({
                "id": border_id,
                "type": "line",
                "source": source_id,
                "paint": border_paint(layer.color, layer.intensity),
            })
            added.append(("layer", border_id))

            overlay.handlers = {
                "mouseenter": self._make_enter_handler(overlay),
                "mouseleave": self._make_leave_handler(overlay),
            }
            for event, handler in overlay.handlers.items():
                self.surface.on(event, fill_id, handler)
        except MapSurfaceError as exc:
            logger.error("Failed to add overlay for layer %s: %s", layer.id, exc)
            self._rollback(overlay, added)
            return

        self._overlays[layer.id] = overlay
        logger.debug("Added overlay for %s with %d regions", layer.id, len(features))

    def _rollback(self, overlay: _Overlay, added: List[Tuple[str, str]]) -> None:
        _, fill_id, _ = overlay_ids(overlay.layer_id)
        for event, handler in overlay.handlers.items():
            self._attempt(f"unregister {event} on {fill_id}", self.surface.off, event, fill_id, handler)
        for kind, entity_id in reversed(added):
            remove = self.surface.remove_layer if kind == "layer" else self.surface.remove_source
            self._attempt(f"remove {kind} {entity_id}", remove, entity_id)

    # ----------------------------
    # Hover
    # ----------------------------

    def _clear_popups(self, overlay: _Overlay) -> None:
        for popup in overlay.popups:
            self._attempt("remove popup", self.surface.remove_popup, popup)
        overlay.popups = []

    def _make_enter_handler(self, overlay: _Overlay) -> Callable[[HoverEvent], None]:
        def on_enter(event: HoverEvent) -> None:
            self.surface.set_cursor("pointer")
            self._clear_popups(overlay)
            if not event.features:
                return
            region_name = (event.features[0].get("properties") or {}).get("name")
            if not region_name:
                return
            year = self._year
            try:
                events = self._event_lookup(region_name, year)
            except Exception as exc:
                logger.warning("Error fetching historical events for %s: %s", region_name, exc)
                return
            if not events:
                return
            html = hover_popup_html(events[0], region_name, year)
            try:
                overlay.popups = [self.surface.add_popup(event.lnglat, html, owner=overlay.layer_id)]
            except MapSurfaceError as exc:
                logger.warning("Could not show popup for %s: %s", region_name, exc)

        return on_enter

    def _make_leave_handler(self, overlay: _Overlay) -> Callable[[HoverEvent], None]:
        def on_leave(event: HoverEvent) -> None:
            self.surface.set_cursor("")
            self._clear_popups(overlay)

        return on_leave

    # ----------------------------
    # PRESENT -> PRESENT / ABSENT
    # ----------------------------

    def _repaint(self, overlay: _Overlay, layer: ActiveLayerState) -> None:
        _, fill_id, border_id = overlay_ids(layer.id)
        if layer.color != overlay.color:
            ok = self._attempt(f"repaint {fill_id}", self.surface.set_paint_property,
                               fill_id, "fill-color", layer.color)
            ok = self._attempt(f"repaint {border_id}", self.surface.set_paint_property,
                               border_id, "line-color", layer.color) and ok
            if ok:
                overlay.color = layer.color
        if layer.intensity != overlay.intensity:
            ok = self._attempt(f"repaint {fill_id}", self.surface.set_paint_property,
                               fill_id, "fill-opacity", layer.intensity * FILL_OPACITY_FACTOR)
            ok = self._attempt(f"repaint {border_id}", self.surface.set_paint_property,
                               border_id, "line-opacity", layer.intensity * BORDER_OPACITY_FACTOR) and ok
            if ok:
                overlay.intensity = layer.intensity

    def deactivate(self, layer_id: str) -> None:
        """Remove a layer's overlay. A layer without one is left alone."""
        overlay = self._overlays.pop(layer_id, None)
        if overlay is None:
            return
        source_id, fill_id, border_id = overlay_ids(layer_id)
        for event, handler in overlay.handlers.items():
            self._attempt(f"unregister {event} on {fill_id}", self.surface.off, event, fill_id, handler)
        self._clear_popups(overlay)
        self._attempt(f"remove layer {border_id}", self.surface.remove_layer, border_id)
        self._attempt(f"remove layer {fill_id}", self.surface.remove_layer, fill_id)
        self._attempt(f"remove source {source_id}", self.surface.remove_source, source_id)
        logger.debug("Removed overlay for %s", layer_id)

    @staticmethod
    def _attempt(action: str, fn: Callable[..., Any], *args) -> bool:
        try:
            fn(*args)
        except MapSurfaceError as exc:
            logger.warning("Failed to %s: %s", action, exc)
            return False
        return True
