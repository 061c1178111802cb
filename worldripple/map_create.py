import logging
import os
from typing import Any, Dict, List, Mapping, Optional, Sequence

import folium
from branca.element import MacroElement
from folium import Html, Popup
from jinja2 import Template as JinjaTemplate

from .aggregator import LayerDataPoint, to_frame
from .config import DEFAULT_MAP_FILENAME, init_project
from .surface import MapScene

logger = logging.getLogger(__name__)

# Leaflet marker colours per ripple type
RIPPLE_COLORS = {
    "war": "red",
    "pandemic": "purple",
    "invention": "orange",
    "economic": "green",
    "disaster": "darkred",
    "social": "blue",
}


class _YearBadge(MacroElement):
    _template = JinjaTemplate(
        """
        {% macro html(this, kwargs) %}
        <div style="position: fixed; bottom: 24px; left: 24px; z-index: 9999;
                    background: rgba(17,24,39,0.85); color: #fff; padding: 6px 14px;
                    border-radius: 6px; font: 600 18px -apple-system, 'Segoe UI', Roboto, sans-serif;">
            {{ this.year }}
        </div>
        {% endmacro %}
        """
    )

    def __init__(self, year: int):
        super().__init__()
        self._name = "YearBadge"
        self.year = int(year)


class _ZoomTopRight(MacroElement):
    _template = JinjaTemplate(
        """
        {% macro script(this, kwargs) %}
        {{this._parent.get_name()}}.zoomControl.setPosition('topright');
        {% endmacro %}
        """
    )


def _fill_style(paint: Dict[str, Any]):
    color = paint.get("fill-color", "#3388ff")
    opacity = float(paint.get("fill-opacity", 0.2))

    def style(_feature):
        return {"fillColor": color, "fillOpacity": opacity, "color": color, "weight": 0}

    return style


def _line_style(paint: Dict[str, Any]):
    color = paint.get("line-color", "#3388ff")
    width = paint.get("line-width", 2)
    opacity = float(paint.get("line-opacity", 1.0))

    def style(_feature):
        return {"fill": False, "color": color, "weight": width, "opacity": opacity}

    return style


def _overlay_name(spec: Dict[str, Any], features: List[Dict[str, Any]]) -> str:
    layer_id = None
    if features:
        layer_id = (features[0].get("properties") or {}).get("layerId")
    label = layer_id or spec["id"]
    return f"{label} (outline)" if spec.get("type") == "line" else str(label)


def _add_overlays(m: folium.Map, scene: MapScene) -> int:
    added = 0
    for layer_id, spec in scene.layers.items():
        features = scene.source_features(spec["source"])
        if not features:
            continue
        collection = {"type": "FeatureCollection", "features": features}
        group = folium.FeatureGroup(name=_overlay_name(spec, features), show=True)
        if spec.get("type") == "fill":
            folium.GeoJson(
                collection,
                name=layer_id,
                style_function=_fill_style(spec.get("paint") or {}),
                tooltip=folium.GeoJsonTooltip(
                    fields=["name", "intensity"],
                    aliases=["Region", "Intensity"],
                    localize=True,
                ),
            ).add_to(group)
        elif spec.get("type") == "line":
            folium.GeoJson(
                collection,
                name=layer_id,
                style_function=_line_style(spec.get("paint") or {}),
            ).add_to(group)
        else:
            logger.debug("Skipping layer %s of unsupported type %s", layer_id, spec.get("type"))
            continue
        group.add_to(m)
        added += 1
    return added


def _add_markers(m: folium.Map, scene: MapScene) -> None:
    for marker in scene.markers:
        lng, lat = marker.lnglat
        popup = None
        if marker.popup_html:
            popup = Popup(Html(marker.popup_html, script=True), max_width=340, show=True)
        folium.Marker(
            location=[lat, lng],
            popup=popup,
            tooltip=marker.properties.get("resultId") or marker.kind,
            icon=folium.Icon(color=RIPPLE_COLORS.get(marker.kind, "blue"), icon="info-sign"),
        ).add_to(m)

    # popups not attached to a marker (e.g. an open hover popup)
    marker_spots = {tuple(mk.lnglat) for mk in scene.markers}
    for popup in scene.popups:
        lng, lat = popup.lnglat
        if (lng, lat) in marker_spots:
            continue
        folium.CircleMarker(
            location=[lat, lng],
            radius=3,
            weight=1,
            color="#111827",
            fill=True,
            fill_opacity=0.9,
            popup=Popup(Html(popup.html, script=True), max_width=300, show=True),
        ).add_to(m)


def create_map(
    scene: MapScene,
    project_dir: str,
    year: Optional[int] = None,
    layer_data: Optional[Mapping[str, Sequence[LayerDataPoint]]] = None,
    filename: str = DEFAULT_MAP_FILENAME,
) -> Dict[str, Optional[str]]:
    """
    Render a MapScene to a standalone Leaflet page.

    Fill and border layers become GeoJson overlays styled from their paint
    properties, markers keep their popups, and `year` is shown as a badge.
    When `layer_data` (an aggregation's data map) is given, its flattened
    table is written next to the map's output tree.

    Returns:
        dict with 'map_path' and 'data_table' (None when no data was written).
    """
    paths = init_project(project_dir)
    out_html = os.path.join(paths["maps"], filename)

    lng, lat = scene.get_center()
    m = folium.Map(location=[lat, lng], zoom_start=max(1, round(scene.zoom)), tiles="CartoDB positron")
    m.add_child(_ZoomTopRight())

    overlays = _add_overlays(m, scene)
    _add_markers(m, scene)
    if year is not None:
        m.add_child(_YearBadge(year))
    if overlays:
        folium.LayerControl(collapsed=True).add_to(m)

    m.save(out_html)
    logger.info("Map written to %s (%d overlays, %d markers)", out_html, overlays, len(scene.markers))

    table_path: Optional[str] = None
    if layer_data is not None:
        table_path = paths["data_table"]
        to_frame(layer_data).to_csv(table_path, index=False)
        logger.info("Layer data written to %s", table_path)

    return {"map_path": out_html, "data_table": table_path}
