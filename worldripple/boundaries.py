"""
boundaries.py
Simplified region outlines keyed by display name.

Lookups hand out deep copies so callers can decorate feature properties
without touching the table. Geometry questions (hit testing, label points)
go through shapely.
"""

import copy
import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

from shapely.geometry import Point, shape

logger = logging.getLogger(__name__)


def _polygon(name: str, ring: List[Tuple[float, float]]) -> Dict[str, Any]:
    coords = [list(pt) for pt in ring]
    if coords[0] != coords[-1]:
        coords.append(list(coords[0]))
    return {
        "type": "Feature",
        "properties": {"name": name},
        "geometry": {"type": "Polygon", "coordinates": [coords]},
    }


BOUNDARIES: Dict[str, Dict[str, Any]] = {
    "United States": _polygon("United States", [
        (-125.0, 48.0), (-125.0, 45.0), (-124.0, 42.0), (-120.0, 39.0), (-117.0, 32.5),
        (-111.0, 31.0), (-108.0, 31.5), (-93.0, 29.0), (-84.0, 30.0), (-82.0, 25.0),
        (-80.0, 25.5), (-75.0, 35.0), (-71.0, 41.0), (-69.0, 44.0), (-69.0, 47.0),
        (-83.0, 46.0), (-95.0, 49.0), (-125.0, 48.0),
    ]),
    "United Kingdom": _polygon("United Kingdom", [
        (-8.0, 60.0), (-8.0, 57.0), (-6.0, 55.0), (-3.0, 54.5), (-2.0, 53.0),
        (1.0, 51.0), (2.0, 50.5), (1.0, 49.5), (-1.0, 49.0), (-5.0, 50.0),
        (-6.0, 54.0), (-8.0, 60.0),
    ]),
    "Germany": _polygon("Germany", [
        (5.5, 55.0), (15.0, 54.5), (15.5, 50.0), (13.0, 47.5), (10.0, 47.0),
        (6.0, 49.0), (5.5, 51.5), (5.5, 55.0),
    ]),
    "California": _polygon("California", [
        (-124.4, 42.0), (-124.4, 41.0), (-124.0, 40.0), (-123.0, 39.0), (-122.0, 38.0),
        (-121.0, 37.0), (-120.0, 36.0), (-119.0, 35.0), (-118.0, 34.0), (-117.0, 33.0),
        (-116.0, 32.5), (-114.5, 32.5), (-114.5, 35.0), (-120.0, 39.0), (-120.0, 42.0),
        (-124.4, 42.0),
    ]),
    "New York": _polygon("New York", [
        (-79.8, 45.0), (-79.8, 42.0), (-75.0, 42.0), (-73.3, 40.5), (-71.9, 40.9),
        (-71.9, 41.3), (-73.7, 42.7), (-73.3, 45.0), (-79.8, 45.0),
    ]),
    "Texas": _polygon("Texas", [
        (-106.6, 32.0), (-103.0, 32.0), (-103.0, 36.5), (-100.0, 36.5), (-100.0, 34.6),
        (-94.0, 33.6), (-93.5, 31.0), (-93.8, 29.7), (-97.2, 26.0), (-99.5, 27.5),
        (-101.4, 29.8), (-104.5, 29.6), (-106.6, 32.0),
    ]),
    "Florida": _polygon("Florida", [
        (-87.6, 31.0), (-85.0, 31.0), (-82.0, 30.6), (-81.4, 30.7), (-80.0, 26.5),
        (-80.4, 25.1), (-81.8, 25.8), (-82.8, 27.9), (-83.7, 29.9), (-85.4, 29.7),
        (-87.6, 30.3), (-87.6, 31.0),
    ]),
    "China": _polygon("China", [
        (73.0, 53.0), (135.0, 53.0), (135.0, 18.0), (100.0, 18.0), (80.0, 28.0),
        (73.0, 35.0), (73.0, 53.0),
    ]),
    "Japan": _polygon("Japan", [
        (129.5, 33.0), (131.0, 31.0), (135.0, 33.5), (140.0, 35.0), (141.0, 38.0),
        (142.0, 41.5), (145.5, 43.5), (141.5, 45.5), (139.5, 42.5), (139.5, 38.5),
        (136.5, 37.0), (132.0, 35.5), (129.5, 33.0),
    ]),
}


def boundary_feature(name: str) -> Optional[Dict[str, Any]]:
    """A private copy of the named region's Feature, or None when the table lacks it."""
    feature = BOUNDARIES.get(name)
    if feature is None:
        return None
    return copy.deepcopy(feature)


def feature_contains(feature: Dict[str, Any], lng: float, lat: float) -> bool:
    try:
        return shape(feature["geometry"]).covers(Point(lng, lat))
    except (KeyError, TypeError, ValueError) as exc:
        logger.warning("Invalid geometry for %s: %s", (feature.get("properties") or {}).get("name"), exc)
        return False


def features_at(features: Iterable[Dict[str, Any]], lng: float, lat: float) -> List[Dict[str, Any]]:
    return [f for f in features if feature_contains(f, lng, lat)]
