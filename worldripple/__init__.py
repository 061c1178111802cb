"""
WorldRipple package

Layer engine for a time-scrubbing world map: fetches per-layer statistics for
a year, normalises them, keeps map overlays in step with the active layers,
presents search results with a camera sequence and renders the map to HTML.

Missing API keys are fine; the affected layers fall back to static weights.
"""

__version__ = "0.1.0"

from .config import init_project, load_settings
from .logging_config import setup_logging
from .aggregator import LayerDataAggregator, fetch_all_data, to_frame
from .datacommons import SeriesClient
from .census import RegionalStatsClient
from .datagov import DataGovClient
from .proxy import ProxyRouter
from .state import AppStore, initial_state
from .surface import MapScene, MapSurfaceError
from .synchronizer import MapLayerSynchronizer
from .search import SearchMarkerController, SearchResult
from .session import MapSession, create_session
from .map_create import create_map

__all__ = [
    "init_project",
    "load_settings",
    "setup_logging",
    "fetch_all_data",
    "to_frame",
    "LayerDataAggregator",
    "SeriesClient",
    "RegionalStatsClient",
    "DataGovClient",
    "ProxyRouter",
    "AppStore",
    "initial_state",
    "MapScene",
    "MapSurfaceError",
    "MapLayerSynchronizer",
    "SearchMarkerController",
    "SearchResult",
    "MapSession",
    "create_session",
    "create_map",
]
