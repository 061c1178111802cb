# Project structure:
#
# worldripple_project/
# ├── worldripple/                  # Python package
# │   ├── __init__.py
# │   ├── config.py                 # constants, environment settings, paths
# │   ├── layers.py                 # static layer source tables
# │   ├── datacommons.py            # generic time-series client
# │   ├── datagov.py / census.py    # regional statistics via the proxy
# │   ├── proxy.py                  # upstream routing table for the proxy
# │   ├── aggregator.py             # fetch + nearest-year + normalisation
# │   ├── synchronizer.py           # overlay lifecycle on a map surface
# │   ├── search.py                 # search markers and camera animation
# │   └── map_create.py             # folium rendering of a scene
# ├── tests/
# └── output/                       # created under project root
#     ├── maps/                     # rendered HTML maps
#     └── tables/                   # flattened layer data (CSV)

import os
from dataclasses import dataclass
from typing import Mapping, Optional

# Generic time-series provider
DATA_COMMONS_BASE_URL = "https://api.datacommons.org/v1"

# Serverless proxy in front of the data.gov family of APIs
PROXY_FUNCTION_PATH = "/functions/v1/data-gov-proxy"
DEFAULT_CENSUS_YEAR = "2022"

# Timeline
DEFAULT_YEAR = 2020
MIN_YEAR = 1900
MAX_YEAR = 2024

# HTTP
REQUEST_TIMEOUT = 10.0
USER_AGENT = "worldripple/0.1"

# Overlay paint
FILL_OPACITY_FACTOR = 0.4
BORDER_OPACITY_FACTOR = 0.6
BORDER_WIDTH = 2

# Search camera motion (seconds)
SPIN_DURATION = 3.0
SPIN_ZOOM = 2
FLY_DURATION = 2.0
DISPLAY_SETTLE_DELAY = 2.5
SEARCH_ZOOM_LEVELS = {"event": 8, "invention": 10, "person": 7}
DEFAULT_SEARCH_ZOOM = 5

# Initial camera
DEFAULT_CENTER = (-98.5795, 39.8283)
DEFAULT_ZOOM = 1.5

# Default file names
DEFAULT_MAP_FILENAME = "worldripple_map.html"
DEFAULT_DATA_TABLE = "layer_data.csv"


@dataclass(frozen=True)
class Settings:
    """API keys and endpoints read from the environment. Every field may be empty."""

    data_commons_api_key: Optional[str] = None
    supabase_url: Optional[str] = None
    supabase_anon_key: Optional[str] = None
    data_gov_api_key: Optional[str] = None
    census_api_key: Optional[str] = None
    request_timeout: float = REQUEST_TIMEOUT

    @property
    def proxy_url(self) -> Optional[str]:
        if not self.supabase_url or "placeholder" in self.supabase_url:
            return None
        return self.supabase_url.rstrip("/") + PROXY_FUNCTION_PATH

    @property
    def proxy_configured(self) -> bool:
        return bool(self.proxy_url and self.supabase_anon_key)


def _env(environ: Mapping[str, str], name: str) -> Optional[str]:
    value = (environ.get(name) or "").strip()
    return value or None


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Build Settings from environment variables.

    Recognised variables:
      DATA_COMMONS_API_KEY, SUPABASE_URL, SUPABASE_ANON_KEY,
      DATA_GOV_API_KEY, CENSUS_API_KEY, WORLDRIPPLE_REQUEST_TIMEOUT
    """
    if environ is None:
        environ = os.environ

    timeout = REQUEST_TIMEOUT
    raw_timeout = _env(environ, "WORLDRIPPLE_REQUEST_TIMEOUT")
    if raw_timeout:
        try:
            candidate = float(raw_timeout)
            if candidate > 0:
                timeout = candidate
        except ValueError:
            pass

    return Settings(
        data_commons_api_key=_env(environ, "DATA_COMMONS_API_KEY"),
        supabase_url=_env(environ, "SUPABASE_URL"),
        supabase_anon_key=_env(environ, "SUPABASE_ANON_KEY"),
        data_gov_api_key=_env(environ, "DATA_GOV_API_KEY"),
        census_api_key=_env(environ, "CENSUS_API_KEY"),
        request_timeout=timeout,
    )


def init_project(project_dir: str) -> dict:
    """
    Ensure the project output structure exists and returns key paths.

    Creates:
      project_dir/output/maps/
      project_dir/output/tables/
    """
    output_dir = os.path.join(project_dir, "output")
    maps_dir = os.path.join(output_dir, "maps")
    tables_dir = os.path.join(output_dir, "tables")
    os.makedirs(maps_dir, exist_ok=True)
    os.makedirs(tables_dir, exist_ok=True)

    paths = {
        "project": project_dir,
        "output": output_dir,
        "maps": maps_dir,
        "tables": tables_dir,
        "map_html": os.path.join(maps_dir, DEFAULT_MAP_FILENAME),
        "data_table": os.path.join(tables_dir, DEFAULT_DATA_TABLE),
    }
    return paths
