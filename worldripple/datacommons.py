"""
datacommons.py
Generic time-series client.

fetch_series() never raises: a failed request is logged and comes back as an
empty SeriesResponse. Successful responses are cached per "entity:variable"
for the lifetime of the client; clear_cache() is the only way to drop them.
"""

import logging
import re
import threading
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence, Tuple
from urllib.parse import quote

import requests

from .config import DATA_COMMONS_BASE_URL, REQUEST_TIMEOUT, USER_AGENT

logger = logging.getLogger(__name__)

_leading_int_re = re.compile(r"^\s*(-?\d+)")


@dataclass(frozen=True)
class Observation:
    date: str
    value: float

    @property
    def year(self) -> Optional[int]:
        """Leading integer of the date ("2019-06" -> 2019), None if there is none."""
        match = _leading_int_re.match(str(self.date))
        return int(match.group(1)) if match else None


@dataclass(frozen=True)
class SeriesResponse:
    observations: Tuple[Observation, ...] = ()
    facet: Optional[Dict[str, Any]] = None

    @classmethod
    def from_json(cls, payload: Any) -> "SeriesResponse":
        if not isinstance(payload, dict):
            raise ValueError("Series payload is not a JSON object.")
        raw = payload.get("observations") or []
        if not isinstance(raw, list):
            raise ValueError("Series payload 'observations' is not a list.")
        observations = []
        for item in raw:
            if not isinstance(item, dict):
                continue
            try:
                value = float(item.get("value"))
            except (TypeError, ValueError):
                continue
            observations.append(Observation(date=str(item.get("date", "")), value=value))
        facet = payload.get("facet")
        return cls(observations=tuple(observations), facet=facet if isinstance(facet, dict) else None)


EMPTY_SERIES = SeriesResponse()


def nearest_observation(observations: Sequence[Observation], year: int) -> Optional[Observation]:
    """
    Pick the observation for `year`.

    An observation whose date equals str(year) wins outright. Otherwise the
    observation with the smallest |year - target| is returned; on a tie the
    one that comes first in the list is kept. Dates without a leading year are
    ignored. Returns None for an empty list.
    """
    target = str(year)
    for obs in observations:
        if obs.date == target:
            return obs

    best: Optional[Observation] = None
    best_distance = None
    for obs in observations:
        obs_year = obs.year
        if obs_year is None:
            continue
        distance = abs(obs_year - year)
        if best_distance is None or distance < best_distance:
            best = obs
            best_distance = distance
    return best


class SeriesClient:
    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = DATA_COMMONS_BASE_URL,
        session: Optional[requests.Session] = None,
        timeout: float = REQUEST_TIMEOUT,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout
        self._cache: Dict[str, SeriesResponse] = {}
        self._lock = threading.Lock()

    @staticmethod
    def cache_key(entity: str, variable: str) -> str:
        return f"{entity}:{variable}"

    def series_url(self, entity: str, variable: str) -> str:
        return (
            f"{self.base_url}/observations/series/"
            f"{quote(entity, safe='')}/{quote(variable, safe='')}"
        )

    def fetch_series(self, entity: str, variable: str) -> SeriesResponse:
        key = self.cache_key(entity, variable)
        with self._lock:
            cached = self._cache.get(key)
        if cached is not None:
            return cached

        params = {"key": self.api_key} if self.api_key else None
        try:
            resp = self.session.get(
                self.series_url(entity, variable),
                params=params,
                headers={"User-Agent": USER_AGENT},
                timeout=self.timeout,
            )
            resp.raise_for_status()
            data = SeriesResponse.from_json(resp.json())
        except (requests.RequestException, ValueError) as exc:
            logger.error("Error fetching series %s/%s: %s", entity, variable, exc)
            return EMPTY_SERIES

        with self._lock:
            self._cache[key] = data
        return data

    def clear_cache(self) -> None:
        with self._lock:
            self._cache.clear()

    @property
    def cache_size(self) -> int:
        with self._lock:
            return len(self._cache)
