"""
proxy.py
Request forwarding for the data.gov proxy function.

Upstreams are described once in ROUTES; ProxyRouter picks the first route
whose prefix matches the requested endpoint and falls back to the generic
api.data.gov route. Each descriptor says how to build the URL, how the API
key travels (query parameter, header, or not at all) and which parameters are
consumed instead of forwarded.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urljoin

import requests

from .config import DEFAULT_CENSUS_YEAR, REQUEST_TIMEOUT

logger = logging.getLogger(__name__)

AUTH_NONE = "none"
AUTH_QUERY = "query"
AUTH_HEADER = "header"

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization, X-Client-Info, Apikey",
}


@dataclass(frozen=True)
class Upstream:
    key: str
    prefix: str
    base_url: str
    auth: str = AUTH_NONE
    auth_name: Optional[str] = None
    strip: Tuple[str, ...] = ()
    dropped_params: Tuple[str, ...] = ()
    year_in_path: bool = False

    def matches(self, endpoint: str) -> bool:
        return bool(self.prefix) and endpoint.startswith(self.prefix)

    def path_for(self, endpoint: str) -> str:
        path = endpoint
        for prefix in self.strip:
            if path.startswith(prefix):
                path = path[len(prefix):]
                break
        return path.lstrip("/")

    def url_for(self, endpoint: str, params: Dict[str, Any]) -> str:
        path = self.path_for(endpoint)
        if self.year_in_path:
            year = params.get("year") or DEFAULT_CENSUS_YEAR
            return f"{self.base_url}/{year}/{path}"
        return urljoin(self.base_url.rstrip("/") + "/", path)


ROUTES: Tuple[Upstream, ...] = (
    Upstream(
        key="nps",
        prefix="nps/",
        base_url="https://developer.nps.gov/api/v1",
        auth=AUTH_QUERY,
        auth_name="api_key",
        strip=("nps/v1/", "nps/"),
        dropped_params=("api_key",),
    ),
    Upstream(
        key="fda",
        prefix="drug/enforcement",
        base_url="https://api.fda.gov",
    ),
    Upstream(
        key="usgs",
        prefix="earthquakes/",
        base_url="https://earthquake.usgs.gov",
    ),
    Upstream(
        key="census",
        prefix="census/",
        base_url="https://api.census.gov/data",
        strip=("census/",),
        dropped_params=("year",),
        year_in_path=True,
    ),
)

DEFAULT_ROUTE = Upstream(
    key="datagov",
    prefix="",
    base_url="https://api.data.gov",
    auth=AUTH_HEADER,
    auth_name="X-Api-Key",
)


@dataclass(frozen=True)
class UpstreamRequest:
    route: str
    url: str
    params: List[Tuple[str, str]]
    headers: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class ProxyResponse:
    status: int
    body: Any
    headers: Dict[str, str] = field(default_factory=dict)


class ProxyRouter:
    def __init__(
        self,
        api_key: Optional[str] = None,
        routes: Tuple[Upstream, ...] = ROUTES,
        default: Upstream = DEFAULT_ROUTE,
        session: Optional[requests.Session] = None,
        timeout: float = REQUEST_TIMEOUT,
    ):
        self.api_key = api_key
        self._routes = tuple(routes)
        self._default = default
        self.session = session or requests.Session()
        self.timeout = timeout

    def resolve(self, endpoint: str) -> Upstream:
        for route in self._routes:
            if route.matches(endpoint):
                return route
        return self._default

    def build_request(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> UpstreamRequest:
        params = dict(params or {})
        route = self.resolve(endpoint)
        query = [
            (str(k), str(v))
            for k, v in params.items()
            if k not in route.dropped_params and v is not None
        ]
        headers = {"Accept": "application/json"}
        if route.auth == AUTH_QUERY and self.api_key:
            query.append((route.auth_name, self.api_key))
        elif route.auth == AUTH_HEADER and self.api_key:
            headers[route.auth_name] = self.api_key
        return UpstreamRequest(
            route=route.key,
            url=route.url_for(endpoint, params),
            params=query,
            headers=headers,
        )

    def forward(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> ProxyResponse:
        upstream = self.build_request(endpoint, params)
        logger.info("Fetching %s (%s)", upstream.url, upstream.route)
        resp = self.session.get(
            upstream.url,
            params=upstream.params,
            headers=upstream.headers,
            timeout=self.timeout,
        )
        logger.info("Response status: %s", resp.status_code)
        if not resp.ok:
            logger.error("Upstream error %s: %s", resp.status_code, resp.text[:200])
            return ProxyResponse(
                status=resp.status_code,
                body={"error": f"Data.gov API error: {resp.status_code}", "details": resp.text},
            )
        return ProxyResponse(status=200, body=resp.json())

    def handle(self, method: str, payload: Optional[Dict[str, Any]] = None) -> ProxyResponse:
        """Serve one proxy request: CORS preflight, validation, forwarding."""
        if method.upper() == "OPTIONS":
            return ProxyResponse(status=200, body=None, headers=dict(CORS_HEADERS))

        json_headers = dict(CORS_HEADERS, **{"Content-Type": "application/json"})
        payload = payload or {}
        endpoint = payload.get("endpoint")
        if not endpoint:
            return ProxyResponse(status=400, body={"error": "Endpoint is required"}, headers=json_headers)

        params = payload.get("params")
        if not isinstance(params, dict):
            params = {}
        try:
            result = self.forward(endpoint, params)
        except (requests.RequestException, ValueError) as exc:
            logger.exception("Unexpected proxy error for %s", endpoint)
            return ProxyResponse(
                status=500,
                body={"error": "Internal server error", "message": str(exc)},
                headers=json_headers,
            )
        return ProxyResponse(status=result.status, body=result.body, headers=json_headers)
