"""
datagov.py
Client for the data.gov proxy function.

The proxy receives {"endpoint", "params"} and forwards to the right upstream
(see proxy.py). When the proxy is not configured, or on any failure, fetch()
returns an empty list so callers simply see "no data".
"""

import logging
from typing import Any, Dict, Optional

import requests

from .config import Settings, USER_AGENT

logger = logging.getLogger(__name__)


class DataGovClient:
    def __init__(self, settings: Settings, session: Optional[requests.Session] = None):
        self.settings = settings
        self.session = session or requests.Session()

    @property
    def configured(self) -> bool:
        return self.settings.proxy_configured

    def fetch(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Any:
        if not self.configured:
            logger.info("Proxy not configured - returning empty data for %s", endpoint)
            return []

        logger.debug("Calling proxy for endpoint %s", endpoint)
        try:
            resp = self.session.post(
                self.settings.proxy_url,
                json={"endpoint": endpoint, "params": params or {}},
                headers={
                    "Authorization": f"Bearer {self.settings.supabase_anon_key}",
                    "Content-Type": "application/json",
                    "User-Agent": USER_AGENT,
                },
                timeout=self.settings.request_timeout,
            )
            if not resp.ok:
                logger.error("Proxy error for %s: HTTP %s %s", endpoint, resp.status_code, resp.text[:200])
                return []
            return resp.json()
        except (requests.RequestException, ValueError) as exc:
            logger.error("Failed to fetch %s from proxy: %s", endpoint, exc)
            return []
