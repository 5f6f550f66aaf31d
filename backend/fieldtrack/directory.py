"""HTTP client for the external employee directory."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import requests

from .config import settings
from .errors import UpstreamUnavailable
from .logging import get_logger

logger = get_logger(__name__)


class DirectoryClient:
    """Fetches raw user records. Every failure degrades to an empty list."""

    def __init__(self, url: Optional[str] = None, timeout: Optional[float] = None) -> None:
        self.url = url or settings.directory_url
        self.timeout = timeout if timeout is not None else settings.directory_timeout

    def _headers(self) -> dict[str, str]:
        return {"Accept": "application/json", "User-Agent": "Employee-Tracker/1.0"}

    def _request_users(self) -> List[Dict[str, Any]]:
        try:
            response = requests.get(self.url, headers=self._headers(), timeout=self.timeout)
        except requests.Timeout as exc:
            raise UpstreamUnavailable(f"Directory request timed out after {self.timeout:g}s") from exc
        except requests.RequestException as exc:
            raise UpstreamUnavailable(f"Network error connecting to directory: {exc}") from exc

        if response.status_code >= 400:
            raise UpstreamUnavailable(f"Directory error {response.status_code}: {response.reason}")

        try:
            payload = response.json()
        except ValueError as exc:
            raise UpstreamUnavailable("Directory returned a non-JSON body") from exc
        if not isinstance(payload, list):
            raise UpstreamUnavailable("Directory returned an unexpected payload")
        return [item for item in payload if isinstance(item, dict)]

    def fetch_users(self) -> List[Dict[str, Any]]:
        try:
            users = self._request_users()
        except UpstreamUnavailable as exc:
            logger.warning("directory_unavailable", url=self.url, error=exc.message)
            return []
        logger.info("directory_fetched", url=self.url, count=len(users))
        return users
