"""HTTP client for the cloud data endpoint."""
from __future__ import annotations

import logging
from typing import Any

import requests

from . import config

logger = logging.getLogger(__name__)

DATA_PATH = "/api/data"


class CloudClient:
    """Fetch and upsert the user's cloud document over JSON/HTTP.

    ``GET`` returns the whole document, which may hold a ``calendarEvents``
    array among unrelated fields. ``POST`` sends a partial document; only the
    fields present are replaced on the server.
    """

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        timeout: float = 10.0,
        session: requests.Session | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self._session = session or requests.Session()

    @classmethod
    def from_config(cls) -> "CloudClient | None":
        if not config.API_URL:
            return None
        return cls(config.API_URL, token=config.API_TOKEN, timeout=config.SYNC_TIMEOUT)

    @property
    def url(self) -> str:
        return self.base_url + DATA_PATH

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def fetch(self) -> dict[str, Any] | None:
        """Return the cloud document, or ``None`` for a non-OK response."""

        resp = self._session.get(self.url, headers=self._headers(), timeout=self.timeout)
        if not resp.ok:
            logger.warning("Cloud fetch returned HTTP %s", resp.status_code)
            return None
        data = resp.json()
        if not isinstance(data, dict):
            logger.warning("Cloud fetch returned %s, expected an object", type(data).__name__)
            return None
        return data

    def push(self, calendar_events: list[dict[str, Any]]) -> None:
        resp = self._session.post(
            self.url,
            json={"calendarEvents": calendar_events},
            headers=self._headers(),
            timeout=self.timeout,
        )
        resp.raise_for_status()
        logger.debug("Pushed %d calendar events", len(calendar_events))

    def close(self) -> None:
        self._session.close()
