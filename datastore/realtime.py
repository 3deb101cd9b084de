"""
datastore/realtime.py -- REST client for a hosted realtime key/value database.

Each Reference maps to a JSON document at {database_url}/{path}.json:
    set_value -> PUT  (replaces the node, last write wins)
    get_data  -> GET  (JSON null means "nothing stored")

When an auth token is supplied it is sent as the ?auth= query parameter, which
is how the database evaluates its per-user security rules.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import requests

from core.errors import DataStoreError
from datastore.base import DataStore

logger = logging.getLogger("account.datastore.realtime")

# Module-level session shared across all database calls for connection pooling.
# max_redirects=3 replaces the requests default of 30 -- the database host is
# known, 3 hops is generous.
_session = requests.Session()
_session.max_redirects = 3


class RealtimeDatabase(DataStore):
    """
    Usage:
        db = RealtimeDatabase("https://my-app.firebaseio.com")
        db.reference().child("users").child(uid).set_value({...}, auth_token=id_token)
    """

    def __init__(self, database_url: str, timeout: float = 10.0) -> None:
        self.database_url = database_url.rstrip("/")
        self.timeout = timeout

    def _url(self, path: tuple[str, ...]) -> str:
        return f"{self.database_url}/{'/'.join(path)}.json"

    def _params(self, auth_token: Optional[str]) -> dict[str, str]:
        return {"auth": auth_token} if auth_token else {}

    def _write(self, path: tuple[str, ...], value: Any, auth_token: Optional[str]) -> None:
        try:
            resp = _session.put(self._url(path), json=value, params=self._params(auth_token), timeout=self.timeout)
            resp.raise_for_status()
        except requests.RequestException as e:
            logger.error("Database write failed for /%s: %s", "/".join(path), e)
            raise DataStoreError(_status_code(e), str(e)) from e

    def _read(self, path: tuple[str, ...], auth_token: Optional[str]) -> Any:
        try:
            resp = _session.get(self._url(path), params=self._params(auth_token), timeout=self.timeout)
            resp.raise_for_status()
        except requests.RequestException as e:
            logger.error("Database read failed for /%s: %s", "/".join(path), e)
            raise DataStoreError(_status_code(e), str(e)) from e
        try:
            return resp.json()
        except ValueError as e:
            # Body was not JSON.
            raise DataStoreError("INVALID_RESPONSE", str(e)) from e


def _status_code(e: requests.RequestException) -> str:
    response = getattr(e, "response", None)
    if response is not None:
        return f"HTTP_{response.status_code}"
    return "NETWORK_ERROR"
