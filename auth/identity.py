"""
auth/identity.py -- Identity backend contract and its REST implementation.

IdentityBackend is the narrow set of calls the account adapter makes against
whatever owns credentials and sessions. Every method is synchronous and
raises BackendError (with the backend's own error code) on failure; the
adapter decides what those codes mean.

FirebaseIdentityClient speaks the Identity Toolkit REST API. It keeps the
signed-in user in memory for the lifetime of the object -- there is no token
persistence across processes.

Layer rule: no imports from datastore/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

import requests

from core.config import AccountConfig
from core.errors import BackendError, ConfigurationError
from core.models import CurrentUser

logger = logging.getLogger("account.auth.identity")

# ---------------------------------------------------------------------------
# Backend error codes
# ---------------------------------------------------------------------------

# Codes this package recognises. Backends may return others; those pass
# through to the caller unchanged.
EMAIL_EXISTS = "EMAIL_EXISTS"
EMAIL_NOT_FOUND = "EMAIL_NOT_FOUND"
INVALID_PASSWORD = "INVALID_PASSWORD"
INVALID_LOGIN_CREDENTIALS = "INVALID_LOGIN_CREDENTIALS"
MISSING_PASSWORD = "MISSING_PASSWORD"
INVALID_EMAIL = "INVALID_EMAIL"
WEAK_PASSWORD = "WEAK_PASSWORD"
NETWORK_ERROR = "NETWORK_ERROR"

# ---------------------------------------------------------------------------
# Contract
# ---------------------------------------------------------------------------


class IdentityBackend(ABC):
    @property
    @abstractmethod
    def current_user(self) -> Optional[CurrentUser]:
        """The cached signed-in user, or None. Never calls the backend."""

    @abstractmethod
    def create_user(self, email: str, password: str) -> CurrentUser:
        """Register a new account and sign it in."""

    @abstractmethod
    def sign_in(self, email: str, password: str) -> CurrentUser:
        """Authenticate and make the result the current user."""

    @abstractmethod
    def sign_out(self) -> None:
        """Forget the current user. Local only."""

    @abstractmethod
    def delete_current_user(self) -> None:
        """Delete the current user's account and sign out."""

    @abstractmethod
    def send_email_verification(self) -> None:
        """Send a verification email to the current user's address."""

    @abstractmethod
    def reload(self) -> Optional[CurrentUser]:
        """Refresh the current user's cached state from the backend."""

    @abstractmethod
    def send_password_reset(self, email: str) -> None:
        """Start the password-reset flow for an address."""


# ---------------------------------------------------------------------------
# REST implementation
# ---------------------------------------------------------------------------

# Module-level session shared across all identity calls for connection pooling.
_session = requests.Session()
_session.max_redirects = 3


class FirebaseIdentityClient(IdentityBackend):
    """
    Usage:
        client = FirebaseIdentityClient(AccountConfig(database_url=..., api_key=...))
        user = client.sign_in("a@b.com", "secret")
        client.send_email_verification()
    """

    def __init__(self, config: AccountConfig) -> None:
        if not config.api_key:
            raise ConfigurationError(
                "api_key is required for the identity REST client. "
                "Pass AccountConfig(api_key=...) or set ACCOUNT_API_KEY."
            )
        self._base_url = config.identity_url
        self._api_key = config.api_key
        self._timeout = config.request_timeout
        self._user: Optional[CurrentUser] = None

    @property
    def current_user(self) -> Optional[CurrentUser]:
        return self._user

    def create_user(self, email: str, password: str) -> CurrentUser:
        data = self._post("accounts:signUp", {"email": email, "password": password, "returnSecureToken": True})
        self._user = CurrentUser(
            uid=data["localId"],
            email=data.get("email", email),
            is_email_verified=False,
            id_token=data.get("idToken"),
            refresh_token=data.get("refreshToken"),
        )
        return self._user

    def sign_in(self, email: str, password: str) -> CurrentUser:
        data = self._post(
            "accounts:signInWithPassword",
            {"email": email, "password": password, "returnSecureToken": True},
        )
        user = CurrentUser(
            uid=data["localId"],
            email=data.get("email", email),
            id_token=data.get("idToken"),
            refresh_token=data.get("refreshToken"),
        )
        # The sign-in response has no verification flag; a lookup fills it in.
        self._user = self._lookup(user)
        return self._user

    def sign_out(self) -> None:
        self._user = None

    def delete_current_user(self) -> None:
        user = self._require_user()
        self._post("accounts:delete", {"idToken": user.id_token})
        self._user = None

    def send_email_verification(self) -> None:
        user = self._require_user()
        self._post("accounts:sendOobCode", {"requestType": "VERIFY_EMAIL", "idToken": user.id_token})

    def reload(self) -> Optional[CurrentUser]:
        user = self._user
        if user is None:
            return None
        refreshed = self._lookup(user)
        # A sign-out or sign-in may have happened while the lookup was in flight.
        if self._user is not user:
            return self._user
        self._user = refreshed
        return self._user

    def send_password_reset(self, email: str) -> None:
        self._post("accounts:sendOobCode", {"requestType": "PASSWORD_RESET", "email": email})

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require_user(self) -> CurrentUser:
        if self._user is None:
            raise BackendError("NO_CURRENT_USER", "No user is signed in.")
        return self._user

    def _lookup(self, user: CurrentUser) -> CurrentUser:
        data = self._post("accounts:lookup", {"idToken": user.id_token})
        records = data.get("users") or []
        if not records:
            raise BackendError("USER_NOT_FOUND", "The signed-in user no longer exists.")
        record = records[0]
        return CurrentUser(
            uid=record.get("localId", user.uid),
            email=record.get("email", user.email),
            is_email_verified=bool(record.get("emailVerified", False)),
            id_token=user.id_token,
            refresh_token=user.refresh_token,
        )

    def _post(self, endpoint: str, payload: dict[str, Any]) -> dict[str, Any]:
        """POST to an Identity Toolkit endpoint and return the decoded body.

        Raises BackendError carrying the backend's error code for any non-2xx
        response, and NETWORK_ERROR for transport failures.
        """
        url = f"{self._base_url}/{endpoint}"
        try:
            resp = _session.post(url, params={"key": self._api_key}, json=payload, timeout=self._timeout)
        except requests.RequestException as e:
            logger.error("Identity backend unreachable (%s): %s", endpoint, e)
            raise BackendError(NETWORK_ERROR, str(e)) from e
        if resp.status_code >= 400:
            raise _parse_error(resp)
        try:
            return resp.json()
        except ValueError as e:
            raise BackendError("INVALID_RESPONSE", f"Non-JSON response from {endpoint}") from e


def _parse_error(resp: requests.Response) -> BackendError:
    """Turn an Identity Toolkit error body into a BackendError.

    The body looks like {"error": {"code": 400, "message": "CODE : detail"}};
    the part before " : " is the machine-readable code.
    """
    try:
        message = resp.json().get("error", {}).get("message", "")
    except (ValueError, AttributeError):
        message = ""
    if not message:
        return BackendError(f"HTTP_{resp.status_code}", resp.text or f"HTTP {resp.status_code}")
    code, _, detail = message.partition(" : ")
    return BackendError(code.strip(), detail.strip() or code.strip())
