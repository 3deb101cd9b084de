"""
core/errors.py -- Domain error taxonomy and backend error carriers.

Two families of failure reach callers of an AuthProvider:

  AccountError  -- the closed, backend-independent taxonomy. Callers branch
                   on error.code (an AccountErrorCode member).
  BackendError  -- anything the backend reported that the adapter has no
                   domain meaning for. Passed through untouched so callers can
                   still inspect .code / .message.

ConfigurationError is separate from both: it marks a programming error (the
module was used before it was configured) and is raised, never returned.

Layer rule: no imports from auth/ or datastore/.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class AccountErrorCode(str, Enum):
    INVALID_CREDENTIALS = "invalidCredentials"
    EMAIL_ALREADY_IN_USE = "emailAlreadyInUse"
    USER_NOT_FOUND = "userNotFound"
    ERROR_SAVING_DATA = "errorSavingData"
    # Reserved. Profile reconstruction never fails, so nothing raises it today.
    INVALID_DATA_FORMAT = "invalidDataFormat"


class AccountError(Exception):
    """A failure expressed in the domain vocabulary."""

    def __init__(self, code: AccountErrorCode, message: Optional[str] = None) -> None:
        self.code = code
        self.message = message or code.value
        super().__init__(self.message)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AccountError):
            return NotImplemented
        return self.code is other.code

    def __hash__(self) -> int:
        return hash(self.code)

    def __repr__(self) -> str:
        return f"AccountError({self.code.value})"


class BackendError(Exception):
    """A failure reported by the identity backend, in its own code scheme.

    code is the backend's error identifier (e.g. "EMAIL_EXISTS"), or None
    when the backend gave no recognisable code. message is the human
    readable text that accompanied it.
    """

    def __init__(self, code: Optional[str], message: str = "") -> None:
        self.code = code
        self.message = message or (code or "backend error")
        super().__init__(self.message)


class DataStoreError(BackendError):
    """A read or write against the data store failed."""


class ConfigurationError(RuntimeError):
    """The account module was used before (or without) being configured."""
