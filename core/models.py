"""
core/models.py -- Backend-agnostic account data shapes.

Pattern: Data class. UserInfo owns its storage shape through an explicit
field table (_STORAGE_KEYS) instead of introspecting itself at runtime, so the
stored key names stay stable even if attributes are renamed.
"""

from __future__ import annotations

from collections import OrderedDict
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Optional

# (attribute, stored key) in declaration order. The stored keys are what
# existing data-store records use and must not change.
_STORAGE_KEYS: tuple[tuple[str, str], ...] = (
    ("email", "email"),
    ("first_name", "firstName"),
    ("last_name", "lastName"),
    ("address", "address"),
    ("railcard", "railcard"),
    ("photocard", "photocard"),
)

USER_INFO_KEYS: tuple[str, ...] = tuple(key for _, key in _STORAGE_KEYS)


@dataclass(frozen=True)
class UserInfo:
    """A user's profile as persisted in the data store.

    Immutable: updating a profile means building a new UserInfo (see
    dataclasses.replace) and saving it.
    """

    email: str
    first_name: str
    last_name: str
    address: str = ""
    railcard: str = ""
    photocard: str = ""

    def as_dict(self) -> dict[str, str]:
        """Field map keyed by stored key names. Key order carries no meaning."""
        return {key: getattr(self, attr) for attr, key in _STORAGE_KEYS}

    def as_ordered_dict(self) -> OrderedDict[str, str]:
        """Field map in declaration order, for stores that care about key order."""
        return OrderedDict((key, getattr(self, attr)) for attr, key in _STORAGE_KEYS)

    @classmethod
    def from_data(cls, data: Any) -> "UserInfo":
        """Rebuild a UserInfo from whatever the data store returned.

        Never raises. A non-mapping payload (None, a list, a bare string) is
        treated as empty, and each field that is missing or not a string
        becomes "".
        """
        if not isinstance(data, Mapping):
            data = {}
        values = {}
        for attr, key in _STORAGE_KEYS:
            value = data.get(key)
            values[attr] = value if isinstance(value, str) else ""
        return cls(**values)


@dataclass(frozen=True)
class CurrentUser:
    """Snapshot of the identity backend's signed-in user.

    id_token / refresh_token are None for backends that do not issue tokens
    (the local backend).
    """

    uid: str
    email: Optional[str]
    is_email_verified: bool = False
    id_token: Optional[str] = None
    refresh_token: Optional[str] = None
