"""
datastore/base.py -- The narrow contract every data store satisfies.

A data store is a key/value tree addressed by a path of string segments.
Callers never build paths by hand; they walk from the root:

    ref = store.reference().child("users").child(uid)
    ref.set_value({"email": "a@b.com"})
    ref.get_data()

Concrete stores implement _write(path, value, auth_token) and
_read(path, auth_token) and raise DataStoreError on failure.

Layer rule: imports only from core/.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from typing import Any, Optional

from core.errors import DataStoreError

# Characters the realtime database forbids in keys. Applied to every store so
# a path that works locally also works against the hosted one.
_FORBIDDEN_SEGMENT_RE = re.compile(r"[.$#\[\]/]")


class DataStore(ABC):
    @abstractmethod
    def _write(self, path: tuple[str, ...], value: Any, auth_token: Optional[str]) -> None:
        """Replace the value at path. Raise DataStoreError on failure."""

    @abstractmethod
    def _read(self, path: tuple[str, ...], auth_token: Optional[str]) -> Any:
        """Return the value at path, or None if nothing is stored there."""

    def reference(self) -> "Reference":
        return Reference(self, ())

    def close(self) -> None:
        """Release any held resources. No-op by default."""


class Reference:
    """A location in a DataStore. Cheap to create; holds no data."""

    def __init__(self, store: DataStore, path: tuple[str, ...]) -> None:
        self._store = store
        self.path = path

    def child(self, segment: str) -> "Reference":
        """Return the reference one level below this one.

        Raises DataStoreError for empty segments or segments containing
        . $ # [ ] or /.
        """
        if not segment or _FORBIDDEN_SEGMENT_RE.search(segment):
            raise DataStoreError("INVALID_PATH", f"Invalid path segment: {segment!r}")
        return Reference(self._store, self.path + (segment,))

    def set_value(self, value: Any, auth_token: Optional[str] = None) -> None:
        self._store._write(self.path, value, auth_token)

    def get_data(self, auth_token: Optional[str] = None) -> Any:
        return self._store._read(self.path, auth_token)

    def __repr__(self) -> str:
        return f"Reference('/{'/'.join(self.path)}')"
