"""
datastore/store.py -- SQLAlchemy-backed local data store.

Stands in for the hosted realtime database in local development and tests.
Each node is one row keyed by its slash-joined path, holding the JSON-encoded
value. Writes replace the node (last write wins), like a PUT against the
hosted database.

Uses SQLAlchemy Core (not ORM): swapping SQLite for PostgreSQL is a connection
string change, not a rewrite.

Usage:
    store = SQLDataStore()                      # SQLite file next to this module
    store = SQLDataStore("sqlite://")           # in-memory, shared across threads
    store.reference().child("users").child(uid).set_value({...})
    store.close()

Security: all queries use bound parameters. No f-strings in SQL.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from sqlalchemy import Column, MetaData, String, Table, Text, create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool

from core.errors import DataStoreError
from datastore.base import DataStore

logger = logging.getLogger("account.datastore.store")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).parent / 'account_data.db'}"

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_nodes = Table(
    "nodes",
    _metadata,
    Column("path", String(768), primary_key=True),
    Column("data", Text, nullable=False),  # JSON-encoded value
    Column("updated_at", String(32), nullable=False),
)


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers do not block during writes."""
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _is_memory_url(db_url: str) -> bool:
    return db_url in ("sqlite://", "sqlite:///:memory:")


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class SQLDataStore(DataStore):
    """Key/value tree persisted in one SQL table.

    Only exact paths are addressable: reading a parent path does not assemble
    its children. auth_token is accepted for interface compatibility and
    ignored -- the local store has no security rules.
    """

    def __init__(self, db_url: str = _DEFAULT_DB_URL) -> None:
        connect_args: dict = {}
        engine_kwargs: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        if _is_memory_url(db_url):
            # One connection for every thread, otherwise each worker thread
            # would see its own blank in-memory database.
            engine_kwargs["poolclass"] = StaticPool
        self.engine: Engine = create_engine(db_url, connect_args=connect_args, **engine_kwargs)
        if db_url.startswith("sqlite") and not _is_memory_url(db_url):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    def _write(self, path: tuple[str, ...], value: Any, auth_token: Optional[str]) -> None:
        key = "/".join(path)
        try:
            payload = json.dumps(value)
        except (TypeError, ValueError) as e:
            raise DataStoreError("INVALID_DATA", f"Value at /{key} is not JSON-serializable: {e}") from e
        try:
            with self.engine.connect() as conn:
                result = conn.execute(
                    _nodes.update().where(_nodes.c.path == key).values(data=payload, updated_at=_now_iso())
                )
                if result.rowcount == 0:
                    conn.execute(_nodes.insert().values(path=key, data=payload, updated_at=_now_iso()))
                conn.commit()
        except SQLAlchemyError as e:
            logger.error("Local store write failed for /%s: %s", key, e)
            raise DataStoreError("WRITE_FAILED", str(e)) from e

    def _read(self, path: tuple[str, ...], auth_token: Optional[str]) -> Any:
        key = "/".join(path)
        try:
            with self.engine.connect() as conn:
                row = conn.execute(_nodes.select().where(_nodes.c.path == key)).fetchone()
        except SQLAlchemyError as e:
            logger.error("Local store read failed for /%s: %s", key, e)
            raise DataStoreError("READ_FAILED", str(e)) from e
        return json.loads(row.data) if row is not None else None

    def close(self) -> None:
        self.engine.dispose()
