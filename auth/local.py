"""
auth/local.py -- SQLAlchemy Core identity backend for local development and tests.

Implements the same IdentityBackend contract as the REST client and raises
the same backend error codes, so the account adapter cannot tell the two
apart. Emails the hosted backend would send are appended to `outbox` instead.

Pattern: Repository + Data Mapper. _row_to_user is the mapper; callers
never touch SQL.

Security:
  All queries use bound parameters. Passwords are stored as bcrypt hashes.
  Unknown emails still cost one bcrypt comparison (see check_credentials).

Layer rule: no imports from datastore/.
"""

from __future__ import annotations

import logging
import re
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.pool import StaticPool

from auth.identity import (
    EMAIL_EXISTS,
    EMAIL_NOT_FOUND,
    INVALID_EMAIL,
    INVALID_PASSWORD,
    MISSING_PASSWORD,
    WEAK_PASSWORD,
    IdentityBackend,
)
from auth.passwords import check_credentials, hash_password
from core.errors import BackendError
from core.models import CurrentUser

logger = logging.getLogger("account.auth.local")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).parent / 'account_identity.db'}"

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

# Same floor the hosted backend enforces.
_MIN_PASSWORD_LENGTH = 6

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_accounts = Table(
    "accounts",
    _metadata,
    Column("uid", String(64), primary_key=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("hashed_password", Text, nullable=False),
    Column("email_verified", Integer, nullable=False, server_default="0"),
    Column("created_at", String(32), nullable=False),
)


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class OutboxMessage:
    kind: str  # "verify_email" | "password_reset"
    email: str


# ---------------------------------------------------------------------------
# Backend
# ---------------------------------------------------------------------------


class LocalIdentityBackend(IdentityBackend):
    """
    Usage:
        backend = LocalIdentityBackend("sqlite://")
        backend.create_user("a@b.com", "secret")
        backend.mark_email_verified(backend.current_user.uid)
        backend.reload().is_email_verified  # True
        backend.close()
    """

    def __init__(self, db_url: str = _DEFAULT_DB_URL) -> None:
        memory = db_url in ("sqlite://", "sqlite:///:memory:")
        connect_args: dict = {}
        engine_kwargs: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        if memory:
            engine_kwargs["poolclass"] = StaticPool
        self.engine: Engine = create_engine(db_url, connect_args=connect_args, **engine_kwargs)
        if db_url.startswith("sqlite") and not memory:
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)
        self.outbox: list[OutboxMessage] = []
        self._user: Optional[CurrentUser] = None

    @property
    def current_user(self) -> Optional[CurrentUser]:
        return self._user

    def create_user(self, email: str, password: str) -> CurrentUser:
        """Insert a new account and sign it in.

        Raises BackendError: INVALID_EMAIL, MISSING_PASSWORD, WEAK_PASSWORD,
        or EMAIL_EXISTS when the address is already registered.
        """
        if not _EMAIL_RE.match(email):
            raise BackendError(INVALID_EMAIL, "The email address is badly formatted.")
        if not password:
            raise BackendError(MISSING_PASSWORD, "A password is required.")
        if len(password) < _MIN_PASSWORD_LENGTH:
            raise BackendError(WEAK_PASSWORD, f"Password should be at least {_MIN_PASSWORD_LENGTH} characters.")
        uid = uuid.uuid4().hex
        try:
            with self.engine.connect() as conn:
                conn.execute(
                    _accounts.insert().values(
                        uid=uid,
                        email=email,
                        hashed_password=hash_password(password),
                        email_verified=0,
                        created_at=_now_iso(),
                    )
                )
                conn.commit()
        except IntegrityError as e:
            raise BackendError(EMAIL_EXISTS, "The email address is already in use by another account.") from e
        self._user = CurrentUser(uid=uid, email=email, is_email_verified=False)
        return self._user

    def sign_in(self, email: str, password: str) -> CurrentUser:
        if not password:
            raise BackendError(MISSING_PASSWORD, "A password is required.")
        if not _EMAIL_RE.match(email):
            raise BackendError(INVALID_EMAIL, "The email address is badly formatted.")
        row = self._get_by_email(email)
        # Run bcrypt before branching on the lookup result.
        matched = check_credentials(password, row.hashed_password if row is not None else None)
        if row is None:
            raise BackendError(EMAIL_NOT_FOUND, "There is no user record corresponding to this identifier.")
        if not matched:
            raise BackendError(INVALID_PASSWORD, "The password is invalid.")
        self._user = _row_to_user(row)
        return self._user

    def sign_out(self) -> None:
        self._user = None

    def delete_current_user(self) -> None:
        user = self._require_user()
        with self.engine.connect() as conn:
            conn.execute(_accounts.delete().where(_accounts.c.uid == user.uid))
            conn.commit()
        self._user = None

    def send_email_verification(self) -> None:
        user = self._require_user()
        self.outbox.append(OutboxMessage(kind="verify_email", email=user.email or ""))

    def reload(self) -> Optional[CurrentUser]:
        user = self._user
        if user is None:
            return None
        row = self._get_by_uid(user.uid)
        # A sign-out or sign-in may have happened while the row was read.
        if self._user is not user:
            return self._user
        if row is None:
            raise BackendError("USER_NOT_FOUND", "The signed-in user no longer exists.")
        self._user = _row_to_user(row)
        return self._user

    def send_password_reset(self, email: str) -> None:
        if not _EMAIL_RE.match(email):
            raise BackendError(INVALID_EMAIL, "The email address is badly formatted.")
        if self._get_by_email(email) is None:
            raise BackendError(EMAIL_NOT_FOUND, "There is no user record corresponding to this identifier.")
        self.outbox.append(OutboxMessage(kind="password_reset", email=email))

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    def mark_email_verified(self, uid: str) -> bool:
        """Flag an account's email as verified. Returns False if uid is unknown.

        The current session's cached flag is not touched; it changes on the
        next reload(), as with the hosted backend.
        """
        with self.engine.connect() as conn:
            result = conn.execute(_accounts.update().where(_accounts.c.uid == uid).values(email_verified=1))
            conn.commit()
        return result.rowcount > 0

    def close(self) -> None:
        self.engine.dispose()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require_user(self) -> CurrentUser:
        if self._user is None:
            raise BackendError("NO_CURRENT_USER", "No user is signed in.")
        return self._user

    def _get_by_email(self, email: str):
        with self.engine.connect() as conn:
            return conn.execute(_accounts.select().where(_accounts.c.email == email)).fetchone()

    def _get_by_uid(self, uid: str):
        with self.engine.connect() as conn:
            return conn.execute(_accounts.select().where(_accounts.c.uid == uid)).fetchone()


def _row_to_user(row) -> CurrentUser:
    return CurrentUser(uid=row.uid, email=row.email, is_email_verified=bool(row.email_verified))
