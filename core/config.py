"""
core/config.py -- Account configuration via pydantic-settings.

AccountConfig is an explicit object: the embedding application constructs it
at startup and hands it to Account.setup() (or straight to an adapter's
constructor). Nothing reads it through a module-level global.

Design patterns used:
  BaseSettings (pydantic-settings): programmatic construction is the primary
      path -- AccountConfig(database_url="https://...") -- but every field can
      also come from an ACCOUNT_-prefixed environment variable or a .env file.
      The CLI relies on that.

  Singleton via lru_cache: get_settings() builds an AccountConfig from the
      environment once and caches it. Only main.py and Account.setup() with no
      argument use it; library code always receives its config explicitly.

  @model_validator(mode="after"): a missing data-store URL is a construction
      failure, not a deferred one. Callers find out at startup instead of on
      the first profile save.

Layer rule: core/ is the kernel. This module may not import from auth/ or
datastore/.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("account.config")

DEFAULT_IDENTITY_URL = "https://identitytoolkit.googleapis.com/v1"


class AccountConfig(BaseSettings):
    """Settings for one identity backend and one data store.

    Environment variable name mapping: ACCOUNT_ + uppercased field name.
    E.g. `database_url` reads from ACCOUNT_DATABASE_URL.
    """

    model_config = SettingsConfigDict(
        env_prefix="ACCOUNT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Data store
    # ------------------------------------------------------------------

    # Empty string is the sentinel for "not configured". The validator
    # rejects it, so a constructed AccountConfig always has a URL.
    database_url: str = ""

    # ------------------------------------------------------------------
    # Identity backend
    # ------------------------------------------------------------------

    api_key: str = ""
    identity_url: str = DEFAULT_IDENTITY_URL
    request_timeout: float = 10.0

    # ------------------------------------------------------------------
    # Email verification polling
    # ------------------------------------------------------------------

    verification_poll_interval: float = 1.0
    # None on both bounds means poll until verified.
    verification_max_attempts: Optional[int] = None
    verification_timeout: Optional[float] = None

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_database_url(self) -> "AccountConfig":
        """Require a data-store URL and normalise its trailing slash.

        Every profile read and write derives its location from this value,
        so an AccountConfig without one is unusable.
        """
        url = self.database_url.strip()
        if not url:
            raise ValueError(
                "database_url is required. Pass AccountConfig(database_url=...) "
                "or set ACCOUNT_DATABASE_URL in your environment or .env file."
            )
        self.database_url = url.rstrip("/")
        self.identity_url = self.identity_url.rstrip("/")
        if self.verification_poll_interval < 0:
            raise ValueError("verification_poll_interval must not be negative.")
        if self.verification_max_attempts is not None and self.verification_max_attempts < 1:
            raise ValueError("verification_max_attempts must be at least 1.")
        return self


@lru_cache
def get_settings() -> AccountConfig:
    """Return an AccountConfig built from the environment, cached after the first call.

    Raises pydantic.ValidationError when ACCOUNT_DATABASE_URL is missing.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    settings = AccountConfig()
    logger.info("Loaded account settings from environment (database=%s)", settings.database_url)
    return settings
