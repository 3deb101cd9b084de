"""
account.py -- Entry point for embedding applications.

Bind a configuration once at startup, then ask for providers:

    from account import Account
    from core.config import AccountConfig

    Account.setup(AccountConfig(database_url="https://my-app.firebaseio.com", api_key="..."))
    provider = Account.auth_provider()
    result = await provider.login("a@b.com", "secret")

Asking for a provider before setup() is a programming error and raises
ConfigurationError. setup() is meant to be called once per process; calling
it concurrently is not guarded against.
"""

from __future__ import annotations

import logging
from typing import Optional

from auth.firebase import FirebaseAuthProvider
from auth.identity import IdentityBackend
from auth.provider import AuthProvider
from core.config import AccountConfig, get_settings
from core.errors import ConfigurationError
from datastore.base import DataStore

logger = logging.getLogger("account")


class Account:
    _config: Optional[AccountConfig] = None

    @classmethod
    def setup(cls, config: Optional[AccountConfig] = None) -> AccountConfig:
        """Bind the configuration every provider is built from.

        With no argument, the configuration is read from ACCOUNT_* environment
        variables (see core.config.get_settings).
        """
        cls._config = config if config is not None else get_settings()
        logger.info("Account configured (database=%s)", cls._config.database_url)
        return cls._config

    @classmethod
    def auth_provider(
        cls,
        identity: Optional[IdentityBackend] = None,
        data_store: Optional[DataStore] = None,
    ) -> AuthProvider:
        """Return a provider wired to the bound configuration.

        identity / data_store override the hosted backends, e.g. with
        LocalIdentityBackend and SQLDataStore.
        """
        if cls._config is None:
            raise ConfigurationError("Account.setup() must be called before Account.auth_provider().")
        return FirebaseAuthProvider(cls._config, identity=identity, data_store=data_store)

    @classmethod
    def reset(cls) -> None:
        """Unbind the configuration. Intended for tests."""
        cls._config = None
