"""
tests/conftest.py -- Shared fixtures for account tests.

This module provides:
  - config:      an AccountConfig built in code, isolated from .env / environment
  - identity:    LocalIdentityBackend on in-memory SQLite
  - data_store:  SQLDataStore on in-memory SQLite
  - provider:    FirebaseAuthProvider wired to the two local backends

Design: the adapter runs every backend call through asyncio.to_thread, so the
local backends are exercised from worker threads. Both use StaticPool for
"sqlite://" URLs, which keeps a single in-memory database visible to every
thread. Plain per-connection :memory: databases would show each worker a
blank schema.

Async provider operations are driven with asyncio.run() -- no plugin needed.
"""

from __future__ import annotations

from collections.abc import Generator

import pytest

from auth.firebase import FirebaseAuthProvider
from auth.local import LocalIdentityBackend
from core.config import AccountConfig
from datastore.store import SQLDataStore


@pytest.fixture
def config() -> AccountConfig:
    # _env_file=None keeps a developer's .env out of the tests.
    return AccountConfig(
        _env_file=None,
        database_url="https://account-test.example.com/",
        api_key="test-api-key",
        verification_poll_interval=0,
    )


@pytest.fixture
def identity() -> Generator[LocalIdentityBackend, None, None]:
    backend = LocalIdentityBackend("sqlite://")
    yield backend
    backend.close()


@pytest.fixture
def data_store() -> Generator[SQLDataStore, None, None]:
    store = SQLDataStore("sqlite://")
    yield store
    store.close()


@pytest.fixture
def provider(config, identity, data_store) -> FirebaseAuthProvider:
    return FirebaseAuthProvider(config, identity=identity, data_store=data_store)
