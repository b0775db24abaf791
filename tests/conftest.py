"""
Shared fixtures: in-memory stores, recorder/aggregator wired to them, and an
API client with the store dependencies overridden.
"""
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from aggregator import AnalyticsAggregator
from config import Settings, get_settings
from deps import get_local_cache, get_remote_store
from recorder import SessionRecorder
from stores import LocalSessionCache
from tests.fakes import InMemorySessionStore, MemoryKeyValueStore

FIXED_NOW = datetime(2024, 3, 5, 14, 30, tzinfo=timezone.utc)


@pytest.fixture
def local_cache() -> LocalSessionCache:
    return LocalSessionCache(MemoryKeyValueStore())


@pytest.fixture
def remote() -> InMemorySessionStore:
    return InMemorySessionStore()


@pytest.fixture
def failing_remote() -> InMemorySessionStore:
    return InMemorySessionStore(fail=True)


@pytest.fixture
def recorder(remote, local_cache) -> SessionRecorder:
    return SessionRecorder(remote, local_cache, clock=lambda: FIXED_NOW)


@pytest.fixture
def aggregator(remote, local_cache) -> AnalyticsAggregator:
    return AnalyticsAggregator(remote, local_cache)


@pytest.fixture
def settings() -> Settings:
    return Settings(seed_mock_data=False)


@pytest.fixture
def client(remote, local_cache, settings):
    from main import app

    app.dependency_overrides[get_remote_store] = lambda: remote
    app.dependency_overrides[get_local_cache] = lambda: local_cache
    app.dependency_overrides[get_settings] = lambda: settings
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
