"""Pytest fixtures for the broker API client, services and session tests."""

import pytest

from src.database.redis import RedisCache
from src.integrations.clients.mocks.broker_backend import MockBrokerBackend
from src.integrations.clients.real_http.broker_api import BrokerApiClient
from src.session_context import SessionContext

ADMIN_USERNAME = "admin@geminia.com"


@pytest.fixture
def backend():
    """In-process mock broker backend; inspect `backend.requests` for what was sent."""
    return MockBrokerBackend(admin_usernames=(ADMIN_USERNAME,))


@pytest.fixture
def broker_api(backend):
    return BrokerApiClient("http://broker.test/api", transport=backend.transport())


@pytest.fixture
def store():
    """In-memory RedisCache stub for tests."""
    return RedisCache()


@pytest.fixture
def session(store):
    return SessionContext(store, "sess-1")
