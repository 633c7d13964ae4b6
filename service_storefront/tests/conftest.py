"""
Shared fixtures for Storefront service tests.
"""

import pytest
from fastapi.testclient import TestClient

from shared.config import get_config
from shared.metrics import MetricsCollector
from shared.test_helpers import TestDataFactory
from service_storefront.app.caching.store import InMemoryCacheStore
from service_storefront.app.main import StorefrontService
from service_storefront.app.models import Collection
from service_storefront.app.persistence.memory import InMemoryDocumentStore


@pytest.fixture
def config():
    """Service configuration backed by in-process stores."""
    return get_config("storefront", 8000, env="test", document_backend="memory", cache_backend="memory")


@pytest.fixture
def metrics():
    """Metrics collector with a private registry."""
    return MetricsCollector("storefront-test")


@pytest.fixture
def documents():
    """Document store holding one admin and one customer."""
    store = InMemoryDocumentStore()
    store.seed(Collection.USERS, [
        TestDataFactory.create_admin(),
        TestDataFactory.create_user(user_id="user1", gender="female"),
    ])
    return store


@pytest.fixture
def cache_store(metrics):
    """Empty in-memory cache store."""
    return InMemoryCacheStore(metrics)


@pytest.fixture
def service(config, documents, cache_store):
    """Storefront service wired to in-process stores."""
    return StorefrontService(config=config, documents=documents, cache_store=cache_store)


@pytest.fixture
def client(service):
    """Create test client."""
    return TestClient(service.app)
