"""Pytest configuration and fixtures."""

import pytest
from fastapi.testclient import TestClient
from userstore_api.config import Settings
from userstore_api.main import create_app
from userstore_common.services.memory_user_repository import InMemoryUserRepository


@pytest.fixture
def settings() -> Settings:
    """Settings for an app served from memory."""
    return Settings(
        environment="test",
        storage_backend="memory",
        azure_cosmosdb_endpoint=None,
        azure_cosmosdb_key=None,
    )


@pytest.fixture
def repository() -> InMemoryUserRepository:
    """Empty in-memory user repository."""
    return InMemoryUserRepository()


@pytest.fixture
def client(settings: Settings, repository: InMemoryUserRepository) -> TestClient:
    """Create a FastAPI test client over the in-memory repository."""
    return TestClient(create_app(settings=settings, repository=repository))
