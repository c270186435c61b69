"""Shared fixtures for API tests."""

from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from src.api.app import create_app
from src.api.dependencies import get_database, get_sync_context
from src.config.settings import get_settings
from src.sync.runtime import SyncContext


@pytest.fixture
def api_database() -> AsyncMock:
    db = AsyncMock()
    db.health_check = AsyncMock(return_value=True)
    return db


@pytest.fixture
def sync_context(api_database) -> SyncContext:
    return SyncContext(database=api_database, default_credential="SESSDATA=default")


@pytest.fixture
def client(api_database, sync_context, test_settings):
    """FastAPI TestClient with dependency overrides."""
    app = create_app()
    app.dependency_overrides[get_settings] = lambda: test_settings
    app.dependency_overrides[get_database] = lambda: api_database
    app.dependency_overrides[get_sync_context] = lambda: sync_context

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()
