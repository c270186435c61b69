"""Shared fixtures for sources tests."""

import pytest

from src.sources.schemas import Source


@pytest.fixture
def sample_source() -> Source:
    """A sample Source for testing."""
    return Source(
        account_id="acct-1",
        source_id=546195,
        name="Alice",
    )


@pytest.fixture
def sample_db_row() -> dict:
    """A dict mimicking an asyncpg Record for a source."""
    return {
        "id": 7,
        "account_id": "acct-1",
        "platform": "bilibili",
        "source_id": 546195,
        "name": "Alice",
        "is_active": True,
    }
