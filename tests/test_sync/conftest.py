"""Shared fixtures for sync orchestrator tests."""

from unittest.mock import AsyncMock

import pytest

from src.ingestion.retry import FixedDelayPolicy
from src.sync.config import SyncConfig
from src.sync.orchestrator import SyncOrchestrator
from src.videos.reconciler import VideoReconciler
from tests.factories import InMemoryVideoRepository


@pytest.fixture
def video_repo() -> InMemoryVideoRepository:
    return InMemoryVideoRepository()


@pytest.fixture
def accounts_repo() -> AsyncMock:
    repo = AsyncMock()
    repo.list_with_credential = AsyncMock(return_value=[])
    return repo


@pytest.fixture
def sources_repo() -> AsyncMock:
    repo = AsyncMock()
    repo.get_active_by_account = AsyncMock(return_value=[])
    return repo


@pytest.fixture
def emitter() -> AsyncMock:
    mock = AsyncMock()
    mock.emit = AsyncMock(return_value=True)
    return mock


@pytest.fixture
def sync_log() -> AsyncMock:
    mock = AsyncMock()
    mock.start = AsyncMock(return_value=1)
    return mock


@pytest.fixture
def sleep() -> AsyncMock:
    """Replaces asyncio.sleep for inter-request pacing."""
    return AsyncMock()


@pytest.fixture
def make_orchestrator(accounts_repo, sources_repo, video_repo, emitter, sync_log, sleep):
    """Factory building an orchestrator around the fakes and a given adapter."""

    def _make(adapter, default_credential=None, **config_overrides):
        config = SyncConfig(
            store_retry_delay_seconds=0,
            notification_retry_delay_seconds=0,
            **config_overrides,
        )
        return SyncOrchestrator(
            accounts=accounts_repo,
            sources=sources_repo,
            adapter=adapter,
            reconciler=VideoReconciler(video_repo, policy=FixedDelayPolicy(max_retries=2, delay=0)),
            emitter=emitter,
            sync_log=sync_log,
            config=config,
            default_credential=default_credential,
            sleep=sleep,
        )

    return _make
