"""Process-level wiring for sync runs.

``SyncContext`` holds what every invocation surface (HTTP endpoint, CLI)
needs: the connected database and the fallback upstream credential. It
is built once at startup and passed explicitly.
"""

import logging
from dataclasses import dataclass

import httpx

from src.accounts.repository import AccountRepository
from src.config.settings import Settings, get_settings
from src.ingestion.config import FeedConfig
from src.ingestion.feed_adapter import BilibiliFeedAdapter
from src.ingestion.http_client import HTTPClient
from src.notifications.emitter import NotificationEmitter
from src.notifications.repository import NotificationRepository
from src.sources.repository import SourcesRepository
from src.storage.database import Database
from src.sync.config import SyncConfig
from src.sync.log_repository import SyncLogRepository
from src.sync.orchestrator import SyncOrchestrator
from src.sync.schemas import RunReport, SyncTrigger
from src.videos.reconciler import VideoReconciler
from src.videos.repository import VideoRepository

logger = logging.getLogger(__name__)


@dataclass
class SyncContext:
    """Explicit per-process configuration for sync runs."""

    database: Database
    default_credential: str | None = None

    @classmethod
    def from_settings(
        cls, database: Database, settings: Settings | None = None
    ) -> "SyncContext":
        settings = settings or get_settings()
        return cls(
            database=database,
            default_credential=settings.bilibili_cookie,
        )


def build_orchestrator(
    context: SyncContext,
    client: HTTPClient,
    feed_config: FeedConfig | None = None,
    sync_config: SyncConfig | None = None,
) -> SyncOrchestrator:
    """Assemble an orchestrator around an open HTTP client."""
    sync_config = sync_config or SyncConfig()
    db = context.database

    return SyncOrchestrator(
        accounts=AccountRepository(db),
        sources=SourcesRepository(db),
        adapter=BilibiliFeedAdapter(
            client,
            config=feed_config,
            default_credential=context.default_credential,
        ),
        reconciler=VideoReconciler(
            VideoRepository(db),
            policy=sync_config.store_policy(),
        ),
        emitter=NotificationEmitter(
            NotificationRepository(db),
            policy=sync_config.notification_policy(),
            preview_limit=sync_config.notification_preview_titles,
            payload_limit=sync_config.notification_payload_limit,
        ),
        sync_log=SyncLogRepository(db),
        config=sync_config,
        default_credential=context.default_credential,
    )


async def run_scheduled_sync(
    context: SyncContext,
    trigger: SyncTrigger | str = SyncTrigger.CRON,
    feed_config: FeedConfig | None = None,
    sync_config: SyncConfig | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> RunReport:
    """
    Run one full sync with a fresh HTTP client.

    Raises:
        SyncRunError: If the run could not start
    """
    feed_config = feed_config or FeedConfig()
    async with HTTPClient(
        feed_config.backoff_policy(),
        timeout=feed_config.timeout_seconds,
        transport=transport,
    ) as client:
        orchestrator = build_orchestrator(context, client, feed_config, sync_config)
        return await orchestrator.run_sync(trigger)


async def create_tables(database: Database) -> None:
    """Create every table the pipeline uses, in dependency order."""
    await AccountRepository(database).create_table()
    await SourcesRepository(database).create_table()
    await VideoRepository(database).create_table()
    await NotificationRepository(database).create_table()
    await SyncLogRepository(database).create_table()
    logger.info("All tables ensured")
