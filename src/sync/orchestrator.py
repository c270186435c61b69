"""Scheduled sync of creator videos for every account.

Run flow:
1. Load accounts that have a credential (retried; failure is fatal)
2. Per account, sequentially and isolated from the others:
   a. Load active sources
   b. Fetch each creator's feed, pausing between creators
   c. Keep items published since local midnight
   d. Reconcile the batch against stored videos
   e. Emit one digest notification if anything was inserted
3. Aggregate per-account reports into a RunReport

Designed for external cron scheduling: ``30 6,17 * * * creator-sync sync``
"""

import asyncio
import time
from collections.abc import Awaitable, Callable
from datetime import date, datetime
from datetime import time as dt_time

import structlog

from src.accounts.repository import AccountRepository
from src.accounts.schemas import Account
from src.ingestion.feed_adapter import BilibiliFeedAdapter
from src.ingestion.retry import retry_with_policy
from src.ingestion.schemas import Platform, RemoteItem, VideoRecord
from src.notifications.emitter import NotificationEmitter
from src.observability.logging import bound_context
from src.observability.metrics import get_metrics
from src.sources.repository import SourcesRepository
from src.sources.schemas import Source
from src.storage.database import is_transient_db_error
from src.sync.config import SyncConfig
from src.sync.log_repository import SyncLogRepository
from src.sync.schemas import AccountReport, RunReport, SyncRunError, SyncTrigger
from src.videos.reconciler import VideoReconciler

logger = structlog.get_logger(__name__)

NO_ACCOUNTS_MESSAGE = "no accounts with credentials"


def start_of_local_day() -> int:
    """Epoch seconds of today's 00:00 in the process's local timezone."""
    return int(datetime.combine(date.today(), dt_time.min).timestamp())


class SyncOrchestrator:
    """Drives one sync run across all accounts."""

    def __init__(
        self,
        accounts: AccountRepository,
        sources: SourcesRepository,
        adapter: BilibiliFeedAdapter,
        reconciler: VideoReconciler,
        emitter: NotificationEmitter,
        sync_log: SyncLogRepository | None = None,
        config: SyncConfig | None = None,
        default_credential: str | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._accounts = accounts
        self._sources = sources
        self._adapter = adapter
        self._reconciler = reconciler
        self._emitter = emitter
        self._config = config or SyncConfig()
        self._sync_log = sync_log if self._config.sync_log_enabled else None
        self._default_credential = (default_credential or "").strip()
        self._sleep = sleep
        self._platform = Platform(self._config.platform)
        self._store_policy = self._config.store_policy()
        self._metrics = get_metrics()

    async def run_sync(self, trigger: SyncTrigger | str = SyncTrigger.CRON) -> RunReport:
        """
        Sync every account that has a credential.

        Args:
            trigger: What started the run (recorded in logs and the sync log)

        Returns:
            RunReport with one AccountReport per account

        Raises:
            SyncRunError: If the account list cannot be loaded
        """
        trigger = SyncTrigger(trigger)
        start_time = time.monotonic()

        try:
            accounts = await retry_with_policy(
                self._accounts.list_with_credential,
                self._store_policy,
                is_retryable=is_transient_db_error,
                context="load_accounts",
            )
        except Exception as e:
            logger.error("Failed to load accounts", error=str(e), run_trigger=trigger.value)
            raise SyncRunError(f"failed to load accounts: {e}") from e

        if not accounts:
            logger.info("No accounts to sync", run_trigger=trigger.value)
            return RunReport(success=True, results=[], message=NO_ACCOUNTS_MESSAGE)

        logger.info("Sync run started", accounts=len(accounts), run_trigger=trigger.value)

        results: list[AccountReport] = []
        for account in accounts:
            results.append(await self.sync_account(account, trigger))

        elapsed = time.monotonic() - start_time
        self._metrics.record_run_duration(elapsed)

        report = RunReport(success=True, results=results)
        logger.info(
            "Sync run finished",
            run_trigger=trigger.value,
            accounts=len(results),
            new_items=report.total_new_items,
            failed_accounts=sum(1 for r in results if r.error),
            elapsed_seconds=round(elapsed, 2),
        )
        return report

    async def sync_account(
        self, account: Account, trigger: SyncTrigger = SyncTrigger.CRON
    ) -> AccountReport:
        """Sync one account. Never raises; errors land in the report."""
        report = AccountReport(account_id=account.id)

        with bound_context(account_id=account.id, run_trigger=trigger.value):
            credential = account.credential if account.has_credential else self._default_credential
            if not credential:
                logger.warning("Skipping account without credential")
                report.error = "missing credential"
                self._metrics.record_account(report.status.value)
                return report

            log_id = await self._sync_log.start(account.id, trigger) if self._sync_log else None

            try:
                await self._sync_account(account, credential, report)
            except Exception as e:
                logger.exception("Account sync failed")
                report.error = str(e) or type(e).__name__

            if self._sync_log:
                await self._sync_log.finish(log_id, report)

            logger.info(
                "Account sync finished",
                status=report.status.value,
                new_items=report.new_item_count,
                sources_ok=report.sources_ok,
                sources_degraded=report.sources_degraded,
                sources_failed=report.sources_failed,
                error=report.error,
            )

        self._metrics.record_account(report.status.value)
        return report

    async def _sync_account(
        self, account: Account, credential: str, report: AccountReport
    ) -> None:
        sources: list[Source] = await retry_with_policy(
            lambda: self._sources.get_active_by_account(account.id, self._platform.value),
            self._store_policy,
            is_retryable=is_transient_db_error,
            context=f"load_sources:{account.id}",
        )
        report.sources_total = len(sources)
        if not sources:
            logger.info("Account has no active sources")
            report.error = "no active sources"
            return

        day_start = start_of_local_day()
        candidates: list[VideoRecord] = []
        titles: dict[str, str] = {}
        last_error: str | None = None
        delay = self._config.inter_request_delay_seconds

        for index, source in enumerate(sources):
            try:
                feed = await self._adapter.fetch_source_items(
                    source.source_id, credential, source.label
                )
            except Exception as e:
                logger.warning("Source fetch raised", source=source.label, error=str(e))
                report.sources_failed += 1
                last_error = str(e) or type(e).__name__
                self._metrics.record_source_fetch(self._platform, "failed")
            else:
                if feed.ok:
                    report.sources_ok += 1
                    self._metrics.record_source_fetch(self._platform, "ok")
                else:
                    report.sources_degraded += 1
                    self._metrics.record_source_fetch(
                        self._platform, "throttled" if feed.throttled else "degraded"
                    )

                collected = self._collect_todays(account, source, feed.items, day_start)
                for record in collected:
                    candidates.append(record)
                    # First occurrence wins, matching the reconciler's dedup
                    titles.setdefault(record.key, f"{source.label}: {record.title}")

                if collected:
                    logger.debug(
                        "Collected today's videos", source=source.label, count=len(collected)
                    )

            if index < len(sources) - 1:
                await self._sleep(delay)

        if report.sources_failed == len(sources):
            report.error = f"all {len(sources)} sources failed: {last_error}"

        if not candidates:
            return

        result = await self._reconciler.reconcile(account.id, candidates)
        if not result.ok:
            report.error = result.error
            return

        report.new_item_count = result.inserted_count
        self._metrics.record_videos_inserted(self._platform, result.inserted_count)

        if result.inserted_count > 0:
            await self._emitter.emit(account.id, result.new_records, titles)

    def _collect_todays(
        self,
        account: Account,
        source: Source,
        items: list[RemoteItem],
        day_start: int,
    ) -> list[VideoRecord]:
        """Normalize the items published since ``day_start``, skipping unusable ones."""
        records: list[VideoRecord] = []
        for item in items:
            try:
                if item.published_at < day_start:
                    continue
                records.append(
                    VideoRecord.from_remote(
                        item,
                        account_id=account.id,
                        source_id=source.source_id,
                        platform=self._platform,
                    )
                )
            except (TypeError, ValueError, OverflowError, OSError) as e:
                logger.warning(
                    "Skipping malformed item", source=source.label, key=item.key, error=str(e)
                )
        return records
