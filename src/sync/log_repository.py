"""Database repository for the sync_log table.

One row per account per run. Writes here are bookkeeping only: every
method logs and swallows backend errors instead of raising.
"""

import logging

from src.storage.database import Database
from src.sync.schemas import AccountReport, SyncStatus, SyncTrigger

logger = logging.getLogger(__name__)

_CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS sync_log (
    id              BIGSERIAL PRIMARY KEY,
    account_id      TEXT NOT NULL REFERENCES accounts(id) ON DELETE CASCADE,
    sync_type       TEXT NOT NULL,
    status          TEXT NOT NULL,
    videos_added    INTEGER NOT NULL DEFAULT 0,
    sources_synced  INTEGER NOT NULL DEFAULT 0,
    error_message   TEXT,
    started_at      TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    finished_at     TIMESTAMPTZ
);

CREATE INDEX IF NOT EXISTS idx_sync_log_account_started
    ON sync_log(account_id, started_at DESC);
"""


class SyncLogRepository:
    """Best-effort run bookkeeping."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def create_table(self) -> None:
        """Create the sync_log table (idempotent)."""
        await self._db.execute(_CREATE_TABLE_SQL)
        logger.info("Sync log table ensured")

    async def start(self, account_id: str, trigger: SyncTrigger | str) -> int | None:
        """Open a running entry. Returns its id, or None if the write failed."""
        sync_type = trigger.value if isinstance(trigger, SyncTrigger) else trigger
        try:
            return await self._db.fetchval(
                """
                INSERT INTO sync_log (account_id, sync_type, status)
                VALUES ($1, $2, $3)
                RETURNING id
                """,
                account_id, sync_type, SyncStatus.RUNNING.value,
            )
        except Exception as e:
            logger.warning("Could not open sync log for account %s: %s", account_id, e)
            return None

    async def finish(self, log_id: int | None, report: AccountReport) -> None:
        """Close an entry with the account's final status."""
        if log_id is None:
            return
        try:
            await self._db.execute(
                """
                UPDATE sync_log SET
                    status = $2,
                    videos_added = $3,
                    sources_synced = $4,
                    error_message = $5,
                    finished_at = NOW()
                WHERE id = $1
                """,
                log_id,
                report.status.value,
                report.new_item_count,
                report.sources_ok + report.sources_degraded,
                report.error,
            )
        except Exception as e:
            logger.warning("Could not close sync log %s: %s", log_id, e)
