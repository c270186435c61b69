"""Database repository for the sources table."""

import logging

from src.sources.schemas import Source
from src.storage.database import Database

logger = logging.getLogger(__name__)

_CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS sources (
    id          BIGSERIAL PRIMARY KEY,
    account_id  TEXT NOT NULL REFERENCES accounts(id) ON DELETE CASCADE,
    platform    TEXT NOT NULL DEFAULT 'bilibili',
    source_id   BIGINT NOT NULL,
    name        TEXT NOT NULL DEFAULT '',
    is_active   BOOLEAN NOT NULL DEFAULT TRUE,
    created_at  TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at  TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    UNIQUE (account_id, platform, source_id)
);

CREATE INDEX IF NOT EXISTS idx_sources_account_active
    ON sources(account_id, platform) WHERE is_active = TRUE;
"""

_UPSERT_SQL = """
INSERT INTO sources (account_id, platform, source_id, name, is_active)
VALUES ($1, $2, $3, $4, $5)
ON CONFLICT (account_id, platform, source_id) DO UPDATE SET
    name = EXCLUDED.name,
    is_active = EXCLUDED.is_active,
    updated_at = NOW()
"""


def _record_to_source(record) -> Source:
    """Convert an asyncpg Record to a Source dataclass."""
    return Source(
        id=record["id"],
        account_id=str(record["account_id"]),
        platform=record["platform"],
        source_id=int(record["source_id"]),
        name=record["name"],
        is_active=record["is_active"],
    )


class SourcesRepository:
    """Access to tracked creators."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def create_table(self) -> None:
        """Create the sources table and indexes (idempotent)."""
        await self._db.execute(_CREATE_TABLE_SQL)
        logger.info("Sources table ensured")

    async def upsert(self, source: Source) -> None:
        """Insert or update a single source."""
        await self._db.execute(
            _UPSERT_SQL,
            source.account_id,
            source.platform,
            source.source_id,
            source.name,
            source.is_active,
        )

    async def get_active_by_account(
        self, account_id: str, platform: str = "bilibili"
    ) -> list[Source]:
        """Fetch all active sources for one account, in insertion order."""
        rows = await self._db.fetch(
            """
            SELECT id, account_id, platform, source_id, name, is_active
            FROM sources
            WHERE account_id = $1 AND platform = $2 AND is_active = TRUE
            ORDER BY id
            """,
            account_id, platform,
        )
        return [_record_to_source(r) for r in rows]
