"""Database repository for the videos table.

The (account_id, platform, key) unique constraint is the source of truth
for deduplication. Inserts use ON CONFLICT DO NOTHING so that a row
written by an overlapping run between our existence check and our insert
is silently skipped instead of failing the batch.
"""

import logging

from src.ingestion.schemas import VideoRecord
from src.storage.database import Database

logger = logging.getLogger(__name__)

_CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS videos (
    id              BIGSERIAL PRIMARY KEY,
    account_id      TEXT NOT NULL REFERENCES accounts(id) ON DELETE CASCADE,
    platform        TEXT NOT NULL DEFAULT 'bilibili',
    key             TEXT NOT NULL,
    item_id         BIGINT NOT NULL DEFAULT 0,
    source_id       BIGINT NOT NULL,
    title           TEXT NOT NULL DEFAULT '',
    cover           TEXT NOT NULL DEFAULT '',
    description     TEXT NOT NULL DEFAULT '',
    duration        INTEGER NOT NULL DEFAULT 0,
    view_count      INTEGER NOT NULL DEFAULT 0,
    danmaku_count   INTEGER NOT NULL DEFAULT 0,
    reply_count     INTEGER NOT NULL DEFAULT 0,
    favorite_count  INTEGER NOT NULL DEFAULT 0,
    coin_count      INTEGER NOT NULL DEFAULT 0,
    share_count     INTEGER NOT NULL DEFAULT 0,
    like_count      INTEGER NOT NULL DEFAULT 0,
    published_at    TIMESTAMPTZ NOT NULL,
    created_at      TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    CONSTRAINT uq_videos_account_platform_key UNIQUE (account_id, platform, key)
);

CREATE INDEX IF NOT EXISTS idx_videos_account_published
    ON videos(account_id, published_at DESC);
"""

_EXISTING_KEYS_SQL = """
SELECT key FROM videos
WHERE account_id = $1 AND platform = $2 AND key = ANY($3::text[])
"""

_BULK_INSERT_SQL = """
INSERT INTO videos (
    account_id, platform, key, item_id, source_id, title, cover, description,
    duration, view_count, danmaku_count, reply_count, favorite_count,
    coin_count, share_count, like_count, published_at
)
SELECT * FROM unnest(
    $1::text[], $2::text[], $3::text[], $4::bigint[], $5::bigint[],
    $6::text[], $7::text[], $8::text[], $9::integer[], $10::integer[],
    $11::integer[], $12::integer[], $13::integer[], $14::integer[],
    $15::integer[], $16::integer[], $17::timestamptz[]
)
ON CONFLICT (account_id, platform, key) DO NOTHING
RETURNING key
"""


class VideoRepository:
    """Existence checks and idempotent bulk inserts for videos."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def create_table(self) -> None:
        """Create the videos table and indexes (idempotent)."""
        await self._db.execute(_CREATE_TABLE_SQL)
        logger.info("Videos table ensured")

    async def existing_keys(
        self, account_id: str, platform: str, keys: list[str]
    ) -> set[str]:
        """Return which of ``keys`` are already stored for the account.

        The lookup is bounded by the candidate key set, not the table size.
        """
        if not keys:
            return set()
        rows = await self._db.fetch(_EXISTING_KEYS_SQL, account_id, platform, keys)
        return {r["key"] for r in rows}

    async def bulk_insert(self, records: list[VideoRecord]) -> set[str]:
        """Insert records in one statement, skipping keys that already exist.

        Returns the keys of the rows actually inserted.
        """
        if not records:
            return set()

        rows = await self._db.fetch(
            _BULK_INSERT_SQL,
            [r.account_id for r in records],
            [r.platform.value for r in records],
            [r.key for r in records],
            [r.item_id for r in records],
            [r.source_id for r in records],
            [r.title for r in records],
            [r.cover for r in records],
            [r.description for r in records],
            [r.duration for r in records],
            [r.view_count for r in records],
            [r.danmaku_count for r in records],
            [r.reply_count for r in records],
            [r.favorite_count for r in records],
            [r.coin_count for r in records],
            [r.share_count for r in records],
            [r.like_count for r in records],
            [r.published_at for r in records],
        )
        inserted = {r["key"] for r in rows}
        if len(inserted) < len(records):
            logger.info(
                "Skipped %d conflicting videos for account %s",
                len(records) - len(inserted), records[0].account_id,
            )
        return inserted
