"""Database repository for the notifications table."""

import json
import logging

from src.notifications.schemas import Notification
from src.storage.database import Database

logger = logging.getLogger(__name__)

_CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS notifications (
    id          BIGSERIAL PRIMARY KEY,
    account_id  TEXT NOT NULL REFERENCES accounts(id) ON DELETE CASCADE,
    type        TEXT NOT NULL,
    title       TEXT NOT NULL,
    content     TEXT NOT NULL DEFAULT '',
    data        JSONB NOT NULL DEFAULT '{}',
    is_read     BOOLEAN NOT NULL DEFAULT FALSE,
    created_at  TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS idx_notifications_account_unread
    ON notifications(account_id, created_at DESC) WHERE is_read = FALSE;
"""


class NotificationRepository:
    """Insert-only access to the notifications table."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def create_table(self) -> None:
        """Create the notifications table (idempotent)."""
        await self._db.execute(_CREATE_TABLE_SQL)
        logger.info("Notifications table ensured")

    async def create(self, notification: Notification) -> int:
        """Insert a notification and return its id."""
        return await self._db.fetchval(
            """
            INSERT INTO notifications (account_id, type, title, content, data, is_read)
            VALUES ($1, $2, $3, $4, $5::jsonb, $6)
            RETURNING id
            """,
            notification.account_id,
            notification.type,
            notification.title,
            notification.content,
            json.dumps(notification.data, ensure_ascii=False),
            notification.is_read,
        )
