"""Database repository for the accounts table."""

import logging

from src.accounts.schemas import Account
from src.storage.database import Database

logger = logging.getLogger(__name__)

_CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS accounts (
    id          TEXT PRIMARY KEY,
    credential  TEXT,
    created_at  TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at  TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
"""


def _record_to_account(record) -> Account:
    """Convert an asyncpg Record to an Account dataclass."""
    return Account(id=str(record["id"]), credential=record["credential"])


class AccountRepository:
    """Read access to accounts for the sync pipeline."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def create_table(self) -> None:
        """Create the accounts table (idempotent)."""
        await self._db.execute(_CREATE_TABLE_SQL)
        logger.info("Accounts table ensured")

    async def list_with_credential(self) -> list[Account]:
        """Fetch every account whose credential is set."""
        rows = await self._db.fetch(
            "SELECT id, credential FROM accounts WHERE credential IS NOT NULL ORDER BY id"
        )
        return [_record_to_account(r) for r in rows]

    async def upsert(self, account: Account) -> None:
        """Insert an account or replace its credential."""
        await self._db.execute(
            """
            INSERT INTO accounts (id, credential)
            VALUES ($1, $2)
            ON CONFLICT (id) DO UPDATE SET
                credential = EXCLUDED.credential,
                updated_at = NOW()
            """,
            account.id,
            account.credential,
        )
