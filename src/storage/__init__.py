"""Storage layer: asyncpg connection management."""

from src.storage.database import Database, is_transient_db_error

__all__ = ["Database", "is_transient_db_error"]
