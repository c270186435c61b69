"""
Dependency injection for FastAPI endpoints.
"""

from src.config.settings import get_settings
from src.storage.database import Database
from src.sync.runtime import SyncContext

# Global instances (initialized on first request)
_database: Database | None = None
_sync_context: SyncContext | None = None


async def get_database() -> Database:
    """Get the shared database, connecting on first use."""
    global _database

    if _database is None:
        database = Database()
        await database.connect()
        _database = database

    return _database


async def get_sync_context() -> SyncContext:
    """Get the process-wide sync context, built once from settings."""
    global _sync_context

    if _sync_context is None:
        database = await get_database()
        _sync_context = SyncContext.from_settings(database, get_settings())

    return _sync_context


async def cleanup_dependencies() -> None:
    """Cleanup global instances on shutdown."""
    global _database, _sync_context

    if _database is not None:
        await _database.close()
        _database = None

    _sync_context = None
