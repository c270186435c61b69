"""Sync: the scheduled per-account video synchronization run."""

from src.sync.config import SyncConfig
from src.sync.orchestrator import SyncOrchestrator, start_of_local_day
from src.sync.runtime import SyncContext, build_orchestrator, create_tables, run_scheduled_sync
from src.sync.schemas import AccountReport, RunReport, SyncRunError, SyncStatus, SyncTrigger

__all__ = [
    "AccountReport",
    "RunReport",
    "SyncConfig",
    "SyncContext",
    "SyncOrchestrator",
    "SyncRunError",
    "SyncStatus",
    "SyncTrigger",
    "build_orchestrator",
    "create_tables",
    "run_scheduled_sync",
    "start_of_local_day",
]
