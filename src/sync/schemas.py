"""Result types for sync runs."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class SyncTrigger(str, Enum):
    """What started a run."""

    CRON = "cron"
    MANUAL = "manual"


class SyncStatus(str, Enum):
    """Final status of one account's sync, as written to the sync log."""

    RUNNING = "running"
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"


class SyncRunError(Exception):
    """A run could not start at all (accounts could not be loaded)."""


@dataclass
class AccountReport:
    """Outcome of syncing one account."""

    account_id: str
    new_item_count: int = 0
    error: str | None = None
    sources_total: int = 0
    sources_ok: int = 0
    sources_degraded: int = 0
    sources_failed: int = 0

    @property
    def status(self) -> SyncStatus:
        """Success without any trouble, partial if trouble still yielded items."""
        troubled = (
            self.error is not None
            or self.sources_failed > 0
            or self.sources_degraded > 0
        )
        if not troubled:
            return SyncStatus.SUCCESS
        if self.new_item_count > 0:
            return SyncStatus.PARTIAL
        return SyncStatus.FAILED

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "account_id": self.account_id,
            "new_item_count": self.new_item_count,
        }
        if self.error is not None:
            result["error"] = self.error
        return result


@dataclass
class RunReport:
    """Aggregate outcome of a run, returned to the invoker."""

    success: bool
    results: list[AccountReport] = field(default_factory=list)
    message: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def total_new_items(self) -> int:
        return sum(r.new_item_count for r in self.results)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "success": self.success,
            "timestamp": self.timestamp.isoformat(),
            "results": [r.to_dict() for r in self.results],
        }
        if self.message is not None:
            result["message"] = self.message
        return result
