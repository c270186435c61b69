"""Data models for the notifications module."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

SYNC_RESULT_TYPE = "sync_result"


@dataclass
class Notification:
    """An inbox entry for one account.

    ``data`` is a structured payload for the inbox UI; for sync digests it
    holds ``videos_added`` and a ``new_videos`` preview list.
    """

    account_id: str
    title: str
    content: str = ""
    type: str = SYNC_RESULT_TYPE
    data: dict[str, Any] = field(default_factory=dict)
    is_read: bool = False
    id: int | None = None
    created_at: datetime | None = None
