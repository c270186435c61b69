"""
Item schemas for the sync pipeline.

RemoteItem is what the feed adapter produces for one creator; it lives only
in memory during a sync pass. VideoRecord is the durable row written to the
``videos`` table. Field names of VideoRecord mirror the table columns, so
keep them in step with ``src.videos.repository``.
"""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field

# 9999-12-31T23:59:59Z; anything later cannot become a datetime
MAX_PUBLISHED_AT = 253_402_300_799


class Platform(str, Enum):
    """Supported upstream platforms."""

    BILIBILI = "bilibili"


class RemoteItem(BaseModel):
    """A video as returned by the upstream feed for one creator."""

    item_id: int = Field(default=0, description="Upstream numeric id (aid)")
    key: str = Field(..., min_length=1, description="Natural dedup key (bvid)")
    title: str = ""
    cover: str = Field(default="", description="Absolute cover image URL")
    description: str = ""
    duration: int = Field(default=0, ge=0, description="Duration in seconds")
    published_at: int = Field(
        ..., ge=0, le=MAX_PUBLISHED_AT, description="Publish time, epoch seconds"
    )

    @property
    def published_datetime(self) -> datetime:
        """Publish time as an aware UTC datetime."""
        return datetime.fromtimestamp(self.published_at, tz=timezone.utc)


class VideoRecord(BaseModel):
    """
    A persisted video row, unique on (account_id, platform, key).

    Engagement counters start at zero and are owned by a different
    subsystem once the row exists; the sync pipeline never updates them.
    """

    account_id: str
    platform: Platform = Platform.BILIBILI
    key: str
    item_id: int = 0
    source_id: int
    title: str = ""
    cover: str = ""
    description: str = ""
    duration: int = 0
    published_at: datetime

    view_count: int = 0
    danmaku_count: int = 0
    reply_count: int = 0
    favorite_count: int = 0
    coin_count: int = 0
    share_count: int = 0
    like_count: int = 0

    @classmethod
    def from_remote(
        cls,
        item: RemoteItem,
        account_id: str,
        source_id: int,
        platform: Platform = Platform.BILIBILI,
    ) -> "VideoRecord":
        """Normalize an upstream item into an insertable record."""
        return cls(
            account_id=account_id,
            platform=platform,
            key=item.key,
            item_id=item.item_id,
            source_id=source_id,
            title=item.title,
            cover=item.cover,
            description=item.description,
            duration=item.duration,
            published_at=item.published_datetime,
        )
