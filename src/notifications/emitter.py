"""Digest notifications for newly synced videos.

Notifications are advisory: a failed write is logged and dropped, it never
fails the account's sync.
"""

import logging
from collections.abc import Mapping

from src.ingestion.retry import FixedDelayPolicy, retry_with_policy
from src.ingestion.schemas import VideoRecord
from src.notifications.repository import NotificationRepository
from src.notifications.schemas import SYNC_RESULT_TYPE, Notification
from src.observability.metrics import get_metrics
from src.storage.database import is_transient_db_error

logger = logging.getLogger(__name__)

PREVIEW_TITLES = 5
PAYLOAD_LIMIT = 10


def build_summary(
    titles: list[str], preview_limit: int = PREVIEW_TITLES
) -> str:
    """Join the first titles, with an elision marker for the rest."""
    body = "\n".join(titles[:preview_limit])
    remaining = len(titles) - preview_limit
    if remaining > 0:
        body += f"\n…and {remaining} more"
    return body


def build_payload(
    records: list[VideoRecord], limit: int = PAYLOAD_LIMIT
) -> list[dict[str, str]]:
    """Preview entries for the newest ``limit`` records."""
    newest = sorted(records, key=lambda r: r.published_at, reverse=True)[:limit]
    return [
        {
            "key": r.key,
            "title": r.title,
            "cover": r.cover,
            "published_at": r.published_at.isoformat(),
        }
        for r in newest
    ]


def build_notification(
    account_id: str,
    records: list[VideoRecord],
    titles: list[str],
    preview_limit: int = PREVIEW_TITLES,
    payload_limit: int = PAYLOAD_LIMIT,
) -> Notification:
    """Assemble the digest for one account's new videos."""
    count = len(records)
    return Notification(
        account_id=account_id,
        type=SYNC_RESULT_TYPE,
        title=f"Sync complete: {count} new videos",
        content=build_summary(titles, preview_limit),
        data={
            "videos_added": count,
            "new_videos": build_payload(records, payload_limit),
        },
    )


class NotificationEmitter:
    """Writes one digest notification per account and run."""

    def __init__(
        self,
        repository: NotificationRepository,
        policy: FixedDelayPolicy | None = None,
        preview_limit: int = PREVIEW_TITLES,
        payload_limit: int = PAYLOAD_LIMIT,
    ) -> None:
        self._repo = repository
        self._policy = policy or FixedDelayPolicy(max_retries=2, delay=0.5)
        self._preview_limit = preview_limit
        self._payload_limit = payload_limit

    async def emit(
        self,
        account_id: str,
        new_records: list[VideoRecord],
        titles: list[str] | Mapping[str, str],
    ) -> bool:
        """
        Write the digest notification.

        Args:
            account_id: Owning account
            new_records: Records inserted in this pass
            titles: Display titles, either a list or a key -> title map
                (a map is narrowed to ``new_records``)

        Returns:
            True if the notification was stored; never raises
        """
        if not new_records:
            return False

        if isinstance(titles, Mapping):
            title_list = [titles.get(r.key, r.title) for r in new_records]
        else:
            title_list = list(titles)

        notification = build_notification(
            account_id,
            new_records,
            title_list,
            preview_limit=self._preview_limit,
            payload_limit=self._payload_limit,
        )

        try:
            await retry_with_policy(
                lambda: self._repo.create(notification),
                self._policy,
                is_retryable=is_transient_db_error,
                context=f"notification:{account_id}",
            )
        except Exception as e:
            logger.warning("Dropping notification for account %s: %s", account_id, e)
            get_metrics().record_notification(written=False)
            return False

        get_metrics().record_notification(written=True)
        return True
