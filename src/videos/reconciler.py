"""Dedup and persistence for one account's candidate batch.

Flow:
1. Collapse duplicate keys inside the batch (first occurrence wins)
2. Look up which candidate keys are already stored (bounded by the batch)
3. Insert the remainder with one ON CONFLICT DO NOTHING statement

Both backend calls retry transient errors with a fixed pause. The
existence check is only an optimization for the common path; the unique
constraint decides what actually gets written.
"""

import logging
from dataclasses import dataclass, field

from src.ingestion.retry import FixedDelayPolicy, retry_with_policy
from src.ingestion.schemas import Platform, VideoRecord
from src.storage.database import is_transient_db_error
from src.videos.repository import VideoRepository

logger = logging.getLogger(__name__)


@dataclass
class ReconcileResult:
    """Outcome of reconciling one candidate batch."""

    inserted_count: int = 0
    new_records: list[VideoRecord] = field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def dedupe_by_key(records: list[VideoRecord]) -> list[VideoRecord]:
    """Drop repeated keys, keeping the first occurrence."""
    seen: set[str] = set()
    unique: list[VideoRecord] = []
    for record in records:
        if record.key in seen:
            continue
        seen.add(record.key)
        unique.append(record)
    return unique


class VideoReconciler:
    """Computes the new subset of a batch and persists it at most once per key."""

    def __init__(
        self,
        repository: VideoRepository,
        policy: FixedDelayPolicy | None = None,
        platform: Platform = Platform.BILIBILI,
    ) -> None:
        self._repo = repository
        self._policy = policy or FixedDelayPolicy(max_retries=2, delay=1.0)
        self._platform = platform

    async def reconcile(
        self, account_id: str, candidates: list[VideoRecord]
    ) -> ReconcileResult:
        """
        Persist the candidates that are not stored yet.

        Args:
            account_id: Owning account
            candidates: Normalized records assembled during this pass

        Returns:
            ReconcileResult; never raises. On backend failure the result
            carries the error and an inserted count of zero.
        """
        batch = dedupe_by_key(candidates)
        if not batch:
            return ReconcileResult()

        keys = [r.key for r in batch]

        try:
            existing = await retry_with_policy(
                lambda: self._repo.existing_keys(account_id, self._platform.value, keys),
                self._policy,
                is_retryable=is_transient_db_error,
                context=f"existing_keys:{account_id}",
            )
        except Exception as e:
            logger.error("Existence check failed for account %s: %s", account_id, e)
            return ReconcileResult(error=f"existence check failed: {e}")

        new_records = [r for r in batch if r.key not in existing]
        if not new_records:
            logger.debug(
                "All %d candidates already stored for account %s", len(batch), account_id
            )
            return ReconcileResult()

        try:
            inserted_keys = await retry_with_policy(
                lambda: self._repo.bulk_insert(new_records),
                self._policy,
                is_retryable=is_transient_db_error,
                context=f"bulk_insert:{account_id}",
            )
        except Exception as e:
            logger.error(
                "Insert of %d videos failed for account %s: %s",
                len(new_records), account_id, e,
            )
            return ReconcileResult(error=f"insert failed: {e}")

        inserted = [r for r in new_records if r.key in inserted_keys]
        logger.info(
            "Account %s: %d candidates, %d already stored, %d inserted",
            account_id, len(batch), len(existing), len(inserted),
        )
        return ReconcileResult(inserted_count=len(inserted), new_records=inserted)
