"""
Bilibili creator feed adapter.

Fetches one creator's recent dynamics through the resilient HTTP client and
maps video-type entries into RemoteItem instances.

The adapter never raises. Every failure mode resolves to a degraded
FeedResult carrying a reason, because one bad creator must not stop the
batch. Throttle codes are reported separately from other provider errors
so that callers can tell "slow down" apart from "broken".
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from src.ingestion.config import FeedConfig
from src.ingestion.http_client import FetchError, HTTPClient
from src.ingestion.schemas import RemoteItem

logger = logging.getLogger(__name__)

VIDEO_ITEM_TYPE = "DYNAMIC_TYPE_AV"


@dataclass
class FeedResult:
    """
    Outcome of one creator fetch.

    ``ok`` results carry items (possibly none). Degraded results carry no
    items and a human-readable ``reason``; ``throttled`` marks the
    provider's rate-limit and anti-bot codes.
    """

    items: list[RemoteItem] = field(default_factory=list)
    reason: str | None = None
    throttled: bool = False

    @property
    def ok(self) -> bool:
        return self.reason is None

    @classmethod
    def success(cls, items: list[RemoteItem]) -> "FeedResult":
        return cls(items=items)

    @classmethod
    def degraded(cls, reason: str, throttled: bool = False) -> "FeedResult":
        return cls(items=[], reason=reason, throttled=throttled)


def parse_duration_text(value: str | int | float | None) -> int:
    """
    Parse a human duration into seconds.

    "12:34" -> 754, "1:02:03" -> 3723. Numbers are truncated to whole
    seconds and clamped at 0. Empty, missing or malformed input yields 0.
    """
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        try:
            return max(0, int(value))
        except (ValueError, OverflowError):
            return 0
    if not value:
        return 0

    try:
        parts = [int(p) for p in value.strip().split(":")]
    except ValueError:
        return 0

    if any(p < 0 for p in parts):
        return 0
    if len(parts) == 2:
        return parts[0] * 60 + parts[1]
    if len(parts) == 3:
        return parts[0] * 3600 + parts[1] * 60 + parts[2]
    return 0


def normalize_cover_url(url: str | None) -> str:
    """Resolve protocol-relative image URLs to https."""
    if not url:
        return ""
    if url.startswith("//"):
        return f"https:{url}"
    return url


def _to_int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


class BilibiliFeedAdapter:
    """
    Adapter for the per-creator dynamics feed.

    Polling: driven by the sync orchestrator, one creator at a time.
    Credential: per-account cookie, falling back to a process-wide default.
    """

    def __init__(
        self,
        client: HTTPClient,
        config: FeedConfig | None = None,
        default_credential: str | None = None,
    ):
        """
        Initialize the adapter.

        Args:
            client: Open HTTPClient (caller manages its lifecycle)
            config: Feed endpoint/header settings. Uses env defaults if None.
            default_credential: Cookie used when an account has none
        """
        self._client = client
        self._config = config or FeedConfig()
        self._default_credential = default_credential or ""
        self._throttle_codes = frozenset(self._config.throttle_codes)

    def _headers(self, credential: str | None) -> dict[str, str]:
        headers = {
            "Accept": "application/json, text/plain, */*",
            "User-Agent": self._config.user_agent,
            "Referer": self._config.referer,
            "Origin": self._config.origin,
        }
        cookie = credential or self._default_credential
        if cookie:
            headers["Cookie"] = cookie
        return headers

    async def fetch_source_items(
        self,
        source_id: int,
        credential: str | None,
        source_name: str = "",
    ) -> FeedResult:
        """
        Fetch the recent videos of one creator.

        Args:
            source_id: Upstream creator id (mid)
            credential: Account cookie; empty falls back to the default
            source_name: Display name for logs

        Returns:
            FeedResult; never raises
        """
        label = source_name or str(source_id)
        context = f"feed:{source_id}"

        try:
            response = await self._client.fetch(
                self._config.feed_url,
                params={"host_mid": source_id},
                headers=self._headers(credential),
                context=context,
            )
        except FetchError as e:
            logger.warning("Fetch for %s failed after retries: %s", label, e)
            return FeedResult.degraded(f"fetch failed: {e}")
        except Exception as e:
            logger.warning("Unexpected error fetching %s: %s", label, e, exc_info=True)
            return FeedResult.degraded(f"unexpected error: {e}")

        if response.status_code >= 400:
            logger.warning("Feed for %s returned HTTP %d", label, response.status_code)
            return FeedResult.degraded(f"http status {response.status_code}")

        try:
            envelope = response.json()
        except ValueError:
            logger.warning("Feed for %s returned a non-JSON body", label)
            return FeedResult.degraded("malformed response")

        if not isinstance(envelope, dict):
            logger.warning("Feed for %s returned an unexpected envelope", label)
            return FeedResult.degraded("malformed response")

        code = _to_int(envelope.get("code"), default=-1)
        message = envelope.get("message") or ""

        if code in self._throttle_codes:
            logger.info("Throttled by provider for %s [%d]: %s", label, code, message)
            return FeedResult.degraded(f"throttled [{code}]: {message}", throttled=True)

        if code != 0:
            logger.warning("Provider error for %s [%d]: %s", label, code, message)
            return FeedResult.degraded(f"provider error [{code}]: {message}")

        data = envelope.get("data")
        raw_items = data.get("items") if isinstance(data, dict) else None
        if raw_items is not None and not isinstance(raw_items, list):
            logger.warning("Feed for %s returned non-list items", label)
            return FeedResult.degraded("malformed response")

        items = self._parse_items(raw_items or [], label)
        logger.debug("Fetched %d videos for %s", len(items), label)
        return FeedResult.success(items)

    def _parse_items(self, raw_items: list[Any], label: str) -> list[RemoteItem]:
        items: list[RemoteItem] = []
        for raw in raw_items:
            if not isinstance(raw, dict) or raw.get("type") != VIDEO_ITEM_TYPE:
                continue
            try:
                item = self._transform(raw)
            except (ValidationError, TypeError, AttributeError) as e:
                logger.warning("Skipping malformed item for %s: %s", label, e)
                continue
            if item is not None:
                items.append(item)
        return items

    def _transform(self, raw: dict[str, Any]) -> RemoteItem | None:
        """
        Map one dynamics entry to a RemoteItem.

        Returns None for entries without an archive payload.
        """
        modules = raw.get("modules") or {}
        major = (modules.get("module_dynamic") or {}).get("major") or {}
        archive = major.get("archive")
        if not archive:
            return None

        pub_ts = (modules.get("module_author") or {}).get("pub_ts")
        published_at = _to_int(pub_ts) or int(time.time())

        return RemoteItem(
            item_id=_to_int(archive.get("aid")),
            key=archive.get("bvid") or "",
            title=archive.get("title") or "",
            cover=normalize_cover_url(archive.get("cover")),
            description=archive.get("desc") or "",
            duration=parse_duration_text(archive.get("duration_text")),
            published_at=published_at,
        )
