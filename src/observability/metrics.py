"""
Prometheus metrics for monitoring the sync pipeline.

Defines and exposes metrics for:
- Upstream fetch outcomes and retries
- Videos inserted per platform
- Per-account sync outcomes
- Run duration

Metrics are exposed via HTTP endpoint for Prometheus scraping.
"""

import logging

from prometheus_client import (
    REGISTRY,
    Counter,
    Histogram,
    start_http_server,
)

from src.config.settings import get_settings
from src.ingestion.schemas import Platform

logger = logging.getLogger(__name__)

RUN_DURATION_BUCKETS = (1.0, 5.0, 15.0, 30.0, 60.0, 120.0, 300.0, 600.0, 1800.0)


class MetricsCollector:
    """
    Prometheus metrics collector for the sync pipeline.

    Usage:
        metrics = get_metrics()
        metrics.start_server()

        metrics.record_source_fetch("bilibili", "ok")
        metrics.record_videos_inserted("bilibili", 3)
    """

    def __init__(self):
        """Initialize Prometheus metrics."""

        self.sources_fetched = Counter(
            "creator_sync_sources_fetched_total",
            "Creator feed fetches by outcome",
            ["platform", "outcome"],  # outcome: ok, degraded, throttled, failed
        )

        self.fetch_retries = Counter(
            "creator_sync_fetch_retries_total",
            "Retries issued by the retry helper",
            ["context"],
        )

        self.videos_inserted = Counter(
            "creator_sync_videos_inserted_total",
            "Videos newly persisted",
            ["platform"],
        )

        self.accounts_synced = Counter(
            "creator_sync_accounts_synced_total",
            "Accounts processed by outcome",
            ["status"],  # status: success, partial, failed
        )

        self.notifications_written = Counter(
            "creator_sync_notifications_written_total",
            "Digest notifications written",
            ["status"],  # status: written, dropped
        )

        self.run_duration = Histogram(
            "creator_sync_run_duration_seconds",
            "Wall-clock duration of a full sync run",
            buckets=RUN_DURATION_BUCKETS,
        )

        logger.info("Prometheus metrics initialized")

    def start_server(self, port: int | None = None) -> None:
        """
        Start Prometheus metrics HTTP server.

        Args:
            port: Port to expose metrics on (default from settings)
        """
        settings = get_settings()
        port = port or settings.metrics_port

        start_http_server(port, registry=REGISTRY)
        logger.info(f"Prometheus metrics server started on port {port}")

    # Convenience methods

    def record_source_fetch(self, platform: Platform | str, outcome: str) -> None:
        """Record the outcome of one creator feed fetch."""
        platform_str = platform.value if isinstance(platform, Platform) else platform
        self.sources_fetched.labels(platform=platform_str, outcome=outcome).inc()

    def record_retry(self, context: str) -> None:
        """Record a single retry attempt."""
        # Operation name only, without the per-source suffix
        operation = context.split(":", 1)[0] if context else "unknown"
        self.fetch_retries.labels(context=operation).inc()

    def record_videos_inserted(self, platform: Platform | str, count: int) -> None:
        """Record newly persisted videos."""
        if count <= 0:
            return
        platform_str = platform.value if isinstance(platform, Platform) else platform
        self.videos_inserted.labels(platform=platform_str).inc(count)

    def record_account(self, status: str) -> None:
        """Record the final status of one account's sync."""
        self.accounts_synced.labels(status=status).inc()

    def record_notification(self, written: bool) -> None:
        """Record whether a digest notification made it to storage."""
        self.notifications_written.labels(
            status="written" if written else "dropped"
        ).inc()

    def record_run_duration(self, seconds: float) -> None:
        """Record the duration of a full run."""
        self.run_duration.observe(seconds)


# Global metrics instance
_metrics: MetricsCollector | None = None


def get_metrics() -> MetricsCollector:
    """Get global metrics collector instance."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics
