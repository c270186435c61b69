"""Configuration for the sync orchestrator."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.ingestion.retry import FixedDelayPolicy


class SyncConfig(BaseSettings):
    """Pacing, backend retry and notification settings for a sync run."""

    model_config = SettingsConfigDict(
        env_prefix="SYNC_",
        case_sensitive=False,
        extra="ignore",
    )

    # Pause between consecutive creators of one account
    inter_request_delay_ms: int = Field(default=300, ge=300, le=500)

    store_max_retries: int = Field(default=2, ge=0, le=10)
    store_retry_delay_seconds: float = Field(default=1.0, ge=0.0)

    notification_max_retries: int = Field(default=2, ge=0, le=10)
    notification_retry_delay_seconds: float = Field(default=0.5, ge=0.0)
    notification_preview_titles: int = Field(default=5, ge=1)
    notification_payload_limit: int = Field(default=10, ge=1)

    platform: str = "bilibili"
    sync_log_enabled: bool = True

    @property
    def inter_request_delay_seconds(self) -> float:
        return self.inter_request_delay_ms / 1000.0

    def store_policy(self) -> FixedDelayPolicy:
        """Retry policy for backend queries and writes."""
        return FixedDelayPolicy(
            max_retries=self.store_max_retries,
            delay=self.store_retry_delay_seconds,
        )

    def notification_policy(self) -> FixedDelayPolicy:
        """Retry policy for notification inserts."""
        return FixedDelayPolicy(
            max_retries=self.notification_max_retries,
            delay=self.notification_retry_delay_seconds,
        )
