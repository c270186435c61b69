"""Configuration for the upstream creator feed."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.ingestion.retry import BackoffPolicy

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class FeedConfig(BaseSettings):
    """Endpoint, headers and retry settings for the creator feed."""

    model_config = SettingsConfigDict(
        env_prefix="FEED_",
        case_sensitive=False,
        extra="ignore",
    )

    feed_url: str = Field(
        default="https://api.bilibili.com/x/polymer/web-dynamic/v1/feed/space",
        description="Per-creator dynamics feed endpoint",
    )
    user_agent: str = DEFAULT_USER_AGENT
    referer: str = "https://www.bilibili.com"
    origin: str = "https://www.bilibili.com"

    # Provider status codes that mean "slow down" rather than "broken"
    throttle_codes: list[int] = Field(default_factory=lambda: [-799, -352, -412, -503])

    timeout_seconds: float = Field(default=15.0, gt=0.0, le=120.0)
    max_retries: int = Field(default=3, ge=0, le=10)
    base_delay_seconds: float = Field(default=1.0, ge=0.0)
    max_delay_seconds: float = Field(default=10.0, ge=0.0)
    jitter_seconds: float = Field(default=1.0, ge=0.0)

    def backoff_policy(self) -> BackoffPolicy:
        """Build the fetch retry policy from these settings."""
        return BackoffPolicy(
            max_retries=self.max_retries,
            base_delay=self.base_delay_seconds,
            max_delay=self.max_delay_seconds,
            jitter=self.jitter_seconds,
        )
