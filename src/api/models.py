"""
Request and response models for the sync API.
"""

import datetime as dt

from pydantic import BaseModel, Field


class AccountResult(BaseModel):
    """Per-account outcome of a sync run."""

    account_id: str = Field(..., description="Account identifier")
    new_item_count: int = Field(
        default=0,
        ge=0,
        description="Videos inserted for this account in this run",
    )
    error: str | None = Field(
        default=None,
        description="Why the account could not be fully synced, if it could not",
    )


class CronSyncResponse(BaseModel):
    """Response model for a completed sync run."""

    success: bool = Field(..., description="Whether the run completed")
    timestamp: dt.datetime = Field(..., description="When the run finished (UTC)")
    message: str | None = Field(
        default=None,
        description="Informational message, e.g. when there was nothing to sync",
    )
    results: list[AccountResult] = Field(
        default_factory=list,
        description="One entry per account",
    )


class CronSyncError(BaseModel):
    """Response model for a run that could not start."""

    success: bool = Field(default=False)
    error: str = Field(..., description="Fatal error message")


class ComponentHealth(BaseModel):
    """Health of a single infrastructure component."""

    status: str = Field(..., description="healthy or unhealthy")
    latency_ms: float | None = Field(
        default=None,
        description="Check latency in milliseconds",
    )
    details: dict | None = Field(
        default=None,
        description="Additional details (e.g. error message)",
    )


class HealthResponse(BaseModel):
    """Response model for health check."""

    status: str = Field(
        ...,
        description="Overall service status: healthy or unhealthy",
    )
    components: dict[str, ComponentHealth] = Field(
        default_factory=dict,
        description="Per-component health",
    )
    version: str = Field(default="0.1.0")


class ErrorResponse(BaseModel):
    """Response model for errors."""

    detail: str = Field(
        ...,
        description="Error message",
    )
