"""
Shared-secret authentication for scheduler invocations.

The scheduler sends ``Authorization: Bearer <CRON_SECRET>``. When no secret
is configured every request is accepted (dev mode). The check reads
settings only, so a rejected caller never causes a database connection.
"""

import secrets

from fastapi import Depends, HTTPException, Security, status
from fastapi.security import APIKeyHeader

from src.config.settings import Settings, get_settings

# Read the raw header; the Bearer prefix is checked below
authorization_header = APIKeyHeader(name="Authorization", auto_error=False)


async def verify_cron_secret(
    authorization: str | None = Security(authorization_header),
    settings: Settings = Depends(get_settings),
) -> None:
    """
    Verify the scheduler's shared secret.

    Raises:
        HTTPException: 401 if a secret is configured and the header does
            not carry it
    """
    if not settings.cron_secret_configured:
        return

    expected = f"Bearer {settings.cron_secret}"
    if authorization is None or not secrets.compare_digest(
        authorization.encode(), expected.encode()
    ):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )
