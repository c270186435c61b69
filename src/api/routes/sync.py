"""
Scheduled sync endpoint.

Called by the external scheduler (twice daily). Runs one full sync and
returns the per-account summary.
"""

import structlog
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from src.api.auth import verify_cron_secret
from src.api.dependencies import get_sync_context
from src.api.models import AccountResult, CronSyncError, CronSyncResponse, ErrorResponse
from src.sync.runtime import SyncContext, run_scheduled_sync
from src.sync.schemas import SyncRunError, SyncTrigger

router = APIRouter()
logger = structlog.get_logger(__name__)


@router.api_route(
    "/api/cron-sync",
    methods=["GET", "POST"],
    response_model=CronSyncResponse,
    response_model_exclude_none=True,
    responses={
        401: {"model": ErrorResponse, "description": "Missing or wrong shared secret"},
        500: {"model": CronSyncError, "description": "Run could not start"},
    },
    summary="Run a scheduled sync",
    description="Sync today's videos for every account with a credential.",
    dependencies=[Depends(verify_cron_secret)],
)
async def cron_sync(
    context: SyncContext = Depends(get_sync_context),
) -> CronSyncResponse | JSONResponse:
    """Run one sync and report per-account results."""
    try:
        report = await run_scheduled_sync(context, SyncTrigger.CRON)
    except SyncRunError as e:
        logger.error("Scheduled sync failed", error=str(e))
        return JSONResponse(
            status_code=500,
            content=CronSyncError(error=str(e)).model_dump(),
        )

    return CronSyncResponse(
        success=report.success,
        timestamp=report.timestamp,
        message=report.message,
        results=[
            AccountResult(
                account_id=r.account_id,
                new_item_count=r.new_item_count,
                error=r.error,
            )
            for r in report.results
        ],
    )
