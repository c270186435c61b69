"""
FastAPI application for the sync service.

The app exists so an external scheduler can trigger runs over HTTP; there
are no user-facing routes. Build it with ``create_app()`` (uvicorn is
started with ``factory=True``).
"""

import time
import uuid
from collections.abc import Awaitable, Callable
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.api.dependencies import cleanup_dependencies
from src.api.routes import health, sync
from src.config.settings import get_settings
from src.observability.logging import bound_context

logger = structlog.get_logger(__name__)

API_VERSION = "0.1.0"
REQUEST_ID_HEADER = "X-Request-ID"


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Sync API started", version=API_VERSION)
    try:
        yield
    finally:
        await cleanup_dependencies()
        logger.info("Sync API stopped")


async def log_requests(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    """Tag every log line of a request with its id and log one access line."""
    request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
    started = time.perf_counter()

    with bound_context(request_id=request_id):
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        logger.info(
            "Request handled",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )
    return response


async def unhandled_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled exception", path=request.url.path, error=str(exc), exc_info=exc
    )
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": "Internal server error"},
    )


def create_app() -> FastAPI:
    """Create the FastAPI application with middleware and routers attached."""
    settings = get_settings()

    app = FastAPI(
        title="Creator Sync API",
        description=(
            "Trigger surface for the scheduled creator video sync. "
            "`/api/cron-sync` expects `Authorization: Bearer <CRON_SECRET>` "
            "whenever `CRON_SECRET` is set."
        ),
        version=API_VERSION,
        lifespan=lifespan,
        openapi_tags=[
            {"name": "health", "description": "Liveness and dependency checks"},
            {"name": "sync", "description": "Scheduled creator video sync"},
        ],
    )

    origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
    if origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_methods=["GET", "POST"],
            allow_headers=["Authorization", "Content-Type", REQUEST_ID_HEADER],
        )

    app.middleware("http")(log_requests)
    app.add_exception_handler(Exception, unhandled_error)

    app.include_router(health.router, tags=["health"])
    app.include_router(sync.router, tags=["sync"])

    @app.get("/", include_in_schema=False)
    async def root() -> dict[str, str]:
        return {"service": "Creator Sync API", "version": API_VERSION}

    return app
