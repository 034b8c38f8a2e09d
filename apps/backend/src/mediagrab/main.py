"""Main entry point for the mediagrab service."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from mediagrab import __version__
from mediagrab.api.deps import client_key, init_job_manager
from mediagrab.api.routes import files, health, jobs
from mediagrab.config import Settings, settings
from mediagrab.errors import JobRejectedError
from mediagrab.jobs.manager import JobManager
from mediagrab.services.retention import FileRetentionManager

logger = logging.getLogger(__name__)


def create_app(
    app_settings: Settings | None = None,
    job_manager: JobManager | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    app_settings = app_settings or settings

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Initialize resources on startup, clean up on shutdown."""
        app_settings.ensure_directories()
        manager = init_job_manager(app_settings, job_manager)
        retention = FileRetentionManager(app_settings.output_dir, app_settings.file_retention_s)
        retention.sweep()

        logger.info(
            "mediagrab %s started: output=%s, max_concurrent=%d, proxies=%d",
            __version__,
            app_settings.output_dir,
            app_settings.max_concurrent_jobs,
            len(manager.rotator),
        )
        if not len(manager.rotator):
            logger.warning("No proxies configured; extraction runs from the host address")

        housekeeping = asyncio.create_task(
            retention.run_periodic(app_settings.cleanup_interval_s, on_sweep=manager.prune_records)
        )
        yield

        housekeeping.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await housekeeping
        await manager.shutdown()

    app = FastAPI(
        title="mediagrab",
        description="Background media acquisition service",
        version=__version__,
        lifespan=lifespan,
    )

    @app.exception_handler(JobRejectedError)
    async def job_rejected_handler(request: Request, exc: JobRejectedError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    # Blanket per-client limit on the API; file downloads and health are not counted.
    limiter = Limiter(
        key_func=client_key,
        default_limits=[app_settings.api_rate_limit],
        enabled=app_settings.api_rate_limit_enabled,
    )
    limiter.exempt(health.health_check)
    limiter.exempt(files.download_file)
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, api_rate_limited_handler)
    app.add_middleware(SlowAPIMiddleware)

    # Added last so that it also wraps rate-limit rejections
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include API routes
    app.include_router(health.router)
    app.include_router(jobs.router)
    app.include_router(files.router)

    return app


def api_rate_limited_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Render a blanket API limit rejection like the job admission rejections."""
    logger.warning("API rate limit hit by %s: %s", client_key(request), exc.detail)
    return JSONResponse(
        status_code=429,
        content={
            "error": "too many requests",
            "error_type": "rate_limited",
            "limit": exc.detail,
        },
    )


app = create_app()


def main() -> None:
    """Run the application."""
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    settings.ensure_directories()
    uvicorn.run(
        "mediagrab.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    main()
