"""Health check endpoint."""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from mediagrab.api.deps import get_job_manager
from mediagrab.api.schemas import HealthResponse
from mediagrab.jobs.manager import JobManager
from mediagrab.jobs.models import ErrorType, JobStatus

router = APIRouter()


def _rate(count: int, total: int) -> str:
    return f"{round(count / total * 100)}%" if total else "N/A"


@router.get("/health", response_model=HealthResponse)
async def health_check(mgr: JobManager = Depends(get_job_manager)) -> HealthResponse:
    """Return the health status and aggregate job counters."""
    from mediagrab import __version__

    stats = mgr.stats()
    total = stats["total"]
    completed = stats["by_status"][JobStatus.COMPLETED.value]
    bot = stats["by_error_type"].get(ErrorType.BOT_DETECTION.value, 0)

    return HealthResponse(
        status="healthy",
        service="mediagrab",
        version=__version__,
        active_jobs=stats["active"],
        total_jobs=total,
        completed_jobs=completed,
        failed_jobs=stats["by_status"][JobStatus.FAILED.value],
        success_rate=_rate(completed, total),
        by_error_type=stats["by_error_type"],
        bot_detection_count=bot,
        bot_detection_rate=_rate(bot, total),
        proxy_enabled=stats["proxy_count"] > 0,
        proxy_count=stats["proxy_count"],
        max_concurrent=stats["max_concurrent"],
        uptime_s=stats["uptime_s"],
        timestamp=datetime.now(timezone.utc),
    )
