"""Job management endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from mediagrab.api.deps import client_key, get_job_manager
from mediagrab.api.schemas import (
    CreateJobRequest,
    JobCreateResponse,
    JobListItem,
    JobListResponse,
    JobStatistics,
    JobStatusResponse,
    Pagination,
)
from mediagrab.jobs.manager import JobManager
from mediagrab.jobs.models import ErrorType, Job, JobStatus
from mediagrab.services.classify import suggestion_for

router = APIRouter(prefix="/api/v1/jobs", tags=["jobs"])

FILES_PREFIX = "/files"


def file_refs(job: Job) -> dict[str, str]:
    return {fmt.value: f"{FILES_PREFIX}/{path.name}" for fmt, path in job.files.items()}


def to_status_response(job: Job) -> JobStatusResponse:
    """Project a job record for status readers. Never mutates the job."""
    resp = JobStatusResponse(
        job_id=job.id,
        status=job.status.value,
        progress=job.progress,
        formats=[f.value for f in job.formats],
        created_at=job.created_at,
        started_at=job.started_at,
    )
    if job.status is JobStatus.PROCESSING:
        resp.message = "Download in progress..."
        if job.files:
            resp.files = file_refs(job)
    elif job.status is JobStatus.COMPLETED:
        resp.files = file_refs(job)
        resp.download_count = len(job.files)
        resp.completed_at = job.completed_at
        if job.format_errors:
            resp.format_errors = {f.value: msg for f, msg in job.format_errors.items()}
    elif job.status is JobStatus.FAILED:
        resp.completed_at = job.completed_at
        resp.error = job.error
        resp.error_type = job.error_type.value if job.error_type else None
        resp.suggestion = suggestion_for(job.error_type)
    return resp


# ------------------------------------------------------------------
# POST: create jobs (202 Accepted)
# ------------------------------------------------------------------


@router.post("", response_model=JobCreateResponse, status_code=202)
async def create_job(
    req: CreateJobRequest,
    request: Request,
    mgr: JobManager = Depends(get_job_manager),
) -> JobCreateResponse:
    # JobRejectedError is rendered by the app-level exception handler
    job = mgr.create_job(req.url, req.formats, requester=client_key(request))
    return JobCreateResponse(
        job_id=job.id,
        status=job.status.value,
        formats=[f.value for f in job.formats],
        proxy_protection=len(mgr.rotator) > 0,
    )


# ------------------------------------------------------------------
# GET: query jobs
# ------------------------------------------------------------------


@router.get("", response_model=JobListResponse)
async def list_jobs(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    mgr: JobManager = Depends(get_job_manager),
) -> JobListResponse:
    stats = mgr.stats()
    by_status = stats["by_status"]
    by_error_type = stats["by_error_type"]
    items = [
        JobListItem(
            id=j.id,
            status=j.status.value,
            progress=j.progress,
            created_at=j.created_at,
            completed_at=j.completed_at,
            error_type=j.error_type.value if j.error_type else None,
            formats=[f.value for f in j.formats],
            file_count=len(j.files),
            url_preview=j.url[:50] + ("..." if len(j.url) > 50 else ""),
        )
        for j in mgr.list_jobs(limit=limit, offset=offset)
    ]
    return JobListResponse(
        jobs=items,
        statistics=JobStatistics(
            total=stats["total"],
            active=stats["active"],
            queued=by_status[JobStatus.QUEUED.value],
            processing=by_status[JobStatus.PROCESSING.value],
            completed=by_status[JobStatus.COMPLETED.value],
            failed=by_status[JobStatus.FAILED.value],
            by_error_type=by_error_type,
            bot_detection_failures=by_error_type.get(ErrorType.BOT_DETECTION.value, 0),
            success_rate=stats["success_rate"],
        ),
        pagination=Pagination(
            limit=limit,
            offset=offset,
            total=stats["total"],
            has_more=offset + limit < stats["total"],
        ),
    )


@router.get("/{job_id}", response_model=JobStatusResponse, response_model_exclude_none=True)
async def get_job(
    job_id: str,
    mgr: JobManager = Depends(get_job_manager),
) -> JobStatusResponse:
    job = mgr.get_job(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail={"error": "Job not found", "job_id": job_id})
    return to_status_response(job)
