"""Request and response schemas for the mediagrab API."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


# ------------------------------------------------------------------
# Job creation
# ------------------------------------------------------------------


class CreateJobRequest(BaseModel):
    url: Any = Field(None, description="Source video URL")
    formats: Any = Field(
        None,
        description="Requested artifacts: any of video, audio, silent_video (default: all)",
    )


class JobCreateResponse(BaseModel):
    job_id: str
    status: str
    message: str = "Download job created successfully"
    formats: list[str]
    estimated_time: str = "60-180 seconds"
    proxy_protection: bool = False


# ------------------------------------------------------------------
# Job status
# ------------------------------------------------------------------


class JobStatusResponse(BaseModel):
    job_id: str
    status: str
    progress: int = 0
    formats: list[str] = Field(default_factory=list)
    created_at: datetime
    started_at: datetime | None = None
    completed_at: datetime | None = None
    message: str | None = None
    files: dict[str, str] | None = None
    download_count: int | None = None
    format_errors: dict[str, str] | None = None
    error: str | None = None
    error_type: str | None = None
    suggestion: str | None = None


# ------------------------------------------------------------------
# Job listing
# ------------------------------------------------------------------


class JobListItem(BaseModel):
    id: str
    status: str
    progress: int
    created_at: datetime
    completed_at: datetime | None = None
    error_type: str | None = None
    formats: list[str]
    file_count: int
    url_preview: str


class JobStatistics(BaseModel):
    total: int
    active: int
    queued: int
    processing: int
    completed: int
    failed: int
    by_error_type: dict[str, int] = Field(default_factory=dict)
    bot_detection_failures: int = 0
    success_rate: int = 0


class Pagination(BaseModel):
    limit: int
    offset: int
    total: int
    has_more: bool


class JobListResponse(BaseModel):
    jobs: list[JobListItem]
    statistics: JobStatistics
    pagination: Pagination


# ------------------------------------------------------------------
# Health
# ------------------------------------------------------------------


class HealthResponse(BaseModel):
    status: str
    service: str
    version: str
    active_jobs: int
    total_jobs: int
    completed_jobs: int
    failed_jobs: int
    success_rate: str
    by_error_type: dict[str, int] = Field(default_factory=dict)
    bot_detection_count: int = 0
    bot_detection_rate: str
    proxy_enabled: bool
    proxy_count: int
    max_concurrent: int
    uptime_s: float
    timestamp: datetime
