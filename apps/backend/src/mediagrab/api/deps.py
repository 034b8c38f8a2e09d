"""FastAPI dependencies."""

from __future__ import annotations

from fastapi import Request

from mediagrab.config import Settings, settings
from mediagrab.jobs.manager import JobManager

_job_manager: JobManager | None = None
_settings: Settings = settings


def init_job_manager(app_settings: Settings, manager: JobManager | None = None) -> JobManager:
    """Initialize the global JobManager (called at app startup)."""
    global _job_manager, _settings
    _settings = app_settings
    _job_manager = manager or JobManager(app_settings)
    return _job_manager


def get_job_manager() -> JobManager:
    """Dependency that provides the JobManager instance."""
    if _job_manager is None:
        raise RuntimeError("JobManager not initialized; call init_job_manager() first")
    return _job_manager


def get_settings() -> Settings:
    """Dependency that provides the active settings."""
    return _settings


def client_key(request: Request) -> str:
    """Network identity of the caller, used as the admission rate-limit key."""
    if _settings.trust_proxy_headers:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            return forwarded.split(",")[0].strip()
    if request.client is not None:
        return request.client.host
    return "unknown"
