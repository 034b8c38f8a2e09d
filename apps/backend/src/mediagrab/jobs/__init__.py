"""Job management for mediagrab."""

from mediagrab.jobs.admission import AdmissionController
from mediagrab.jobs.models import ErrorType, Job, JobStatus, MediaFormat
from mediagrab.jobs.proxy import ProxyEntry, ProxyRotator
from mediagrab.jobs.rate_limit import RateLimiter
from mediagrab.jobs.registry import JobRegistry

__all__ = [
    "AdmissionController",
    "ErrorType",
    "Job",
    "JobRegistry",
    "JobStatus",
    "MediaFormat",
    "ProxyEntry",
    "ProxyRotator",
    "RateLimiter",
]
