"""In-memory job store."""

from __future__ import annotations

import threading
from collections import Counter
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from mediagrab.jobs.models import Job


class JobRegistry:
    """Authoritative store of job records, keyed by job id.

    Records live for the lifetime of the process unless pruned.
    """

    def __init__(self) -> None:
        self._jobs: dict[str, Job] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._jobs)

    def __contains__(self, job_id: object) -> bool:
        return job_id in self._jobs

    def put(self, job: Job) -> None:
        with self._lock:
            if job.id in self._jobs:
                raise KeyError(f"Job already registered: {job.id}")
            self._jobs[job.id] = job

    def get(self, job_id: str) -> Job | None:
        return self._jobs.get(job_id)

    def update(self, job_id: str, fn: Callable[[Job], None]) -> Job:
        """Apply *fn* to the stored record under the registry lock."""
        with self._lock:
            job = self._jobs[job_id]
            fn(job)
            return job

    def list(self, limit: int | None = None, offset: int = 0) -> list[Job]:
        """List jobs, most recent first."""
        jobs = sorted(self._jobs.values(), key=lambda j: j.created_at, reverse=True)
        if limit is None:
            return jobs[offset:]
        return jobs[offset : offset + limit]

    def count_by_status(self) -> Counter[str]:
        return Counter(j.status.value for j in list(self._jobs.values()))

    def count_by_error_type(self) -> Counter[str]:
        return Counter(
            j.error_type.value for j in list(self._jobs.values()) if j.error_type is not None
        )

    def prune(self, max_age: timedelta, now: datetime | None = None) -> int:
        """Drop terminal jobs that finished more than *max_age* ago."""
        now = now or datetime.now(timezone.utc)
        cutoff = now - max_age
        with self._lock:
            stale = [
                job_id
                for job_id, job in self._jobs.items()
                if job.is_terminal and job.completed_at is not None and job.completed_at < cutoff
            ]
            for job_id in stale:
                del self._jobs[job_id]
        return len(stale)
