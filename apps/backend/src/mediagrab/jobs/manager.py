"""Job manager: admission, background execution and lifecycle of jobs."""

from __future__ import annotations

import asyncio
import logging
import random
import time
from collections.abc import Awaitable, Callable
from datetime import timedelta
from typing import Any

from mediagrab.config import Settings
from mediagrab.errors import AdmissionRejectedError, RateLimitedError
from mediagrab.jobs.admission import AdmissionController
from mediagrab.jobs.models import ErrorType, Job, JobStatus
from mediagrab.jobs.proxy import ProxyRotator
from mediagrab.jobs.rate_limit import RateLimiter
from mediagrab.jobs.registry import JobRegistry
from mediagrab.services.cascade import FormatOutcome, StrategyCascade
from mediagrab.services.extractor import ExtractorService, Identity
from mediagrab.services.media import MediaService
from mediagrab.services.runner import Runner, SubprocessRunner
from mediagrab.services.validation import is_valid_url, validate_formats, validate_url

logger = logging.getLogger(__name__)

ADMISSION_RETRY_AFTER_S = 120


class JobManager:
    """Manages download jobs with bounded concurrency.

    Jobs are stored in-memory. Each admitted job runs as its own
    asyncio task; creation beyond the concurrency cap is refused
    rather than queued.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        registry: JobRegistry | None = None,
        admission: AdmissionController | None = None,
        rate_limiter: RateLimiter | None = None,
        rotator: ProxyRotator | None = None,
        runner: Runner | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: random.Random | None = None,
    ) -> None:
        self._settings = settings
        self._registry = registry or JobRegistry()
        self._admission = admission or AdmissionController(settings.max_concurrent_jobs)
        self._rate_limiter = rate_limiter or RateLimiter(settings.session_interval_s)
        self._rotator = rotator or ProxyRotator(settings.proxies)
        self._sleep = sleep
        self._rng = rng or random.Random()
        self._tasks: dict[str, asyncio.Task[None]] = {}
        self._started_at = time.monotonic()

        runner = runner or SubprocessRunner()
        self._cascade = StrategyCascade(
            extractor=ExtractorService(
                runner,
                settings.output_dir,
                binary=settings.extractor_binary,
                max_timeout_s=settings.extractor_timeout_s,
            ),
            media=MediaService(
                runner,
                binary=settings.transcoder_binary,
                timeout_s=settings.transcoder_timeout_s,
            ),
            rotator=self._rotator,
            backoff_s=settings.strategy_backoff_s,
            backoff_max_s=settings.strategy_backoff_max_s,
            sleep=sleep,
            rng=self._rng,
        )

    @property
    def registry(self) -> JobRegistry:
        return self._registry

    @property
    def admission(self) -> AdmissionController:
        return self._admission

    @property
    def rotator(self) -> ProxyRotator:
        return self._rotator

    # ------------------------------------------------------------------
    # Creation and queries
    # ------------------------------------------------------------------

    def create_job(self, url: Any, formats: Any = None, requester: str = "unknown") -> Job:
        """Validate, admit and schedule a new job.

        Args:
            url: Source URL.
            formats: Requested formats (defaults to all).
            requester: Client identity used as the rate-limit key.

        Returns:
            The created Job (status=queued).

        Raises:
            InvalidRequestError: Malformed url or formats.
            AdmissionRejectedError: The concurrency cap is reached.
            RateLimitedError: *requester* was accepted too recently.
        """
        url = validate_url(url)
        parsed_formats = validate_formats(formats)
        job = Job(url=url, formats=parsed_formats, requester=requester)

        if not self._admission.try_admit(job.id):
            raise AdmissionRejectedError(
                "admission rejected",
                active=self._admission.active_count,
                max=self._admission.max_active,
                retry_after=ADMISSION_RETRY_AFTER_S,
            )
        if not self._rate_limiter.check_and_record(requester):
            self._admission.release(job.id)
            raise RateLimitedError(
                "rate limited",
                retry_after=round(self._rate_limiter.retry_after(requester)),
            )

        self._registry.put(job)
        task = asyncio.create_task(self._run_job(job), name=f"job-{job.short_id}")
        self._tasks[job.id] = task
        task.add_done_callback(lambda _t, job_id=job.id: self._tasks.pop(job_id, None))
        logger.info(
            "Job %s created for %s (%s)",
            job.short_id, requester, ", ".join(f.value for f in job.formats),
        )
        return job

    def get_job(self, job_id: str) -> Job | None:
        """Get a job by ID."""
        return self._registry.get(job_id)

    def list_jobs(self, limit: int | None = None, offset: int = 0) -> list[Job]:
        """List jobs, most recent first."""
        return self._registry.list(limit=limit, offset=offset)

    def stats(self) -> dict[str, Any]:
        """Aggregate counts for listing and health endpoints."""
        by_status = self._registry.count_by_status()
        total = len(self._registry)
        completed = by_status.get(JobStatus.COMPLETED.value, 0)
        return {
            "total": total,
            "active": self._admission.active_count,
            "by_status": {s.value: by_status.get(s.value, 0) for s in JobStatus},
            "by_error_type": dict(self._registry.count_by_error_type()),
            "success_rate": round(completed / total * 100) if total else 0,
            "max_concurrent": self._admission.max_active,
            "proxy_count": len(self._rotator),
            "uptime_s": round(time.monotonic() - self._started_at, 1),
        }

    async def wait(self, job_id: str) -> Job | None:
        """Wait for a job's task to finish and return the record."""
        task = self._tasks.get(job_id)
        if task is not None:
            await asyncio.wait({task})
        return self._registry.get(job_id)

    def prune_records(self) -> int:
        """Forget terminal jobs older than the file retention window."""
        if not self._settings.prune_job_records:
            return 0
        pruned = self._registry.prune(timedelta(seconds=self._settings.file_retention_s))
        if pruned:
            logger.info("Pruned %d finished job record(s)", pruned)
        return pruned

    async def shutdown(self) -> None:
        """Cancel in-flight jobs; their records end up failed."""
        pending = dict(self._tasks)
        for task in pending.values():
            task.cancel()
        if pending:
            await asyncio.gather(*pending.values(), return_exceptions=True)
        # Tasks cancelled before their first step never reached _run_job's cleanup
        for job_id in pending:
            job = self._registry.get(job_id)
            if job is not None:
                self._fail(job, "Job cancelled during shutdown", ErrorType.GENERAL_ERROR)
            self._admission.release(job_id)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def _run_job(self, job: Job) -> None:
        """Drive a job to a terminal state, always releasing its admission slot."""
        try:
            await self._execute(job)
        except asyncio.CancelledError:
            self._fail(job, "Job cancelled during shutdown", ErrorType.GENERAL_ERROR)
            raise
        except Exception as e:
            logger.exception("Job %s crashed", job.short_id)
            self._fail(job, f"Internal error: {type(e).__name__}: {e}", ErrorType.GENERAL_ERROR)
        finally:
            self._admission.release(job.id)

    async def _execute(self, job: Job) -> None:
        logger.info("Processing job %s", job.short_id)
        self._registry.update(job.id, lambda j: j.start(10))

        if not self._rate_limiter.check_and_record(f"session_{job.id}"):
            self._fail(job, "Rate limit exceeded - please try again later", ErrorType.RATE_LIMITED)
            return
        if not is_valid_url(job.url):
            self._fail(job, "Invalid URL format", ErrorType.INVALID_INPUT)
            return
        job.advance(20)

        await self._pause(
            self._rng.uniform(self._settings.stealth_delay_min_s, self._settings.stealth_delay_max_s),
            job,
            "stealth delay",
        )
        job.advance(50)

        identity = Identity(
            user_agent=self._rng.choice(self._settings.user_agents),
            accept_language=self._rng.choice(self._settings.accept_languages),
        )

        outcomes: list[FormatOutcome] = []
        for index, fmt in enumerate(job.formats):
            if index > 0:
                await self._pause(
                    self._settings.request_delay_s
                    + self._rng.uniform(0, self._settings.request_jitter_s),
                    job,
                    "format pacing",
                )
            outcome = await self._cascade.run_format(job, fmt, identity)
            if outcome.path is not None:
                job.record_file(fmt, outcome.path)
            else:
                job.record_format_error(fmt, outcome.error or "failed")
            outcomes.append(outcome)
            job.advance(50 + 40 * (index + 1) // len(job.formats))

        if job.files:
            self._registry.update(job.id, lambda j: j.complete())
            logger.info("Job %s completed (%d files)", job.short_id, len(job.files))
            return

        last = self._decisive_failure(outcomes)
        self._fail(
            job,
            "No files downloaded - video may be unavailable, private, or temporarily blocked"
            + (f" ({last.error})" if last and last.error else ""),
            last.error_type if last and last.error_type else ErrorType.GENERAL_ERROR,
        )

    @staticmethod
    def _decisive_failure(outcomes: list[FormatOutcome]) -> FormatOutcome | None:
        """The last failure that came from an engine invocation, if any."""
        failures = [o for o in outcomes if not o.succeeded]
        invoked = [o for o in failures if o.attempts]
        candidates = invoked or failures
        return candidates[-1] if candidates else None

    def _fail(self, job: Job, message: str, error_type: ErrorType) -> None:
        if job.is_terminal:
            return

        def _apply(j: Job) -> None:
            if j.status is JobStatus.QUEUED:
                j.start()
            j.fail(message, error_type)

        self._registry.update(job.id, _apply)
        logger.error("Job %s failed [%s]: %s", job.short_id, error_type.value, message)

    async def _pause(self, seconds: float, job: Job, reason: str) -> None:
        if seconds <= 0:
            return
        logger.info("Job %s: %s %.1fs", job.short_id, reason, seconds)
        await self._sleep(seconds)
