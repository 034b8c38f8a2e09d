"""Job domain models and lifecycle state machine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from uuid import uuid4

from mediagrab.errors import InvalidTransitionError


class JobStatus(str, Enum):
    """Status of a job."""

    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


class MediaFormat(str, Enum):
    """Artifact kinds a job can produce, in processing order."""

    VIDEO = "video"
    AUDIO = "audio"
    SILENT_VIDEO = "silent_video"


class ErrorType(str, Enum):
    """Stable failure taxonomy."""

    BOT_DETECTION = "bot_detection"
    VIDEO_UNAVAILABLE = "video_unavailable"
    EXTRACTION_ERROR = "extraction_error"
    GENERAL_ERROR = "general_error"
    INVALID_INPUT = "invalid_input"
    RATE_LIMITED = "rate_limited"
    ADMISSION_REJECTED = "admission_rejected"


_TRANSITIONS: dict[JobStatus, set[JobStatus]] = {
    JobStatus.QUEUED: {JobStatus.PROCESSING},
    JobStatus.PROCESSING: {JobStatus.COMPLETED, JobStatus.FAILED},
    JobStatus.COMPLETED: set(),
    JobStatus.FAILED: set(),
}


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Job:
    """A media acquisition job.

    Mutated only by the task that runs it; once terminal the record is
    frozen and safe to share with any number of readers.
    """

    url: str
    formats: list[MediaFormat]
    requester: str = "unknown"
    id: str = field(default_factory=lambda: str(uuid4()))
    status: JobStatus = JobStatus.QUEUED
    progress: int = 0
    created_at: datetime = field(default_factory=_now)
    started_at: datetime | None = None
    completed_at: datetime | None = None
    files: dict[MediaFormat, Path] = field(default_factory=dict)
    format_errors: dict[MediaFormat, str] = field(default_factory=dict)
    error: str | None = None
    error_type: ErrorType | None = None

    @property
    def short_id(self) -> str:
        return self.id[:8]

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def _transition(self, target: JobStatus) -> None:
        if target not in _TRANSITIONS[self.status]:
            raise InvalidTransitionError(
                f"Job {self.short_id}: {self.status.value} -> {target.value} is not allowed"
            )
        self.status = target

    def start(self, progress: int = 10) -> None:
        """queued -> processing."""
        self._transition(JobStatus.PROCESSING)
        self.started_at = _now()
        self.progress = max(1, min(progress, 99))

    def advance(self, progress: int) -> None:
        """Raise progress while processing; never lowers it and never reaches 100."""
        if self.status is not JobStatus.PROCESSING:
            raise InvalidTransitionError(
                f"Job {self.short_id}: cannot report progress while {self.status.value}"
            )
        self.progress = max(self.progress, min(progress, 99))

    def record_file(self, fmt: MediaFormat, path: Path) -> None:
        if self.status is not JobStatus.PROCESSING:
            raise InvalidTransitionError(
                f"Job {self.short_id}: cannot attach files while {self.status.value}"
            )
        self.files[fmt] = path
        self.format_errors.pop(fmt, None)

    def record_format_error(self, fmt: MediaFormat, message: str) -> None:
        if self.status is not JobStatus.PROCESSING:
            raise InvalidTransitionError(
                f"Job {self.short_id}: cannot record errors while {self.status.value}"
            )
        self.format_errors[fmt] = message

    def complete(self) -> None:
        """processing -> completed. Requires at least one produced file."""
        if not self.files:
            raise InvalidTransitionError(f"Job {self.short_id}: cannot complete without files")
        self._transition(JobStatus.COMPLETED)
        self.progress = 100
        self.completed_at = _now()

    def fail(self, message: str, error_type: ErrorType) -> None:
        """processing -> failed. Progress keeps its last observed value."""
        self._transition(JobStatus.FAILED)
        self.error = message
        self.error_type = error_type
        self.completed_at = _now()
