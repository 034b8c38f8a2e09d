"""Custom exceptions for mediagrab."""

from __future__ import annotations

from typing import Any, TYPE_CHECKING

if TYPE_CHECKING:
    from mediagrab.services.runner import ProcessResult


class MediaGrabError(Exception):
    """Base exception for mediagrab."""

    pass


class JobRejectedError(MediaGrabError):
    """A job creation request was refused before any job record existed."""

    error_type = "invalid_input"
    status_code = 400

    def __init__(self, reason: str, **detail: Any) -> None:
        super().__init__(reason)
        self.reason = reason
        self.detail = detail

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.reason, "error_type": self.error_type, **self.detail}


class InvalidRequestError(JobRejectedError):
    """Malformed creation request (missing url, bad url shape, bad formats)."""

    error_type = "invalid_input"
    status_code = 400


class AdmissionRejectedError(JobRejectedError):
    """The concurrency cap is already reached."""

    error_type = "admission_rejected"
    status_code = 429


class RateLimitedError(JobRejectedError):
    """The client key was seen too recently."""

    error_type = "rate_limited"
    status_code = 429


class InvalidTransitionError(MediaGrabError):
    """Illegal job lifecycle transition."""

    pass


class SubprocessFailedError(MediaGrabError):
    """An external engine invocation failed or produced no output."""

    def __init__(self, message: str, result: ProcessResult | None = None) -> None:
        super().__init__(message)
        self.result = result

    @property
    def output(self) -> str:
        if self.result is None:
            return str(self)
        return self.result.output
