"""Supervised execution of external engine subprocesses."""

from __future__ import annotations

import asyncio
import logging
import os
import subprocess
from dataclasses import dataclass
from typing import Protocol

logger = logging.getLogger(__name__)


@dataclass
class ProcessResult:
    """Outcome of a single subprocess invocation."""

    args: list[str]
    returncode: int | None
    stdout: str = ""
    stderr: str = ""
    timed_out: bool = False
    start_error: str | None = None

    @property
    def ok(self) -> bool:
        return self.returncode == 0 and not self.timed_out and self.start_error is None

    @property
    def output(self) -> str:
        """Combined text used for failure classification."""
        parts = [self.stderr, self.stdout]
        if self.start_error:
            parts.append(self.start_error)
        if self.timed_out:
            parts.append("process timed out")
        return "\n".join(p for p in parts if p)

    def summary(self, limit: int = 200) -> str:
        if self.start_error:
            return self.start_error[:limit]
        if self.timed_out:
            return "timed out"
        return f"exit code {self.returncode}: {self.output.strip()[:limit]}"


class Runner(Protocol):
    """Anything that can run a command and report a ProcessResult."""

    async def run(self, args: list[str], timeout: float) -> ProcessResult: ...


def _to_text(data: bytes | str | None) -> str:
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data


class SubprocessRunner:
    """Runs a command in a worker thread, capturing both output streams.

    On timeout the child is killed by :func:`subprocess.run` before the
    result is reported, so nothing outlives its budget.
    """

    def __init__(self, env: dict[str, str] | None = None) -> None:
        self._env = {**os.environ, "PYTHONUNBUFFERED": "1", **(env or {})}

    async def run(self, args: list[str], timeout: float) -> ProcessResult:
        logger.debug("Executing %s with %d arguments", args[0], len(args) - 1)
        try:
            completed = await asyncio.to_thread(
                subprocess.run,
                args,
                stdin=subprocess.DEVNULL,
                capture_output=True,
                encoding="utf-8",
                errors="replace",
                timeout=timeout,
                env=self._env,
            )
        except subprocess.TimeoutExpired as e:
            logger.warning("%s timed out after %.0fs", args[0], timeout)
            return ProcessResult(
                args=args,
                returncode=None,
                stdout=_to_text(e.stdout),
                stderr=_to_text(e.stderr),
                timed_out=True,
            )
        except OSError as e:
            logger.error("Failed to start %s: %s", args[0], e)
            return ProcessResult(
                args=args,
                returncode=None,
                start_error=f"Failed to start {args[0]}: {e}",
            )

        return ProcessResult(
            args=args,
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )
