"""Bounded-concurrency admission control."""

from __future__ import annotations

import logging
import threading

logger = logging.getLogger(__name__)


class AdmissionController:
    """Caps the number of jobs that are past admission and not yet terminal.

    Each admitted job id holds one slot until it is released. Releasing an
    id twice, or one that was never admitted, is a no-op, so the active
    count can neither go negative nor exceed the cap.
    """

    def __init__(self, max_active: int = 2) -> None:
        if max_active < 1:
            raise ValueError("max_active must be at least 1")
        self._max_active = max_active
        self._active: set[str] = set()
        self._lock = threading.Lock()

    @property
    def max_active(self) -> int:
        return self._max_active

    @property
    def active_count(self) -> int:
        return len(self._active)

    def is_active(self, job_id: str) -> bool:
        return job_id in self._active

    def try_admit(self, job_id: str) -> bool:
        with self._lock:
            if job_id in self._active:
                return True
            if len(self._active) >= self._max_active:
                logger.info(
                    "Admission rejected: %d/%d active", len(self._active), self._max_active
                )
                return False
            self._active.add(job_id)
            return True

    def release(self, job_id: str) -> None:
        with self._lock:
            self._active.discard(job_id)
