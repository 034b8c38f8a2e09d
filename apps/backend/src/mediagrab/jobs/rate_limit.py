"""Minimum-interval rate limiting per client or session key."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable


class RateLimiter:
    """Accepts a key at most once per ``min_interval_s`` seconds.

    A rejected call leaves the stored timestamp untouched; an accepted one
    replaces it with the current time.
    """

    def __init__(
        self,
        min_interval_s: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._min_interval_s = min_interval_s
        self._clock = clock
        self._last_seen: dict[str, float] = {}
        self._lock = threading.Lock()

    @property
    def min_interval_s(self) -> float:
        return self._min_interval_s

    def check_and_record(self, key: str) -> bool:
        with self._lock:
            now = self._clock()
            last = self._last_seen.get(key)
            if last is not None and now - last < self._min_interval_s:
                return False
            self._last_seen[key] = now
            return True

    def retry_after(self, key: str) -> float:
        """Seconds until *key* would be accepted again."""
        last = self._last_seen.get(key)
        if last is None:
            return 0.0
        return max(0.0, self._min_interval_s - (self._clock() - last))
