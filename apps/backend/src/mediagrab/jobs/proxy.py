"""Least-recently-used egress proxy rotation."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from urllib.parse import urlsplit


@dataclass
class ProxyEntry:
    """A proxy endpoint and when it was last handed out."""

    url: str
    last_used: float | None = None

    @property
    def display(self) -> str:
        """Host and port only, never credentials."""
        parts = urlsplit(self.url)
        if not parts.hostname:
            return self.url.rsplit("@", 1)[-1]
        try:
            port = parts.port
        except ValueError:
            return parts.hostname
        return f"{parts.hostname}:{port}" if port else parts.hostname


class ProxyRotator:
    """Hands out the pool entry that was used longest ago (never-used first)."""

    def __init__(
        self,
        proxies: Iterable[str] = (),
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._entries = [ProxyEntry(url=p) for p in proxies]
        self._clock = clock
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def entries(self) -> list[ProxyEntry]:
        return list(self._entries)

    def next(self) -> ProxyEntry | None:
        """Return the next proxy, or None when the pool is empty."""
        if not self._entries:
            return None
        with self._lock:
            entry = min(
                self._entries,
                key=lambda e: float("-inf") if e.last_used is None else e.last_used,
            )
            # A strictly increasing stamp keeps ordering stable under a coarse clock.
            latest = max((e.last_used for e in self._entries if e.last_used is not None), default=None)
            now = self._clock()
            entry.last_used = now if latest is None or now > latest else latest + 1e-6
            return entry
