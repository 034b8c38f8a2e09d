"""File retention: periodic deletion of produced files past their age limit."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from pathlib import Path

logger = logging.getLogger(__name__)


class FileRetentionManager:
    """Deletes files in the output directory older than the retention window.

    Works purely on filesystem metadata (mtime); it knows nothing about jobs.
    """

    def __init__(
        self,
        output_dir: Path,
        retention_s: float,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._output_dir = Path(output_dir)
        self._retention_s = retention_s
        self._clock = clock

    @property
    def retention_s(self) -> float:
        return self._retention_s

    def sweep(self) -> int:
        """Delete expired files once. Returns the number of files removed."""
        if not self._output_dir.is_dir():
            return 0

        now = self._clock()
        removed = 0
        for path in self._output_dir.iterdir():
            try:
                if not path.is_file():
                    continue
                age = now - path.stat().st_mtime
                if age > self._retention_s:
                    path.unlink()
                    removed += 1
            except OSError as e:
                logger.warning("Retention: could not process %s: %s", path.name, e)

        if removed:
            logger.info("Retention: cleaned %d old file(s) from %s", removed, self._output_dir)
        return removed

    async def run_periodic(
        self,
        interval_s: float,
        on_sweep: Callable[[], object] | None = None,
    ) -> None:
        """Sweep every *interval_s* seconds until cancelled.

        *on_sweep* runs after each sweep (used to prune job records on the same
        schedule). Errors from one cycle are logged and the loop keeps going.
        """
        while True:
            await asyncio.sleep(interval_s)
            try:
                await asyncio.to_thread(self.sweep)
                if on_sweep is not None:
                    on_sweep()
            except Exception:
                logger.exception("Retention cycle failed")
