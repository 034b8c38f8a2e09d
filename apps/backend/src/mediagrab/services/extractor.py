"""Extraction engine adapter (yt-dlp command line)."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from mediagrab.jobs.proxy import ProxyEntry
from mediagrab.services.runner import ProcessResult, Runner
from mediagrab.services.strategies import Strategy

logger = logging.getLogger(__name__)

REFERER = "https://www.youtube.com/"
_PARTIAL_SUFFIXES = (".part", ".ytdl", ".temp", ".tmp")


@dataclass(frozen=True)
class Identity:
    """Client identity presented to the source for the lifetime of one job."""

    user_agent: str
    accept_language: str
    referer: str = REFERER


def artifact_prefix(job_id: str, kind: str, strategy_name: str) -> str:
    return f"{job_id}_{kind}_{strategy_name}."


class ExtractorService:
    """Builds and runs extraction-engine invocations for a strategy."""

    def __init__(
        self,
        runner: Runner,
        output_dir: Path,
        binary: str = "yt-dlp",
        max_timeout_s: float | None = None,
    ) -> None:
        self._runner = runner
        self._output_dir = Path(output_dir)
        self._binary = binary
        self._max_timeout_s = max_timeout_s

    @property
    def output_dir(self) -> Path:
        return self._output_dir

    def build_command(
        self,
        strategy: Strategy,
        url: str,
        output_template: str,
        identity: Identity,
        proxy: ProxyEntry | None = None,
    ) -> list[str]:
        """Translate a strategy into the engine's argument list."""
        args = [self._binary, "--no-warnings"]
        if strategy.no_cache:
            args.append("--no-cache-dir")
        args += ["--user-agent", identity.user_agent]
        if strategy.identity_headers:
            args += ["--referer", identity.referer]
            args += ["--add-header", f"Accept-Language:{identity.accept_language}"]
        if strategy.player_client:
            args += ["--extractor-args", f"youtube:player_client={strategy.player_client}"]
        if strategy.skip_protocols:
            args += ["--extractor-args", f"youtube:skip={strategy.skip_protocols}"]
        if strategy.sleep_interval:
            low, high = strategy.sleep_interval
            args += ["--sleep-interval", _num(low)]
            if high > low:
                args += ["--max-sleep-interval", _num(high)]
        if strategy.retries is not None:
            args += ["--retries", str(strategy.retries)]
        if strategy.fragment_retries is not None:
            args += ["--fragment-retries", str(strategy.fragment_retries)]
        if strategy.retry_sleep:
            args += ["--retry-sleep", strategy.retry_sleep]
        args += list(strategy.extra_args)
        args += ["-f", strategy.format_selector, "-o", output_template]
        if proxy is not None:
            args += ["--proxy", proxy.url]
        args.append(url)
        return args

    async def fetch(
        self,
        strategy: Strategy,
        url: str,
        job_id: str,
        kind: str,
        identity: Identity,
        proxy: ProxyEntry | None = None,
    ) -> tuple[ProcessResult, Path | None]:
        """Run one strategy and return its result plus the artifact it produced.

        The artifact is only reported when the engine exited cleanly and a file
        matching this strategy's naming pattern is on disk.
        """
        self._output_dir.mkdir(parents=True, exist_ok=True)
        prefix = artifact_prefix(job_id, kind, strategy.name)
        template = str(self._output_dir / f"{prefix}%(ext)s")
        cmd = self.build_command(strategy, url, template, identity, proxy)

        timeout = strategy.timeout_s
        if self._max_timeout_s is not None:
            timeout = min(timeout, self._max_timeout_s)

        result = await self._runner.run(cmd, timeout=timeout)
        if not result.ok:
            return result, None
        return result, self.find_artifact(prefix, strategy)

    def find_artifact(self, prefix: str, strategy: Strategy) -> Path | None:
        candidates = sorted(
            p
            for p in self._output_dir.glob(f"{prefix}*")
            if p.is_file() and not p.name.endswith(_PARTIAL_SUFFIXES) and strategy.accepts(p.name)
        )
        return candidates[0] if candidates else None

    def discard_leftovers(self, job_id: str, kind: str, strategy_name: str) -> int:
        """Remove whatever a failed attempt left behind (partials, wrong formats)."""
        removed = 0
        for path in self._output_dir.glob(f"{artifact_prefix(job_id, kind, strategy_name)}*"):
            try:
                path.unlink()
                removed += 1
            except OSError as e:
                logger.warning("Could not remove leftover %s: %s", path.name, e)
        return removed


def _num(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)
