"""Shared fixtures: settings without delays and a scripted engine runner."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import pytest

from mediagrab.config import Settings
from mediagrab.services.runner import ProcessResult


@dataclass
class Script:
    """What a fake engine invocation does."""

    returncode: int = 0
    stderr: str = ""
    stdout: str = ""
    ext: str | None = None  # None = derive from the artifact kind
    produce: bool = True


def _target(args: list[str]) -> tuple[Path, str]:
    """Return (output path, rule key) for an engine command line.

    yt-dlp templates look like ``<dir>/<job>_<kind>_<strategy>.%(ext)s``;
    ffmpeg writes to its last argument ``<dir>/<job>_<name>.<ext>``.
    """
    if "-o" in args:
        template = Path(args[args.index("-o") + 1])
        name = template.name.replace(".%(ext)s", "")
        return template, name.split("_", 1)[1]
    output = Path(args[-1])
    return output, output.stem.split("_", 1)[1]


class FakeRunner:
    """Stands in for SubprocessRunner; creates artifacts instead of downloading."""

    def __init__(self, rules: dict[str, Script] | None = None, default: Script | None = None) -> None:
        self.rules = rules or {}
        self.default = default or Script()
        self.calls: list[list[str]] = []
        self.keys: list[str] = []

    async def run(self, args: list[str], timeout: float) -> ProcessResult:
        self.calls.append(args)
        path, key = _target(args)
        self.keys.append(key)
        script = self.rules.get(key, self.default)

        if script.returncode == 0 and script.produce:
            if path.name.endswith(".%(ext)s"):
                ext = script.ext or ("mp3" if key.startswith("audio") else "mp4")
                path = path.with_name(path.name.replace("%(ext)s", ext))
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(b"media")

        return ProcessResult(
            args=args,
            returncode=script.returncode,
            stdout=script.stdout,
            stderr=script.stderr,
        )


class SleepRecorder:
    """Async sleep replacement that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        output_dir=tmp_path / "downloads",
        temp_dir=tmp_path / "temp",
        max_concurrent_jobs=2,
        session_interval_s=30,
        request_delay_s=0,
        request_jitter_s=0,
        stealth_delay_min_s=0,
        stealth_delay_max_s=0,
        strategy_backoff_s=0,
        proxy_list="",
        api_rate_limit="1000/minute",
    )


@pytest.fixture
def sleeper() -> SleepRecorder:
    return SleepRecorder()
