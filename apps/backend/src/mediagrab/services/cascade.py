"""Strategy cascade: ordered fallback of extraction attempts per artifact kind."""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from pathlib import Path

from mediagrab.errors import SubprocessFailedError
from mediagrab.jobs.models import ErrorType, Job, MediaFormat
from mediagrab.jobs.proxy import ProxyRotator
from mediagrab.services.classify import classify_output
from mediagrab.services.extractor import ExtractorService, Identity
from mediagrab.services.media import MediaService
from mediagrab.services.strategies import AUDIO_STRATEGIES, VIDEO_STRATEGIES, Strategy

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


@dataclass
class Attempt:
    """Record of a single subprocess invocation made for a format."""

    strategy: str
    ok: bool
    summary: str = ""


@dataclass
class FormatOutcome:
    """Result of running the cascade for one requested format."""

    fmt: MediaFormat
    path: Path | None = None
    attempts: list[Attempt] = field(default_factory=list)
    error: str | None = None
    error_type: ErrorType | None = None

    @property
    def succeeded(self) -> bool:
        return self.path is not None


class StrategyCascade:
    """Runs the strategy list for a format until one produces a file.

    Fallback paths that derive an artifact from the job's video (audio demux,
    silent video) go through the transcoding engine.
    """

    def __init__(
        self,
        extractor: ExtractorService,
        media: MediaService,
        rotator: ProxyRotator,
        video_strategies: list[Strategy] | None = None,
        audio_strategies: list[Strategy] | None = None,
        backoff_s: float = 2.0,
        backoff_max_s: float = 30.0,
        sleep: Sleep = asyncio.sleep,
        rng: random.Random | None = None,
    ) -> None:
        self._extractor = extractor
        self._media = media
        self._rotator = rotator
        self._strategies = {
            MediaFormat.VIDEO: video_strategies if video_strategies is not None else VIDEO_STRATEGIES,
            MediaFormat.AUDIO: audio_strategies if audio_strategies is not None else AUDIO_STRATEGIES,
        }
        self._backoff_s = backoff_s
        self._backoff_max_s = backoff_max_s
        self._sleep = sleep
        self._rng = rng or random.Random()

    def backoff_delay(self, attempt_index: int) -> float:
        """Delay before the strategy after *attempt_index* (0-based) failed."""
        if self._backoff_s <= 0:
            return 0.0
        base = min(self._backoff_max_s, self._backoff_s * (2**attempt_index))
        return base + self._rng.uniform(0, self._backoff_s)

    async def run_format(self, job: Job, fmt: MediaFormat, identity: Identity) -> FormatOutcome:
        if fmt is MediaFormat.SILENT_VIDEO:
            return await self._silent_video(job)

        outcome = await self._run_strategies(job, fmt, identity)
        if fmt is MediaFormat.AUDIO and not outcome.succeeded:
            video = job.files.get(MediaFormat.VIDEO)
            if video is not None:
                await self._audio_from_video(job, video, outcome)
        return outcome

    async def _run_strategies(self, job: Job, fmt: MediaFormat, identity: Identity) -> FormatOutcome:
        outcome = FormatOutcome(fmt=fmt)
        strategies = self._strategies[fmt]
        last_output = ""

        for index, strategy in enumerate(strategies):
            if index > 0:
                delay = self.backoff_delay(index - 1)
                logger.info(
                    "Job %s: %s strategy %r failed, next in %.1fs",
                    job.short_id, fmt.value, strategies[index - 1].name, delay,
                )
                await self._sleep(delay)

            proxy = self._rotator.next()
            if proxy is not None:
                logger.info("Job %s: using proxy %s", job.short_id, proxy.display)
            logger.info("Job %s: %s via %r", job.short_id, fmt.value, strategy.name)

            result, artifact = await self._extractor.fetch(
                strategy, job.url, job.id, fmt.value, identity, proxy
            )
            if artifact is not None:
                outcome.attempts.append(Attempt(strategy.name, True))
                outcome.path = artifact
                outcome.error = None
                outcome.error_type = None
                logger.info("Job %s: %s downloaded: %s", job.short_id, fmt.value, artifact.name)
                return outcome

            summary = result.summary() if not result.ok else "engine exited cleanly but no artifact was found"
            outcome.attempts.append(Attempt(strategy.name, False, summary))
            logger.warning("Job %s: %s strategy %r failed: %s", job.short_id, fmt.value, strategy.name, summary)
            self._extractor.discard_leftovers(job.id, fmt.value, strategy.name)
            last_output = result.output or summary

        outcome.error_type = classify_output(last_output)
        outcome.error = f"All {fmt.value} strategies failed: {outcome.attempts[-1].summary}" if outcome.attempts else "No strategies configured"
        logger.error(
            "Job %s: all %s strategies failed (%s)", job.short_id, fmt.value, outcome.error_type.value
        )
        return outcome

    async def _audio_from_video(self, job: Job, video: Path, outcome: FormatOutcome) -> None:
        output = self._extractor.output_dir / f"{job.id}_audio_demux.mp3"
        logger.info("Job %s: extracting audio from %s", job.short_id, video.name)
        try:
            outcome.path = await self._media.extract_audio(video, output)
        except SubprocessFailedError as e:
            outcome.attempts.append(Attempt("ffmpeg_demux", False, str(e)))
            outcome.error = f"Audio extraction via ffmpeg failed: {e}"
            outcome.error_type = ErrorType.GENERAL_ERROR
            logger.error("Job %s: %s", job.short_id, outcome.error)
            return
        outcome.attempts.append(Attempt("ffmpeg_demux", True))
        outcome.error = None
        outcome.error_type = None
        logger.info("Job %s: audio extracted via ffmpeg: %s", job.short_id, output.name)

    async def _silent_video(self, job: Job) -> FormatOutcome:
        outcome = FormatOutcome(fmt=MediaFormat.SILENT_VIDEO)
        video = job.files.get(MediaFormat.VIDEO)
        if video is None:
            outcome.error = "Silent video requires a downloaded video"
            outcome.error_type = ErrorType.GENERAL_ERROR
            return outcome

        output = self._extractor.output_dir / f"{job.id}_silent_video.mp4"
        logger.info("Job %s: creating silent video", job.short_id)
        try:
            outcome.path = await self._media.strip_audio(video, output)
        except SubprocessFailedError as e:
            outcome.attempts.append(Attempt("ffmpeg_strip", False, str(e)))
            outcome.error = f"Silent video creation failed: {e}"
            outcome.error_type = ErrorType.GENERAL_ERROR
            logger.error("Job %s: %s", job.short_id, outcome.error)
            return outcome
        outcome.attempts.append(Attempt("ffmpeg_strip", True))
        logger.info("Job %s: silent video created: %s", job.short_id, output.name)
        return outcome
