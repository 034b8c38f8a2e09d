"""Transcoding engine adapter using FFmpeg."""

from __future__ import annotations

from pathlib import Path

from mediagrab.errors import SubprocessFailedError
from mediagrab.services.runner import Runner


class MediaService:
    """FFmpeg-based derivations of an already downloaded video."""

    def __init__(self, runner: Runner, binary: str = "ffmpeg", timeout_s: float = 180) -> None:
        self._runner = runner
        self._binary = binary
        self._timeout_s = timeout_s

    async def extract_audio(
        self,
        input_path: Path,
        output_path: Path,
        bitrate: str = "128k",
    ) -> Path:
        """Demux the audio track of a video into an MP3 file.

        Args:
            input_path: Path to input video
            output_path: Path for output audio
            bitrate: Target audio bitrate

        Returns:
            Path to the extracted audio file
        """
        cmd = [
            self._binary,
            "-y",  # Overwrite output
            "-i", str(input_path),
            "-vn",  # No video
            "-acodec", "mp3",
            "-ab", bitrate,
            str(output_path),
        ]
        return await self._run(cmd, Path(output_path))

    async def strip_audio(self, input_path: Path, output_path: Path) -> Path:
        """Copy the video stream of a file without its audio.

        Args:
            input_path: Path to input video
            output_path: Path for the silent output video

        Returns:
            Path to the silent video
        """
        cmd = [
            self._binary,
            "-y",
            "-i", str(input_path),
            "-an",  # No audio
            "-c:v", "copy",  # Stream copy (fast, no re-encoding)
            "-avoid_negative_ts", "make_zero",
            str(output_path),
        ]
        return await self._run(cmd, Path(output_path))

    async def _run(self, cmd: list[str], output_path: Path) -> Path:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        result = await self._runner.run(cmd, timeout=self._timeout_s)

        if not result.ok:
            raise SubprocessFailedError(f"ffmpeg failed: {result.summary()}", result)
        if not output_path.exists():
            raise SubprocessFailedError(f"ffmpeg produced no output: {output_path.name}", result)

        return output_path
