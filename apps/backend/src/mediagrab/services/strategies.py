"""Declarative extraction strategies, tried in order per artifact kind."""

from __future__ import annotations

from dataclasses import dataclass, field

VIDEO_EXTENSIONS = (".mp4", ".webm", ".mkv")
AUDIO_EXTENSIONS = (".mp3", ".m4a", ".ogg")


@dataclass(frozen=True)
class Strategy:
    """One way of invoking the extraction engine.

    Attributes:
        name: Short identifier, also part of the artifact file name.
        format_selector: Value passed to ``-f``.
        player_client: Client identity the extractor impersonates (None = engine default).
        identity_headers: Send referer and Accept-Language along with the user agent.
        skip_protocols: Streaming protocols the extractor should not use.
        sleep_interval: ``(min, max)`` seconds the engine sleeps between its own requests.
        retries: Engine-level retries for the whole download.
        fragment_retries: Engine-level retries per fragment.
        extra_args: Additional arguments appended before the URL.
        extensions: Artifact extensions accepted as success (empty = any).
        timeout_s: Wall-clock budget for the subprocess.
    """

    name: str
    format_selector: str
    player_client: str | None = None
    identity_headers: bool = False
    skip_protocols: str | None = None
    sleep_interval: tuple[float, float] | None = None
    retries: int | None = None
    fragment_retries: int | None = None
    retry_sleep: str | None = None
    no_cache: bool = True
    extra_args: tuple[str, ...] = field(default_factory=tuple)
    extensions: tuple[str, ...] = field(default_factory=tuple)
    timeout_s: float = 300

    def accepts(self, filename: str) -> bool:
        if not self.extensions:
            return True
        return filename.lower().endswith(self.extensions)


_AUDIO_TO_MP3 = ("--extract-audio", "--audio-format", "mp3", "--audio-quality", "128K")

VIDEO_STRATEGIES: list[Strategy] = [
    Strategy(
        name="android_web",
        format_selector="best[height<=720]/best",
        player_client="android,web",
        identity_headers=True,
        skip_protocols="hls,dash",
        sleep_interval=(2, 5),
        retries=3,
        fragment_retries=3,
        retry_sleep="linear=1:5",
        extra_args=("--no-check-certificate",),
        extensions=VIDEO_EXTENSIONS,
        timeout_s=300,
    ),
    Strategy(
        name="web",
        format_selector="mp4/best",
        player_client="web",
        sleep_interval=(1, 1),
        retries=2,
        extensions=(".mp4",),
        timeout_s=240,
    ),
    Strategy(
        name="minimal",
        format_selector="worst",
        no_cache=False,
        timeout_s=180,
    ),
]

AUDIO_STRATEGIES: list[Strategy] = [
    Strategy(
        name="android_web",
        format_selector="bestaudio[ext=m4a]/bestaudio",
        player_client="android,web",
        identity_headers=True,
        skip_protocols="hls,dash",
        sleep_interval=(2, 5),
        retries=3,
        fragment_retries=3,
        retry_sleep="linear=1:5",
        extra_args=("--no-check-certificate", *_AUDIO_TO_MP3),
        extensions=AUDIO_EXTENSIONS,
        timeout_s=300,
    ),
    Strategy(
        name="web",
        format_selector="bestaudio/best",
        player_client="web",
        sleep_interval=(1, 1),
        retries=2,
        extra_args=_AUDIO_TO_MP3,
        extensions=AUDIO_EXTENSIONS,
        timeout_s=240,
    ),
]
