"""Request validation for job creation."""

from __future__ import annotations

import re
from collections.abc import Iterable
from typing import Any

from mediagrab.errors import InvalidRequestError
from mediagrab.jobs.models import MediaFormat

URL_PATTERNS = [
    re.compile(r"^https?://(www\.)?(youtube\.com/watch\?v=|youtu\.be/)[\w-]+(&.*)?$"),
    re.compile(r"^https?://(www\.)?youtube\.com/embed/[\w-]+(\?.*)?$"),
    re.compile(r"^https?://(www\.)?youtube\.com/v/[\w-]+(\?.*)?$"),
]

EXAMPLE_URL = "https://www.youtube.com/watch?v=VIDEO_ID"
DEFAULT_FORMATS = [f.value for f in MediaFormat]
_FORMAT_ORDER = list(MediaFormat)


def is_valid_url(url: str) -> bool:
    return any(p.match(url) for p in URL_PATTERNS)


def validate_url(url: Any) -> str:
    if not url or not isinstance(url, str):
        raise InvalidRequestError("missing url", example=EXAMPLE_URL)
    url = url.strip()
    if not is_valid_url(url):
        raise InvalidRequestError(
            "invalid url shape",
            received=url[:100],
            expected=EXAMPLE_URL,
        )
    return url


def validate_formats(formats: Any) -> list[MediaFormat]:
    """Parse requested formats into processing order, dropping duplicates."""
    if formats is None:
        formats = DEFAULT_FORMATS
    if isinstance(formats, str) or not isinstance(formats, Iterable):
        raise InvalidRequestError("invalid formats", available=DEFAULT_FORMATS)
    requested = list(formats)
    if not requested:
        raise InvalidRequestError("invalid formats", available=DEFAULT_FORMATS)
    try:
        parsed = {MediaFormat(f) for f in requested}
    except ValueError:
        raise InvalidRequestError(
            "invalid formats",
            received=[str(f)[:32] for f in requested[:10]],
            available=DEFAULT_FORMATS,
        ) from None
    return [f for f in _FORMAT_ORDER if f in parsed]
