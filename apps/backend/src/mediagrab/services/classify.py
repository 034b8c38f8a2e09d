"""Classification of engine output into the failure taxonomy.

Rules are evaluated top to bottom and the first match wins, so the more
actionable classes (automation challenges) are listed before the generic
ones. Matching is case-insensitive.
"""

from __future__ import annotations

import re

from mediagrab.jobs.models import ErrorType

CLASSIFICATION_RULES: list[tuple[re.Pattern[str], ErrorType]] = [
    (re.compile(r"sign in to confirm", re.I), ErrorType.BOT_DETECTION),
    (re.compile(r"\bbot\b", re.I), ErrorType.BOT_DETECTION),
    (re.compile(r"\b429\b|too many requests", re.I), ErrorType.BOT_DETECTION),
    (re.compile(r"\b403\b", re.I), ErrorType.BOT_DETECTION),
    (re.compile(r"captcha", re.I), ErrorType.BOT_DETECTION),
    (re.compile(r"\bunavailable\b|not available", re.I), ErrorType.VIDEO_UNAVAILABLE),
    (re.compile(r"private video", re.I), ErrorType.VIDEO_UNAVAILABLE),
    (re.compile(r"does not exist|has been removed", re.I), ErrorType.VIDEO_UNAVAILABLE),
    (re.compile(r"failed to extract|unable to extract|extraction failed", re.I), ErrorType.EXTRACTION_ERROR),
]

SUGGESTIONS: dict[ErrorType, str] = {
    ErrorType.BOT_DETECTION: (
        "The source detected automated access. This is usually temporary: retry in a few "
        "minutes, and configure PROXY_LIST with residential proxies if it keeps happening."
    ),
    ErrorType.VIDEO_UNAVAILABLE: (
        "The video may be private, deleted, or geo-restricted. Try a different video."
    ),
    ErrorType.EXTRACTION_ERROR: (
        "Extraction failed. This is often temporary; try again in a few minutes."
    ),
    ErrorType.GENERAL_ERROR: "The download failed. Try again later.",
}


def classify_output(text: str) -> ErrorType:
    """Return the error type for a piece of engine output."""
    for pattern, error_type in CLASSIFICATION_RULES:
        if pattern.search(text):
            return error_type
    return ErrorType.GENERAL_ERROR


def suggestion_for(error_type: ErrorType | None) -> str | None:
    if error_type is None:
        return None
    return SUGGESTIONS.get(error_type)
