"""Services module for mediagrab."""

from mediagrab.services.cascade import FormatOutcome, StrategyCascade
from mediagrab.services.classify import classify_output, suggestion_for
from mediagrab.services.extractor import ExtractorService, Identity
from mediagrab.services.media import MediaService
from mediagrab.services.retention import FileRetentionManager
from mediagrab.services.runner import ProcessResult, SubprocessRunner

__all__ = [
    "ExtractorService",
    "FileRetentionManager",
    "FormatOutcome",
    "Identity",
    "MediaService",
    "ProcessResult",
    "StrategyCascade",
    "SubprocessRunner",
    "classify_output",
    "suggestion_for",
]
