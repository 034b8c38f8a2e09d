"""Produced file download endpoint."""

from __future__ import annotations

import mimetypes
from pathlib import Path

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import FileResponse

from mediagrab.api.deps import get_settings
from mediagrab.config import Settings

router = APIRouter(tags=["files"])

CONTENT_TYPES = {
    ".mp4": "video/mp4",
    ".webm": "video/webm",
    ".mkv": "video/x-matroska",
    ".mp3": "audio/mpeg",
    ".m4a": "audio/mp4",
    ".ogg": "audio/ogg",
}


def content_type_for(filename: str) -> str:
    suffix = Path(filename).suffix.lower()
    if suffix in CONTENT_TYPES:
        return CONTENT_TYPES[suffix]
    guessed, _ = mimetypes.guess_type(filename)
    return guessed or "application/octet-stream"


def is_safe_name(filename: str) -> bool:
    return bool(filename) and ".." not in filename and "/" not in filename and "\\" not in filename


@router.get("/files/{filename}")
async def download_file(
    filename: str,
    app_settings: Settings = Depends(get_settings),
) -> FileResponse:
    if not is_safe_name(filename):
        raise HTTPException(status_code=400, detail={"error": "Invalid filename"})

    file_path = app_settings.output_dir / filename
    if not file_path.is_file():
        raise HTTPException(status_code=404, detail={"error": "File not found", "filename": filename})

    return FileResponse(
        path=file_path,
        filename=filename,
        media_type=content_type_for(filename),
    )
