"""Upload ingestion helpers used before a job enters the pipeline."""

from __future__ import annotations

import json
import mimetypes
from typing import Any, Final, Mapping, Optional

from fastapi import HTTPException, UploadFile, status

_FALLBACK_MIME_TYPE: Final[str] = "audio/webm"
_GENERIC_CONTENT_TYPES: Final[set[str]] = {"", "application/octet-stream"}
_EBML_MAGIC: Final[bytes] = b"\x1a\x45\xdf\xa3"
_EXTENSIONS: Final[dict[str, str]] = {
    "video/webm": "webm",
    "audio/webm": "webm",
    "video/mp4": "mp4",
}


def normalize_mime_type(raw_mime_type: Optional[str]) -> str:
    """Map a declared MIME type onto the set the transcriber understands.

    Unknown types fall back to ``audio/webm`` instead of being rejected.
    """

    # Case-insensitive on purpose: "VIDEO/WEBM" is still a WebM upload.
    value = (raw_mime_type or "").lower()
    if "webm" in value:
        return "video/webm"
    if "mp4" in value:
        return "video/mp4"
    return _FALLBACK_MIME_TYPE


def media_extension(mime_type: str) -> str:
    return _EXTENSIONS.get(normalize_mime_type(mime_type), "webm")


def sniff_media_type(head: bytes) -> Optional[str]:
    """Recognise WebM (EBML) and MP4 (``ftyp`` box) containers by magic bytes."""

    if head.startswith(_EBML_MAGIC):
        return "video/webm"
    if len(head) >= 12 and head[4:8] == b"ftyp":
        return "video/mp4"
    return None


def resolve_content_type(upload: UploadFile, head: bytes) -> str:
    """Declared content type, or a sniffed/guessed one when the client sent none."""

    content_type = (upload.content_type or "").split(";")[0].strip().lower()
    if content_type not in _GENERIC_CONTENT_TYPES:
        return content_type

    sniffed = sniff_media_type(head)
    if sniffed:
        return sniffed

    if upload.filename:
        guessed_type, _ = mimetypes.guess_type(upload.filename)
        if guessed_type:
            return guessed_type

    return content_type or "application/octet-stream"


async def read_media_bytes(upload: UploadFile) -> bytes:
    """Load the upload fully into memory, rejecting empty payloads."""

    media_bytes = await upload.read()
    await upload.close()

    if not media_bytes:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Uploaded video file is empty",
        )
    return media_bytes


def parse_json_field(raw_value: Optional[str], default: Any, field_name: str) -> Any:
    """Decode a JSON-encoded multipart form field."""

    if raw_value is None or not raw_value.strip():
        return default
    try:
        value = json.loads(raw_value)
    except json.JSONDecodeError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Field '{field_name}' must be valid JSON",
        ) from exc
    if not isinstance(value, type(default)):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Field '{field_name}' must be a JSON {type(default).__name__}",
        )
    return value


def screenshot_reference(entry: Any) -> Optional[str]:
    """Reduce one screenshot entry to its URL; unusable entries keep their slot as None."""

    if isinstance(entry, str):
        return entry or None
    if isinstance(entry, Mapping):
        for key in ("url", "dataUrl", "src"):
            value = entry.get(key)
            if isinstance(value, str) and value:
                return value
    return None


__all__ = [
    "media_extension",
    "normalize_mime_type",
    "parse_json_field",
    "read_media_bytes",
    "resolve_content_type",
    "screenshot_reference",
    "sniff_media_type",
]
