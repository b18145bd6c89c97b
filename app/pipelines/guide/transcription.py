"""Transcription stage of the guide pipeline."""

from __future__ import annotations

import logging

from app.application.interfaces import TranscriptionProviderInterface

from .errors import FatalStageError
from .types import Stage

logger = logging.getLogger("app.services.guide_pipeline")


async def transcribe_media(
    provider: TranscriptionProviderInterface,
    media_bytes: bytes,
    mime_type: str,
) -> str:
    """Turn the recording's audio track into plain text.

    ``mime_type`` must already be normalized; any failure is fatal for the job.
    """

    if not media_bytes:
        raise FatalStageError(Stage.TRANSCRIPTION, "Recorded media is empty.")

    logger.info("Transcribing media mime=%s size=%s", mime_type, len(media_bytes))
    try:
        transcript = await provider.transcribe(media_bytes, mime_type)
    except Exception as exc:
        raise FatalStageError(Stage.TRANSCRIPTION, str(exc) or type(exc).__name__, exc) from exc

    transcript = (transcript or "").strip()
    logger.info("Transcript length: %s", len(transcript))
    return transcript


__all__ = ["transcribe_media"]
