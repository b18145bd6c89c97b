"""Amazon Polly narration for guide steps."""

from __future__ import annotations

import logging
from functools import lru_cache
from html import escape as html_escape
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError
from fastapi.concurrency import run_in_threadpool

from app.application.interfaces import SpeechSynthesizerInterface
from app.config.settings import settings
from app.services.aws import create_boto3_client

logger = logging.getLogger(__name__)

NARRATION_CONTENT_TYPE = "audio/mpeg"
NARRATION_EXTENSION = "mp3"

# Polly rejects SSML documents longer than this many billed characters.
_MAX_TEXT_LENGTH = 3000


class SpeechSynthesisError(RuntimeError):
    """Raised when Polly fails to synthesize narration."""


class PollySpeechService(SpeechSynthesizerInterface):
    """Generate MP3 narration with Amazon Polly."""

    def __init__(
        self,
        *,
        voice_id: str = settings.polly.default_voice_id,
        engine: str = settings.polly.engine,
        rate: float = 1.0,
        client: Any | None = None,
    ) -> None:
        self._voice_id = voice_id
        self._engine = engine
        self._rate = rate
        self._client = client or create_boto3_client("polly", region_name=settings.polly.region)

    async def synthesize(self, text: str) -> bytes | None:
        text = (text or "").strip()
        if not text:
            return None
        if len(text) > _MAX_TEXT_LENGTH:
            logger.warning("Narration truncated from %s characters", len(text))
            text = text[:_MAX_TEXT_LENGTH]

        try:
            response: dict[str, Any] = await run_in_threadpool(
                self._client.synthesize_speech,
                TextType="ssml",
                Text=self._build_ssml(text),
                VoiceId=self._voice_id,
                Engine=self._engine,
                OutputFormat=NARRATION_EXTENSION,
            )
        except (BotoCoreError, ClientError) as exc:
            raise SpeechSynthesisError(f"Failed to synthesize speech: {exc}") from exc

        audio_stream = response.get("AudioStream")
        if audio_stream is None:
            return None
        audio_bytes = await run_in_threadpool(audio_stream.read)
        return audio_bytes or None

    def _build_ssml(self, text: str) -> str:
        rate_pct = max(60, min(140, int(round(self._rate * 100))))
        if rate_pct != 100:
            return f'<speak><prosody rate="{rate_pct}%">{html_escape(text)}</prosody></speak>'
        return f"<speak>{html_escape(text)}</speak>"


@lru_cache(maxsize=1)
def get_speech_service() -> PollySpeechService:
    """Return the default narration service instance."""

    return PollySpeechService()


__all__ = [
    "NARRATION_CONTENT_TYPE",
    "NARRATION_EXTENSION",
    "PollySpeechService",
    "SpeechSynthesisError",
    "get_speech_service",
]
