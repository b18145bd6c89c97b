"""Amazon Transcribe integration helpers using Streaming API."""

from __future__ import annotations

import asyncio
import logging
import os
import subprocess
import tempfile
from functools import lru_cache

from amazon_transcribe.client import TranscribeStreamingClient
from amazon_transcribe.handlers import TranscriptResultStreamHandler
from amazon_transcribe.model import TranscriptEvent
from fastapi.concurrency import run_in_threadpool

from app.application.interfaces import TranscriptionProviderInterface
from app.config.settings import settings

logger = logging.getLogger(__name__)

_SUFFIX_BY_MIME_TYPE = {
    "video/webm": ".webm",
    "audio/webm": ".webm",
    "video/mp4": ".mp4",
}


class TranscriptionError(RuntimeError):
    """Raised when Amazon Transcribe fails to process audio successfully."""


class TranscribeService(TranscriptionProviderInterface):
    """High-level facade for streaming session audio to Amazon Transcribe."""

    def __init__(
        self,
        region: str,
        language_code: str = "en-US",
        media_sample_rate_hz: int = 16000,
        media_encoding: str = "pcm",
    ) -> None:
        self._region = region
        self._language_code = language_code
        self._media_sample_rate_hz = media_sample_rate_hz
        self._media_encoding = media_encoding

        # Ensure credentials are available to the SDK
        if settings.s3.access_key:
            os.environ["AWS_ACCESS_KEY_ID"] = settings.s3.access_key
        if settings.s3.secret_key:
            os.environ["AWS_SECRET_ACCESS_KEY"] = settings.s3.secret_key

        self._client = TranscribeStreamingClient(region=region)

    async def transcribe(self, media_bytes: bytes, mime_type: str) -> str:
        """Extract the audio track, stream it to Transcribe and return the text."""

        if not media_bytes:
            raise TranscriptionError("The uploaded media file is empty.")

        try:
            pcm_data = await run_in_threadpool(
                self._convert_to_pcm_sync, media_bytes, mime_type
            )
        except TranscriptionError:
            raise
        except Exception as exc:
            raise TranscriptionError(f"Audio extraction failed: {exc}") from exc

        if not pcm_data:
            # Silent recordings have no audio track to transcribe.
            return ""

        try:
            stream = await self._client.start_stream_transcription(
                language_code=self._language_code,
                media_sample_rate_hz=self._media_sample_rate_hz,
                media_encoding=self._media_encoding,
            )
            handler = _SimpleTranscriptHandler(stream.output_stream)
            await asyncio.gather(
                self._write_chunks(stream, pcm_data),
                handler.handle_events(),
            )
        except Exception as exc:
            logger.error("Streaming loop failed: %s", exc)
            raise TranscriptionError(f"Streaming transcription failed: {exc}") from exc

        logger.info("Transcription complete. Length: %s", len(handler.transcript))
        return handler.transcript.strip()

    async def _write_chunks(self, stream, pcm_data: bytes) -> None:
        # 16-bit mono PCM, paced close to real time so the service accepts it.
        chunk_size = 8192
        bytes_per_sec = self._media_sample_rate_hz * 2
        sleep_time = chunk_size / bytes_per_sec

        logger.info(
            "Starting stream. Total bytes: %s. Chunk size: %s. Sleep: %.4fs",
            len(pcm_data),
            chunk_size,
            sleep_time,
        )
        for i in range(0, len(pcm_data), chunk_size):
            await stream.input_stream.send_audio_event(
                audio_chunk=pcm_data[i : i + chunk_size]
            )
            await asyncio.sleep(sleep_time)

        await stream.input_stream.end_stream()

    def _convert_to_pcm_sync(self, media_bytes: bytes, mime_type: str) -> bytes:
        """Synchronous ffmpeg conversion using a temporary file to support seeking."""

        suffix = _SUFFIX_BY_MIME_TYPE.get(mime_type, ".tmp")
        with tempfile.NamedTemporaryFile(delete=False, suffix=suffix) as tmp_file:
            tmp_file.write(media_bytes)
            tmp_path = tmp_file.name

        try:
            process = subprocess.run(
                [
                    "ffmpeg",
                    "-y",
                    "-i", tmp_path,
                    "-vn",
                    "-f", "s16le",
                    "-ac", "1",
                    "-ar", str(self._media_sample_rate_hz),
                    "pipe:1",
                ],
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                check=True,
            )
            if not process.stdout:
                logger.warning(
                    "ffmpeg produced empty output. stderr: %s",
                    process.stderr.decode("utf-8", errors="replace"),
                )
            return process.stdout
        except subprocess.CalledProcessError as exc:
            error_msg = exc.stderr.decode("utf-8", errors="replace") if exc.stderr else "No stderr"
            logger.error("ffmpeg failed. stderr: %s", error_msg)
            raise TranscriptionError(f"ffmpeg failed to extract audio: {error_msg}") from exc
        finally:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)


class _SimpleTranscriptHandler(TranscriptResultStreamHandler):
    def __init__(self, transcript_result_stream):
        super().__init__(transcript_result_stream)
        self.transcript = ""

    async def handle_transcript_event(self, transcript_event: TranscriptEvent):
        for result in transcript_event.transcript.results:
            if not result.is_partial and result.alternatives:
                self.transcript += result.alternatives[0].transcript + " "


@lru_cache(maxsize=1)
def get_transcribe_service() -> TranscribeService:
    """Return a lazily-instantiated transcribe service singleton."""

    return TranscribeService(
        region=settings.transcribe.region,
        language_code=settings.transcribe.language_code,
        media_sample_rate_hz=settings.transcribe.sample_rate_hz,
    )


__all__ = ["TranscribeService", "TranscriptionError", "get_transcribe_service"]
