"""Sequencing of the guide pipeline and its snapshot state machine.

Externally visible progress, as ``(status, audioStatus)``::

    (processing, extracting) -> (processing, cleaning)
        -> (processing, synthesizing) -> (completed, completed)

Each arrow is a full snapshot write committed before the next stage starts.
A fatal stage error stops the run where it is; the job then either keeps its
last snapshot (``mark_failed_jobs=False``) or is moved to ``failed`` with the
same ``audioStatus``. Indexing runs after completion and cannot affect the
job.
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import Iterator, Optional

from app.application.interfaces import (
    AssetStoreInterface,
    GuideSynthesizerInterface,
    KnowledgeBaseIndexerInterface,
    RecordingStoreInterface,
    SpeechSynthesizerInterface,
    TranscriptionProviderInterface,
)
from app.config.settings import settings
from app.domain.models import AudioStatus, RecordingJob
from app.telemetry import observe_stage, record_job_outcome

from .enrichment import attach_screenshots
from .errors import FatalStageError
from .indexing import publish_guide
from .ingestion import normalize_mime_type
from .narration import narrate_guide
from .synthesis import synthesize_guide
from .transcription import transcribe_media
from .types import Stage

logger = logging.getLogger("app.services.guide_pipeline")


@contextmanager
def _timed(stage: Stage) -> Iterator[None]:
    started = time.perf_counter()
    try:
        yield
    finally:
        observe_stage(stage.value, time.perf_counter() - started)


class GuidePipeline:
    """Drive one recording from uploaded media to a narrated, indexed guide."""

    def __init__(
        self,
        *,
        store: RecordingStoreInterface,
        assets: AssetStoreInterface,
        transcriber: TranscriptionProviderInterface,
        guide_synthesizer: GuideSynthesizerInterface,
        speech: SpeechSynthesizerInterface,
        indexer: KnowledgeBaseIndexerInterface,
        mark_failed_jobs: bool = settings.pipeline.mark_failed_jobs,
        placeholder_template: str = settings.pipeline.step_placeholder_template,
    ) -> None:
        self._store = store
        self._assets = assets
        self._transcriber = transcriber
        self._guide_synthesizer = guide_synthesizer
        self._speech = speech
        self._indexer = indexer
        self._mark_failed_jobs = mark_failed_jobs
        self._placeholder_template = placeholder_template

    async def run(self, recording_id: str) -> Optional[RecordingJob]:
        """Process ``recording_id`` and return its last committed snapshot."""

        logger.info("Pipeline starting recording=%s", recording_id)
        job = await self._store.get(recording_id)
        if job is None:
            logger.error("Pipeline aborted: recording %s does not exist", recording_id)
            record_job_outcome("missing")
            return None

        stage = Stage.TRANSCRIPTION
        try:
            with _timed(stage):
                media_bytes = await self._read_media(job)
                transcript = await transcribe_media(
                    self._transcriber,
                    media_bytes,
                    normalize_mime_type(job.mime_type),
                )
            job = await self._commit(
                job.advance(AudioStatus.CLEANING, original_transcript=transcript)
            )

            stage = Stage.GUIDE_SYNTHESIS
            with _timed(stage):
                guide = await synthesize_guide(self._guide_synthesizer, job, transcript)
            job = await self._commit(job.advance(AudioStatus.SYNTHESIZING))

            stage = Stage.ENRICHMENT
            guide = attach_screenshots(
                guide,
                job.screenshots,
                placeholder_template=self._placeholder_template,
            )

            stage = Stage.NARRATION
            with _timed(stage):
                guide, _ = await narrate_guide(job.id, guide, self._speech, self._assets)
            job = await self._commit(
                job.advance(AudioStatus.COMPLETED, generated_guide=guide)
            )
        except FatalStageError as exc:
            return await self._halt(job, exc)
        except Exception as exc:
            logger.exception("Unexpected pipeline error recording=%s stage=%s", job.id, stage.value)
            return await self._halt(
                job, FatalStageError(stage, str(exc) or type(exc).__name__, exc)
            )

        record_job_outcome("completed")
        logger.info("Pipeline completed recording=%s steps=%s", job.id, len(guide.steps))

        with _timed(Stage.INDEXING):
            await publish_guide(self._indexer, job.id, guide)
        return job

    async def _read_media(self, job: RecordingJob) -> bytes:
        try:
            media_bytes = await self._assets.read(job.media_name)
        except Exception as exc:
            raise FatalStageError(
                Stage.TRANSCRIPTION, f"Could not read media {job.media_name}: {exc}", exc
            ) from exc
        logger.info(
            "Media loaded recording=%s mime=%s size=%s",
            job.id,
            job.mime_type,
            len(media_bytes),
        )
        return media_bytes

    async def _commit(self, job: RecordingJob) -> RecordingJob:
        await self._store.save(job)
        logger.info(
            "Snapshot saved recording=%s status=%s audioStatus=%s",
            job.id,
            job.status.value,
            job.audio_status.value,
        )
        return job

    async def _halt(self, job: RecordingJob, error: FatalStageError) -> RecordingJob:
        logger.error(
            "Pipeline halted recording=%s stage=%s audioStatus=%s: %s",
            job.id,
            error.stage.value,
            job.audio_status.value,
            error.message,
            exc_info=error.cause,
        )
        record_job_outcome("failed")
        if not self._mark_failed_jobs:
            return job

        failed = job.mark_failed(error.stage.value, error.message)
        try:
            await self._store.save(failed)
        except Exception:
            logger.exception("Could not persist failed state recording=%s", job.id)
            return job
        return failed


__all__ = ["GuidePipeline"]
