from __future__ import annotations

import pytest

from app.domain.models import (
    AudioStatus,
    JobStatus,
    PhaseRegressionError,
    RecordingJob,
)


def _job(**overrides) -> RecordingJob:
    values = {
        "id": "session_1",
        "video_url": "https://assets.test/session_1.webm",
        "media_name": "session_1.webm",
        "mime_type": "video/webm",
    }
    values.update(overrides)
    return RecordingJob(**values)


def test_new_job_is_processing_and_extracting():
    job = _job()

    assert job.status is JobStatus.PROCESSING
    assert job.audio_status is AudioStatus.EXTRACTING
    assert job.generated_guide is None
    assert job.user_id == "anon"


def test_advance_moves_forward_and_stamps_update(guide_factory):
    job = _job().advance(AudioStatus.CLEANING, original_transcript="hello")

    assert job.audio_status is AudioStatus.CLEANING
    assert job.original_transcript == "hello"
    assert job.updated_at is not None

    done = job.advance(AudioStatus.SYNTHESIZING).advance(
        AudioStatus.COMPLETED, generated_guide=guide_factory("one")
    )
    assert done.status is JobStatus.COMPLETED
    assert done.original_transcript == "hello"


def test_advance_refuses_to_move_backwards():
    job = _job().advance(AudioStatus.SYNTHESIZING)

    with pytest.raises(PhaseRegressionError):
        job.advance(AudioStatus.CLEANING)


def test_completed_requires_a_guide():
    with pytest.raises(ValueError):
        _job().advance(AudioStatus.COMPLETED)


def test_mark_failed_keeps_audio_status():
    job = _job().advance(AudioStatus.CLEANING).mark_failed("guide_synthesis", "boom")

    assert job.status is JobStatus.FAILED
    assert job.audio_status is AudioStatus.CLEANING
    assert job.failure.stage == "guide_synthesis"


def test_document_uses_camel_case_and_round_trips(guide_factory):
    job = _job(screenshots=["https://shots.test/1.png", None]).advance(
        AudioStatus.COMPLETED, generated_guide=guide_factory("one")
    )

    document = job.to_document()

    assert document["status"] == "completed"
    assert document["audioStatus"] == "completed"
    assert document["videoUrl"] == job.video_url
    assert document["generatedGuide"]["steps"][0]["narrationText"] == "one"
    assert document["generatedGuide"]["steps"][0]["stepIndex"] == 0
    assert RecordingJob.model_validate(document) == job


def test_status_is_derived_not_stored():
    document = _job().to_document()
    document["status"] = "completed"

    assert RecordingJob.model_validate(document).status is JobStatus.PROCESSING
