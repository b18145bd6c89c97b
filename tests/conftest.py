"""Shared fakes and fixtures for the guide pipeline test-suite."""

from __future__ import annotations

import asyncio
import os
import tempfile
from pathlib import Path

_TEST_ROOT = Path(tempfile.mkdtemp(prefix="session-guides-"))
os.environ["STORE_BACKEND"] = "memory"
os.environ["STORAGE_BACKEND"] = "local"
os.environ["STORAGE_UPLOAD_DIR"] = str(_TEST_ROOT / "uploads")
os.environ["KNOWLEDGE_BASE_ENABLED"] = "false"
os.environ["LOG_FILE"] = str(_TEST_ROOT / "logs" / "app.log")
os.environ["PIPELINE_LOG_FILE"] = str(_TEST_ROOT / "logs" / "guide_pipeline.log")

import pytest  # noqa: E402

from app.application.interfaces import (  # noqa: E402
    AssetStoreInterface,
    GuideSynthesizerInterface,
    KnowledgeBaseIndexerInterface,
    SpeechSynthesizerInterface,
    TranscriptionProviderInterface,
)
from app.domain.models import Guide, GuideStep, RecordingJob  # noqa: E402
from app.infrastructure.persistence.memory import InMemoryRecordingStore  # noqa: E402
from app.pipelines.guide import GuidePipeline  # noqa: E402
from app.services.storage import StorageError  # noqa: E402

WEBM_MEDIA = b"\x1a\x45\xdf\xa3" + b"\x00" * 64


def make_guide(*narrations, indexes=None) -> Guide:
    """Guide with one step per narration text (``None`` means silent step)."""

    indexes = list(indexes) if indexes is not None else list(range(len(narrations)))
    return Guide(
        title="Create a project",
        summary="Shows how to create a project from the dashboard.",
        steps=[
            GuideStep(
                step_index=index,
                title=f"Step title {position + 1}",
                description=f"Description {position + 1}",
                narration_text=narration,
            )
            for position, (index, narration) in enumerate(zip(indexes, narrations))
        ],
    )


class SpyRecordingStore(InMemoryRecordingStore):
    """In-memory store that remembers every snapshot written to it."""

    def __init__(self) -> None:
        super().__init__()
        self.history: list[RecordingJob] = []
        self.fail_on_failed_save = False

    async def save(self, job: RecordingJob) -> None:
        if self.fail_on_failed_save and job.failure is not None:
            raise RuntimeError("database unavailable")
        self.history.append(job)
        await super().save(job)

    def states(self, recording_id: str) -> list[tuple[str, str]]:
        return [
            (job.status.value, job.audio_status.value)
            for job in self.history
            if job.id == recording_id
        ]


class FakeAssetStore(AssetStoreInterface):
    def __init__(self) -> None:
        self.objects: dict[str, bytes] = {}
        self.content_types: dict[str, str] = {}

    async def write(self, name: str, data: bytes, *, content_type: str) -> str:
        self.objects[name] = data
        self.content_types[name] = content_type
        return f"https://assets.test/{name}"

    async def read(self, name: str) -> bytes:
        if name not in self.objects:
            raise StorageError(f"Failed to read asset {name}: missing")
        return self.objects[name]


class FakeTranscriber(TranscriptionProviderInterface):
    def __init__(self, transcript: str = "First open the dashboard then click new project.") -> None:
        self.transcript = transcript
        self.error: Exception | None = None
        self.gate: asyncio.Event | None = None
        self.calls: list[tuple[bytes, str]] = []

    async def transcribe(self, media_bytes: bytes, mime_type: str) -> str:
        self.calls.append((media_bytes, mime_type))
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.transcript


class FakeGuideSynthesizer(GuideSynthesizerInterface):
    def __init__(self) -> None:
        self.guide = make_guide("Open the dashboard.", "Click new project.", "Name it.")
        self.error: Exception | None = None
        self.calls: list[dict] = []

    async def synthesize(self, events, duration, transcript, viewport) -> Guide:
        self.calls.append(
            {"events": events, "duration": duration, "transcript": transcript, "viewport": viewport}
        )
        if self.error is not None:
            raise self.error
        return self.guide


class FakeSpeech(SpeechSynthesizerInterface):
    """Returns ``b"mp3:<text>"``; tracks how many calls overlap."""

    def __init__(self, delay: float = 0.0) -> None:
        self.delay = delay
        self.failing_texts: set[str] = set()
        self.silent_texts: set[str] = set()
        self.calls: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def synthesize(self, text: str) -> bytes | None:
        self.calls.append(text)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            if text in self.failing_texts:
                raise RuntimeError(f"voice unavailable for {text!r}")
            if text in self.silent_texts:
                return None
            return f"mp3:{text}".encode("utf-8")
        finally:
            self.in_flight -= 1


class FakeIndexer(KnowledgeBaseIndexerInterface):
    def __init__(self) -> None:
        self.error: Exception | None = None
        self.calls: list[tuple[str, Guide]] = []

    async def index(self, recording_id: str, guide: Guide) -> None:
        self.calls.append((recording_id, guide))
        if self.error is not None:
            raise self.error


@pytest.fixture
def store() -> SpyRecordingStore:
    return SpyRecordingStore()


@pytest.fixture
def assets() -> FakeAssetStore:
    return FakeAssetStore()


@pytest.fixture
def transcriber() -> FakeTranscriber:
    return FakeTranscriber()


@pytest.fixture
def guide_synthesizer() -> FakeGuideSynthesizer:
    return FakeGuideSynthesizer()


@pytest.fixture
def speech() -> FakeSpeech:
    return FakeSpeech()


@pytest.fixture
def indexer() -> FakeIndexer:
    return FakeIndexer()


@pytest.fixture
def build_pipeline(store, assets, transcriber, guide_synthesizer, speech, indexer):
    """Factory so tests can toggle ``mark_failed_jobs``."""

    def _build(*, mark_failed_jobs: bool = True) -> GuidePipeline:
        return GuidePipeline(
            store=store,
            assets=assets,
            transcriber=transcriber,
            guide_synthesizer=guide_synthesizer,
            speech=speech,
            indexer=indexer,
            mark_failed_jobs=mark_failed_jobs,
            placeholder_template="https://placehold.co/600x400?text=Step+{number}",
        )

    return _build


@pytest.fixture
def pipeline(build_pipeline) -> GuidePipeline:
    return build_pipeline()


@pytest.fixture
def seed_recording(store, assets):
    """Store uploaded media plus the initial snapshot, as the upload endpoint does."""

    async def _seed(
        recording_id: str = "session_1700000000000_abcd1234",
        *,
        media: bytes = WEBM_MEDIA,
        mime_type: str = "video/webm;codecs=vp9",
        screenshots: list | None = None,
        store_media: bool = True,
    ) -> RecordingJob:
        media_name = f"{recording_id}.webm"
        if store_media:
            await assets.write(media_name, media, content_type=mime_type)
        job = RecordingJob(
            id=recording_id,
            video_url=f"https://assets.test/{media_name}",
            media_name=media_name,
            mime_type=mime_type,
            duration=12000.0,
            events=[
                {"type": "click", "timestamp": 1000, "selector": "#dashboard"},
                {"type": "click", "timestamp": 4000, "selector": "#new-project"},
                {"type": "input", "timestamp": 8000, "value": "Demo"},
            ],
            screenshots=list(screenshots or []),
        )
        await store.save(job)
        return job

    return _seed


@pytest.fixture
def guide_factory():
    return make_guide
