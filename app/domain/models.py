"""Domain models for recording jobs and the guides generated from them.

A :class:`RecordingJob` is persisted as a whole document; every pipeline
stage writes a new snapshot produced with :meth:`RecordingJob.advance` or
:meth:`RecordingJob.mark_failed`. The public ``status`` is derived from
``audio_status`` and ``failure`` so the two can never disagree.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds")


class JobStatus(str, Enum):
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class AudioStatus(str, Enum):
    """Progress of the audio pipeline; declaration order is the phase order."""

    EXTRACTING = "extracting"
    CLEANING = "cleaning"
    SYNTHESIZING = "synthesizing"
    COMPLETED = "completed"

    @property
    def order(self) -> int:
        return _AUDIO_STATUS_ORDER[self]

    def precedes(self, other: "AudioStatus") -> bool:
        return self.order < other.order


_AUDIO_STATUS_ORDER = {phase: index for index, phase in enumerate(AudioStatus)}


class PhaseRegressionError(ValueError):
    """Raised when a snapshot would move ``audioStatus`` backwards."""


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_document(self) -> dict[str, Any]:
        """Serialize with camelCase keys, the shape stored and returned to clients."""
        return self.model_dump(mode="json", by_alias=True)


class Viewport(_CamelModel):
    width: Optional[int] = None
    height: Optional[int] = None


class CaptureMetadata(_CamelModel):
    """Capture metadata sent by the recorder alongside the video."""

    duration: Optional[float] = None
    start_time: Optional[float] = None
    end_time: Optional[float] = None
    url: Optional[str] = None
    viewport: Optional[Viewport] = None


class GuideStep(_CamelModel):
    """One step of a generated guide; ``step_index`` is its only identity."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    step_index: int = Field(ge=0)
    title: Optional[str] = None
    description: Optional[str] = None
    action: Optional[str] = None
    timestamp: Optional[float] = None
    narration_text: Optional[str] = None
    screenshot_url: Optional[str] = None
    audio_url: Optional[str] = None

    @property
    def needs_narration(self) -> bool:
        return bool(self.narration_text and self.narration_text.strip())


class Guide(_CamelModel):
    title: Optional[str] = None
    summary: Optional[str] = None
    steps: list[GuideStep] = Field(default_factory=list)


class PipelineFailure(_CamelModel):
    stage: str
    message: str


class RecordingJob(_CamelModel):
    """Full snapshot of a recording being processed."""

    id: str
    user_id: str = "anon"
    video_url: str
    media_name: str
    mime_type: str
    thumbnail_url: Optional[str] = None
    duration: Optional[float] = None
    start_time: Optional[float] = None
    end_time: Optional[float] = None
    url: Optional[str] = None
    viewport: Optional[Viewport] = None
    events: list[dict[str, Any]] = Field(default_factory=list)
    screenshots: list[Optional[str]] = Field(default_factory=list)
    audio_status: AudioStatus = AudioStatus.EXTRACTING
    original_transcript: Optional[str] = None
    generated_guide: Optional[Guide] = None
    failure: Optional[PipelineFailure] = None
    created_at: str = Field(default_factory=utc_now_iso)
    updated_at: Optional[str] = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def status(self) -> JobStatus:
        if self.failure is not None:
            return JobStatus.FAILED
        if self.audio_status is AudioStatus.COMPLETED:
            return JobStatus.COMPLETED
        return JobStatus.PROCESSING

    def advance(self, audio_status: AudioStatus, **changes: Any) -> "RecordingJob":
        """Return the next snapshot, refusing to move ``audio_status`` backwards."""

        if audio_status.precedes(self.audio_status):
            raise PhaseRegressionError(
                f"audioStatus cannot move from {self.audio_status.value} "
                f"back to {audio_status.value}"
            )
        if audio_status is AudioStatus.COMPLETED and changes.get(
            "generated_guide", self.generated_guide
        ) is None:
            raise ValueError("A completed job requires a generated guide.")
        return self.model_copy(
            update={**changes, "audio_status": audio_status, "updated_at": utc_now_iso()}
        )

    def mark_failed(self, stage: str, message: str) -> "RecordingJob":
        """Return a terminal snapshot that keeps the last ``audio_status``."""

        return self.model_copy(
            update={
                "failure": PipelineFailure(stage=stage, message=message),
                "updated_at": utc_now_iso(),
            }
        )


__all__ = [
    "AudioStatus",
    "CaptureMetadata",
    "Guide",
    "GuideStep",
    "JobStatus",
    "PhaseRegressionError",
    "PipelineFailure",
    "RecordingJob",
    "Viewport",
    "utc_now_iso",
]
