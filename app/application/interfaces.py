from abc import ABC, abstractmethod
from typing import Any, List, Mapping, Optional, Sequence

from app.domain.models import Guide, RecordingJob, Viewport


class RecordingStoreInterface(ABC):
    """Persistence contract for recording job snapshots"""

    @abstractmethod
    async def get(self, recording_id: str) -> Optional[RecordingJob]:
        ...

    @abstractmethod
    async def save(self, job: RecordingJob) -> None:
        """Overwrite the whole snapshot stored under ``job.id``."""
        ...

    @abstractmethod
    async def list_all(self) -> List[RecordingJob]:
        ...


class TranscriptionProviderInterface(ABC):
    """Speech-to-text for the uploaded session media"""

    @abstractmethod
    async def transcribe(self, media_bytes: bytes, mime_type: str) -> str:
        ...


class GuideSynthesizerInterface(ABC):
    """Turns interaction events plus narration into guide steps"""

    @abstractmethod
    async def synthesize(
        self,
        events: Sequence[Mapping[str, Any]],
        duration: Optional[float],
        transcript: str,
        viewport: Optional[Viewport],
    ) -> Guide:
        ...


class SpeechSynthesizerInterface(ABC):
    """Text-to-speech for step narration"""

    @abstractmethod
    async def synthesize(self, text: str) -> Optional[bytes]:
        """Return audio bytes, or None when the provider produced no audio."""
        ...


class KnowledgeBaseIndexerInterface(ABC):
    """Publishes finished guides for semantic retrieval"""

    @abstractmethod
    async def index(self, recording_id: str, guide: Guide) -> None:
        ...


class AssetStoreInterface(ABC):
    """Addressable blob storage for uploads and generated audio"""

    @abstractmethod
    async def write(self, name: str, data: bytes, *, content_type: str) -> str:
        """Persist ``data`` under ``name`` (overwriting) and return its URL."""
        ...

    @abstractmethod
    async def read(self, name: str) -> bytes:
        ...
