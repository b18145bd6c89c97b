"""In-process recording store used for local runs and tests."""

from __future__ import annotations

import asyncio
from typing import Any, List, Optional

from app.application.interfaces import RecordingStoreInterface
from app.domain.models import RecordingJob


class InMemoryRecordingStore(RecordingStoreInterface):
    """Keep snapshots as serialized documents keyed by recording id."""

    def __init__(self) -> None:
        self._documents: dict[str, dict[str, Any]] = {}
        self._lock = asyncio.Lock()

    async def get(self, recording_id: str) -> Optional[RecordingJob]:
        async with self._lock:
            document = self._documents.get(recording_id)
        return RecordingJob.model_validate(document) if document else None

    async def save(self, job: RecordingJob) -> None:
        # Store a detached copy so callers cannot mutate the persisted snapshot.
        document = job.to_document()
        async with self._lock:
            self._documents[job.id] = document

    async def list_all(self) -> List[RecordingJob]:
        async with self._lock:
            documents = list(self._documents.values())
        return [RecordingJob.model_validate(document) for document in documents]


__all__ = ["InMemoryRecordingStore"]
