from typing import Any, AsyncContextManager, Callable, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.application.interfaces import RecordingStoreInterface
from app.domain.models import RecordingJob
from app.models.recording import Recording

SessionScope = Callable[[], AsyncContextManager[AsyncSession]]


class SQLAlchemyRecordingStore(RecordingStoreInterface):
    """SQLAlchemy implementation of the recording store"""

    def __init__(self, session_scope: SessionScope):
        self._session_scope = session_scope

    async def get(self, recording_id: str) -> Optional[RecordingJob]:
        async with self._session_scope() as session:
            result = await session.execute(
                select(Recording).where(Recording.id == recording_id)
            )
            db_recording = result.scalar_one_or_none()
            return self._to_domain(db_recording) if db_recording else None

    async def save(self, job: RecordingJob) -> None:
        document = job.to_document()
        async with self._session_scope() as session:
            db_recording = await session.get(Recording, job.id)
            if db_recording is None:
                db_recording = Recording(id=job.id)
                session.add(db_recording)
            db_recording.user_id = job.user_id
            db_recording.status = job.status.value
            db_recording.audio_status = job.audio_status.value
            db_recording.document = document
            await session.commit()

    async def list_all(self) -> List[RecordingJob]:
        async with self._session_scope() as session:
            result = await session.execute(
                select(Recording).order_by(Recording.created_at.desc())
            )
            return [self._to_domain(row) for row in result.scalars().all()]

    @staticmethod
    def _to_domain(db_recording: Recording) -> RecordingJob:
        document: Any = db_recording.document or {}
        return RecordingJob.model_validate(document)


__all__ = ["SQLAlchemyRecordingStore"]
