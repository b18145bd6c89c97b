"""Common FastAPI dependencies reused across controllers."""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated

from fastapi import Depends

from app.application.interfaces import AssetStoreInterface, RecordingStoreInterface
from app.config.settings import settings
from app.infrastructure.persistence.memory import InMemoryRecordingStore
from app.pipelines.guide import GuidePipeline, PipelineDispatcher


@lru_cache(maxsize=1)
def get_recording_store() -> RecordingStoreInterface:
    """Return the process-wide recording store selected by ``STORE_BACKEND``."""

    if settings.store.backend == "database":
        from app.database import session_scope
        from app.infrastructure.persistence.recordings_sqlalchemy import (
            SQLAlchemyRecordingStore,
        )

        return SQLAlchemyRecordingStore(session_scope)
    return InMemoryRecordingStore()


@lru_cache(maxsize=1)
def get_asset_store() -> AssetStoreInterface:
    from app.services.storage import create_asset_store

    return create_asset_store()


@lru_cache(maxsize=1)
def get_pipeline_dispatcher() -> PipelineDispatcher:
    """Wire the guide pipeline with the configured AWS providers."""

    from app.services import (
        get_guide_synthesizer,
        get_knowledge_base_indexer,
        get_speech_service,
        get_transcribe_service,
    )

    pipeline = GuidePipeline(
        store=get_recording_store(),
        assets=get_asset_store(),
        transcriber=get_transcribe_service(),
        guide_synthesizer=get_guide_synthesizer(),
        speech=get_speech_service(),
        indexer=get_knowledge_base_indexer(),
    )
    return PipelineDispatcher(pipeline)


RecordingStoreDep = Annotated[RecordingStoreInterface, Depends(get_recording_store)]
AssetStoreDep = Annotated[AssetStoreInterface, Depends(get_asset_store)]
DispatcherDep = Annotated[PipelineDispatcher, Depends(get_pipeline_dispatcher)]


__all__ = [
    "AssetStoreDep",
    "DispatcherDep",
    "RecordingStoreDep",
    "get_asset_store",
    "get_pipeline_dispatcher",
    "get_recording_store",
]
