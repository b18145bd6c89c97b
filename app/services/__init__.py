"""Service layer helpers for external integrations."""

from .guide_generator import (
    BedrockGuideSynthesizer,
    GuideSynthesisError,
    get_guide_synthesizer,
)
from .knowledge_base import (
    BedrockKnowledgeBaseIndexer,
    KnowledgeBaseIndexError,
    get_knowledge_base_indexer,
)
from .speech import PollySpeechService, SpeechSynthesisError, get_speech_service
from .storage import LocalAssetStore, S3AssetStore, StorageError, create_asset_store
from .transcribe import TranscribeService, TranscriptionError, get_transcribe_service

__all__ = [
    "BedrockGuideSynthesizer",
    "GuideSynthesisError",
    "get_guide_synthesizer",
    "BedrockKnowledgeBaseIndexer",
    "KnowledgeBaseIndexError",
    "get_knowledge_base_indexer",
    "PollySpeechService",
    "SpeechSynthesisError",
    "get_speech_service",
    "LocalAssetStore",
    "S3AssetStore",
    "StorageError",
    "create_asset_store",
    "TranscribeService",
    "TranscriptionError",
    "get_transcribe_service",
]
