"""Best-effort publication of finished guides to the knowledge base."""

from __future__ import annotations

import logging

from app.application.interfaces import KnowledgeBaseIndexerInterface
from app.domain.models import Guide
from app.telemetry import record_indexing

from .errors import IsolatedSideEffectError

logger = logging.getLogger("app.services.guide_pipeline")


async def publish_guide(
    indexer: KnowledgeBaseIndexerInterface,
    recording_id: str,
    guide: Guide,
) -> IsolatedSideEffectError | None:
    """Index ``guide``; failures are logged and returned, never raised."""

    try:
        await indexer.index(recording_id, guide)
    except Exception as exc:
        error = IsolatedSideEffectError(f"Knowledge base ingestion failed for {recording_id}", exc)
        logger.error("%s: %s", error, exc, exc_info=exc)
        record_indexing("failed")
        return error

    record_indexing("indexed")
    return None


__all__ = ["publish_guide"]
