"""Publish finished guides to a Bedrock Knowledge Base.

Each guide is rendered as a plain-text document plus the
``<document>.metadata.json`` sidecar Bedrock reads for filterable
attributes, both written under ``KNOWLEDGE_BASE_S3_PREFIX`` in the asset
bucket. When a knowledge base and data source are configured an ingestion
job is started so the new document becomes searchable.
"""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError
from fastapi.concurrency import run_in_threadpool

from app.application.interfaces import KnowledgeBaseIndexerInterface
from app.config.settings import settings
from app.domain.models import Guide
from app.services.aws import create_boto3_client

logger = logging.getLogger(__name__)


class KnowledgeBaseIndexError(RuntimeError):
    """Raised when a guide cannot be published to the knowledge base."""


def render_guide_document(recording_id: str, guide: Guide) -> str:
    """Plain-text rendering of a guide, one paragraph per step."""

    lines = [f"# {guide.title or f'Guide {recording_id}'}"]
    if guide.summary:
        lines += ["", guide.summary]
    for step in guide.steps:
        lines += ["", f"## Step {step.step_index + 1}: {step.title or ''}".rstrip()]
        for text in (step.description, step.narration_text):
            if text:
                lines.append(text)
    return "\n".join(lines) + "\n"


class BedrockKnowledgeBaseIndexer(KnowledgeBaseIndexerInterface):
    """Upload guide documents to S3 and trigger knowledge-base ingestion."""

    def __init__(
        self,
        *,
        bucket: str = settings.s3.bucket_name,
        prefix: str = settings.knowledge_base.s3_prefix,
        knowledge_base_id: str | None = settings.knowledge_base.knowledge_base_id,
        data_source_id: str | None = settings.knowledge_base.data_source_id,
        s3_client: Any | None = None,
        agent_client: Any | None = None,
    ) -> None:
        self._bucket = bucket
        self._prefix = prefix.strip("/")
        self._knowledge_base_id = knowledge_base_id
        self._data_source_id = data_source_id
        self._s3_client = s3_client or create_boto3_client("s3", region_name=settings.s3.region)
        self._agent_client = agent_client
        if self._agent_client is None and knowledge_base_id and data_source_id:
            self._agent_client = create_boto3_client(
                "bedrock-agent", region_name=settings.knowledge_base.region
            )

    async def index(self, recording_id: str, guide: Guide) -> None:
        document_key = f"{self._prefix}/{recording_id}.txt"
        metadata = {
            "metadataAttributes": {
                "recordingId": recording_id,
                "title": guide.title or "",
                "stepCount": len(guide.steps),
            }
        }

        try:
            await run_in_threadpool(
                self._s3_client.put_object,
                Bucket=self._bucket,
                Key=document_key,
                Body=render_guide_document(recording_id, guide).encode("utf-8"),
                ContentType="text/plain; charset=utf-8",
            )
            await run_in_threadpool(
                self._s3_client.put_object,
                Bucket=self._bucket,
                Key=f"{document_key}.metadata.json",
                Body=json.dumps(metadata).encode("utf-8"),
                ContentType="application/json",
            )
        except (BotoCoreError, ClientError) as exc:
            raise KnowledgeBaseIndexError(f"Failed to upload guide document: {exc}") from exc

        if self._agent_client is None:
            logger.info("Guide document stored at s3://%s/%s", self._bucket, document_key)
            return

        try:
            response = await run_in_threadpool(
                self._agent_client.start_ingestion_job,
                knowledgeBaseId=self._knowledge_base_id,
                dataSourceId=self._data_source_id,
                description=f"Guide {recording_id}",
            )
        except (BotoCoreError, ClientError) as exc:
            raise KnowledgeBaseIndexError(f"Failed to start ingestion job: {exc}") from exc

        job_id = response.get("ingestionJob", {}).get("ingestionJobId")
        logger.info("Knowledge base ingestion started recording=%s job=%s", recording_id, job_id)


class DisabledKnowledgeBaseIndexer(KnowledgeBaseIndexerInterface):
    """Used when ``KNOWLEDGE_BASE_ENABLED`` is false."""

    async def index(self, recording_id: str, guide: Guide) -> None:
        logger.debug("Knowledge base disabled; skipping recording=%s", recording_id)


@lru_cache(maxsize=1)
def get_knowledge_base_indexer() -> KnowledgeBaseIndexerInterface:
    if not settings.knowledge_base.enabled:
        return DisabledKnowledgeBaseIndexer()
    return BedrockKnowledgeBaseIndexer()


__all__ = [
    "BedrockKnowledgeBaseIndexer",
    "DisabledKnowledgeBaseIndexer",
    "KnowledgeBaseIndexError",
    "get_knowledge_base_indexer",
    "render_guide_document",
]
