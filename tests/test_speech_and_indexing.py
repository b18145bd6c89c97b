"""Polly narration and knowledge-base publication against fake AWS clients."""

from __future__ import annotations

import io
import json

import pytest
from botocore.exceptions import ClientError

from app.services.knowledge_base import (
    BedrockKnowledgeBaseIndexer,
    KnowledgeBaseIndexError,
    render_guide_document,
)
from app.services.speech import PollySpeechService, SpeechSynthesisError


class FakePollyClient:
    def __init__(self, audio: bytes | None = b"ID3-audio"):
        self.audio = audio
        self.requests: list[dict] = []
        self.error: Exception | None = None

    def synthesize_speech(self, **kwargs):
        self.requests.append(kwargs)
        if self.error is not None:
            raise self.error
        if self.audio is None:
            return {}
        return {"AudioStream": io.BytesIO(self.audio)}


class FakeS3Client:
    def __init__(self):
        self.puts: list[dict] = []

    def put_object(self, **kwargs):
        self.puts.append(kwargs)


class FakeAgentClient:
    def __init__(self):
        self.jobs: list[dict] = []
        self.error: Exception | None = None

    def start_ingestion_job(self, **kwargs):
        if self.error is not None:
            raise self.error
        self.jobs.append(kwargs)
        return {"ingestionJob": {"ingestionJobId": "job-1"}}


def _client_error(operation: str) -> ClientError:
    return ClientError({"Error": {"Code": "ThrottlingException", "Message": "slow down"}}, operation)


@pytest.mark.asyncio
async def test_polly_returns_mp3_bytes_from_ssml():
    client = FakePollyClient()
    service = PollySpeechService(voice_id="Joanna", engine="neural", client=client)

    audio = await service.synthesize("Click <Save> & continue")

    assert audio == b"ID3-audio"
    request = client.requests[0]
    assert request["OutputFormat"] == "mp3"
    assert request["TextType"] == "ssml"
    assert request["Text"] == "<speak>Click &lt;Save&gt; &amp; continue</speak>"


@pytest.mark.asyncio
async def test_polly_skips_blank_text_and_missing_stream():
    client = FakePollyClient(audio=None)
    service = PollySpeechService(client=client)

    assert await service.synthesize("   ") is None
    assert client.requests == []
    assert await service.synthesize("Hello") is None


@pytest.mark.asyncio
async def test_polly_errors_are_wrapped():
    client = FakePollyClient()
    client.error = _client_error("SynthesizeSpeech")
    service = PollySpeechService(client=client)

    with pytest.raises(SpeechSynthesisError):
        await service.synthesize("Hello")


def test_guide_document_lists_steps(guide_factory):
    document = render_guide_document("rec", guide_factory("Say one.", None))

    assert document.startswith("# Create a project\n")
    assert "## Step 1: Step title 1" in document
    assert "Say one." in document
    assert "## Step 2: Step title 2" in document


@pytest.mark.asyncio
async def test_indexer_uploads_document_and_starts_ingestion(guide_factory):
    s3_client = FakeS3Client()
    agent_client = FakeAgentClient()
    indexer = BedrockKnowledgeBaseIndexer(
        bucket="guides",
        prefix="knowledge-base/guides/",
        knowledge_base_id="kb-1",
        data_source_id="ds-1",
        s3_client=s3_client,
        agent_client=agent_client,
    )

    await indexer.index("rec", guide_factory("one", "two"))

    keys = [put["Key"] for put in s3_client.puts]
    assert keys == [
        "knowledge-base/guides/rec.txt",
        "knowledge-base/guides/rec.txt.metadata.json",
    ]
    metadata = json.loads(s3_client.puts[1]["Body"])
    assert metadata["metadataAttributes"]["recordingId"] == "rec"
    assert metadata["metadataAttributes"]["stepCount"] == 2
    assert agent_client.jobs[0]["knowledgeBaseId"] == "kb-1"
    assert agent_client.jobs[0]["dataSourceId"] == "ds-1"


@pytest.mark.asyncio
async def test_indexer_wraps_ingestion_errors(guide_factory):
    agent_client = FakeAgentClient()
    agent_client.error = _client_error("StartIngestionJob")
    indexer = BedrockKnowledgeBaseIndexer(
        bucket="guides",
        prefix="kb",
        knowledge_base_id="kb-1",
        data_source_id="ds-1",
        s3_client=FakeS3Client(),
        agent_client=agent_client,
    )

    with pytest.raises(KnowledgeBaseIndexError):
        await indexer.index("rec", guide_factory("one"))
