"""Thin Bedrock client wrapper for guide-generation LLM invocations."""

from __future__ import annotations

import base64
import binascii
import logging
from functools import lru_cache
from typing import Any, Optional

from fastapi.concurrency import run_in_threadpool

from app.config.settings import settings
from app.services.aws import create_boto3_client

logger = logging.getLogger(__name__)


class LlmInvocationError(RuntimeError):
    """Raised when the Bedrock invocation fails."""


def _decode_bedrock_api_key(secret_value: Optional[str]) -> tuple[str, str] | None:
    """Decode a base64 ``access:secret`` BEDROCK_API_KEY into its two halves."""

    if not secret_value:
        return None

    try:
        decoded = base64.b64decode(secret_value.strip()).decode("utf-8", "ignore")
    except (binascii.Error, ValueError):
        decoded = secret_value

    printable = "".join(ch for ch in decoded if ch.isprintable())
    access_key, sep, secret_key = printable.partition(":")
    if not sep or not access_key or not secret_key:
        return None
    return access_key, secret_key


class BedrockLlmClient:
    """Invoke Amazon Bedrock models through the ``converse`` API."""

    def __init__(self, client: Any | None = None, model_id: str | None = None) -> None:
        self._model_id = model_id or settings.bedrock.model_id
        self._client = client if client is not None else self._build_client()

    @staticmethod
    def _build_client() -> Any:
        credentials = None
        if settings.bedrock.api_key:
            credentials = _decode_bedrock_api_key(
                settings.bedrock.api_key.get_secret_value()
            )
        return create_boto3_client(
            "bedrock-runtime",
            region_name=settings.bedrock.region,
            aws_access_key_id=credentials[0] if credentials else None,
            aws_secret_access_key=credentials[1] if credentials else None,
        )

    async def invoke(
        self,
        *,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int | None = None,
        temperature: float | None = None,
        top_p: float | None = None,
    ) -> str | None:
        """Run a Bedrock ``converse`` call and return the aggregate text output."""

        inference_cfg = {
            "maxTokens": max_tokens or settings.bedrock.max_tokens,
            "temperature": (
                temperature
                if temperature is not None
                else settings.bedrock.temperature
            ),
            "topP": top_p if top_p is not None else settings.bedrock.top_p,
        }

        def _call() -> str:
            response = self._client.converse(
                modelId=self._model_id,
                system=[{"text": system_prompt}],
                messages=[{"role": "user", "content": [{"text": user_prompt}]}],
                inferenceConfig=inference_cfg,
            )
            content_blocks = (
                response.get("output", {})
                .get("message", {})
                .get("content", [])
            )
            texts = [block.get("text", "") for block in content_blocks if block.get("text")]
            return "\n".join(texts).strip()

        try:
            result = await run_in_threadpool(_call)
        except Exception as exc:  # pragma: no cover - external dependency
            raise LlmInvocationError(str(exc)) from exc

        return result or None


@lru_cache(maxsize=1)
def get_llm_client() -> BedrockLlmClient:
    """Return the shared Bedrock client."""

    return BedrockLlmClient()


__all__ = ["BedrockLlmClient", "LlmInvocationError", "get_llm_client"]
