"""Bedrock-backed guide synthesis.

The recorder captures raw DOM interaction events; the model receives a
compacted event timeline, the spoken transcript and the capture viewport and
answers with a JSON guide validated by :mod:`app.services.response_contract`.
"""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from typing import Any, Mapping, Optional, Sequence

from app.application.interfaces import GuideSynthesizerInterface
from app.config.settings import settings
from app.domain.models import Guide, Viewport
from app.services.llm_client import BedrockLlmClient, LlmInvocationError, get_llm_client
from app.services.response_contract import GuidePayload, ResponseContractError

logger = logging.getLogger(__name__)

_EVENT_FIELDS = ("type", "timestamp", "time", "url", "selector", "text", "value", "key", "x", "y")

_GUIDE_SYSTEM_PROMPT = """You write step-by-step product guides from recorded browser sessions.

You receive the user's interaction events (clicks, typing, navigation) with
timestamps in milliseconds, the transcript of what the user said while
recording, the session duration and the browser viewport.

RULES:
1. Produce one step per meaningful user action, in chronological order.
2. Merge noise (repeated clicks, scrolling, focus changes) into the step it belongs to.
3. Each step needs a short imperative title and a one or two sentence description.
4. "narrationText" is what a voice-over says for the step; use the user's own
   wording from the transcript when it fits. Leave it out when nothing needs to be said.
5. Return ONLY JSON, no Markdown, with this shape:
{"title": str, "summary": str, "steps": [{"title": str, "description": str,
  "action": str, "timestamp": number, "narrationText": str}]}
"""


def _compact_events(events: Sequence[Mapping[str, Any]], limit: int) -> list[dict[str, Any]]:
    compacted = []
    for event in list(events)[:limit]:
        if not isinstance(event, Mapping):
            continue
        compacted.append({key: event[key] for key in _EVENT_FIELDS if event.get(key) is not None})
    return compacted


def build_guide_prompt(
    events: Sequence[Mapping[str, Any]],
    duration: Optional[float],
    transcript: str,
    viewport: Optional[Viewport],
    *,
    max_events: int,
) -> str:
    """Render the user prompt sent alongside ``_GUIDE_SYSTEM_PROMPT``."""

    compacted = _compact_events(events, max_events)
    if len(events) > len(compacted):
        logger.info("Event timeline truncated from %s to %s entries", len(events), len(compacted))

    viewport_text = (
        f"{viewport.width}x{viewport.height}" if viewport and viewport.width and viewport.height else "unknown"
    )
    sections = [
        f"Session duration (ms): {duration if duration is not None else 'unknown'}",
        f"Viewport: {viewport_text}",
        "Transcript:",
        transcript.strip() or "(no speech detected)",
        "Events:",
        json.dumps(compacted, ensure_ascii=False, separators=(",", ":")),
    ]
    return "\n".join(sections)


class GuideSynthesisError(RuntimeError):
    """Raised when the model cannot produce a valid guide."""


class BedrockGuideSynthesizer(GuideSynthesizerInterface):
    """Generate guides through the Bedrock ``converse`` API."""

    def __init__(
        self,
        llm_client: BedrockLlmClient | None = None,
        *,
        json_retries: int = settings.bedrock.json_retries,
        max_events: int = settings.pipeline.max_prompt_events,
    ) -> None:
        self._llm_client = llm_client or get_llm_client()
        self._json_retries = json_retries
        self._max_events = max_events

    async def synthesize(
        self,
        events: Sequence[Mapping[str, Any]],
        duration: Optional[float],
        transcript: str,
        viewport: Optional[Viewport],
    ) -> Guide:
        user_prompt = build_guide_prompt(
            events,
            duration,
            transcript,
            viewport,
            max_events=self._max_events,
        )

        last_error: Exception | None = None
        for attempt in range(self._json_retries + 1):
            try:
                raw_response = await self._llm_client.invoke(
                    system_prompt=_GUIDE_SYSTEM_PROMPT,
                    user_prompt=user_prompt,
                )
            except LlmInvocationError as exc:
                raise GuideSynthesisError(f"Guide model invocation failed: {exc}") from exc
            if not raw_response:
                raise GuideSynthesisError("Guide model returned an empty response.")

            try:
                payload = GuidePayload.from_json(raw_response)
            except ResponseContractError as exc:
                last_error = exc
                logger.warning("Invalid guide JSON attempt=%s: %s", attempt + 1, exc)
                continue

            if not payload.steps:
                raise GuideSynthesisError("Guide model returned no steps.")
            return payload.to_guide()

        raise GuideSynthesisError("Guide model did not return a valid guide.") from last_error


@lru_cache(maxsize=1)
def get_guide_synthesizer() -> BedrockGuideSynthesizer:
    """Return the shared guide synthesizer."""

    return BedrockGuideSynthesizer()


__all__ = [
    "BedrockGuideSynthesizer",
    "GuideSynthesisError",
    "build_guide_prompt",
    "get_guide_synthesizer",
]
