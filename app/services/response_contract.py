"""Pydantic models for validating the guide JSON returned by the LLM.

The synthesizer prompt asks for camelCase keys; older prompts nested the
narration under ``audio.narrationText`` so both shapes are accepted and
normalized before the payload becomes a domain :class:`Guide`.
"""

from __future__ import annotations

import json
from typing import Any, List, Optional

from pydantic import BaseModel, Field, ValidationError, model_validator

from app.domain.models import Guide, GuideStep


class ResponseContractError(RuntimeError):
    """Raised when the LLM response contract cannot be validated."""


class GuideStepPayload(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    action: Optional[str] = None
    timestamp: Optional[float] = None
    narration_text: Optional[str] = Field(default=None, alias="narrationText")

    model_config = {"populate_by_name": True, "extra": "ignore"}

    @model_validator(mode="before")
    @classmethod
    def flatten_audio(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        if "narrationText" not in data:
            audio = data.get("audio")
            if isinstance(audio, dict) and audio.get("narrationText"):
                data = {**data, "narrationText": audio["narrationText"]}
        timestamp = data.get("timestamp")
        if timestamp is not None and not isinstance(timestamp, (int, float)):
            try:
                float(timestamp)
            except (TypeError, ValueError):
                # Clock strings such as "00:12" carry no usable offset.
                data = {k: v for k, v in data.items() if k != "timestamp"}
        return data

    @model_validator(mode="after")
    def blank_narration_is_absent(self) -> "GuideStepPayload":
        if self.narration_text is not None and not self.narration_text.strip():
            self.narration_text = None
        return self


class GuidePayload(BaseModel):
    title: Optional[str] = None
    summary: Optional[str] = None
    steps: List[GuideStepPayload] = Field(default_factory=list)

    model_config = {"populate_by_name": True, "extra": "ignore"}

    @classmethod
    def from_json(cls, payload: str) -> "GuidePayload":
        cleaned = _clean_json_payload(payload)
        try:
            data = json.loads(cleaned)
        except json.JSONDecodeError as exc:
            raise ResponseContractError(f"Guide response is not valid JSON: {exc}") from exc
        if isinstance(data, list):
            data = {"steps": data}
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise ResponseContractError(f"Guide response failed validation: {exc}") from exc

    def to_guide(self) -> Guide:
        """Build the domain guide; positions become the step indexes."""

        return Guide(
            title=self.title,
            summary=self.summary,
            steps=[
                GuideStep(
                    step_index=index,
                    title=step.title,
                    description=step.description,
                    action=step.action,
                    timestamp=step.timestamp,
                    narration_text=step.narration_text,
                )
                for index, step in enumerate(self.steps)
            ],
        )


def _clean_json_payload(payload: str) -> str:
    """Strip Markdown code fences and keep the outermost JSON object or array."""

    if not payload:
        return ""

    cleaned = payload.strip()
    if cleaned.startswith("```json"):
        cleaned = cleaned[7:]
    elif cleaned.startswith("```"):
        cleaned = cleaned[3:]
    if cleaned.endswith("```"):
        cleaned = cleaned[:-3]
    cleaned = cleaned.strip()

    # The first bracket decides whether the answer is a guide object or a bare step list.
    starts = [index for index in (cleaned.find("{"), cleaned.find("[")) if index != -1]
    if not starts:
        return cleaned
    start = min(starts)
    closing = "}" if cleaned[start] == "{" else "]"
    end = cleaned.rfind(closing)
    if end > start:
        cleaned = cleaned[start : end + 1]

    return cleaned


__all__ = [
    "GuidePayload",
    "GuideStepPayload",
    "ResponseContractError",
]
