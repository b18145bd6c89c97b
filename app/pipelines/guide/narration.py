"""Narration stage: concurrent per-step speech synthesis.

Every step with narration text gets its own task. A failing task is logged
and settles as an outcome carrying the error; it never cancels its siblings,
and the stage only returns once all tasks have settled.
"""

from __future__ import annotations

import asyncio
import logging

from app.application.interfaces import AssetStoreInterface, SpeechSynthesizerInterface
from app.domain.models import Guide, GuideStep
from app.services.speech import NARRATION_CONTENT_TYPE, NARRATION_EXTENSION
from app.telemetry import record_narration

from .errors import IsolatedStepError
from .types import NarrationOutcome

logger = logging.getLogger("app.services.guide_pipeline")


def narration_asset_name(recording_id: str, step_index: int) -> str:
    """Deterministic asset name; regenerating a step overwrites its audio."""

    return f"audio_{recording_id}_{step_index}.{NARRATION_EXTENSION}"


async def _narrate_step(
    recording_id: str,
    step: GuideStep,
    speech: SpeechSynthesizerInterface,
    assets: AssetStoreInterface,
) -> NarrationOutcome:
    try:
        logger.info("Generating narration recording=%s step=%s", recording_id, step.step_index)
        audio_bytes = await speech.synthesize(step.narration_text or "")
        if not audio_bytes:
            record_narration("empty")
            return NarrationOutcome(step_index=step.step_index)

        audio_url = await assets.write(
            narration_asset_name(recording_id, step.step_index),
            audio_bytes,
            content_type=NARRATION_CONTENT_TYPE,
        )
    except Exception as exc:
        error = IsolatedStepError(step.step_index, exc)
        logger.error("%s (recording=%s)", error, recording_id, exc_info=exc)
        record_narration("failed")
        return NarrationOutcome(step_index=step.step_index, error=error)

    record_narration("synthesized")
    return NarrationOutcome(step_index=step.step_index, audio_url=audio_url)


async def narrate_guide(
    recording_id: str,
    guide: Guide,
    speech: SpeechSynthesizerInterface,
    assets: AssetStoreInterface,
) -> tuple[Guide, list[NarrationOutcome]]:
    """Synthesize audio for all narrated steps at once and attach the URLs."""

    eligible = [step for step in guide.steps if step.needs_narration]
    settled = await asyncio.gather(
        *(_narrate_step(recording_id, step, speech, assets) for step in eligible),
        return_exceptions=True,
    )

    outcomes: list[NarrationOutcome] = []
    for step, result in zip(eligible, settled):
        if isinstance(result, BaseException):
            # Only reachable for errors raised outside the per-step handler.
            if isinstance(result, asyncio.CancelledError):
                raise result
            logger.error("Narration task crashed step=%s", step.step_index, exc_info=result)
            result = NarrationOutcome(
                step_index=step.step_index,
                error=IsolatedStepError(step.step_index, result),
            )
        outcomes.append(result)

    audio_urls = {outcome.step_index: outcome.audio_url for outcome in outcomes if outcome.succeeded}
    steps = [
        step.model_copy(update={"audio_url": audio_urls[step.step_index]})
        if step.step_index in audio_urls
        else step
        for step in guide.steps
    ]
    logger.info(
        "Narration settled recording=%s eligible=%s synthesized=%s",
        recording_id,
        len(eligible),
        len(audio_urls),
    )
    return guide.model_copy(update={"steps": steps}), outcomes


__all__ = ["narrate_guide", "narration_asset_name"]
