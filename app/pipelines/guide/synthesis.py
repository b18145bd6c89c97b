"""Guide synthesis stage: events + transcript -> ordered guide steps."""

from __future__ import annotations

import logging

from app.application.interfaces import GuideSynthesizerInterface
from app.domain.models import Guide, RecordingJob

from .errors import FatalStageError
from .types import Stage

logger = logging.getLogger("app.services.guide_pipeline")


def reindex_steps(guide: Guide) -> Guide:
    """Make ``step_index`` equal to each step's position (0..N-1)."""

    if all(step.step_index == position for position, step in enumerate(guide.steps)):
        return guide
    steps = [
        step.model_copy(update={"step_index": position})
        for position, step in enumerate(guide.steps)
    ]
    return guide.model_copy(update={"steps": steps})


async def synthesize_guide(
    provider: GuideSynthesizerInterface,
    job: RecordingJob,
    transcript: str,
) -> Guide:
    """Ask the synthesizer for a guide; any failure is fatal for the job."""

    try:
        guide = await provider.synthesize(
            job.events,
            job.duration,
            transcript,
            job.viewport,
        )
    except Exception as exc:
        raise FatalStageError(Stage.GUIDE_SYNTHESIS, str(exc) or type(exc).__name__, exc) from exc

    if not isinstance(guide, Guide):
        raise FatalStageError(
            Stage.GUIDE_SYNTHESIS,
            f"Synthesizer returned {type(guide).__name__} instead of a guide.",
        )

    guide = reindex_steps(guide)
    logger.info("Guide generated recording=%s steps=%s", job.id, len(guide.steps))
    return guide


__all__ = ["reindex_steps", "synthesize_guide"]
