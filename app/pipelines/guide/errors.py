"""Error taxonomy of the guide pipeline.

Only :class:`FatalStageError` stops a run. The isolated variants are
created where the failure happens, logged there, and handed back as values
so they never propagate past the step or side effect that produced them.
"""

from __future__ import annotations

from .types import Stage


class PipelineError(RuntimeError):
    """Base class for guide pipeline failures."""


class FatalStageError(PipelineError):
    """A sequential stage failed; the job cannot progress any further."""

    def __init__(self, stage: Stage, message: str, cause: BaseException | None = None):
        self.stage = stage
        self.message = message
        self.cause = cause
        super().__init__(f"[{stage.value}] {message}")


class IsolatedStepError(PipelineError):
    """Narration failed for a single step; the step keeps no audio."""

    def __init__(self, step_index: int, cause: BaseException):
        self.step_index = step_index
        self.cause = cause
        super().__init__(f"Narration failed for step {step_index}: {cause}")


class IsolatedSideEffectError(PipelineError):
    """A best-effort side effect (knowledge base indexing) failed."""

    def __init__(self, message: str, cause: BaseException | None = None):
        self.cause = cause
        super().__init__(message)


__all__ = [
    "FatalStageError",
    "IsolatedSideEffectError",
    "IsolatedStepError",
    "PipelineError",
]
