"""Typed containers shared across the guide pipeline.

These live in their own module so the stage modules and ``errors`` can
import them without creating circular dependencies.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Stage(str, Enum):
    """Pipeline stages in execution order."""

    TRANSCRIPTION = "transcription"
    GUIDE_SYNTHESIS = "guide_synthesis"
    ENRICHMENT = "enrichment"
    NARRATION = "narration"
    INDEXING = "indexing"


@dataclass(frozen=True)
class NarrationOutcome:
    """Settled result of one narration task."""

    step_index: int
    audio_url: Optional[str] = None
    error: Optional[Exception] = None

    @property
    def succeeded(self) -> bool:
        return self.audio_url is not None


__all__ = ["NarrationOutcome", "Stage"]
