"""Recording-to-guide pipeline package.

Modules follow the order in which a recording is processed:

1. `ingestion` – upload parsing and MIME normalization.
2. `transcription` – speech-to-text over the recorded media.
3. `synthesis` – events + transcript into ordered guide steps.
4. `enrichment` – screenshot mapping by step position.
5. `narration` – concurrent per-step speech synthesis.
6. `indexing` – best-effort knowledge base publication.
7. `orchestrator` / `dispatch` – sequencing, snapshots and background runs.
"""

from .dispatch import PipelineDispatcher
from .enrichment import attach_screenshots, step_placeholder
from .errors import (
    FatalStageError,
    IsolatedSideEffectError,
    IsolatedStepError,
    PipelineError,
)
from .indexing import publish_guide
from .ingestion import normalize_mime_type
from .narration import narrate_guide, narration_asset_name
from .orchestrator import GuidePipeline
from .synthesis import reindex_steps, synthesize_guide
from .transcription import transcribe_media
from .types import NarrationOutcome, Stage

__all__ = [
    "FatalStageError",
    "GuidePipeline",
    "IsolatedSideEffectError",
    "IsolatedStepError",
    "NarrationOutcome",
    "PipelineDispatcher",
    "PipelineError",
    "Stage",
    "attach_screenshots",
    "narrate_guide",
    "narration_asset_name",
    "normalize_mime_type",
    "publish_guide",
    "reindex_steps",
    "step_placeholder",
    "synthesize_guide",
    "transcribe_media",
]
