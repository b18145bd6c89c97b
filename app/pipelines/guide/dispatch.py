"""Background execution of guide pipelines.

Upload handlers call :meth:`PipelineDispatcher.submit` and return right
away; the run continues as its own asyncio task and reports progress only
through the recording store.
"""

from __future__ import annotations

import asyncio
import logging

from .orchestrator import GuidePipeline

logger = logging.getLogger("app.services.guide_pipeline")


class PipelineDispatcher:
    """Spawn one task per recording and keep references until they finish."""

    def __init__(self, pipeline: GuidePipeline) -> None:
        self._pipeline = pipeline
        self._tasks: set[asyncio.Task] = set()

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    def submit(self, recording_id: str) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(
            self._pipeline.run(recording_id),
            name=f"guide-pipeline:{recording_id}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.warning("Pipeline task %s was cancelled", task.get_name())
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Pipeline background error in %s", task.get_name(), exc_info=exc)

    async def drain(self) -> None:
        """Wait for every submitted pipeline, including ones submitted meanwhile."""

        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


__all__ = ["PipelineDispatcher"]
