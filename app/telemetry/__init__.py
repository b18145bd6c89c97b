"""Telemetry helpers and metrics."""

from .metrics import (
    ERROR_COUNTER,
    INDEXING_RUNS,
    NARRATION_STEPS,
    PIPELINE_JOBS,
    PIPELINE_STAGE_LATENCY,
    REQUEST_COUNT,
    REQUEST_LATENCY,
    observe_request,
    observe_stage,
    record_indexing,
    record_job_outcome,
    record_narration,
)

__all__ = [
    "ERROR_COUNTER",
    "INDEXING_RUNS",
    "NARRATION_STEPS",
    "PIPELINE_JOBS",
    "PIPELINE_STAGE_LATENCY",
    "REQUEST_COUNT",
    "REQUEST_LATENCY",
    "observe_request",
    "observe_stage",
    "record_indexing",
    "record_job_outcome",
    "record_narration",
]
