"""Schemas for recording upload and polling endpoints."""

from pydantic import BaseModel, ConfigDict, Field


class RecordingCreatedResponse(BaseModel):
    success: bool = True
    recording_id: str = Field(alias="recordingId")

    model_config = ConfigDict(populate_by_name=True)
