"""Recording upload and polling endpoints.

``POST /api/recordings`` stores the uploaded media, saves the initial job
snapshot and hands the recording to the background guide pipeline (see
``app.pipelines.guide``). Clients then poll ``GET /api/recordings/{id}``
and watch ``status`` / ``audioStatus`` until the guide is attached.
"""

import logging
import time
from typing import Any, Optional
from uuid import uuid4

from fastapi import APIRouter, File, Form, HTTPException, UploadFile, status
from pydantic import ValidationError

from app.config.settings import settings
from app.controllers.dependencies import AssetStoreDep, DispatcherDep, RecordingStoreDep
from app.domain.models import CaptureMetadata, RecordingJob
from app.pipelines.guide.ingestion import (
    media_extension,
    parse_json_field,
    read_media_bytes,
    resolve_content_type,
    screenshot_reference,
)
from app.services.storage import StorageError
from app.views import ErrorResponse, RecordingCreatedResponse

router = APIRouter(prefix="/api/recordings", tags=["recordings"])

logger = logging.getLogger(__name__)

_VIDEO_UPLOAD = File(None)
_METADATA_FORM = Form(None)
_EVENTS_FORM = Form(None)
_SCREENSHOTS_FORM = Form(None)
_USER_ID_FORM = Form(None, alias="userId")


def new_recording_id() -> str:
    return f"session_{int(time.time() * 1000)}_{uuid4().hex[:8]}"


@router.get("")
async def list_recordings(store: RecordingStoreDep) -> list[dict[str, Any]]:
    """Return every stored recording snapshot."""

    return [job.to_document() for job in await store.list_all()]


@router.get("/{recording_id}", responses={404: {"model": ErrorResponse}})
async def get_recording(recording_id: str, store: RecordingStoreDep) -> dict[str, Any]:
    """Return the current snapshot so callers can poll pipeline progress."""

    job = await store.get(recording_id)
    if job is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found")
    return job.to_document()


@router.post(
    "",
    response_model=RecordingCreatedResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def upload_recording(
    store: RecordingStoreDep,
    assets: AssetStoreDep,
    dispatcher: DispatcherDep,
    video: Optional[UploadFile] = _VIDEO_UPLOAD,
    metadata: Optional[str] = _METADATA_FORM,
    events: Optional[str] = _EVENTS_FORM,
    screenshots: Optional[str] = _SCREENSHOTS_FORM,
    user_id: Optional[str] = _USER_ID_FORM,
) -> RecordingCreatedResponse:
    """Accept a recorded session and start guide generation in the background."""

    if video is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No video file provided",
        )

    media_bytes = await read_media_bytes(video)
    content_type = resolve_content_type(video, media_bytes[:16])

    try:
        capture = CaptureMetadata.model_validate(parse_json_field(metadata, {}, "metadata"))
    except ValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid metadata: {exc.errors()[0]['msg']}",
        ) from exc
    event_list = [event for event in parse_json_field(events, [], "events") if isinstance(event, dict)]
    screenshot_list = [
        screenshot_reference(entry)
        for entry in parse_json_field(screenshots, [], "screenshots")
    ]

    recording_id = new_recording_id()
    media_name = f"{recording_id}.{media_extension(content_type)}"
    try:
        video_url = await assets.write(media_name, media_bytes, content_type=content_type)
    except StorageError as exc:
        logger.exception("Could not store upload recording=%s", recording_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not store uploaded video",
        ) from exc

    job = RecordingJob(
        id=recording_id,
        user_id=(user_id or "").strip() or "anon",
        video_url=video_url,
        media_name=media_name,
        mime_type=content_type,
        thumbnail_url=next(
            (shot for shot in screenshot_list[:1] if shot),
            settings.pipeline.thumbnail_placeholder,
        ),
        duration=capture.duration,
        start_time=capture.start_time,
        end_time=capture.end_time,
        url=capture.url,
        viewport=capture.viewport,
        events=event_list,
        screenshots=screenshot_list,
    )
    await store.save(job)
    logger.info(
        "Recording accepted id=%s mime=%s size=%s events=%s screenshots=%s",
        recording_id,
        content_type,
        len(media_bytes),
        len(event_list),
        len(screenshot_list),
    )

    dispatcher.submit(recording_id)
    return RecordingCreatedResponse(recording_id=recording_id)
