"""Pydantic schemas used as views in the MVC architecture."""

from .common import ErrorResponse
from .recordings import RecordingCreatedResponse

__all__ = [
    "ErrorResponse",
    "RecordingCreatedResponse",
]
