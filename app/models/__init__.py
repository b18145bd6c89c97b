"""SQLAlchemy models for the MVC architecture."""

from .base import Base
from .recording import Recording  # noqa: F401

__all__ = [
    "Base",
    "Recording",
]
