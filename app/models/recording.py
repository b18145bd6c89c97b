"""SQLAlchemy model for recording job snapshots."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, String
from sqlalchemy.dialects.postgresql import JSONB

from app.models.base import Base


def get_utc_now():
    """Get current time in UTC."""
    return datetime.now(timezone.utc)


class Recording(Base):
    __tablename__ = "recordings"

    id = Column(String(64), primary_key=True)
    user_id = Column(String(128), nullable=False, index=True, default="anon")
    status = Column(String(20), nullable=False, index=True)
    audio_status = Column(String(20), nullable=False)
    # Full camelCase snapshot as returned by the API.
    document = Column(
        JSON().with_variant(JSONB(), "postgresql"),
        nullable=False,
    )

    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=get_utc_now,
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=get_utc_now,
        onupdate=get_utc_now,
    )


__all__ = ["Recording"]
