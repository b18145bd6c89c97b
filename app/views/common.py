"""Common response schemas."""

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Body written by the app's HTTPException handler for 4xx/5xx replies."""

    detail: str
