"""FastAPI routers acting as controllers in the MVC architecture."""

from . import recordings

__all__ = ["recordings"]
