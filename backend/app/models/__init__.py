"""SQLAlchemy ORM models."""

from app.models.lesson import Lesson

__all__ = [
    "Lesson",
]
