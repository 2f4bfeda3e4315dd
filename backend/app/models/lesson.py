"""Lesson model — an outline and the interactive component generated from it."""

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Column, DateTime, String, Text

from app.database import Base
from app.lesson_status import LessonStatus


def _utcnow():
    return datetime.now(timezone.utc)


class Lesson(Base):
    __tablename__ = "lessons"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))

    title = Column(String(120), nullable=False)
    outline = Column(Text, nullable=False)

    status = Column(String(20), nullable=False, default=LessonStatus.GENERATING.value)  # generating | generated | error
    file_path = Column(Text, nullable=True)      # Object storage key of the generated source
    content = Column(Text, nullable=True)        # Inline source when the storage upload failed
    error = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=_utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)
