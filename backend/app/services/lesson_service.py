"""Lesson service — lesson records and their status changes."""

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from app.lesson_status import LessonStatus, ensure_transition
from app.models.lesson import Lesson

logger = logging.getLogger(__name__)

TITLE_MAX_LENGTH = 100
ERROR_MAX_LENGTH = 1000


class LessonNotFound(LookupError):
    def __init__(self, lesson_id: str):
        self.lesson_id = lesson_id
        super().__init__(f"Lesson {lesson_id} not found")


def make_title(outline: str) -> str:
    """Human label for a lesson: the outline, cut at 100 characters."""
    text = outline.strip()
    if len(text) > TITLE_MAX_LENGTH:
        return text[:TITLE_MAX_LENGTH] + "..."
    return text


def create_lesson(db: Session, outline: str) -> Lesson:
    """Create a lesson in ``generating`` status."""
    lesson = Lesson(
        id=str(uuid.uuid4()),
        title=make_title(outline),
        outline=outline,
        status=LessonStatus.GENERATING.value,
    )
    db.add(lesson)
    db.commit()
    db.refresh(lesson)
    return lesson


def get_lesson(db: Session, lesson_id: str) -> Optional[Lesson]:
    return db.query(Lesson).filter(Lesson.id == lesson_id).first()


def list_lessons(db: Session) -> list[Lesson]:
    """All lessons, newest first."""
    return db.query(Lesson).order_by(Lesson.created_at.desc()).all()


def _require(db: Session, lesson_id: str) -> Lesson:
    lesson = get_lesson(db, lesson_id)
    if lesson is None:
        raise LessonNotFound(lesson_id)
    return lesson


def mark_generated(
    db: Session,
    lesson_id: str,
    file_path: Optional[str] = None,
    content: Optional[str] = None,
) -> Lesson:
    """Record a successful generation.

    Exactly one of ``file_path`` (storage key) or ``content`` (inline
    fallback) must be given; the other column is cleared so that only one
    source is ever active.
    """
    if (file_path is None) == (content is None):
        raise ValueError("Exactly one of file_path or content must be provided")

    lesson = _require(db, lesson_id)
    lesson.status = ensure_transition(lesson.status, LessonStatus.GENERATED).value
    lesson.file_path = file_path
    lesson.content = content
    lesson.error = None
    lesson.updated_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(lesson)
    return lesson


def mark_failed(db: Session, lesson_id: str, message: str) -> Lesson:
    lesson = _require(db, lesson_id)
    lesson.status = ensure_transition(lesson.status, LessonStatus.ERROR).value
    lesson.error = (message or "Unknown error")[:ERROR_MAX_LENGTH]
    lesson.updated_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(lesson)
    return lesson


def reset_for_retry(db: Session, lesson_id: str) -> Lesson:
    """Put a lesson back into ``generating`` and clear its error.

    The stored outline is kept untouched; callers regenerate from it.
    """
    lesson = _require(db, lesson_id)
    lesson.status = ensure_transition(lesson.status, LessonStatus.GENERATING).value
    lesson.error = None
    lesson.updated_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(lesson)
    logger.info("Lesson %s reset for retry", lesson_id)
    return lesson
