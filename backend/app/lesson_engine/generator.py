"""Generation service — outline in, stored lesson component out.

One call to ``generate`` makes one model request and exactly one lesson
record update: the lesson ends in ``generated`` (with either a storage key
or inline content) or in ``error`` (with the failure message).
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Awaitable, Callable, Optional

from sqlalchemy.orm import sessionmaker

from app.config import settings
from app.database import SessionLocal
from app.lesson_engine.errors import (
    ConfigurationError,
    GeneratedContentError,
    LessonGenerationError,
    MissingFieldsError,
    StorageError,
)
from app.lesson_engine.postprocess import strip_code_fences, validate_component_source
from app.lesson_engine.prompts import GENERATE_COMPONENT_SYSTEM, build_user_prompt
from app.lesson_status import InvalidStatusTransition, LessonStatus, parse_status
from app.services import ai_client, lesson_service
from app.services.lesson_service import LessonNotFound
from app.services.lesson_storage import LessonStorage, get_lesson_storage, lesson_storage_path

logger = logging.getLogger(__name__)

ChatFn = Callable[..., Awaitable[str]]

STORED_IN_STORAGE = "storage"
STORED_IN_DATABASE = "database"

CANCELLED_MESSAGE = "Generation was cancelled"


@dataclass
class GenerationResult:
    lesson_id: str
    stored: str
    file_path: Optional[str] = None


class GenerationService:
    def __init__(
        self,
        storage: LessonStorage,
        session_factory: sessionmaker = SessionLocal,
        chat: ChatFn = ai_client.chat,
        max_tokens: int = 4000,
        temperature: float = 0.7,
        min_content_length: int = 100,
    ):
        self.storage = storage
        self.session_factory = session_factory
        self.chat = chat
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.min_content_length = min_content_length

    async def generate_source(self, outline: str) -> str:
        """Ask the model for a component and return the cleaned-up source."""
        raw = await self.chat(
            system=GENERATE_COMPONENT_SYSTEM,
            messages=[{"role": "user", "content": build_user_prompt(outline)}],
            max_tokens=self.max_tokens,
            temperature=self.temperature,
        )
        source = strip_code_fences(raw)
        logger.info("Generated content preview: %s", source[:500])

        report = validate_component_source(source, min_length=self.min_content_length)
        if not report.ok:
            raise GeneratedContentError("; ".join(report.errors))
        return source

    async def _persist(self, lesson_id: str, source: str) -> GenerationResult:
        path = lesson_storage_path(lesson_id)
        try:
            await self.storage.upload(path, source)
        except StorageError as e:
            logger.warning("Storage upload failed, using database fallback: %s", e)
            with self.session_factory() as db:
                lesson_service.mark_generated(db, lesson_id, content=source)
            return GenerationResult(lesson_id=lesson_id, stored=STORED_IN_DATABASE)

        with self.session_factory() as db:
            lesson_service.mark_generated(db, lesson_id, file_path=path)
        return GenerationResult(lesson_id=lesson_id, stored=STORED_IN_STORAGE, file_path=path)

    def record_failure(self, lesson_id: str, message: str) -> None:
        """Mark the lesson failed; errors while doing so are logged, not raised."""
        try:
            with self.session_factory() as db:
                lesson_service.mark_failed(db, lesson_id, message)
        except Exception:
            logger.exception("Failed to update lesson %s with error status", lesson_id)

    async def generate(self, lesson_id: Optional[str], outline: Optional[str]) -> GenerationResult:
        """Generate, store and record the component for one lesson.

        Raises:
            MissingFieldsError: lesson_id or outline is empty (nothing recorded).
            LessonNotFound: no lesson with that id (nothing recorded).
            InvalidStatusTransition: the lesson is not in ``generating``.
            LessonGenerationError: any later failure, after it was recorded
                on the lesson.
        """
        if not lesson_id or not outline or not outline.strip():
            raise MissingFieldsError()

        with self.session_factory() as db:
            lesson = lesson_service.get_lesson(db, lesson_id)
            if lesson is None:
                raise LessonNotFound(lesson_id)
            current = parse_status(lesson.status)
        if current is not LessonStatus.GENERATING:
            raise InvalidStatusTransition(current, LessonStatus.GENERATED)

        try:
            source = await self.generate_source(outline)
            result = await self._persist(lesson_id, source)
        except asyncio.CancelledError:
            logger.warning("Generation for lesson %s was cancelled", lesson_id)
            self.record_failure(lesson_id, CANCELLED_MESSAGE)
            raise
        except Exception as e:
            logger.error("Error generating lesson %s: %s", lesson_id, e)
            message = str(e) or type(e).__name__
            self.record_failure(lesson_id, message)
            raise LessonGenerationError(lesson_id, message) from e

        logger.info("Lesson %s generated (stored in %s)", lesson_id, result.stored)
        return result


def build_generation_service() -> GenerationService:
    """Generation service wired from settings.

    Raises:
        ConfigurationError: model or storage credentials are missing.
    """
    missing = settings.missing_generation_settings()
    if missing:
        raise ConfigurationError(f"Missing settings for lesson generation: {', '.join(missing)}")
    return GenerationService(
        storage=get_lesson_storage(),
        max_tokens=settings.LESSON_LLM_MAX_TOKENS,
        temperature=settings.LESSON_LLM_TEMPERATURE,
        min_content_length=settings.LESSON_MIN_CONTENT_LENGTH,
    )


@lru_cache
def get_generation_service() -> GenerationService:
    """FastAPI dependency; built once per process."""
    return build_generation_service()
