"""Exceptions raised by the lesson generation and loading pipeline."""

from __future__ import annotations


class LessonEngineError(Exception):
    """Base class for every lesson pipeline failure."""


class ConfigurationError(LessonEngineError):
    """Required settings for a service are absent."""


class MissingFieldsError(LessonEngineError):
    def __init__(self, message: str = "Missing required fields"):
        super().__init__(message)


class ModelAPIError(LessonEngineError):
    """The language model API answered with a non-success status."""

    def __init__(self, body: str, status_code: int | None = None):
        self.body = body
        self.status_code = status_code
        super().__init__(f"Model API error: {body}")


class GeneratedContentError(LessonEngineError):
    """Model output cannot possibly be a component body."""


class StorageError(LessonEngineError):
    """Object storage read or write failed."""


class LessonGenerationError(LessonEngineError):
    """A generation attempt failed; the failure is already recorded on the lesson."""

    def __init__(self, lesson_id: str, message: str):
        self.lesson_id = lesson_id
        super().__init__(message)


class LessonLoadError(LessonEngineError):
    """Stored lesson source could not be turned into a component."""
