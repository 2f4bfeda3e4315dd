"""Tests for the generation service (fake model and storage, real SQLite)."""

import asyncio

import pytest

from app.lesson_engine.errors import (
    LessonGenerationError,
    MissingFieldsError,
    ModelAPIError,
)
from app.lesson_engine.generator import (
    CANCELLED_MESSAGE,
    STORED_IN_DATABASE,
    STORED_IN_STORAGE,
    GenerationService,
)
from app.lesson_engine.tasks import GenerationTaskTracker
from app.lesson_status import InvalidStatusTransition, is_retryable
from app.services import lesson_service
from app.services.lesson_service import LessonNotFound

from conftest import SAMPLE_COMPONENT, FakeStorage, make_chat


def _service(session_factory, storage=None, chat=None):
    return GenerationService(
        storage=storage or FakeStorage(),
        session_factory=session_factory,
        chat=chat or make_chat(),
    )


def _reload(session_factory, lesson_id):
    with session_factory() as db:
        return lesson_service.get_lesson(db, lesson_id)


class TestGenerateSuccess:
    """Successful generations end in ``generated``."""

    def test_storage_write_sets_file_path(self, session_factory, db):
        """The source is uploaded and only file_path is set."""
        lesson = lesson_service.create_lesson(db, "A 3 question quiz on addition")
        storage = FakeStorage()
        service = _service(session_factory, storage=storage)

        result = asyncio.run(service.generate(lesson.id, lesson.outline))

        assert result.stored == STORED_IN_STORAGE
        stored = _reload(session_factory, lesson.id)
        assert stored.status == "generated"
        assert stored.file_path == f"lessons/lesson-{lesson.id}.tsx"
        assert stored.content is None
        assert stored.error is None
        assert storage.files[stored.file_path] == SAMPLE_COMPONENT

    def test_storage_failure_falls_back_to_database(self, session_factory, db):
        """A failed upload stores the source inline instead."""
        lesson = lesson_service.create_lesson(db, "Photosynthesis basics")
        service = _service(session_factory, storage=FakeStorage(fail_upload=True))

        result = asyncio.run(service.generate(lesson.id, lesson.outline))

        assert result.stored == STORED_IN_DATABASE
        stored = _reload(session_factory, lesson.id)
        assert stored.status == "generated"
        assert stored.content == SAMPLE_COMPONENT
        assert stored.file_path is None

    def test_fenced_output_is_cleaned_before_storing(self, session_factory, db):
        """Markdown fences around the model reply are not stored."""
        lesson = lesson_service.create_lesson(db, "Fractions")
        storage = FakeStorage()
        chat = make_chat(reply=f"```tsx\n{SAMPLE_COMPONENT}\n```")
        service = _service(session_factory, storage=storage, chat=chat)

        asyncio.run(service.generate(lesson.id, lesson.outline))

        assert storage.files[f"lessons/lesson-{lesson.id}.tsx"] == SAMPLE_COMPONENT

    def test_outline_is_sent_verbatim(self, session_factory, db):
        """One model call carries the outline and the fixed parameters."""
        outline = "A 3 question quiz on addition"
        lesson = lesson_service.create_lesson(db, outline)
        chat = make_chat()
        service = _service(session_factory, chat=chat)

        asyncio.run(service.generate(lesson.id, outline))

        assert len(chat.calls) == 1
        call = chat.calls[0]
        assert outline in call["messages"][0]["content"]
        assert "export default LessonComponent" in call["system"]
        assert call["max_tokens"] == 4000
        assert call["temperature"] == 0.7

    def test_missing_markers_still_generate(self, session_factory, db):
        """Lenient policy: marker warnings do not block the lesson."""
        source = (
            "function Lesson() {\n"
            "  return React.createElement('div', null, 'A lesson about fractions and decimals');\n"
            "}\n"
        )
        lesson = lesson_service.create_lesson(db, "Fractions")
        service = _service(session_factory, chat=make_chat(reply=source))

        asyncio.run(service.generate(lesson.id, lesson.outline))

        assert _reload(session_factory, lesson.id).status == "generated"


class TestGenerateFailure:
    """Failures are recorded on the lesson, or rejected before any change."""

    def test_missing_fields_mutate_nothing(self, session_factory, db):
        """Empty id or outline is rejected without a model call."""
        lesson = lesson_service.create_lesson(db, "Fractions")
        chat = make_chat()
        service = _service(session_factory, chat=chat)

        with pytest.raises(MissingFieldsError):
            asyncio.run(service.generate(lesson.id, ""))
        with pytest.raises(MissingFieldsError):
            asyncio.run(service.generate(None, "Fractions"))

        assert chat.calls == []
        assert _reload(session_factory, lesson.id).status == "generating"

    def test_unknown_lesson(self, session_factory):
        """An unknown lesson id raises LessonNotFound."""
        with pytest.raises(LessonNotFound):
            asyncio.run(_service(session_factory).generate("does-not-exist", "Fractions"))

    def test_lesson_must_be_generating(self, session_factory, db):
        """Only lessons in generating can be generated."""
        lesson = lesson_service.create_lesson(db, "Fractions")
        lesson_service.mark_failed(db, lesson.id, "boom")

        with pytest.raises(InvalidStatusTransition):
            asyncio.run(_service(session_factory).generate(lesson.id, lesson.outline))

    def test_model_error_is_recorded(self, session_factory, db):
        """The raw model error body ends up in the lesson's error."""
        lesson = lesson_service.create_lesson(db, "Fractions")
        body = '{"error": {"message": "Rate limit reached"}}'
        service = _service(session_factory, chat=make_chat(exc=ModelAPIError(body, status_code=429)))

        with pytest.raises(LessonGenerationError) as exc:
            asyncio.run(service.generate(lesson.id, lesson.outline))

        stored = _reload(session_factory, lesson.id)
        assert stored.status == "error"
        assert stored.error
        assert "Rate limit reached" in stored.error
        assert str(exc.value) == stored.error

    def test_implausible_content_is_rejected(self, session_factory, db):
        """A reply that cannot be a component fails and is not stored."""
        lesson = lesson_service.create_lesson(db, "Fractions")
        storage = FakeStorage()
        service = _service(session_factory, storage=storage, chat=make_chat(reply="Sorry, I can't help."))

        with pytest.raises(LessonGenerationError):
            asyncio.run(service.generate(lesson.id, lesson.outline))

        stored = _reload(session_factory, lesson.id)
        assert stored.status == "error"
        assert "too short" in stored.error
        assert storage.files == {}

    def test_failure_while_recording_failure_is_swallowed(self, session_factory, db, monkeypatch):
        """A broken failure update still raises the original error."""
        lesson = lesson_service.create_lesson(db, "Fractions")
        service = _service(session_factory, chat=make_chat(exc=ModelAPIError("upstream down")))

        def broken_mark_failed(*args, **kwargs):
            raise RuntimeError("database unavailable")

        monkeypatch.setattr(lesson_service, "mark_failed", broken_mark_failed)
        with pytest.raises(LessonGenerationError):
            asyncio.run(service.generate(lesson.id, lesson.outline))


class TestCancellation:
    """A cancelled generation leaves the lesson retryable."""

    def _hanging_service(self, session_factory, started):
        async def hanging_chat(system, messages, max_tokens=4000, temperature=0.7):
            started.set()
            await asyncio.Event().wait()

        return _service(session_factory, chat=hanging_chat)

    def test_cancelled_generation_is_recorded(self, session_factory, db):
        """Cancelling mid-call marks the lesson error and re-raises."""
        lesson = lesson_service.create_lesson(db, "Fractions")

        async def scenario():
            started = asyncio.Event()
            service = self._hanging_service(session_factory, started)
            task = asyncio.create_task(service.generate(lesson.id, lesson.outline))
            await started.wait()
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        asyncio.run(scenario())

        stored = _reload(session_factory, lesson.id)
        assert stored.status == "error"
        assert stored.error == CANCELLED_MESSAGE
        assert is_retryable(stored.status)

    def test_cancelled_tracked_task(self, session_factory, db):
        """A tracked task that is cancelled stops running and records the failure."""
        lesson = lesson_service.create_lesson(db, "Fractions")
        tracker = GenerationTaskTracker()

        async def scenario():
            started = asyncio.Event()
            service = self._hanging_service(session_factory, started)
            task = tracker.schedule(lesson.id, service.generate(lesson.id, lesson.outline))
            await started.wait()
            task.cancel()
            await tracker.wait_all()
            await asyncio.sleep(0)

        asyncio.run(scenario())

        assert not tracker.is_running(lesson.id)
        assert _reload(session_factory, lesson.id).status == "error"


class TestRetry:
    """Retries regenerate from the stored outline."""

    def test_retry_regenerates_from_stored_outline(self, session_factory, db):
        """After a failure, reset and regenerate with the same outline."""
        outline = "A 3 question quiz on addition"
        lesson = lesson_service.create_lesson(db, outline)
        failing = _service(session_factory, chat=make_chat(exc=ModelAPIError("timeout")))
        with pytest.raises(LessonGenerationError):
            asyncio.run(failing.generate(lesson.id, outline))

        with session_factory() as session:
            reset = lesson_service.reset_for_retry(session, lesson.id)
            assert reset.status == "generating"
            assert reset.error is None
            stored_outline = reset.outline

        chat = make_chat()
        asyncio.run(_service(session_factory, chat=chat).generate(lesson.id, stored_outline))

        assert outline in chat.calls[0]["messages"][0]["content"]
        assert _reload(session_factory, lesson.id).status == "generated"
