"""Background generation tasks.

Generation runs after the HTTP response is sent. Instead of dropping the
task, the tracker keeps a handle per lesson until it finishes, so failures
are logged, a failure to schedule is recorded on the lesson, and a retry can
see that a generation is still in flight.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Coroutine, Optional

from app.lesson_engine.errors import LessonGenerationError

logger = logging.getLogger(__name__)

ENQUEUE_FAILED_MESSAGE = "Failed to enqueue lesson generation"


class GenerationTaskTracker:
    def __init__(self):
        self._tasks: dict[str, asyncio.Task] = {}

    def is_running(self, lesson_id: str) -> bool:
        task = self._tasks.get(lesson_id)
        return task is not None and not task.done()

    def get(self, lesson_id: str) -> Optional[asyncio.Task]:
        return self._tasks.get(lesson_id)

    def schedule(
        self,
        lesson_id: str,
        coro: Coroutine,
        on_enqueue_failure: Optional[Callable[[str, str], None]] = None,
    ) -> Optional[asyncio.Task]:
        """Start ``coro`` as a tracked task for ``lesson_id``.

        Returns None when the task could not be created; ``on_enqueue_failure``
        is then called with the lesson id and a message.
        """
        try:
            task = asyncio.get_running_loop().create_task(coro, name=f"generate-lesson-{lesson_id}")
        except RuntimeError as e:
            coro.close()
            logger.error("Could not schedule generation for lesson %s: %s", lesson_id, e)
            if on_enqueue_failure is not None:
                on_enqueue_failure(lesson_id, ENQUEUE_FAILED_MESSAGE)
            return None

        self._tasks[lesson_id] = task
        task.add_done_callback(lambda t: self._finished(lesson_id, t))
        return task

    def _finished(self, lesson_id: str, task: asyncio.Task) -> None:
        if self._tasks.get(lesson_id) is task:
            del self._tasks[lesson_id]
        if task.cancelled():
            logger.warning("Generation for lesson %s was cancelled", lesson_id)
            return
        exc = task.exception()
        if isinstance(exc, LessonGenerationError):
            # already recorded on the lesson
            logger.info("Generation for lesson %s failed: %s", lesson_id, exc)
        elif exc is not None:
            logger.error("Generation task for lesson %s crashed", lesson_id, exc_info=exc)

    async def wait_all(self) -> None:
        """Wait for every in-flight task (used on shutdown)."""
        tasks = [t for t in self._tasks.values() if not t.done()]
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)


tracker = GenerationTaskTracker()


def get_task_tracker() -> GenerationTaskTracker:
    return tracker
