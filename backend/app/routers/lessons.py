"""Lessons router — submit outlines, list lessons, retry, load components."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from app.config import settings
from app.database import get_db
from app.lesson_engine.errors import LessonLoadError
from app.lesson_engine.generator import GenerationService, get_generation_service
from app.lesson_engine.loader import DynamicLoader, get_lesson_loader
from app.lesson_engine.tasks import GenerationTaskTracker, get_task_tracker
from app.lesson_status import LessonStatus, is_retryable, parse_status
from app.middleware.rate_limit import limiter
from app.models.lesson import Lesson
from app.schemas.lesson import LessonComponentResponse, LessonCreateRequest, LessonResponse
from app.services import lesson_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/lessons", tags=["lessons"])

LOAD_FAILED_MESSAGE = "Failed to load lesson content. The generated code may be invalid."


def _to_response(lesson: Lesson) -> LessonResponse:
    return LessonResponse(
        id=lesson.id,
        title=lesson.title,
        outline=lesson.outline,
        status=parse_status(lesson.status).value,
        file_path=lesson.file_path,
        has_inline_content=bool(lesson.content),
        error=lesson.error,
        created_at=lesson.created_at.isoformat(),
        updated_at=lesson.updated_at.isoformat() if lesson.updated_at else None,
    )


def _schedule_generation(
    tracker: GenerationTaskTracker,
    service: GenerationService,
    lesson_id: str,
    outline: str,
) -> None:
    # Only plain strings go into the background task, never ORM objects.
    tracker.schedule(
        lesson_id,
        service.generate(lesson_id, outline),
        on_enqueue_failure=service.record_failure,
    )


@router.post("", response_model=LessonResponse, status_code=201)
@limiter.limit(settings.GENERATION_RATE_LIMIT)
async def create_lesson(
    request: Request,
    req: LessonCreateRequest,
    db: Session = Depends(get_db),
    service: GenerationService = Depends(get_generation_service),
    tracker: GenerationTaskTracker = Depends(get_task_tracker),
):
    """Create a lesson from an outline and start generating it.

    Returns immediately with status ``generating``; poll GET /{id} for the result.
    """
    if not req.outline.strip():
        raise HTTPException(status_code=400, detail="Outline must not be empty")

    lesson = lesson_service.create_lesson(db, req.outline)
    response = _to_response(lesson)
    _schedule_generation(tracker, service, lesson.id, lesson.outline)
    return response


@router.get("", response_model=list[LessonResponse])
def list_lessons(db: Session = Depends(get_db)):
    """All lessons, newest first."""
    return [_to_response(l) for l in lesson_service.list_lessons(db)]


@router.get("/{lesson_id}", response_model=LessonResponse)
def get_lesson(lesson_id: str, db: Session = Depends(get_db)):
    lesson = lesson_service.get_lesson(db, lesson_id)
    if not lesson:
        raise HTTPException(status_code=404, detail="Lesson not found")
    return _to_response(lesson)


@router.post("/{lesson_id}/retry", response_model=LessonResponse, status_code=202)
@limiter.limit(settings.GENERATION_RATE_LIMIT)
async def retry_lesson(
    request: Request,
    lesson_id: str,
    db: Session = Depends(get_db),
    service: GenerationService = Depends(get_generation_service),
    tracker: GenerationTaskTracker = Depends(get_task_tracker),
):
    """Regenerate a failed lesson from its stored outline."""
    lesson = lesson_service.get_lesson(db, lesson_id)
    if not lesson:
        raise HTTPException(status_code=404, detail="Lesson not found")

    if tracker.is_running(lesson_id):
        raise HTTPException(status_code=409, detail="Lesson is already being generated")
    if not is_retryable(lesson.status):
        raise HTTPException(
            status_code=409,
            detail=f"Only failed lessons can be retried (lesson is {parse_status(lesson.status).value})",
        )

    lesson = lesson_service.reset_for_retry(db, lesson_id)
    response = _to_response(lesson)
    _schedule_generation(tracker, service, lesson.id, lesson.outline)
    return response


@router.get("/{lesson_id}/component", response_model=LessonComponentResponse)
async def get_lesson_component(
    lesson_id: str,
    db: Session = Depends(get_db),
    loader: DynamicLoader = Depends(get_lesson_loader),
):
    """Compiled component module for a generated lesson."""
    lesson = lesson_service.get_lesson(db, lesson_id)
    if not lesson:
        raise HTTPException(status_code=404, detail="Lesson not found")

    status = parse_status(lesson.status)
    if status is not LessonStatus.GENERATED:
        raise HTTPException(status_code=409, detail=f"Lesson is {status.value}")

    try:
        component = await loader.load(lesson)
    except LessonLoadError as e:
        logger.error("Error loading lesson component %s: %s", lesson_id, e)
        raise HTTPException(status_code=422, detail=LOAD_FAILED_MESSAGE)

    return LessonComponentResponse(
        lesson_id=component.lesson_id,
        component_name=component.component_name,
        entry=component.entry,
        bindings=component.bindings,
        code=component.code,
        source=component.source,
    )
