"""Synchronous generation endpoint: POST /api/generate-lesson."""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from app.config import settings
from app.lesson_engine.errors import LessonGenerationError, MissingFieldsError
from app.lesson_engine.generator import STORED_IN_DATABASE, GenerationService, get_generation_service
from app.lesson_engine.tasks import GenerationTaskTracker, get_task_tracker
from app.lesson_status import InvalidStatusTransition
from app.middleware.rate_limit import limiter
from app.schemas.lesson import GenerateLessonRequest, GenerateLessonResponse
from app.services.lesson_service import LessonNotFound

router = APIRouter(prefix="/api", tags=["generation"])

ALREADY_RUNNING_MESSAGE = "Lesson is already being generated"


def _failure(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


@router.post("/generate-lesson", response_model=GenerateLessonResponse, response_model_exclude_none=True)
@limiter.limit(settings.GENERATION_RATE_LIMIT)
async def generate_lesson(
    request: Request,
    req: GenerateLessonRequest,
    service: GenerationService = Depends(get_generation_service),
    tracker: GenerationTaskTracker = Depends(get_task_tracker),
):
    """Generate the component for an existing lesson and wait for the result.

    The lesson must be in ``generating`` status with no background generation
    in flight. On failure the error is also recorded on the lesson.
    """
    if req.lessonId and tracker.is_running(req.lessonId):
        return _failure(409, ALREADY_RUNNING_MESSAGE)

    try:
        result = await service.generate(req.lessonId, req.outline)
    except MissingFieldsError as e:
        return _failure(400, str(e))
    except LessonNotFound as e:
        return _failure(404, str(e))
    except InvalidStatusTransition as e:
        return _failure(409, str(e))
    except LessonGenerationError as e:
        return _failure(500, str(e))

    return GenerateLessonResponse(
        success=True,
        lessonId=result.lesson_id,
        stored=STORED_IN_DATABASE if result.stored == STORED_IN_DATABASE else None,
    )
