"""Pydantic schemas for lessons, generation and component loading."""

from typing import Optional

from pydantic import BaseModel, Field


class LessonCreateRequest(BaseModel):
    outline: str = Field(min_length=1)


class LessonResponse(BaseModel):
    id: str
    title: str
    outline: str
    status: str
    file_path: Optional[str] = None
    has_inline_content: bool = False
    error: Optional[str] = None
    created_at: str
    updated_at: Optional[str] = None

    class Config:
        from_attributes = True


# Wire format of the generation endpoint is camelCase. Fields are optional so
# that a missing one is answered with 400 "Missing required fields".
class GenerateLessonRequest(BaseModel):
    lessonId: Optional[str] = None
    outline: Optional[str] = None


class GenerateLessonResponse(BaseModel):
    success: bool
    lessonId: Optional[str] = None
    stored: Optional[str] = None
    error: Optional[str] = None


class LessonComponentResponse(BaseModel):
    lesson_id: str
    component_name: str
    entry: str
    bindings: list[str]
    code: str
    source: str
