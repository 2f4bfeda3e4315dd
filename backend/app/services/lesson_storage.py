"""Object storage for generated lesson source.

Keys have the form ``lessons/lesson-<id>.tsx``. Writes are upserts and reads
return the stored text. Every backend failure surfaces as StorageError so the
generation service and loader can fall back to the inline ``content`` column.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import Optional

import aiofiles
from supabase import AsyncClient, create_async_client

from app.config import settings
from app.lesson_engine.errors import ConfigurationError, StorageError

logger = logging.getLogger(__name__)

LESSON_PREFIX = "lessons"


def lesson_storage_path(lesson_id: str, ext: str = "tsx") -> str:
    return f"{LESSON_PREFIX}/lesson-{lesson_id}.{ext}"


class LessonStorage:
    """Interface implemented by the storage backends."""

    async def upload(self, path: str, text: str) -> None:
        raise NotImplementedError

    async def download(self, path: str) -> str:
        raise NotImplementedError


class LocalLessonStorage(LessonStorage):
    """Stores lesson files on disk below ``root``."""

    def __init__(self, root: str | Path):
        self.root = Path(root).resolve()

    def _resolve(self, path: str) -> Path:
        target = (self.root / path).resolve()
        if self.root not in target.parents:
            raise StorageError(f"Path escapes storage root: {path}")
        return target

    async def upload(self, path: str, text: str) -> None:
        target = self._resolve(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(target, "w", encoding="utf-8") as f:
                await f.write(text)
        except OSError as e:
            raise StorageError(f"Failed to write {path}: {e}") from e

    async def download(self, path: str) -> str:
        target = self._resolve(path)
        try:
            async with aiofiles.open(target, "r", encoding="utf-8") as f:
                return await f.read()
        except OSError as e:
            raise StorageError(f"Failed to read {path}: {e}") from e


class SupabaseLessonStorage(LessonStorage):
    """Supabase Storage bucket backend."""

    def __init__(self, url: str, key: str, bucket_name: Optional[str] = None):
        if not url or not key:
            raise ConfigurationError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set.")
        self.url = url
        self.key = key
        self.bucket_name = bucket_name or settings.LESSON_STORAGE_BUCKET
        self._client: Optional[AsyncClient] = None

    async def get_client(self) -> AsyncClient:
        if self._client is None:
            self._client = await create_async_client(self.url, self.key)
        return self._client

    async def upload(self, path: str, text: str) -> None:
        try:
            client = await self.get_client()
            await client.storage.from_(self.bucket_name).upload(
                path,
                text.encode("utf-8"),
                {"content-type": "text/plain", "upsert": "true"},
            )
        except Exception as e:
            raise StorageError(f"Upload of {path} to {self.bucket_name} failed: {e}") from e
        logger.info("[LessonStorage] Uploaded %s to %s", path, self.bucket_name)

    async def download(self, path: str) -> str:
        try:
            client = await self.get_client()
            data = await client.storage.from_(self.bucket_name).download(path)
        except Exception as e:
            raise StorageError(f"Download of {path} from {self.bucket_name} failed: {e}") from e
        return data.decode("utf-8") if isinstance(data, (bytes, bytearray)) else str(data)


def build_lesson_storage() -> LessonStorage:
    backend = settings.LESSON_STORAGE_BACKEND.strip().lower()
    if backend == "local":
        return LocalLessonStorage(settings.GENERATED_LESSONS_DIR)
    if backend == "supabase":
        return SupabaseLessonStorage(
            settings.SUPABASE_URL,
            settings.SUPABASE_SERVICE_ROLE_KEY,
            settings.LESSON_STORAGE_BUCKET,
        )
    raise ConfigurationError(f"Unknown LESSON_STORAGE_BACKEND: {settings.LESSON_STORAGE_BACKEND}")


@lru_cache
def get_lesson_storage() -> LessonStorage:
    """Shared storage backend (FastAPI dependency)."""
    return build_lesson_storage()
