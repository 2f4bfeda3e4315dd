"""Tests for lesson storage keys and the local storage backend."""

import asyncio

import pytest

from app.lesson_engine.errors import ConfigurationError, StorageError
from app.services.lesson_storage import (
    LocalLessonStorage,
    SupabaseLessonStorage,
    lesson_storage_path,
)


class TestStoragePath:
    """Storage keys are derived from the lesson id."""

    def test_deterministic_key(self):
        """The same id always gives lessons/lesson-<id>.tsx."""
        assert lesson_storage_path("abc-123") == "lessons/lesson-abc-123.tsx"
        assert lesson_storage_path("abc-123") == lesson_storage_path("abc-123")

    def test_extension(self):
        """The extension can be overridden."""
        assert lesson_storage_path("abc", ext="js") == "lessons/lesson-abc.js"


class TestLocalLessonStorage:
    """Filesystem backend."""

    def test_upload_then_download(self, tmp_path):
        """An uploaded file is written under the root and reads back."""
        storage = LocalLessonStorage(tmp_path)
        asyncio.run(storage.upload("lessons/lesson-1.tsx", "export default LessonComponent;"))

        assert (tmp_path / "lessons" / "lesson-1.tsx").exists()
        assert asyncio.run(storage.download("lessons/lesson-1.tsx")) == "export default LessonComponent;"

    def test_upload_is_upsert(self, tmp_path):
        """A second upload to the same key replaces the first."""
        storage = LocalLessonStorage(tmp_path)
        asyncio.run(storage.upload("lessons/lesson-1.tsx", "first"))
        asyncio.run(storage.upload("lessons/lesson-1.tsx", "second"))
        assert asyncio.run(storage.download("lessons/lesson-1.tsx")) == "second"

    def test_missing_file_is_storage_error(self, tmp_path):
        """Reading an unknown key raises StorageError."""
        storage = LocalLessonStorage(tmp_path)
        with pytest.raises(StorageError):
            asyncio.run(storage.download("lessons/nope.tsx"))

    def test_path_cannot_escape_root(self, tmp_path):
        """Keys that resolve outside the root are refused."""
        storage = LocalLessonStorage(tmp_path / "root")
        with pytest.raises(StorageError):
            asyncio.run(storage.upload("../outside.tsx", "x"))


class TestSupabaseLessonStorage:
    """Supabase bucket backend."""

    def test_requires_credentials(self):
        """Missing URL or key is a configuration error."""
        with pytest.raises(ConfigurationError):
            SupabaseLessonStorage("", "", "lesson-files")
