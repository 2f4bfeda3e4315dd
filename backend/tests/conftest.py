"""Shared fixtures: test settings, a throwaway SQLite database and fakes."""

import os
import sys
import tempfile

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

# Settings are read at import time, so the environment is prepared first.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("OPENAI_API_KEY", "sk-test")
os.environ.setdefault("LESSON_LLM_PROVIDER", "openai")
os.environ.setdefault("LESSON_STORAGE_BACKEND", "local")
os.environ.setdefault("GENERATED_LESSONS_DIR", tempfile.mkdtemp(prefix="lessons-"))
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest

from app.database import Base, build_engine, make_session_factory
from app.lesson_engine.errors import StorageError
from app.services.lesson_storage import LessonStorage
import app.models  # noqa: F401  (registers tables)


SAMPLE_COMPONENT = """import React, { useState } from 'react';

interface Question {
  id: number;
  prompt: string;
  answer: string;
}

const questions: Question[] = [
  { id: 1, prompt: 'What is 2 + 2?', answer: '4' },
  { id: 2, prompt: 'What is 3 + 5?', answer: '8' },
];

const LessonComponent: React.FC = () => {
  const [answers, setAnswers] = useState<{ [key: number]: string }>({});

  const handleChange = (id: number, value: string): void => {
    setAnswers(prev => ({ ...prev, [id]: value }));
  };

  return (
    <div className="max-w-4xl mx-auto p-8 bg-white">
      <h1 className="text-3xl font-bold mb-6 text-slate-900">Addition Quiz</h1>
      {questions.map(q => (
        <section key={q.id} className="mb-4">
          <p className="text-slate-800">{q.prompt}</p>
          <input
            value={answers[q.id] || ''}
            onChange={(e: React.ChangeEvent<HTMLInputElement>) => handleChange(q.id, e.target.value)}
          />
        </section>
      ))}
    </div>
  );
};

export default LessonComponent;"""


class FakeStorage(LessonStorage):
    """In-memory storage that can be told to fail."""

    def __init__(self, fail_upload: bool = False, fail_download: bool = False):
        self.files: dict[str, str] = {}
        self.fail_upload = fail_upload
        self.fail_download = fail_download

    async def upload(self, path: str, text: str) -> None:
        if self.fail_upload:
            raise StorageError("bucket not found")
        self.files[path] = text

    async def download(self, path: str) -> str:
        if self.fail_download or path not in self.files:
            raise StorageError(f"object not found: {path}")
        return self.files[path]


def make_chat(reply: str = SAMPLE_COMPONENT, exc: Exception | None = None):
    """Async stand-in for ai_client.chat that records its calls."""
    calls = []

    async def fake_chat(system, messages, max_tokens=4000, temperature=0.7):
        calls.append({
            "system": system,
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
        })
        if exc is not None:
            raise exc
        return reply

    fake_chat.calls = calls
    return fake_chat


@pytest.fixture
def session_factory(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'lessons.db'}")
    Base.metadata.create_all(bind=engine)
    yield make_session_factory(engine)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()
