"""
Lesson status state machine.

    generating ──► generated
        │  ▲            │
        ▼  │  retry     │ regenerate
      error ◄───────────┘ (via generating)

A lesson is created in ``generating``. The generation service moves it to
``generated`` or ``error`` exactly once per attempt; a retry moves it back
to ``generating``. ``error`` is the single failure label: rows written with
the older ``failed`` label are read as ``error``.
"""

from __future__ import annotations

from enum import Enum


class LessonStatus(str, Enum):
    GENERATING = "generating"
    GENERATED = "generated"
    ERROR = "error"


_LEGACY_LABELS = {"failed": LessonStatus.ERROR}

ALLOWED_TRANSITIONS: dict[LessonStatus, frozenset[LessonStatus]] = {
    LessonStatus.GENERATING: frozenset({LessonStatus.GENERATED, LessonStatus.ERROR}),
    LessonStatus.ERROR: frozenset({LessonStatus.GENERATING}),
    LessonStatus.GENERATED: frozenset({LessonStatus.GENERATING}),
}


class InvalidStatusTransition(ValueError):
    def __init__(self, current: LessonStatus, target: LessonStatus):
        self.current = current
        self.target = target
        super().__init__(f"Cannot move lesson from '{current.value}' to '{target.value}'")


def parse_status(value: str | LessonStatus) -> LessonStatus:
    """Read a stored status label into the enum.

    Raises:
        ValueError: for labels that are neither current nor legacy.
    """
    if isinstance(value, LessonStatus):
        return value
    label = (value or "").strip().lower()
    if label in _LEGACY_LABELS:
        return _LEGACY_LABELS[label]
    return LessonStatus(label)


def can_transition(current: str | LessonStatus, target: str | LessonStatus) -> bool:
    return parse_status(target) in ALLOWED_TRANSITIONS[parse_status(current)]


def ensure_transition(current: str | LessonStatus, target: str | LessonStatus) -> LessonStatus:
    """Return the target status, or raise InvalidStatusTransition."""
    src, dst = parse_status(current), parse_status(target)
    if dst not in ALLOWED_TRANSITIONS[src]:
        raise InvalidStatusTransition(src, dst)
    return dst


def is_terminal(status: str | LessonStatus) -> bool:
    return parse_status(status) in (LessonStatus.GENERATED, LessonStatus.ERROR)


def is_retryable(status: str | LessonStatus) -> bool:
    """Only failed lessons are offered a retry."""
    return parse_status(status) is LessonStatus.ERROR
