from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ModuleProgress:
    """One entry of a user's per-module progress map.

    ``completed_lessons`` only ever grows; writers union into it.
    ``progress`` is the percentage stored alongside it at write time.
    """

    completed_lessons: frozenset[str] = frozenset()
    progress: int = 0
    last_updated: int | None = None


@dataclass(frozen=True, slots=True)
class ExamAttempt:
    """One scored quiz submission. Appended to the user's history, never edited."""

    quiz_id: str
    course_id: str
    score: int
    passed: bool
    submitted_at: int
