from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class QuizQuestion:
    question: str
    options: tuple[str, ...]
    correct_answer: str
    points: int


@dataclass(frozen=True, slots=True)
class Quiz:
    id: str
    course_id: str
    title: str
    passing_score: int
    questions: tuple[QuizQuestion, ...]
    total_points: int

    @property
    def last_index(self) -> int:
        return len(self.questions) - 1
