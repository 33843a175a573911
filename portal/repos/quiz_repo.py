from __future__ import annotations

from typing import Any, Protocol

from portal.models.quiz import Quiz
from portal.repos.documents import parse_quiz


class QuizRepo(Protocol):
    async def get(self, quiz_id: str) -> Quiz | None: ...
    async def get_for_course(self, course_id: str) -> Quiz | None: ...
    async def put_document(self, quiz_id: str, document: dict[str, Any]) -> None: ...


class InMemoryQuizRepo:
    def __init__(self) -> None:
        self._docs: dict[str, dict[str, Any]] = {}

    async def get(self, quiz_id: str) -> Quiz | None:
        raw = self._docs.get(quiz_id)
        if raw is None:
            return None
        return parse_quiz(quiz_id, raw)

    async def get_for_course(self, course_id: str) -> Quiz | None:
        # query-by-field-equality on courseId; first match wins
        for quiz_id, raw in self._docs.items():
            if str(raw.get("courseId", raw.get("course_id"))) == course_id:
                return parse_quiz(quiz_id, raw)
        return None

    async def put_document(self, quiz_id: str, document: dict[str, Any]) -> None:
        self._docs[quiz_id] = dict(document)
