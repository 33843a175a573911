from __future__ import annotations

from typing import Any, Protocol

from portal.models.course import Course
from portal.repos.documents import parse_course


class CourseRepo(Protocol):
    async def get(self, course_id: str) -> Course | None: ...
    async def list_all(self) -> list[Course]: ...
    async def put_document(self, course_id: str, document: dict[str, Any]) -> None: ...


class InMemoryCourseRepo:
    """Holds raw course documents, the way the hosted store did.

    Documents are validated on every read so malformed content is
    defaulted at the boundary rather than on the way in.
    """

    def __init__(self) -> None:
        self._docs: dict[str, dict[str, Any]] = {}

    async def get(self, course_id: str) -> Course | None:
        raw = self._docs.get(course_id)
        if raw is None:
            return None
        return parse_course(course_id, raw)

    async def list_all(self) -> list[Course]:
        return [parse_course(cid, raw) for cid, raw in self._docs.items()]

    async def put_document(self, course_id: str, document: dict[str, Any]) -> None:
        self._docs[course_id] = dict(document)
