"""PostgreSQL implementations of CourseRepo and QuizRepo.

Both tables hold the authored JSON document verbatim; the boundary
schemas in portal.repos.documents turn it into domain objects.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from portal.db.tables import CourseRow, QuizRow
from portal.models.course import Course
from portal.models.quiz import Quiz
from portal.repos.documents import QuizDocument, parse_course, parse_quiz


class PgCourseRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, course_id: str) -> Course | None:
        row = await self._session.get(CourseRow, course_id)
        if row is None:
            return None
        return parse_course(row.id, row.document)

    async def list_all(self) -> list[Course]:
        rows = (await self._session.execute(select(CourseRow))).scalars().all()
        return [parse_course(r.id, r.document) for r in rows]

    async def put_document(self, course_id: str, document: dict[str, Any]) -> None:
        stmt = insert(CourseRow).values(id=course_id, document=document)
        stmt = stmt.on_conflict_do_update(
            index_elements=[CourseRow.id], set_={"document": stmt.excluded.document}
        )
        async with self._session.begin_nested():
            await self._session.execute(stmt)


class PgQuizRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, quiz_id: str) -> Quiz | None:
        row = await self._session.get(QuizRow, quiz_id)
        if row is None:
            return None
        return parse_quiz(row.id, row.document)

    async def get_for_course(self, course_id: str) -> Quiz | None:
        stmt = (
            select(QuizRow)
            .where(QuizRow.course_id == course_id)
            .order_by(QuizRow.id)
            .limit(1)
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return parse_quiz(row.id, row.document)

    async def put_document(self, quiz_id: str, document: dict[str, Any]) -> None:
        # Validate up front so the indexed course_id column is trustworthy.
        course_id = QuizDocument.model_validate(document).course_id
        stmt = insert(QuizRow).values(
            id=quiz_id, course_id=course_id, document=document
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[QuizRow.id],
            set_={
                "course_id": stmt.excluded.course_id,
                "document": stmt.excluded.document,
            },
        )
        async with self._session.begin_nested():
            await self._session.execute(stmt)
