"""PostgreSQL implementation of NoteRepo."""

from __future__ import annotations

import uuid

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from portal.db.tables import NoteRow
from portal.models.note import Note


class PgNoteRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list_for_module(self, user_id: str, module_id: str) -> list[Note]:
        stmt = select(NoteRow).where(
            NoteRow.user_id == user_id, NoteRow.module_id == module_id
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_note(r) for r in rows]

    async def find(self, user_id: str, module_id: str, lesson_id: str) -> Note | None:
        stmt = select(NoteRow).where(
            NoteRow.user_id == user_id,
            NoteRow.module_id == module_id,
            NoteRow.lesson_id == lesson_id,
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_note(row) if row is not None else None

    async def upsert(
        self,
        user_id: str,
        module_id: str,
        lesson_id: str,
        content: str,
        now: int,
    ) -> Note:
        # The unique (user, module, lesson) constraint makes this a single
        # atomic statement instead of find-then-write.
        stmt = insert(NoteRow).values(
            id=uuid.uuid4(),
            user_id=user_id,
            module_id=module_id,
            lesson_id=lesson_id,
            content=content,
            last_updated=now,
        )
        stmt = stmt.on_conflict_do_update(
            constraint="uq_notes_lesson",
            set_={"content": stmt.excluded.content, "last_updated": now},
        )
        stmt = stmt.returning(NoteRow).execution_options(populate_existing=True)
        async with self._session.begin_nested():
            row = (await self._session.execute(stmt)).scalar_one()
        return _row_to_note(row)


def _row_to_note(row: NoteRow) -> Note:
    return Note(
        id=row.id,
        user_id=row.user_id,
        module_id=row.module_id,
        lesson_id=row.lesson_id,
        content=row.content,
        last_updated=row.last_updated,
    )
