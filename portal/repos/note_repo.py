from __future__ import annotations

from dataclasses import replace
from typing import Protocol
from uuid import UUID

from portal.models.note import Note


class NoteRepo(Protocol):
    async def list_for_module(self, user_id: str, module_id: str) -> list[Note]: ...
    async def find(
        self, user_id: str, module_id: str, lesson_id: str
    ) -> Note | None: ...
    async def upsert(
        self,
        user_id: str,
        module_id: str,
        lesson_id: str,
        content: str,
        now: int,
    ) -> Note: ...


class InMemoryNoteRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, Note] = {}

    async def list_for_module(self, user_id: str, module_id: str) -> list[Note]:
        return [
            n
            for n in self._by_id.values()
            if n.user_id == user_id and n.module_id == module_id
        ]

    async def find(self, user_id: str, module_id: str, lesson_id: str) -> Note | None:
        for n in self._by_id.values():
            if (n.user_id, n.module_id, n.lesson_id) == (user_id, module_id, lesson_id):
                return n
        return None

    async def upsert(
        self,
        user_id: str,
        module_id: str,
        lesson_id: str,
        content: str,
        now: int,
    ) -> Note:
        existing = await self.find(user_id, module_id, lesson_id)
        if existing is None:
            note = Note.new(
                user_id=user_id,
                module_id=module_id,
                lesson_id=lesson_id,
                content=content,
                last_updated=now,
            )
        else:
            note = replace(existing, content=content, last_updated=now)
        self._by_id[note.id] = note
        return note
