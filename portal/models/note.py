from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class Note:
    """Free-text annotation; at most one per (user, module, lesson)."""

    id: UUID
    user_id: str
    module_id: str
    lesson_id: str
    content: str
    last_updated: int

    @staticmethod
    def new(
        *,
        user_id: str,
        module_id: str,
        lesson_id: str,
        content: str,
        last_updated: int,
    ) -> Note:
        return Note(
            id=uuid4(),
            user_id=user_id,
            module_id=module_id,
            lesson_id=lesson_id,
            content=content,
            last_updated=last_updated,
        )
