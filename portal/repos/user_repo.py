from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace
from typing import Protocol
from uuid import UUID

from portal.models.progress import ExamAttempt, ModuleProgress
from portal.models.user import User
from portal.services.scoring import progress_percent


def merge_progress(
    stored: ModuleProgress,
    incoming: ModuleProgress,
    lesson_ids: Iterable[str] | None = None,
) -> ModuleProgress:
    """Union the completed sets; recount progress when the lessons are known.

    A stale writer can never shrink the set, and its percentage is
    replaced by one computed from the merged set.
    """
    completed = stored.completed_lessons | incoming.completed_lessons
    progress = incoming.progress
    if lesson_ids is not None:
        progress = progress_percent(completed, lesson_ids)
    return replace(incoming, completed_lessons=completed, progress=progress)


class UserRepo(Protocol):
    async def get_by_id(self, user_id: UUID) -> User | None: ...
    async def get_by_email(self, email: str) -> User | None: ...
    async def add(self, user: User) -> None: ...
    async def save_progress(
        self,
        user_id: UUID,
        module_id: str,
        progress: ModuleProgress,
        *,
        lesson_ids: Iterable[str] | None = None,
    ) -> None: ...
    async def append_attempt(self, user_id: UUID, attempt: ExamAttempt) -> None: ...


class InMemoryUserRepo:
    def __init__(self) -> None:
        self._by_email: dict[str, User] = {}
        self._by_id: dict[UUID, User] = {}

    async def get_by_id(self, user_id: UUID) -> User | None:
        return self._by_id.get(user_id)

    async def get_by_email(self, email: str) -> User | None:
        return self._by_email.get(email)

    async def add(self, user: User) -> None:
        if user.email in self._by_email:
            raise ValueError("email already exists")
        self._by_email[user.email] = user
        self._by_id[user.id] = user

    async def save_progress(
        self,
        user_id: UUID,
        module_id: str,
        progress: ModuleProgress,
        *,
        lesson_ids: Iterable[str] | None = None,
    ) -> None:
        """Write one module's progress entry (append-unique, see merge_progress)."""
        u = self._by_id.get(user_id)
        if u is None:
            raise KeyError("user not found")

        existing = u.progress.get(module_id, ModuleProgress())
        merged = merge_progress(existing, progress, lesson_ids)
        self._store(replace(u, progress={**u.progress, module_id: merged}))

    async def append_attempt(self, user_id: UUID, attempt: ExamAttempt) -> None:
        u = self._by_id.get(user_id)
        if u is None:
            raise KeyError("user not found")
        self._store(replace(u, attempts=(*u.attempts, attempt)))

    def _store(self, user: User) -> None:
        self._by_id[user.id] = user
        self._by_email[user.email] = user
