"""PostgreSQL implementation of UserRepo."""

from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from portal.db.tables import ExamAttemptRow, UserRow
from portal.models.progress import ExamAttempt, ModuleProgress
from portal.models.user import User
from portal.repos.documents import ProgressEntryDocument, parse_progress_map
from portal.repos.user_repo import merge_progress


class PgUserRepo:
    """Satisfies the UserRepo Protocol using PostgreSQL via SQLAlchemy.

    Each write runs in its own SAVEPOINT: a failed progress write must
    not take the audit-log write that follows it down with it.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, user_id: UUID) -> User | None:
        stmt = select(UserRow).where(UserRow.id == user_id)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return await self._to_user(row)

    async def get_by_email(self, email: str) -> User | None:
        stmt = select(UserRow).where(UserRow.email == email)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return await self._to_user(row)

    async def add(self, user: User) -> None:
        row = UserRow(
            id=user.id,
            email=user.email,
            password_hash=user.password_hash,
            name=user.name,
            department=user.department,
            roles=list(user.roles),
            is_active=user.is_active,
            progress={
                mid: ProgressEntryDocument.dump(p) for mid, p in user.progress.items()
            },
        )
        try:
            async with self._session.begin_nested():
                self._session.add(row)
        except IntegrityError:
            raise ValueError("email already exists") from None

    async def save_progress(
        self,
        user_id: UUID,
        module_id: str,
        progress: ModuleProgress,
        *,
        lesson_ids: Iterable[str] | None = None,
    ) -> None:
        async with self._session.begin_nested():
            stmt = select(UserRow).where(UserRow.id == user_id).with_for_update()
            row = (await self._session.execute(stmt)).scalar_one_or_none()
            if row is None:
                raise KeyError("user not found")

            stored = parse_progress_map(row.progress).get(module_id, ModuleProgress())
            merged = merge_progress(stored, progress, lesson_ids)
            # Reassign (not mutate) so SQLAlchemy sees the JSONB change.
            row.progress = {
                **(row.progress or {}),
                module_id: ProgressEntryDocument.dump(merged),
            }

    async def append_attempt(self, user_id: UUID, attempt: ExamAttempt) -> None:
        row = ExamAttemptRow(
            user_id=user_id,
            quiz_id=attempt.quiz_id,
            course_id=attempt.course_id,
            score=attempt.score,
            passed=attempt.passed,
            submitted_at=attempt.submitted_at,
        )
        async with self._session.begin_nested():
            self._session.add(row)

    async def _to_user(self, row: UserRow) -> User:
        stmt = (
            select(ExamAttemptRow)
            .where(ExamAttemptRow.user_id == row.id)
            .order_by(ExamAttemptRow.submitted_at)
        )
        attempts = (await self._session.execute(stmt)).scalars().all()
        return User(
            id=row.id,
            email=row.email,
            password_hash=row.password_hash,
            name=row.name or "",
            department=row.department or "",
            roles=tuple(row.roles) if row.roles else (),
            is_active=row.is_active,
            progress=parse_progress_map(row.progress),
            attempts=tuple(
                ExamAttempt(
                    quiz_id=a.quiz_id,
                    course_id=a.course_id,
                    score=a.score,
                    passed=a.passed,
                    submitted_at=a.submitted_at,
                )
                for a in attempts
            ),
        )
