"""Repository bundle and its unit-of-work scope.

``repo_scope()`` is the single place that decides which backend the
services talk to: PostgreSQL when DATABASE_URL is configured, otherwise
the process-wide in-memory repos. Request handlers get it through the
``get_repos`` dependency; the exam countdown, which fires outside any
request, opens its own scope.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from portal.db.engine import async_session_factory
from portal.repos.audit_log_repo import AuditLogRepo, InMemoryAuditLogRepo
from portal.repos.course_repo import CourseRepo, InMemoryCourseRepo
from portal.repos.note_repo import InMemoryNoteRepo, NoteRepo
from portal.repos.pg_audit_log_repo import PgAuditLogRepo
from portal.repos.pg_course_repo import PgCourseRepo, PgQuizRepo
from portal.repos.pg_note_repo import PgNoteRepo
from portal.repos.pg_user_repo import PgUserRepo
from portal.repos.quiz_repo import InMemoryQuizRepo, QuizRepo
from portal.repos.user_repo import InMemoryUserRepo, UserRepo

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Repos:
    users: UserRepo
    courses: CourseRepo
    quizzes: QuizRepo
    notes: NoteRepo
    audit_logs: AuditLogRepo


def in_memory_repos() -> Repos:
    return Repos(
        users=InMemoryUserRepo(),
        courses=InMemoryCourseRepo(),
        quizzes=InMemoryQuizRepo(),
        notes=InMemoryNoteRepo(),
        audit_logs=InMemoryAuditLogRepo(),
    )


# Module-level singleton, used whenever no database is configured.
IN_MEMORY_REPOS = in_memory_repos()


@asynccontextmanager
async def repo_scope() -> AsyncIterator[Repos]:
    """Yield a Repos bundle; with PostgreSQL, one session per scope.

    Commits on success, rolls back on exception. Individual writes are
    already isolated in SAVEPOINTs by the PG repos, so a write failure
    the services swallow does not abort the rest of the scope.
    """
    if async_session_factory is None:
        yield IN_MEMORY_REPOS
        return

    async with async_session_factory() as session:
        try:
            yield Repos(
                users=PgUserRepo(session),
                courses=PgCourseRepo(session),
                quizzes=PgQuizRepo(session),
                notes=PgNoteRepo(session),
                audit_logs=PgAuditLogRepo(session),
            )
            await session.commit()
        except Exception:
            logger.warning("Rolling back repo scope after error")
            await session.rollback()
            raise


async def get_repos() -> AsyncIterator[Repos]:
    """FastAPI dependency wrapper around repo_scope()."""
    async with repo_scope() as repos:
        yield repos
