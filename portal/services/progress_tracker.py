"""Module Progress Tracker.

Loads one module for one learner, lets them move freely between
lessons, marks lessons complete and keeps a note per lesson. Every call
works on a freshly loaded tracker; nothing is cached between requests.

Writes are sequential and independent. When marking a lesson complete,
the progress write and the audit-log append can fail separately; each
failure is logged and counted, the other write is not rolled back, and
the learner's local state still shows the lesson as complete.
"""

from __future__ import annotations

import datetime
import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from uuid import UUID

from portal.core.metrics import LESSON_COMPLETIONS, STORE_WRITE_FAILURES
from portal.models.audit import AuditLogEntry
from portal.models.course import Course, Lesson
from portal.models.progress import ExamAttempt, ModuleProgress
from portal.repos.provider import Repos
from portal.services.errors import StoreUnavailableError, UnknownModuleError
from portal.services.scoring import ModuleStatus, module_status, progress_percent

logger = logging.getLogger(__name__)

LESSON_COMPLETED = "lesson_completed"


class LessonNotFoundError(LookupError):
    pass


class NextStep(StrEnum):
    LESSON = "lesson"
    EXAM = "exam"
    NONE = "none"


@dataclass(frozen=True, slots=True)
class LessonCompletion:
    lesson_id: str | None
    newly_completed: bool
    progress: int
    ready_for_exam: bool
    progress_saved: bool
    audit_logged: bool


@dataclass(frozen=True, slots=True)
class NoteSave:
    lesson_id: str
    content: str
    saved: bool


def _now() -> int:
    return int(datetime.datetime.now(datetime.UTC).timestamp())


class ModuleProgressTracker:
    def __init__(self, repos: Repos, *, clock: Callable[[], int] = _now) -> None:
        self._repos = repos
        self._clock = clock
        self.user_id: str | None = None
        self.course: Course | None = None
        self.completed: frozenset[str] = frozenset()
        self.progress = 0
        self.notes: dict[str, str] = {}
        self.current_index = 0
        self.latest_attempt: ExamAttempt | None = None

    async def load_module(self, module_id: str, user_id: str) -> Course:
        """Fetch the module, the learner's completed set and their notes.

        Raises UnknownModuleError when the module does not exist and
        StoreUnavailableError when the module or user read fails. A
        failed notes read only costs the notes.
        """
        try:
            course = await self._repos.courses.get(module_id)
        except Exception as e:
            logger.exception("Failed to load module=%s", module_id)
            raise StoreUnavailableError("Failed to load module") from e
        if course is None:
            logger.warning("Module not found  module=%s", module_id)
            raise UnknownModuleError(module_id)

        try:
            user = await self._repos.users.get_by_id(UUID(user_id))
        except ValueError:
            user = None
        except Exception as e:
            logger.exception("Failed to load progress for module=%s", module_id)
            raise StoreUnavailableError("Failed to load progress") from e

        # No stored record means nothing is complete yet.
        stored = user.progress_for(module_id) if user else ModuleProgress()

        try:
            notes = await self._repos.notes.list_for_module(user_id, module_id)
            self.notes = {n.lesson_id: n.content for n in notes}
        except Exception:
            logger.exception("Failed to load notes for module=%s", module_id)
            self.notes = {}

        self.user_id = user_id
        self.course = course
        self.completed = stored.completed_lessons
        self.progress = progress_percent(self.completed, course.lesson_ids)
        self.latest_attempt = user.latest_attempt(module_id) if user else None
        self.current_index = 0
        return course

    # -- navigation ---------------------------------------------------------

    @property
    def current_lesson(self) -> Lesson | None:
        if self.course is None:
            return None
        return self.course.lesson_at(self.current_index)

    def select_lesson(self, index: int) -> Lesson:
        """Open navigation: any lesson may be viewed in any order."""
        course = self._require_loaded()
        lesson = course.lesson_at(index)
        if lesson is None:
            raise LessonNotFoundError(f"lesson index {index} outside module")
        self.current_index = index
        return lesson

    def is_completed(self, lesson_id: str) -> bool:
        return lesson_id in self.completed

    @property
    def status(self) -> ModuleStatus:
        return module_status(self.progress, self.latest_attempt)

    def next_step(self) -> NextStep:
        course = self._require_loaded()
        if self.current_index < len(course.lessons) - 1:
            return NextStep.LESSON
        if self.progress == 100:
            return NextStep.EXAM
        return NextStep.NONE

    # -- writes -------------------------------------------------------------

    async def mark_current_lesson_complete(self) -> LessonCompletion:
        course = self._require_loaded()
        lesson = self.current_lesson
        if lesson is None or lesson.id in self.completed:
            return LessonCompletion(
                lesson_id=lesson.id if lesson else None,
                newly_completed=False,
                progress=self.progress,
                ready_for_exam=self.progress == 100,
                progress_saved=True,
                audit_logged=True,
            )

        now = self._clock()
        self.completed = self.completed | {lesson.id}
        self.progress = progress_percent(self.completed, course.lesson_ids)
        LESSON_COMPLETIONS.inc()

        progress_saved = True
        try:
            await self._repos.users.save_progress(
                UUID(self.user_id or ""),
                course.id,
                ModuleProgress(
                    completed_lessons=self.completed,
                    progress=self.progress,
                    last_updated=now,
                ),
                lesson_ids=course.lesson_ids,
            )
        except Exception:
            progress_saved = False
            STORE_WRITE_FAILURES.labels(operation="progress").inc()
            logger.exception(
                "Failed to save progress  module=%s lesson=%s", course.id, lesson.id
            )

        audit_logged = True
        try:
            await self._repos.audit_logs.append(
                AuditLogEntry.new(
                    user_id=self.user_id or "",
                    action=LESSON_COMPLETED,
                    module_id=course.id,
                    lesson_id=lesson.id,
                    occurred_at=now,
                    metadata={"lessonTitle": lesson.title, "courseTitle": course.title},
                )
            )
        except Exception:
            audit_logged = False
            STORE_WRITE_FAILURES.labels(operation="audit_log").inc()
            logger.exception(
                "Failed to append audit log  module=%s lesson=%s", course.id, lesson.id
            )

        logger.info(
            "Lesson completed  module=%s lesson=%s progress=%d",
            course.id,
            lesson.id,
            self.progress,
            extra={"user_id": self.user_id, "module_id": course.id},
        )
        return LessonCompletion(
            lesson_id=lesson.id,
            newly_completed=True,
            progress=self.progress,
            ready_for_exam=self.progress == 100,
            progress_saved=progress_saved,
            audit_logged=audit_logged,
        )

    async def save_note(self, lesson_id: str, content: str) -> NoteSave:
        """Upsert the learner's note for one lesson.

        The client calls this when the editor loses focus, not per
        keystroke.
        """
        course = self._require_loaded()
        if lesson_id not in course.lesson_ids:
            raise LessonNotFoundError(f"lesson {lesson_id!r} not in module")

        self.notes[lesson_id] = content
        try:
            await self._repos.notes.upsert(
                self.user_id or "", course.id, lesson_id, content, self._clock()
            )
        except Exception:
            STORE_WRITE_FAILURES.labels(operation="note").inc()
            logger.exception(
                "Failed to save note  module=%s lesson=%s", course.id, lesson_id
            )
            return NoteSave(lesson_id=lesson_id, content=content, saved=False)
        return NoteSave(lesson_id=lesson_id, content=content, saved=True)

    def _require_loaded(self) -> Course:
        if self.course is None:
            raise RuntimeError("load_module() must be called first")
        return self.course
