from __future__ import annotations

import asyncio
from dataclasses import replace
from uuid import UUID

import pytest

from portal.models.progress import ExamAttempt
from portal.repos.provider import IN_MEMORY_REPOS
from portal.seed import SAFETY_COURSE_ID, SECURITY_COURSE_ID
from portal.services.errors import StoreUnavailableError, UnknownModuleError
from portal.services.progress_tracker import (
    LessonNotFoundError,
    ModuleProgressTracker,
    NextStep,
)
from portal.services.scoring import ModuleStatus
from tests.conftest import create_user

NOW = 1_700_000_000


class _Offline:
    """Stands in for any repo whose every call fails."""

    def __getattr__(self, name: str):
        async def _fail(*args, **kwargs):
            raise ConnectionError("store offline")

        return _fail


def _tracker(repos=IN_MEMORY_REPOS) -> ModuleProgressTracker:
    return ModuleProgressTracker(repos, clock=lambda: NOW)


def _load(tracker: ModuleProgressTracker, module_id: str, user_id: str) -> None:
    asyncio.run(tracker.load_module(module_id, user_id))


def _complete(tracker: ModuleProgressTracker, index: int):
    tracker.select_lesson(index)
    return asyncio.run(tracker.mark_current_lesson_complete())


@pytest.fixture
def user_id() -> str:
    return str(create_user().id)


def test_load_module_for_new_learner(user_id: str) -> None:
    tracker = _tracker()
    _load(tracker, SAFETY_COURSE_ID, user_id)

    assert tracker.course is not None
    assert [lesson.id for lesson in tracker.course.lessons] == [
        "ws-1",
        "ws-2",
        "ws-3",
        "ws-4",
        "ws-5",
    ]
    assert tracker.completed == frozenset()
    assert tracker.progress == 0
    assert tracker.status is ModuleStatus.NOT_STARTED
    assert tracker.current_lesson is not None
    assert tracker.current_lesson.id == "ws-1"


def test_unknown_module_raises(user_id: str) -> None:
    with pytest.raises(UnknownModuleError):
        _load(_tracker(), "no-such-module", user_id)


def test_module_read_failure_is_store_unavailable(user_id: str) -> None:
    repos = replace(IN_MEMORY_REPOS, courses=_Offline())
    with pytest.raises(StoreUnavailableError):
        _load(_tracker(repos), SAFETY_COURSE_ID, user_id)


def test_notes_read_failure_falls_back_to_empty_notes(user_id: str) -> None:
    repos = replace(IN_MEMORY_REPOS, notes=_Offline())
    tracker = _tracker(repos)
    _load(tracker, SAFETY_COURSE_ID, user_id)
    assert tracker.notes == {}
    assert tracker.course is not None


def test_select_lesson_is_open_and_bounds_checked(user_id: str) -> None:
    tracker = _tracker()
    _load(tracker, SAFETY_COURSE_ID, user_id)

    assert tracker.select_lesson(4).id == "ws-5"
    assert tracker.select_lesson(1).id == "ws-2"
    with pytest.raises(LessonNotFoundError):
        tracker.select_lesson(5)


def test_two_of_five_lessons_is_forty_percent_in_progress(user_id: str) -> None:
    tracker = _tracker()
    _load(tracker, SAFETY_COURSE_ID, user_id)
    _complete(tracker, 0)
    completion = _complete(tracker, 2)

    assert completion.progress == 40
    assert completion.ready_for_exam is False
    assert tracker.status is ModuleStatus.IN_PROGRESS

    # What the next request sees.
    reloaded = _tracker()
    _load(reloaded, SAFETY_COURSE_ID, user_id)
    assert reloaded.completed == frozenset({"ws-1", "ws-3"})
    assert reloaded.progress == 40


def test_mark_complete_is_idempotent(user_id: str) -> None:
    tracker = _tracker()
    _load(tracker, SAFETY_COURSE_ID, user_id)
    first = _complete(tracker, 1)
    second = _complete(tracker, 1)

    assert first.newly_completed is True
    assert second.newly_completed is False
    assert second.progress == first.progress == 20

    logs = asyncio.run(IN_MEMORY_REPOS.audit_logs.list_recent())
    assert len(logs) == 1


def test_mark_complete_writes_audit_entry(user_id: str) -> None:
    tracker = _tracker()
    _load(tracker, SAFETY_COURSE_ID, user_id)
    _complete(tracker, 0)

    (entry,) = asyncio.run(IN_MEMORY_REPOS.audit_logs.list_recent())
    assert entry.user_id == user_id
    assert entry.action == "lesson_completed"
    assert entry.module_id == SAFETY_COURSE_ID
    assert entry.lesson_id == "ws-1"
    assert entry.occurred_at == NOW
    assert entry.metadata == {
        "lessonTitle": "Why Safety Matters",
        "courseTitle": "Workplace Safety Fundamentals",
    }


def test_all_lessons_complete_signals_exam_but_not_completed(user_id: str) -> None:
    tracker = _tracker()
    _load(tracker, SAFETY_COURSE_ID, user_id)
    for index in range(5):
        completion = _complete(tracker, index)

    assert completion.progress == 100
    assert completion.ready_for_exam is True
    assert tracker.next_step() is NextStep.EXAM
    assert tracker.status is ModuleStatus.IN_PROGRESS


def test_passed_exam_and_full_progress_is_completed(user_id: str) -> None:
    asyncio.run(
        IN_MEMORY_REPOS.users.append_attempt(
            UUID(user_id),
            ExamAttempt(
                quiz_id="workplace-safety-quiz",
                course_id=SAFETY_COURSE_ID,
                score=90,
                passed=True,
                submitted_at=NOW,
            ),
        )
    )
    tracker = _tracker()
    _load(tracker, SAFETY_COURSE_ID, user_id)
    for index in range(5):
        _complete(tracker, index)
    assert tracker.status is ModuleStatus.COMPLETED


def test_progress_write_failure_keeps_local_state(user_id: str) -> None:
    tracker = _tracker()
    _load(tracker, SAFETY_COURSE_ID, user_id)
    tracker._repos = replace(IN_MEMORY_REPOS, users=_Offline())

    completion = _complete(tracker, 0)
    assert completion.newly_completed is True
    assert completion.progress == 20
    assert completion.progress_saved is False
    # The audit write is independent and still lands.
    assert completion.audit_logged is True
    assert tracker.is_completed("ws-1")


def test_audit_failure_keeps_saved_progress(user_id: str) -> None:
    tracker = _tracker()
    _load(tracker, SAFETY_COURSE_ID, user_id)
    tracker._repos = replace(IN_MEMORY_REPOS, audit_logs=_Offline())

    completion = _complete(tracker, 1)
    assert completion.newly_completed is True
    assert completion.progress_saved is True
    assert completion.audit_logged is False
    assert tracker.is_completed("ws-2")

    # The progress write that already landed is not rolled back.
    stored = asyncio.run(IN_MEMORY_REPOS.users.get_by_id(UUID(user_id)))
    assert stored is not None
    entry = stored.progress_for(SAFETY_COURSE_ID)
    assert entry.completed_lessons == frozenset({"ws-2"})
    assert entry.progress == 20
    assert entry.last_updated == NOW
    assert asyncio.run(IN_MEMORY_REPOS.audit_logs.list_recent()) == []


def test_next_step_moves_through_lessons(user_id: str) -> None:
    tracker = _tracker()
    _load(tracker, SAFETY_COURSE_ID, user_id)
    assert tracker.next_step() is NextStep.LESSON
    tracker.select_lesson(4)
    assert tracker.next_step() is NextStep.NONE


def test_save_note_upserts_one_note_per_lesson(user_id: str) -> None:
    tracker = _tracker()
    _load(tracker, SAFETY_COURSE_ID, user_id)

    assert asyncio.run(tracker.save_note("ws-2", "first draft")).saved
    assert asyncio.run(tracker.save_note("ws-2", "second draft")).saved

    notes = asyncio.run(
        IN_MEMORY_REPOS.notes.list_for_module(user_id, SAFETY_COURSE_ID)
    )
    assert [(n.lesson_id, n.content) for n in notes] == [("ws-2", "second draft")]

    reloaded = _tracker()
    _load(reloaded, SAFETY_COURSE_ID, user_id)
    assert reloaded.notes == {"ws-2": "second draft"}


def test_save_note_failure_keeps_local_note(user_id: str) -> None:
    tracker = _tracker()
    _load(tracker, SAFETY_COURSE_ID, user_id)
    tracker._repos = replace(IN_MEMORY_REPOS, notes=_Offline())

    saved = asyncio.run(tracker.save_note("ws-1", "offline thoughts"))
    assert saved.saved is False
    assert tracker.notes["ws-1"] == "offline thoughts"


def test_save_note_rejects_lesson_outside_module(user_id: str) -> None:
    tracker = _tracker()
    _load(tracker, SAFETY_COURSE_ID, user_id)
    with pytest.raises(LessonNotFoundError):
        asyncio.run(tracker.save_note("not-a-lesson", "x"))


def test_legacy_document_gets_generated_lesson_ids(user_id: str) -> None:
    tracker = _tracker()
    _load(tracker, SECURITY_COURSE_ID, user_id)
    assert tracker.course is not None
    assert [lesson.id for lesson in tracker.course.lessons] == [
        "security-basics-lesson-1",
        "security-basics-lesson-2",
        "security-basics-lesson-3",
    ]
    assert tracker.course.description == ""
