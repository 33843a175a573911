"""Dashboard and lesson-viewer endpoints.

GET  /v1/modules                                   dashboard list
GET  /v1/modules/{module_id}?lesson=N              one module, lesson N open
POST /v1/modules/{module_id}/lessons/{index}/complete
PUT  /v1/modules/{module_id}/notes/{lesson_id}

Each request loads a fresh ModuleProgressTracker; write failures are
logged by the tracker and reported through the ``saved`` flags, never
as an error status.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel

from portal.api.dependencies import require_user
from portal.models.principal import Principal
from portal.repos.provider import Repos, get_repos
from portal.services import dashboard
from portal.services.errors import (
    StoreUnavailableError,
    UnknownModuleError,
    UnknownUserError,
)
from portal.services.progress_tracker import LessonNotFoundError, ModuleProgressTracker

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/modules", tags=["modules"])


class ModuleSummaryOut(BaseModel):
    id: str
    title: str
    description: str
    category: str
    image_url: str
    lesson_count: int
    progress: int
    status: str
    exam_completed: bool
    exam_score: int


class LessonOut(BaseModel):
    id: str
    title: str
    order: int
    completed: bool


class CurrentLessonOut(BaseModel):
    index: int
    id: str
    title: str
    content: str
    completed: bool
    note: str


class ModuleDetailOut(BaseModel):
    id: str
    title: str
    description: str
    category: str
    progress: int
    status: str
    completed_lessons: list[str]
    lessons: list[LessonOut]
    current_lesson: CurrentLessonOut | None
    next_step: str


class LessonCompletionOut(BaseModel):
    lesson_id: str | None
    newly_completed: bool
    progress: int
    ready_for_exam: bool
    saved: bool


class NoteIn(BaseModel):
    content: str


class NoteOut(BaseModel):
    lesson_id: str
    content: str
    saved: bool


def store_unavailable(e: StoreUnavailableError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail={"message": str(e), "retryable": True},
    )


def module_not_found(module_id: str) -> HTTPException:
    # The client sends the learner back to the dashboard.
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail={"message": f"Module {module_id} not found", "redirect": "/"},
    )


def _detail(tracker: ModuleProgressTracker) -> ModuleDetailOut:
    course = tracker.course
    assert course is not None
    lesson = tracker.current_lesson
    current = None
    if lesson is not None:
        current = CurrentLessonOut(
            index=tracker.current_index,
            id=lesson.id,
            title=lesson.title,
            content=lesson.content,
            completed=tracker.is_completed(lesson.id),
            note=tracker.notes.get(lesson.id, ""),
        )
    return ModuleDetailOut(
        id=course.id,
        title=course.title,
        description=course.description,
        category=course.category,
        progress=tracker.progress,
        status=tracker.status.value,
        completed_lessons=sorted(tracker.completed & course.lesson_ids),
        lessons=[
            LessonOut(
                id=item.id,
                title=item.title,
                order=item.order,
                completed=tracker.is_completed(item.id),
            )
            for item in course.lessons
        ],
        current_lesson=current,
        next_step=tracker.next_step().value,
    )


async def _load(repos: Repos, module_id: str, user_id: str) -> ModuleProgressTracker:
    tracker = ModuleProgressTracker(repos)
    try:
        await tracker.load_module(module_id, user_id)
    except UnknownModuleError:
        raise module_not_found(module_id) from None
    except StoreUnavailableError as e:
        raise store_unavailable(e) from None
    return tracker


def _select(tracker: ModuleProgressTracker, index: int) -> None:
    try:
        tracker.select_lesson(index)
    except LessonNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"message": str(e)},
        ) from None


@router.get("", response_model=list[ModuleSummaryOut])
async def list_modules(
    principal: Annotated[Principal, Depends(require_user)],
    repos: Annotated[Repos, Depends(get_repos)],
) -> list[ModuleSummaryOut]:
    try:
        summaries = await dashboard.list_modules(repos, principal.user_id)
    except UnknownUserError:
        raise HTTPException(status_code=404, detail="user not found") from None
    except StoreUnavailableError as e:
        raise store_unavailable(e) from None

    return [
        ModuleSummaryOut(
            id=s.id,
            title=s.title,
            description=s.description,
            category=s.category,
            image_url=s.image_url,
            lesson_count=s.lesson_count,
            progress=s.progress,
            status=s.status.value,
            exam_completed=s.exam_completed,
            exam_score=s.exam_score,
        )
        for s in summaries
    ]


@router.get("/{module_id}", response_model=ModuleDetailOut)
async def get_module(
    module_id: str,
    principal: Annotated[Principal, Depends(require_user)],
    repos: Annotated[Repos, Depends(get_repos)],
    lesson: Annotated[int, Query(ge=0)] = 0,
) -> ModuleDetailOut:
    tracker = await _load(repos, module_id, principal.user_id)
    if tracker.course is not None and tracker.course.lessons:
        _select(tracker, lesson)
    return _detail(tracker)


@router.post(
    "/{module_id}/lessons/{index}/complete",
    response_model=LessonCompletionOut,
)
async def complete_lesson(
    module_id: str,
    index: int,
    principal: Annotated[Principal, Depends(require_user)],
    repos: Annotated[Repos, Depends(get_repos)],
) -> LessonCompletionOut:
    tracker = await _load(repos, module_id, principal.user_id)
    _select(tracker, index)
    completion = await tracker.mark_current_lesson_complete()
    return LessonCompletionOut(
        lesson_id=completion.lesson_id,
        newly_completed=completion.newly_completed,
        progress=completion.progress,
        ready_for_exam=completion.ready_for_exam,
        saved=completion.progress_saved and completion.audit_logged,
    )


@router.put("/{module_id}/notes/{lesson_id}", response_model=NoteOut)
async def save_note(
    module_id: str,
    lesson_id: str,
    body: NoteIn,
    principal: Annotated[Principal, Depends(require_user)],
    repos: Annotated[Repos, Depends(get_repos)],
) -> NoteOut:
    tracker = await _load(repos, module_id, principal.user_id)
    try:
        saved = await tracker.save_note(lesson_id, body.content)
    except LessonNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"message": f"Lesson {lesson_id} not found"},
        ) from None
    return NoteOut(lesson_id=saved.lesson_id, content=saved.content, saved=saved.saved)
