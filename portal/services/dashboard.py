"""Dashboard summary: every module with the learner's standing in it."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from uuid import UUID

from portal.repos.provider import Repos
from portal.services.errors import StoreUnavailableError, UnknownUserError
from portal.services.scoring import ModuleStatus, module_status, progress_percent

logger = logging.getLogger(__name__)

NO_DESCRIPTION = "No description available"
DEFAULT_IMAGE_URL = "/default-module.jpg"


@dataclass(frozen=True, slots=True)
class ModuleSummary:
    id: str
    title: str
    description: str
    category: str
    image_url: str
    lesson_count: int
    progress: int
    status: ModuleStatus
    exam_completed: bool
    exam_score: int


async def list_modules(repos: Repos, user_id: str) -> list[ModuleSummary]:
    try:
        uid = UUID(user_id)
    except ValueError:
        raise UnknownUserError(user_id) from None

    try:
        courses = await repos.courses.list_all()
        user = await repos.users.get_by_id(uid)
    except Exception as e:
        logger.exception("Failed to load modules")
        raise StoreUnavailableError("Failed to load modules") from e

    if user is None:
        raise UnknownUserError(user_id)

    summaries = []
    for course in courses:
        stored = user.progress_for(course.id)
        progress = progress_percent(stored.completed_lessons, course.lesson_ids)
        latest = user.latest_attempt(course.id)
        summaries.append(
            ModuleSummary(
                id=course.id,
                title=course.title,
                description=course.description or NO_DESCRIPTION,
                category=course.category,
                image_url=course.image_url or DEFAULT_IMAGE_URL,
                lesson_count=len(course.lessons),
                progress=progress,
                status=module_status(progress, latest),
                exam_completed=latest is not None and latest.passed,
                exam_score=latest.score if latest is not None else 0,
            )
        )
    return summaries
