"""Percentages, quiz scores and module status.

All percentages round half up (12.5 -> 13), which is what learners see
on the dashboard; Python's round() would give 12.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from enum import StrEnum

from portal.models.progress import ExamAttempt
from portal.models.quiz import Quiz


class ModuleStatus(StrEnum):
    NOT_STARTED = "not-started"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


def round_percent(part: int, whole: int) -> int:
    """round_half_up(100 * part / whole), clamped to [0, 100]. 0 when whole <= 0."""
    if whole <= 0:
        return 0
    pct = (200 * part + whole) // (2 * whole)
    return max(0, min(100, pct))


def progress_percent(completed: Iterable[str], lesson_ids: Iterable[str]) -> int:
    # Ids of lessons since removed from the module don't count.
    lessons = set(lesson_ids)
    return round_percent(len(lessons & set(completed)), len(lessons))


def earned_points(quiz: Quiz, answers: Mapping[int, str]) -> int:
    return sum(
        q.points
        for i, q in enumerate(quiz.questions)
        if answers.get(i) == q.correct_answer
    )


def score_answers(quiz: Quiz, answers: Mapping[int, str]) -> int:
    """Exact-match scoring. A quiz worth 0 points scores 0."""
    return round_percent(earned_points(quiz, answers), quiz.total_points)


def is_passing(score: int, passing_score: int) -> bool:
    return score >= passing_score


def module_status(progress: int, latest_attempt: ExamAttempt | None) -> ModuleStatus:
    exam_passed = latest_attempt is not None and latest_attempt.passed
    if progress == 100 and exam_passed:
        return ModuleStatus.COMPLETED
    if progress > 0 or exam_passed:
        return ModuleStatus.IN_PROGRESS
    return ModuleStatus.NOT_STARTED
