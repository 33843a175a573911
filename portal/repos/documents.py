"""Boundary schemas for loosely shaped store documents.

Courses and quizzes are authored outside the portal and arrive as plain
JSON documents (seed data, JSONB columns). Nothing downstream of the
repos sees a raw dict: each document is validated and defaulted here,
then converted to the frozen domain dataclasses in ``portal.models``.

Defaulting follows the documents' falsy-means-missing convention: a
``title`` of ``""`` or ``null`` is treated the same as an absent one.
"""

from __future__ import annotations

from typing import Any

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    field_validator,
)

from portal.models.course import Course, Lesson
from portal.models.progress import ModuleProgress
from portal.models.quiz import Quiz, QuizQuestion

UNTITLED_MODULE = "Untitled Module"
UNTITLED_LESSON = "Untitled Lesson"
DEFAULT_PASSING_SCORE = 70


def _falsy_to_none(value: Any) -> Any:
    if value is None or value == "" or value == []:
        return None
    return value


class _Document(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class LessonDocument(_Document):
    id: str | None = None
    title: str = UNTITLED_LESSON
    content: str = ""
    order: int | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, v: Any) -> Any:
        return None if v is None or v == "" else str(v)

    @field_validator("title", "content", mode="before")
    @classmethod
    def _default_text(cls, v: Any, info: ValidationInfo) -> Any:
        if _falsy_to_none(v) is None:
            return cls.model_fields[info.field_name].default
        return v


class CourseDocument(_Document):
    title: str = UNTITLED_MODULE
    description: str = ""
    lessons: list[LessonDocument] = Field(
        default_factory=list,
        validation_alias=AliasChoices("lessons", "modules"),
    )
    category: str = ""
    status: str = "active"
    image_url: str = Field(
        default="", validation_alias=AliasChoices("image_url", "imageUrl")
    )

    @field_validator(
        "title", "description", "category", "status", "image_url", mode="before"
    )
    @classmethod
    def _default_text(cls, v: Any, info: ValidationInfo) -> Any:
        if _falsy_to_none(v) is None:
            return cls.model_fields[info.field_name].default
        return v

    @field_validator("lessons", mode="before")
    @classmethod
    def _default_lessons(cls, v: Any) -> Any:
        return v or []

    def to_domain(self, course_id: str) -> Course:
        lessons = []
        for position, doc in enumerate(self.lessons):
            order = doc.order if doc.order is not None else position
            lessons.append(
                Lesson(
                    id=doc.id or f"{course_id}-lesson-{position + 1}",
                    title=doc.title,
                    content=doc.content,
                    order=order,
                )
            )
        # sorted() is stable, so lessons sharing an order keep document order.
        lessons = sorted(lessons, key=lambda lesson: lesson.order)
        return Course(
            id=course_id,
            title=self.title,
            description=self.description,
            lessons=tuple(lessons),
            category=self.category,
            status=self.status,
            image_url=self.image_url,
        )


class QuestionDocument(_Document):
    question: str = ""
    options: list[str] = Field(default_factory=list)
    correct_answer: str = Field(
        default="", validation_alias=AliasChoices("correct_answer", "correctAnswer")
    )
    points: int = 0

    @field_validator("options", mode="before")
    @classmethod
    def _default_options(cls, v: Any) -> Any:
        return [str(o) for o in v] if v else []

    @field_validator("points", mode="before")
    @classmethod
    def _default_points(cls, v: Any) -> Any:
        return 0 if v is None else v


class QuizDocument(_Document):
    course_id: str = Field(validation_alias=AliasChoices("course_id", "courseId"))
    title: str | None = Field(
        default=None, validation_alias=AliasChoices("title", "courseTitle")
    )
    passing_score: int = Field(
        default=DEFAULT_PASSING_SCORE,
        validation_alias=AliasChoices("passing_score", "passingScore"),
    )
    questions: list[QuestionDocument] = Field(default_factory=list)
    total_points: int | None = Field(
        default=None, validation_alias=AliasChoices("total_points", "totalPoints")
    )

    @field_validator("questions", mode="before")
    @classmethod
    def _default_questions(cls, v: Any) -> Any:
        return v or []

    @field_validator("passing_score", mode="before")
    @classmethod
    def _default_passing(cls, v: Any) -> Any:
        return DEFAULT_PASSING_SCORE if v is None else v

    def to_domain(self, quiz_id: str) -> Quiz:
        questions = tuple(
            QuizQuestion(
                question=q.question,
                options=tuple(q.options),
                correct_answer=q.correct_answer,
                points=q.points,
            )
            for q in self.questions
        )
        total = self.total_points
        if total is None:
            total = sum(q.points for q in questions)
        return Quiz(
            id=quiz_id,
            course_id=self.course_id,
            title=self.title or UNTITLED_MODULE,
            passing_score=self.passing_score,
            questions=questions,
            total_points=total,
        )


class ProgressEntryDocument(_Document):
    """One value of a user's stored ``progress`` map."""

    completed_lessons: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("completed_lessons", "completedLessons"),
    )
    progress: int = 0
    last_updated: int | None = Field(
        default=None, validation_alias=AliasChoices("last_updated", "lastUpdated")
    )

    @field_validator("completed_lessons", mode="before")
    @classmethod
    def _default_completed(cls, v: Any) -> Any:
        return [str(x) for x in v] if v else []

    def to_domain(self) -> ModuleProgress:
        return ModuleProgress(
            completed_lessons=frozenset(self.completed_lessons),
            progress=self.progress,
            last_updated=self.last_updated,
        )

    @staticmethod
    def dump(progress: ModuleProgress) -> dict[str, Any]:
        return {
            "completedLessons": sorted(progress.completed_lessons),
            "progress": progress.progress,
            "lastUpdated": progress.last_updated,
        }


def parse_course(course_id: str, raw: dict[str, Any]) -> Course:
    return CourseDocument.model_validate(raw).to_domain(course_id)


def parse_quiz(quiz_id: str, raw: dict[str, Any]) -> Quiz:
    return QuizDocument.model_validate(raw).to_domain(quiz_id)


def parse_progress_map(raw: dict[str, Any] | None) -> dict[str, ModuleProgress]:
    return {
        module_id: ProgressEntryDocument.model_validate(entry or {}).to_domain()
        for module_id, entry in (raw or {}).items()
    }
