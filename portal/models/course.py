from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Lesson:
    id: str
    title: str
    content: str  # markdown, rendered client-side
    order: int


@dataclass(frozen=True, slots=True)
class Course:
    """A training module: ordered lessons plus one bound quiz."""

    id: str
    title: str
    description: str = ""
    lessons: tuple[Lesson, ...] = ()
    category: str = ""
    status: str = "active"
    image_url: str = ""

    @property
    def lesson_ids(self) -> frozenset[str]:
        return frozenset(lesson.id for lesson in self.lessons)

    def lesson_at(self, index: int) -> Lesson | None:
        if 0 <= index < len(self.lessons):
            return self.lessons[index]
        return None
