from __future__ import annotations

from dataclasses import dataclass, field
from uuid import UUID, uuid4

from portal.models.progress import ExamAttempt, ModuleProgress


@dataclass(frozen=True, slots=True)
class User:
    id: UUID
    email: str
    password_hash: str
    name: str = ""
    department: str = ""
    roles: tuple[str, ...] = ("learner",)  # immutable
    is_active: bool = True
    progress: dict[str, ModuleProgress] = field(default_factory=dict)
    attempts: tuple[ExamAttempt, ...] = ()

    @staticmethod
    def new(
        *,
        email: str,
        password_hash: str,
        name: str = "",
        department: str = "",
        roles: tuple[str, ...] = ("learner",),
    ) -> User:
        return User(
            id=uuid4(),
            email=email,
            password_hash=password_hash,
            name=name,
            department=department,
            roles=roles,
            is_active=True,
        )

    def progress_for(self, module_id: str) -> ModuleProgress:
        return self.progress.get(module_id, ModuleProgress())

    def attempts_for(self, course_id: str) -> list[ExamAttempt]:
        return [a for a in self.attempts if a.course_id == course_id]

    def latest_attempt(self, course_id: str) -> ExamAttempt | None:
        latest: ExamAttempt | None = None
        for attempt in self.attempts_for(course_id):
            # >= so that of two attempts in the same second the later append wins
            if latest is None or attempt.submitted_at >= latest.submitted_at:
                latest = attempt
        return latest

    @property
    def display_name(self) -> str:
        if self.name:
            return self.name
        if self.email:
            return self.email.split("@")[0]
        return "Participant"
