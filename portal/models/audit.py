from __future__ import annotations

from dataclasses import dataclass, field
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class AuditLogEntry:
    """Append-only record of who completed what, and when."""

    id: UUID
    user_id: str
    action: str  # lesson_completed
    module_id: str
    lesson_id: str | None
    occurred_at: int
    metadata: dict[str, str] = field(default_factory=dict)

    @staticmethod
    def new(
        *,
        user_id: str,
        action: str,
        module_id: str,
        lesson_id: str | None,
        occurred_at: int,
        metadata: dict[str, str] | None = None,
    ) -> AuditLogEntry:
        return AuditLogEntry(
            id=uuid4(),
            user_id=user_id,
            action=action,
            module_id=module_id,
            lesson_id=lesson_id,
            occurred_at=occurred_at,
            metadata=dict(metadata or {}),
        )
