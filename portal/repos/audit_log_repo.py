from __future__ import annotations

from typing import Protocol

from portal.models.audit import AuditLogEntry


class AuditLogRepo(Protocol):
    async def append(self, entry: AuditLogEntry) -> None: ...
    async def list_recent(
        self, *, limit: int = 100, user_id: str | None = None
    ) -> list[AuditLogEntry]: ...


class InMemoryAuditLogRepo:
    def __init__(self) -> None:
        self._entries: list[AuditLogEntry] = []

    async def append(self, entry: AuditLogEntry) -> None:
        self._entries.append(entry)

    async def list_recent(
        self, *, limit: int = 100, user_id: str | None = None
    ) -> list[AuditLogEntry]:
        # newest append first among equal timestamps
        entries = [
            e
            for e in reversed(self._entries)
            if user_id is None or e.user_id == user_id
        ]
        entries.sort(key=lambda e: e.occurred_at, reverse=True)
        return entries[:limit]
