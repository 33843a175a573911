"""PostgreSQL implementation of AuditLogRepo."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from portal.db.tables import AuditLogRow
from portal.models.audit import AuditLogEntry


class PgAuditLogRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def append(self, entry: AuditLogEntry) -> None:
        row = AuditLogRow(
            id=entry.id,
            user_id=entry.user_id,
            action=entry.action,
            module_id=entry.module_id,
            lesson_id=entry.lesson_id,
            occurred_at=entry.occurred_at,
            details=dict(entry.metadata),
        )
        async with self._session.begin_nested():
            self._session.add(row)

    async def list_recent(
        self, *, limit: int = 100, user_id: str | None = None
    ) -> list[AuditLogEntry]:
        stmt = (
            select(AuditLogRow).order_by(AuditLogRow.occurred_at.desc()).limit(limit)
        )
        if user_id is not None:
            stmt = stmt.where(AuditLogRow.user_id == user_id)
        rows = (await self._session.execute(stmt)).scalars().all()
        return [
            AuditLogEntry(
                id=r.id,
                user_id=r.user_id,
                action=r.action,
                module_id=r.module_id,
                lesson_id=r.lesson_id,
                occurred_at=r.occurred_at,
                metadata=dict(r.details or {}),
            )
            for r in rows
        ]
