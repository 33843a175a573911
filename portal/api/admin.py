from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from portal.api.dependencies import require_role
from portal.api.modules import store_unavailable
from portal.models.audit import AuditLogEntry
from portal.models.principal import Principal
from portal.repos.provider import Repos, get_repos
from portal.services.errors import StoreUnavailableError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/admin", tags=["admin"])


class AuditLogOut(BaseModel):
    id: str
    user_id: str
    action: str
    module_id: str
    lesson_id: str | None
    occurred_at: int
    metadata: dict[str, str]


async def _recent_entries(
    repos: Repos, limit: int, user_id: str | None
) -> list[AuditLogEntry]:
    try:
        return await repos.audit_logs.list_recent(limit=limit, user_id=user_id)
    except Exception as e:
        logger.exception("Failed to read audit logs")
        raise StoreUnavailableError("Failed to load audit logs") from e


@router.get("/audit-logs", response_model=list[AuditLogOut])
async def list_audit_logs(
    principal: Annotated[Principal, Depends(require_role("admin"))],
    repos: Annotated[Repos, Depends(get_repos)],
    limit: Annotated[int, Query(ge=1, le=500)] = 100,
    user_id: str | None = None,
) -> list[AuditLogOut]:
    logger.info("Audit log requested by user=%s", principal.user_id)
    try:
        entries = await _recent_entries(repos, limit, user_id)
    except StoreUnavailableError as e:
        raise store_unavailable(e) from None
    return [
        AuditLogOut(
            id=str(e.id),
            user_id=e.user_id,
            action=e.action,
            module_id=e.module_id,
            lesson_id=e.lesson_id,
            occurred_at=e.occurred_at,
            metadata=e.metadata,
        )
        for e in entries
    ]
