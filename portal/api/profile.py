from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from portal.api.dependencies import require_user
from portal.models.principal import Principal
from portal.repos.provider import Repos, get_repos

router = APIRouter(tags=["profile"])


class ProfileOut(BaseModel):
    id: str
    email: str
    name: str
    department: str
    roles: list[str]
    is_active: bool


@router.get("/auth/me", response_model=ProfileOut)
async def get_my_profile(
    principal: Annotated[Principal, Depends(require_user)],
    repos: Annotated[Repos, Depends(get_repos)],
) -> ProfileOut:
    """Load the authenticated user's own profile."""
    try:
        user = await repos.users.get_by_id(UUID(principal.user_id))
    except ValueError:
        user = None
    if user is None:
        raise HTTPException(status_code=404, detail="user not found")

    return ProfileOut(
        id=str(user.id),
        email=user.email,
        name=user.display_name,
        department=user.department,
        roles=list(user.roles),
        is_active=user.is_active,
    )
