"""JSON auth endpoints (/auth/register, /auth/login, /auth/logout).

Register and login both return { accessToken, user } so the client can
keep the token in memory and go straight to the dashboard.
"""

from __future__ import annotations

import logging
import re
from typing import Annotated

import jwt
from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import BaseModel

from portal.api.dependencies import oauth2_scheme
from portal.models.user import User
from portal.repos.provider import Repos, get_repos
from portal.services import auth_service, token_service
from portal.services.token_blacklist import token_blacklist

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class LoginIn(BaseModel):
    email: str
    password: str


class RegisterIn(BaseModel):
    name: str
    email: str
    password: str
    department: str = ""


class UserOut(BaseModel):
    id: str
    email: str
    name: str
    department: str
    roles: list[str]


class AuthResponse(BaseModel):
    accessToken: str
    user: UserOut


def _auth_response(user: User) -> AuthResponse:
    access_token = token_service.create_access_token(
        sub=str(user.id),
        roles=list(user.roles) or ["learner"],
    )
    return AuthResponse(
        accessToken=access_token,
        user=UserOut(
            id=str(user.id),
            email=user.email,
            name=user.name,
            department=user.department,
            roles=list(user.roles),
        ),
    )


def _unprocessable(message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail={"message": message},
    )


@router.post("/login", response_model=AuthResponse)
async def login(
    payload: LoginIn,
    repos: Annotated[Repos, Depends(get_repos)],
) -> AuthResponse:
    email = payload.email.lower().strip()

    user = await auth_service.authenticate_user(repos.users, email, payload.password)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"message": "Invalid email or password"},
        )

    logger.info("Login succeeded  user_id=%s", user.id)
    return _auth_response(user)


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
)
async def register(
    payload: RegisterIn,
    repos: Annotated[Repos, Depends(get_repos)],
) -> AuthResponse:
    email = payload.email.lower().strip()
    name = payload.name.strip()

    if not _EMAIL_RE.match(email):
        raise _unprocessable("Invalid email address")
    if not name:
        raise _unprocessable("Name is required")
    if len(payload.password) < auth_service.MIN_PASSWORD_LENGTH:
        raise _unprocessable(
            f"Password must be at least {auth_service.MIN_PASSWORD_LENGTH} characters"
        )

    if await repos.users.get_by_email(email) is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"message": "A user with this email already exists"},
        )

    user = User.new(
        email=email,
        password_hash=auth_service.hash_password(payload.password),
        name=name,
        department=payload.department.strip(),
    )
    try:
        await repos.users.add(user)
    except ValueError:
        # Lost a race with a concurrent registration for the same email.
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"message": "A user with this email already exists"},
        ) from None

    logger.info("User registered  user_id=%s", user.id)
    return _auth_response(user)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(raw_token: Annotated[str, Depends(oauth2_scheme)]) -> Response:
    """Revoke the presented access token.

    Idempotent: an invalid or expired token already does not work, so
    it still gets a 204.
    """
    try:
        claims = token_service.decode_access_token(raw_token)
    except jwt.InvalidTokenError:
        logger.debug("Logout with unusable token")
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    await token_blacklist.revoke(claims["jti"], float(claims["exp"]))
    logger.info("Token revoked jti=%s", claims["jti"])
    return Response(status_code=status.HTTP_204_NO_CONTENT)
