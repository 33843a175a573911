from __future__ import annotations

import asyncio
from uuid import uuid4

import pytest

from portal.models.user import User
from portal.repos.user_repo import InMemoryUserRepo
from portal.services.auth_service import (
    authenticate_user,
    hash_password,
    verify_password,
)


def _repo_with(user: User) -> InMemoryUserRepo:
    repo = InMemoryUserRepo()
    asyncio.run(repo.add(user))
    return repo


def test_hash_password_round_trips() -> None:
    hashed = hash_password("s3cret-pass")
    assert hashed.startswith("$argon2")
    assert verify_password("s3cret-pass", hashed)
    assert not verify_password("wrong-pass", hashed)


def test_hash_password_rejects_empty() -> None:
    with pytest.raises(ValueError):
        hash_password("")


def test_verify_password_handles_garbage_hash() -> None:
    assert not verify_password("pw", "not-an-argon2-hash")
    assert not verify_password("", "whatever")


def test_authenticate_user_accepts_correct_password() -> None:
    user = User.new(email="tee@example.com", password_hash=hash_password("pw123456"))
    repo = _repo_with(user)
    authed = asyncio.run(authenticate_user(repo, "tee@example.com", "pw123456"))
    assert authed is not None
    assert authed.id == user.id


def test_authenticate_user_rejects_wrong_password() -> None:
    user = User.new(email="tee@example.com", password_hash=hash_password("pw123456"))
    repo = _repo_with(user)
    assert asyncio.run(authenticate_user(repo, "tee@example.com", "nope")) is None


def test_authenticate_user_rejects_unknown_email() -> None:
    repo = InMemoryUserRepo()
    assert asyncio.run(authenticate_user(repo, "ghost@example.com", "pw")) is None


def test_authenticate_user_rejects_inactive_user() -> None:
    user = User(
        id=uuid4(),
        email="off@example.com",
        password_hash=hash_password("pw123456"),
        is_active=False,
    )
    repo = _repo_with(user)
    assert asyncio.run(authenticate_user(repo, "off@example.com", "pw123456")) is None
