from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Ensure repo root is on sys.path so `import portal` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from portal.api.exams import exam_service  # noqa: E402
from portal.main import app  # noqa: E402
from portal.models.user import User  # noqa: E402
from portal.repos.provider import IN_MEMORY_REPOS  # noqa: E402
from portal.seed import seed_catalog  # noqa: E402
from portal.services import auth_service, token_service  # noqa: E402
from portal.services.countdown import TickCallback  # noqa: E402
from portal.services.token_blacklist import token_blacklist  # noqa: E402

TEST_EXAM_DURATION = 5


class ManualCountdown:
    """Countdown driven by the test instead of the event loop."""

    def __init__(self, on_tick: TickCallback) -> None:
        self._on_tick = on_tick
        self.started = False
        self.stopped = False

    @property
    def running(self) -> bool:
        return self.started and not self.stopped

    def start(self) -> None:
        self.started = True

    def stop(self) -> None:
        self.stopped = True

    async def fire(self) -> bool:
        """Run one tick the way AsyncioCountdown would."""
        if not self.running:
            return False
        keep_going = await self._on_tick()
        if not keep_going:
            self.stopped = True
        return keep_going


@pytest.fixture(autouse=True)
def reset_repos() -> None:
    """Empty the in-memory store, then load the sample catalog."""
    users = IN_MEMORY_REPOS.users
    users._by_email.clear()  # type: ignore[attr-defined]
    users._by_id.clear()  # type: ignore[attr-defined]
    IN_MEMORY_REPOS.courses._docs.clear()  # type: ignore[attr-defined]
    IN_MEMORY_REPOS.quizzes._docs.clear()  # type: ignore[attr-defined]
    IN_MEMORY_REPOS.notes._by_id.clear()  # type: ignore[attr-defined]
    IN_MEMORY_REPOS.audit_logs._entries.clear()  # type: ignore[attr-defined]
    asyncio.run(seed_catalog(IN_MEMORY_REPOS))


@pytest.fixture(autouse=True)
def countdowns(monkeypatch: pytest.MonkeyPatch) -> list[ManualCountdown]:
    """Fresh session registry, short exams, hand-driven countdowns.

    Returns every countdown the exam service creates, oldest first.
    """
    created: list[ManualCountdown] = []

    def _factory(on_tick: TickCallback) -> ManualCountdown:
        countdown = ManualCountdown(on_tick)
        created.append(countdown)
        return countdown

    exam_service._sessions.clear()
    exam_service._timers.clear()
    monkeypatch.setattr(exam_service, "_countdown_factory", _factory)
    monkeypatch.setattr(exam_service, "_duration", TEST_EXAM_DURATION)
    return created


@pytest.fixture(autouse=True)
def reset_token_blacklist() -> None:
    """Clear token blacklist between tests."""
    if hasattr(token_blacklist, "_revoked"):
        token_blacklist._revoked.clear()  # type: ignore[union-attr]


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


def mint_token(
    username: str = "test-user",
    roles: list[str] | None = None,
) -> str:
    """Create a valid ES256 JWT for testing."""
    return token_service.create_access_token(sub=username, roles=roles)


def create_user(
    email: str = "ada@example.com",
    *,
    name: str = "Ada Lovelace",
    password: str = "correct-horse",
    roles: tuple[str, ...] = ("learner",),
) -> User:
    """Persist a user in the in-memory repo."""
    user = User.new(
        email=email,
        password_hash=auth_service.hash_password(password),
        name=name,
        department="Engineering",
        roles=roles,
    )
    asyncio.run(IN_MEMORY_REPOS.users.add(user))
    return user


def auth_headers(user: User) -> dict[str, str]:
    token = mint_token(username=str(user.id), roles=list(user.roles))
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def learner() -> User:
    return create_user()


@pytest.fixture
def learner_headers(learner: User) -> dict[str, str]:
    return auth_headers(learner)


@pytest.fixture
def token() -> str:
    """Token with the default learner role."""
    return mint_token()


@pytest.fixture
def admin_token() -> str:
    return mint_token(username="test-admin", roles=["learner", "admin"])
