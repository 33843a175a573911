"""Table-driven RBAC tests.

Each row describes: endpoint, role(s), expected HTTP status. Every
caller is a real user in the repo so that learner endpoints resolve.
"""

from __future__ import annotations

from dataclasses import replace

import pytest
from fastapi.testclient import TestClient

from portal.main import app
from portal.repos.provider import IN_MEMORY_REPOS, get_repos
from tests.conftest import auth_headers, create_user

_RBAC_CASES = [
    # (endpoint, roles, expected_status)
    ("/v1/modules", ("learner",), 200),
    ("/v1/modules", ("learner", "admin"), 200),
    ("/v1/modules", None, 401),
    ("/auth/me", ("learner",), 200),
    ("/auth/me", None, 401),
    ("/v1/admin/audit-logs", ("learner", "admin"), 200),
    ("/v1/admin/audit-logs", ("learner",), 403),
    ("/v1/admin/audit-logs", None, 401),
]


@pytest.mark.parametrize(
    ("endpoint", "roles", "expected"),
    _RBAC_CASES,
    ids=[f"{e}-{'+'.join(r) if r else 'anon'}" for e, r, _ in _RBAC_CASES],
)
def test_rbac(
    client: TestClient,
    endpoint: str,
    roles: tuple[str, ...] | None,
    expected: int,
) -> None:
    headers = {}
    if roles is not None:
        headers = auth_headers(create_user(roles=roles))
    resp = client.get(endpoint, headers=headers)
    assert resp.status_code == expected


def test_admin_sees_lesson_completions(client: TestClient) -> None:
    learner = create_user("learner@test.com")
    admin = create_user("admin@test.com", roles=("learner", "admin"))

    client.post(
        "/v1/modules/workplace-safety/lessons/0/complete",
        headers=auth_headers(learner),
    )
    resp = client.get("/v1/admin/audit-logs", headers=auth_headers(admin))
    assert resp.status_code == 200
    (entry,) = resp.json()
    assert entry["user_id"] == str(learner.id)
    assert entry["action"] == "lesson_completed"
    assert entry["lesson_id"] == "ws-1"
    assert entry["metadata"]["courseTitle"] == "Workplace Safety Fundamentals"

    resp = client.get(
        "/v1/admin/audit-logs",
        params={"user_id": str(admin.id)},
        headers=auth_headers(admin),
    )
    assert resp.json() == []


class _OfflineAuditLogs:
    async def list_recent(self, *, limit: int = 100, user_id: str | None = None):
        raise ConnectionError("store offline")


def _offline_audit_repos():
    yield replace(IN_MEMORY_REPOS, audit_logs=_OfflineAuditLogs())


def test_audit_log_read_failure_is_retryable_503(client: TestClient) -> None:
    admin = create_user("admin@test.com", roles=("learner", "admin"))
    app.dependency_overrides[get_repos] = _offline_audit_repos
    try:
        resp = client.get("/v1/admin/audit-logs", headers=auth_headers(admin))
    finally:
        app.dependency_overrides.clear()
    assert resp.status_code == 503
    assert resp.json()["detail"] == {
        "message": "Failed to load audit logs",
        "retryable": True,
    }
