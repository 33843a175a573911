"""Logout revokes the presented token; nothing else is affected."""

from __future__ import annotations

from fastapi.testclient import TestClient

from tests.conftest import create_user, mint_token


def _me(client: TestClient, token: str):
    return client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})


def test_token_rejected_after_logout(client: TestClient) -> None:
    user = create_user()
    token = mint_token(username=str(user.id))
    assert _me(client, token).status_code == 200

    resp = client.post("/auth/logout", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 204

    resp = _me(client, token)
    assert resp.status_code == 401
    assert "revoked" in resp.json()["detail"].lower()


def test_other_tokens_unaffected_by_logout(client: TestClient) -> None:
    user = create_user()
    token_a = mint_token(username=str(user.id))
    token_b = mint_token(username=str(user.id))

    client.post("/auth/logout", headers={"Authorization": f"Bearer {token_a}"})
    assert _me(client, token_b).status_code == 200


def test_logout_is_idempotent(client: TestClient) -> None:
    token = mint_token()
    for _ in range(2):
        resp = client.post("/auth/logout", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 204


def test_logout_with_garbage_token_is_204(client: TestClient) -> None:
    resp = client.post("/auth/logout", headers={"Authorization": "Bearer garbage"})
    assert resp.status_code == 204
