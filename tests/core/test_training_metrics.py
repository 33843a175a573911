"""Training counters move when learners act (asserted as deltas)."""

from __future__ import annotations

from fastapi.testclient import TestClient
from prometheus_client import REGISTRY


def _sample(name: str, labels: dict | None = None) -> float:
    value = REGISTRY.get_sample_value(name, labels=labels or {})
    return value if value is not None else 0.0


def test_lesson_completion_counted_once(
    client: TestClient, learner_headers: dict[str, str]
) -> None:
    url = "/v1/modules/workplace-safety/lessons/0/complete"
    before = _sample("lesson_completions_total")
    client.post(url, headers=learner_headers)
    client.post(url, headers=learner_headers)
    assert _sample("lesson_completions_total") - before == 1


def test_exam_submission_counted_by_result_and_trigger(
    client: TestClient, learner_headers: dict[str, str]
) -> None:
    session = "/v1/exams/security-basics/session"
    labels = {"result": "passed", "trigger": "learner"}
    before = _sample("exam_submissions_total", labels)

    client.post(session, headers=learner_headers)
    for index, option in enumerate(["The sender", "Lock the screen"]):
        client.put(
            f"{session}/answers/{index}",
            json={"option": option},
            headers=learner_headers,
        )
    client.post(
        f"{session}/navigate", json={"action": "next"}, headers=learner_headers
    )
    client.post(f"{session}/submit", headers=learner_headers)
    resp = client.post(f"{session}/submit/confirm", headers=learner_headers)

    assert resp.json()["result"]["score"] == 100
    assert _sample("exam_submissions_total", labels) - before == 1
