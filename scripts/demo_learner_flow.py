"""Demo: walk one learner through a module and its exam using TestClient.

Run with:
    python scripts/demo_learner_flow.py

The app lifespan seeds the sample catalog and the dev accounts, so the
flow runs against the in-memory store with no services started.
"""

from __future__ import annotations

from fastapi.testclient import TestClient

from portal.main import app
from portal.seed import LEARNER_EMAIL, LEARNER_PASSWORD, SAFETY_COURSE_ID

ANSWERS = [
    "The same day",
    "Wet floors",
    "The task requirements",
    "Your desk",
]


def main() -> None:
    with TestClient(app) as client:
        # ── Step 1: login (bad, then good) ──────────────────────────────
        r = client.post(
            "/auth/login", json={"email": LEARNER_EMAIL, "password": "wrong"}
        )
        print(f"1. POST /auth/login (bad)  → {r.status_code}  (rejected)")

        r = client.post(
            "/auth/login",
            json={"email": LEARNER_EMAIL, "password": LEARNER_PASSWORD},
        )
        r.raise_for_status()
        token = r.json()["accessToken"]
        headers = {"Authorization": f"Bearer {token}"}
        print(f"   POST /auth/login (good) → {r.status_code}  user={LEARNER_EMAIL}")

        # ── Step 2: dashboard ───────────────────────────────────────────
        r = client.get("/v1/modules", headers=headers)
        print(f"2. GET  /v1/modules        → {r.status_code}")
        for m in r.json():
            print(f"     {m['id']:<18} {m['status']:<12} {m['progress']:>3}%")

        # ── Step 3: read every lesson ───────────────────────────────────
        base = f"/v1/modules/{SAFETY_COURSE_ID}"
        detail = client.get(base, headers=headers).json()
        for index, lesson in enumerate(detail["lessons"]):
            r = client.post(f"{base}/lessons/{index}/complete", headers=headers)
            body = r.json()
            print(
                f"3. complete {lesson['title']:<22} → "
                f"{body['progress']:>3}%  ready_for_exam={body['ready_for_exam']}"
            )
        r = client.put(
            f"{base}/notes/{detail['lessons'][0]['id']}",
            json={"content": "Report the same day."},
            headers=headers,
        )
        print(f"   PUT  note               → {r.status_code}  {r.json()}")

        # ── Step 4: take the exam ───────────────────────────────────────
        session = f"/v1/exams/{SAFETY_COURSE_ID}/session"
        r = client.post(session, headers=headers)
        print(f"4. POST exam session       → {r.status_code}  {r.json()['state']}")
        for index, option in enumerate(ANSWERS):
            client.put(
                f"{session}/answers/{index}", json={"option": option}, headers=headers
            )
        client.post(
            f"{session}/navigate",
            json={"action": "jump", "index": len(ANSWERS) - 1},
            headers=headers,
        )
        r = client.post(f"{session}/submit", headers=headers)
        print(f"   POST submit             → {r.status_code}  {r.json()['state']}")
        r = client.post(f"{session}/submit/confirm", headers=headers)
        result = r.json()["result"]
        print(
            f"   POST confirm            → {r.status_code}  "
            f"score={result['score']} passed={result['passed']}"
        )

        # ── Step 5: certificate, dashboard, logout ──────────────────────
        r = client.get(f"{session}/certificate", headers=headers)
        cert = r.json()
        print(
            f"5. GET  certificate        → {r.status_code}  "
            f"{cert['learner_name']} / {cert['quiz_title']} / {cert['issued_on']}"
        )
        modules = client.get("/v1/modules", headers=headers).json()
        safety = next(m for m in modules if m["id"] == SAFETY_COURSE_ID)
        print(f"   dashboard status        → {safety['status']}")

        r = client.post("/auth/logout", headers=headers)
        print(f"   POST /auth/logout       → {r.status_code}")
        r = client.get("/v1/modules", headers=headers)
        print(f"   GET  /v1/modules        → {r.status_code}  (token revoked)")


if __name__ == "__main__":
    main()
