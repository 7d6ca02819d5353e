import pytest
from fastapi.testclient import TestClient
from skillquiz.db import get_db
from skillquiz.main import app

OWNER_HEADERS = {"X-User-Id": "1"}
STRANGER_HEADERS = {"X-User-Id": "2"}
ADMIN_HEADERS = {"X-User-Id": "99", "X-User-Role": "admin"}


@pytest.fixture()
def client(session_factory, seeded):
    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def _start(client, skill_id, headers=OWNER_HEADERS):
    return client.post("/quiz/start", json={"skill_id": skill_id}, headers=headers)


def test_health(client):
    assert client.get("/health").json() == {"ok": True}


def test_identity_is_required(client, seeded):
    r = _start(client, seeded["python"], headers={})
    assert r.status_code == 401
    r = _start(client, seeded["python"], headers={"X-User-Id": "abc"})
    assert r.status_code == 401
    r = _start(client, seeded["python"], headers={"X-User-Id": "1", "X-User-Role": "root"})
    assert r.status_code == 401


def test_question_pool_hides_answers(client, seeded):
    r = client.get(f"/questions/quiz/{seeded['python']}", headers=OWNER_HEADERS)
    assert r.status_code == 200
    questions = r.json()["questions"]
    assert len(questions) == 3
    assert all("correct_answer" not in q for q in questions)
    assert set(questions[0]["options"]) == {"A", "B", "C", "D"}

    r = client.get(f"/questions/quiz/{seeded['python']}?limit=2", headers=OWNER_HEADERS)
    assert len(r.json()["questions"]) == 2

    r = client.get(f"/questions/quiz/{seeded['retired']}", headers=OWNER_HEADERS)
    assert r.status_code == 404
    assert r.json()["error"] == "not_found"


def test_full_quiz_over_http(client, seeded):
    r = _start(client, seeded["python"])
    assert r.status_code == 201
    attempt = r.json()
    assert attempt["total_questions"] == 3
    attempt_id = attempt["id"]

    answer = {"quiz_attempt_id": attempt_id, "question_id": seeded["qa"], "selected_answer": "A", "time_taken": 7}
    r = client.post("/quiz/answer", json=answer, headers=OWNER_HEADERS)
    assert r.status_code == 200
    assert r.json() == {"is_correct": True, "correct_answer": "A"}

    r = client.post("/quiz/answer", json=answer, headers=OWNER_HEADERS)
    assert r.status_code == 409
    assert r.json()["error"] == "duplicate_answer"

    wrong = dict(answer, question_id=seeded["qb"], selected_answer="C")
    r = client.post("/quiz/answer", json=wrong, headers=OWNER_HEADERS)
    assert r.json() == {"is_correct": False, "correct_answer": "B"}

    done = {"quiz_attempt_id": attempt_id, "time_taken": 42}
    r = client.post("/quiz/complete", json=done, headers=OWNER_HEADERS)
    assert r.status_code == 200
    assert r.json() == {
        "total_questions": 3,
        "correct_answers": 1,
        "score_percentage": 33.33,
        "time_taken": 42,
    }

    r = client.post("/quiz/complete", json=done, headers=OWNER_HEADERS)
    assert r.status_code == 409
    assert r.json()["error"] == "already_completed"

    r = client.get(f"/quiz/{attempt_id}", headers=OWNER_HEADERS)
    assert r.status_code == 200
    detail = r.json()
    assert detail["score_percentage"] == 33.33
    assert [a["question_id"] for a in detail["answers"]] == [seeded["qa"], seeded["qb"]]

    r = client.get("/quiz/history", headers=OWNER_HEADERS)
    body = r.json()
    assert body["pagination"]["total"] == 1
    assert body["quiz_history"][0]["id"] == attempt_id


def test_error_codes_are_distinguishable(client, seeded):
    r = _start(client, seeded["empty"])
    assert (r.status_code, r.json()["error"]) == (400, "empty_skill")

    r = _start(client, 4242)
    assert (r.status_code, r.json()["error"]) == (404, "not_found")

    attempt_id = _start(client, seeded["python"]).json()["id"]
    answer = {"quiz_attempt_id": attempt_id, "question_id": seeded["qa"], "selected_answer": "A"}

    r = client.post("/quiz/answer", json=answer, headers=STRANGER_HEADERS)
    assert (r.status_code, r.json()["error"]) == (404, "not_found")

    r = client.get(f"/quiz/{attempt_id}", headers=STRANGER_HEADERS)
    assert (r.status_code, r.json()["error"]) == (403, "forbidden")

    r = client.get(f"/quiz/{attempt_id}", headers=ADMIN_HEADERS)
    assert r.status_code == 200


def test_request_validation(client, seeded):
    attempt_id = _start(client, seeded["python"]).json()["id"]
    bad_label = {"quiz_attempt_id": attempt_id, "question_id": seeded["qa"], "selected_answer": "E"}
    assert client.post("/quiz/answer", json=bad_label, headers=OWNER_HEADERS).status_code == 422

    negative = {"quiz_attempt_id": attempt_id, "time_taken": -1}
    assert client.post("/quiz/complete", json=negative, headers=OWNER_HEADERS).status_code == 422

    assert client.post("/quiz/start", json={}, headers=OWNER_HEADERS).status_code == 422


def test_history_for_other_user_requires_admin(client, seeded):
    attempt_id = _start(client, seeded["python"]).json()["id"]
    client.post("/quiz/complete", json={"quiz_attempt_id": attempt_id}, headers=OWNER_HEADERS)

    r = client.get("/quiz/history?user_id=1", headers=STRANGER_HEADERS)
    assert r.status_code == 403

    r = client.get("/quiz/history?user_id=1", headers=ADMIN_HEADERS)
    assert r.status_code == 200
    assert r.json()["quiz_history"][0]["time_taken"] == 0
