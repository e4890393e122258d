from datetime import timedelta

from conftest import make_token


def test_session_without_token(client):
    assert client.get("/auth/session").json() == {"session": None}


def test_session_with_valid_token(client, auth_headers):
    body = client.get("/auth/session", headers=auth_headers).json()
    assert body["session"] == {"id": "tutor-1", "email": "tutor@example.com"}


def test_bad_tokens_are_rejected(client):
    for token in (
        make_token("tutor-1", secret="wrong-secret"),
        make_token("tutor-1", audience="anon"),
        make_token("tutor-1", expires_in=timedelta(minutes=-5)),
        "not-a-jwt",
    ):
        headers = {"Authorization": f"Bearer {token}"}
        assert client.get("/auth/session", headers=headers).json() == {"session": None}
        resp = client.get("/students/", headers=headers)
        assert resp.status_code == 401


def test_signout_drops_pending_decision(client, auth_headers, make_student, lesson_payload):
    student = make_student(target_classes=1)
    assert client.post("/lessons/", json=lesson_payload(student["id"], serial=1), headers=auth_headers).status_code == 202

    assert client.post("/auth/signout", headers=auth_headers).json() == {"status": "ok"}
    assert client.get("/lessons/pending", headers=auth_headers).json() is None
    assert client.get("/lessons/", headers=auth_headers).json() == []


def test_health(client):
    assert client.get("/").json() == {"message": "Backend is running!"}
