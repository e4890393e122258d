import os

# must be set before the app module builds its engine
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("AUTH_JWT_SECRET", "test-secret")

from datetime import date, datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from tuition_tracker.config import settings
from tuition_tracker.date_utils import get_today
from tuition_tracker.db import Base, get_db
from tuition_tracker.main import app
from tuition_tracker.services.lesson_entry import registry

TODAY = date(2026, 3, 15)


def make_token(sub, email=None, audience=None, secret=None, expires_in=timedelta(hours=1)):
    claims = {
        "sub": sub,
        "aud": audience or settings.AUTH_JWT_AUDIENCE,
        "exp": datetime.utcnow() + expires_in,
    }
    if email:
        claims["email"] = email
    return jwt.encode(claims, secret or settings.AUTH_JWT_SECRET, algorithm=settings.AUTH_JWT_ALGORITHM)


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=eng)
    yield eng
    Base.metadata.drop_all(bind=eng)
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


@pytest.fixture
def db_session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_today] = lambda: TODAY
    registry.clear()
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
    registry.clear()


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {make_token('tutor-1', email='tutor@example.com')}"}


@pytest.fixture
def other_headers():
    return {"Authorization": f"Bearer {make_token('tutor-2')}"}


@pytest.fixture
def make_student(client, auth_headers):
    def _make(name="Rafi", batch="Morning", subjects=("Math",), target_classes=0, headers=None):
        resp = client.post(
            "/students/",
            json={"name": name, "batch": batch, "subjects": list(subjects), "target_classes": target_classes},
            headers=headers or auth_headers,
        )
        assert resp.status_code == 201, resp.text
        return resp.json()
    return _make


@pytest.fixture
def lesson_payload():
    def _payload(student_id, serial=None, topic="Fractions", lesson_date="2026-03-14", subject=None):
        body = {
            "student_id": student_id,
            "lesson_topic": topic,
            "lesson_date": lesson_date,
            "class_serial": serial,
        }
        if subject:
            body["subject"] = subject
        return body
    return _payload
