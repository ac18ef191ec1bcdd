"""
HTTP-level tests: response envelope, auth cookie handling and role guards
"""

import uuid
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

from upskill.main import create_app


@pytest.fixture
def client(config):
    db = AsyncMongoMockClient()[f"upskill_api_{uuid.uuid4().hex[:8]}"]
    app = create_app(config=config, db=db, notifier=AsyncMock(), enable_scheduler=False)
    with TestClient(app) as test_client:
        yield test_client


def register(client, mail, password="secret123", name="Ana"):
    response = client.post("/api/auth/register", json={
        "name": name, "surname": "Lopez", "mail": mail, "password": password,
    })
    assert response.status_code == 201
    return response.json()["data"]


def login(client, mail, password="secret123", remember_me=False):
    response = client.post("/api/auth/login", json={
        "mail": mail, "password": password, "remember_me": remember_me,
    })
    assert response.status_code == 200
    return response


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


def test_health_uses_envelope(client):
    body = client.get("/health").json()
    assert body["status"] == 200
    assert body["message"] == "Success"
    assert body["data"]["status"] == "ok"


def test_register_envelope_hides_password(client):
    data = register(client, "ana@mail.test")
    assert data["mail"] == "ana@mail.test"
    assert data["role"] == "student"
    assert "password" not in data


def test_validation_errors_are_400_with_field_list(client):
    response = client.post("/api/auth/register", json={"name": "Ana", "surname": "Lopez", "password": "x"})

    assert response.status_code == 400
    body = response.json()
    assert body["status"] == 400
    assert body["message"] == "Bad Request"
    assert "mail" in [error["field"] for error in body["errors"]]


def test_duplicate_mail_is_409(client):
    register(client, "ana@mail.test")
    response = client.post("/api/auth/register", json={
        "name": "Ana", "surname": "Lopez", "mail": "ana@mail.test", "password": "secret123",
    })
    assert response.status_code == 409
    assert response.json()["status"] == 409


def test_overlong_password_is_400_not_500(client):
    response = client.post("/api/auth/register", json={
        "name": "Ana", "surname": "Lopez", "mail": "ana@mail.test", "password": "x" * 100,
    })
    assert response.status_code == 400
    assert "password" in [error["field"] for error in response.json()["errors"]]


def test_login_without_remember_me_sets_no_cookie(client):
    register(client, "ana@mail.test")
    response = login(client, "ana@mail.test")

    assert response.json()["data"]["access_token"]
    assert "refreshToken" not in response.cookies


def test_refresh_cookie_rotation_and_reuse_detection(client):
    register(client, "ana@mail.test")
    response = login(client, "ana@mail.test", remember_me=True)

    set_cookie = response.headers["set-cookie"]
    assert "refreshToken=" in set_cookie
    assert "HttpOnly" in set_cookie
    assert "samesite=lax" in set_cookie.lower()
    first_token = response.cookies["refreshToken"]

    rotated = client.post("/api/auth/refresh")
    assert rotated.status_code == 200
    assert rotated.json()["data"]["access_token"]
    assert rotated.cookies["refreshToken"] != first_token

    client.cookies.clear()
    reused = client.post("/api/auth/refresh", json={"refresh_token": first_token})
    assert reused.status_code == 401
    assert reused.json()["message"] == "Unauthorized"


def test_profile_requires_bearer_token(client):
    assert client.get("/api/auth/profile").status_code == 401
    assert client.get("/api/auth/profile", headers=bearer("garbage")).status_code == 401

    register(client, "ana@mail.test")
    token = login(client, "ana@mail.test").json()["data"]["access_token"]
    profile = client.get("/api/auth/profile", headers=bearer(token)).json()["data"]
    assert profile["mail"] == "ana@mail.test"


def test_forgot_password_same_response_for_unknown_mail(client):
    register(client, "ana@mail.test")
    known = client.post("/api/auth/forgot-password", json={"mail": "ana@mail.test"})
    unknown = client.post("/api/auth/forgot-password", json={"mail": "ghost@mail.test"})

    assert known.status_code == unknown.status_code == 200
    assert known.json() == unknown.json()


def test_course_creation_is_role_guarded_and_enrollment_flows(client):
    register(client, "carla@mail.test", name="Carla")
    student_token = login(client, "carla@mail.test").json()["data"]["access_token"]
    course_payload = {
        "name": "Python Fundamentals",
        "description": "From variables to classes",
        "units": [{"unit_number": 1, "name": "Basics"}, {"unit_number": 2, "name": "Functions"}],
    }

    denied = client.post("/api/courses", json=course_payload, headers=bearer(student_token))
    assert denied.status_code == 401

    became = client.post("/api/users/me/professor", json={}, headers=bearer(student_token))
    assert became.status_code == 201
    professor_token = login(client, "carla@mail.test").json()["data"]["access_token"]

    course = client.post("/api/courses", json=course_payload, headers=bearer(professor_token))
    assert course.status_code == 201
    course_id = course.json()["data"]["course_id"]

    register(client, "ana@mail.test")
    ana_token = login(client, "ana@mail.test").json()["data"]["access_token"]
    enrolled = client.post("/api/enrollments", json={"course_id": course_id}, headers=bearer(ana_token))
    assert enrolled.status_code == 201
    enrollment = enrolled.json()["data"]
    assert enrollment["state"] == "enrolled"

    again = client.post("/api/enrollments", json={"course_id": course_id}, headers=bearer(ana_token))
    assert again.status_code == 200
    assert again.json()["message"] == "Success"
    assert again.json()["data"]["enrollment_id"] == enrollment["enrollment_id"]

    progressed = client.patch(
        f"/api/enrollments/{enrollment['enrollment_id']}/complete-unit",
        json={"unit_number": 1},
        headers=bearer(ana_token),
    )
    assert progressed.json()["data"]["progress"] == 50

    own = client.post("/api/enrollments", json={"course_id": course_id}, headers=bearer(professor_token))
    assert own.status_code == 400

    missing = client.get("/api/enrollments/ENR_MISSING", headers=bearer(ana_token))
    assert missing.status_code == 404
    assert missing.json()["errors"] == "Enrollment not found"
