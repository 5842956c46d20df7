# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Integration tests for the HTTP and WebSocket API.

The application runs with its real lifespan against a SQLite file
database, so every request goes through the middleware, dependencies,
services and ORM.
"""

from pathlib import Path
from typing import Any, Iterator

import pytest
from fastapi.testclient import TestClient

from src.api.app import create_app
from src.api.middleware.rate_limit import limiter
from src.core.config.settings import get_settings
from src.infrastructure.notifications.dispatcher import reset_dispatcher
from src.infrastructure.realtime import reset_session_registry

PASSWORD = "Welcome42"

pytestmark = pytest.mark.integration


@pytest.fixture
def client(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[TestClient]:
    """Application client backed by a fresh SQLite database."""
    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'api.db'}")
    monkeypatch.setenv("DATABASE_CREATE_TABLES", "true")
    get_settings.cache_clear()

    app = create_app()
    with TestClient(app) as test_client:
        yield test_client

    get_settings.cache_clear()
    reset_dispatcher()
    reset_session_registry()


def register(client: TestClient, name: str, email: str, role: str) -> dict[str, Any]:
    """Register an account and return the auth response body."""
    response = client.post(
        "/api/v1/auth/register",
        json={
            "name": name,
            "email": email,
            "password": PASSWORD,
            "confirmPassword": PASSWORD,
            "role": role,
        },
    )
    assert response.status_code == 201, response.text
    return response.json()


def bearer(auth: dict[str, Any]) -> dict[str, str]:
    return {"Authorization": f"Bearer {auth['token']}"}


@pytest.fixture
def school(client: TestClient) -> dict[str, Any]:
    """Manager, teacher and receptionist with one class and one student."""
    manager = register(client, "Huda Manager", "manager@school.example.com", "manager")
    teacher = register(client, "Mona Teacher", "teacher@school.example.com", "teacher")
    receptionist = register(client, "Rami Reception", "reception@school.example.com", "receptionist")

    response = client.post(
        "/api/v1/classes",
        json={"name": "Grade 5A", "teacherId": teacher["user"]["id"], "capacity": 2},
        headers=bearer(manager),
    )
    assert response.status_code == 201, response.text
    school_class = response.json()

    response = client.post(
        "/api/v1/students",
        json={"studentCode": "st001", "name": "Sara Ahmed", "classId": school_class["id"]},
        headers=bearer(manager),
    )
    assert response.status_code == 201, response.text
    student = response.json()

    return {
        "manager": manager,
        "teacher": teacher,
        "receptionist": receptionist,
        "class": school_class,
        "student": student,
    }


class TestRouting:
    """Tests for route registration."""

    def test_routes_registered(self, client: TestClient) -> None:
        """Test the public surface is mounted."""
        routes = set(client.app.openapi()["paths"])

        assert "/api/v1/auth/register" in routes
        assert "/api/v1/auth/login" in routes
        assert "/api/v1/users/me/device-token" in routes
        assert "/api/v1/classes/{class_id}/students/{student_id}" in routes
        assert "/api/v1/classes/{class_id}/teacher" in routes
        assert "/api/v1/students/class/{class_id}" in routes
        assert "/api/v1/notifications/{notification_id}/respond" in routes
        assert "/api/v1/notifications/cleanup" in routes
        assert "/api/v1/statistics/daily-attendance" in routes
        assert "/health/live" in routes

    def test_liveness(self, client: TestClient) -> None:
        response = client.get("/health/live")

        assert response.status_code == 200
        assert response.json() == {"status": "alive"}


class TestAuthentication:
    """Tests for authentication and role checks."""

    def test_missing_token(self, client: TestClient) -> None:
        """Test protected routes need a token."""
        response = client.get("/api/v1/notifications")

        assert response.status_code == 401
        assert response.json()["status"] == "fail"

    def test_garbage_token(self, client: TestClient) -> None:
        response = client.get("/api/v1/auth/me", headers={"Authorization": "Bearer not-a-jwt"})

        assert response.status_code == 401

    def test_login_and_me(self, client: TestClient) -> None:
        registered = register(client, "Mona Teacher", "teacher@school.example.com", "teacher")

        response = client.post(
            "/api/v1/auth/login",
            json={"email": "TEACHER@school.example.com", "password": PASSWORD},
        )
        assert response.status_code == 200
        token = response.json()["token"]

        me = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert me.status_code == 200
        assert me.json()["id"] == registered["user"]["id"]
        assert me.json()["role"] == "teacher"

    def test_wrong_password(self, client: TestClient) -> None:
        register(client, "Mona Teacher", "teacher@school.example.com", "teacher")

        response = client.post(
            "/api/v1/auth/login",
            json={"email": "teacher@school.example.com", "password": "Nope12345"},
        )

        assert response.status_code == 401

    def test_validation_errors_are_400(self, client: TestClient) -> None:
        """Test request validation uses the fail envelope."""
        response = client.post("/api/v1/auth/register", json={"email": "not-an-email"})

        assert response.status_code == 400
        body = response.json()
        assert body["status"] == "fail"
        assert body["errors"]

    def test_wrong_role(self, client: TestClient, school: dict[str, Any]) -> None:
        """Test receptionists cannot manage classes."""
        response = client.post(
            "/api/v1/classes",
            json={"name": "Grade 6B", "teacherId": school["teacher"]["user"]["id"]},
            headers=bearer(school["receptionist"]),
        )

        assert response.status_code == 403


class TestDirectory:
    """Tests for classes and students over HTTP."""

    def test_student_code_normalized_and_enrolled(
        self, client: TestClient, school: dict[str, Any]
    ) -> None:
        assert school["student"]["studentCode"] == "ST001"

        response = client.get(
            f"/api/v1/classes/{school['class']['id']}", headers=bearer(school["teacher"])
        )

        assert response.status_code == 200
        assert [s["id"] for s in response.json()["students"]] == [school["student"]["id"]]

    def test_capacity_enforced(self, client: TestClient, school: dict[str, Any]) -> None:
        """Test a full class rejects further students."""
        headers = bearer(school["manager"])
        second = client.post(
            "/api/v1/students",
            json={"studentCode": "ST002", "name": "Omar Ali", "classId": school["class"]["id"]},
            headers=headers,
        )
        assert second.status_code == 201

        third = client.post(
            "/api/v1/students",
            json={"studentCode": "ST003", "name": "Lina Ali", "classId": school["class"]["id"]},
            headers=headers,
        )

        assert third.status_code == 400
        assert third.json()["code"] == "class_capacity_exceeded"

    def test_unknown_class(self, client: TestClient, school: dict[str, Any]) -> None:
        response = client.get("/api/v1/classes/missing", headers=bearer(school["manager"]))

        assert response.status_code == 404


class TestNotificationFlow:
    """Tests for the request and response workflow."""

    def test_request_respond_round_trip(self, client: TestClient, school: dict[str, Any]) -> None:
        teacher = bearer(school["teacher"])
        receptionist = bearer(school["receptionist"])

        created = client.post(
            "/api/v1/notifications/request",
            json={"studentId": school["student"]["id"]},
            headers=receptionist,
        )
        assert created.status_code == 201, created.text
        body = created.json()
        assert body["status"] == "pending"
        assert body["to"]["id"] == school["teacher"]["user"]["id"]
        assert body["from"]["id"] == school["receptionist"]["user"]["id"]

        unread = client.get("/api/v1/notifications/unread/count", headers=teacher)
        assert unread.json()["unreadCount"] == 1

        answered = client.put(
            f"/api/v1/notifications/{body['id']}/respond",
            json={"approved": True, "responseMessage": "Sending her down"},
            headers=teacher,
        )
        assert answered.status_code == 200, answered.text
        assert answered.json()["status"] == "absent"
        assert answered.json()["type"] == "response"

        again = client.post(
            f"/api/v1/notifications/{body['id']}/respond",
            json={"status": "rejected"},
            headers=teacher,
        )
        assert again.status_code == 400
        assert again.json()["code"] == "notification_already_responded"

        listing = client.get("/api/v1/notifications", headers=receptionist)
        assert listing.status_code == 200
        assert listing.json()["total"] == 1

    def test_only_receptionists_send_requests(
        self, client: TestClient, school: dict[str, Any]
    ) -> None:
        response = client.post(
            "/api/v1/notifications/request",
            json={"studentId": school["student"]["id"]},
            headers=bearer(school["teacher"]),
        )

        assert response.status_code == 403

    def test_cleanup_requires_manager(self, client: TestClient, school: dict[str, Any]) -> None:
        client.post(
            "/api/v1/notifications/request",
            json={"studentId": school["student"]["id"]},
            headers=bearer(school["receptionist"]),
        )

        denied = client.delete("/api/v1/notifications/cleanup", headers=bearer(school["teacher"]))
        assert denied.status_code == 403

        response = client.delete("/api/v1/notifications/cleanup", headers=bearer(school["manager"]))
        assert response.status_code == 200
        assert response.json()["deletedCount"] == 1

    def test_realtime_event_reaches_teacher(
        self, client: TestClient, school: dict[str, Any]
    ) -> None:
        """Test a new request is pushed to the teacher's open WebSocket."""
        token = school["teacher"]["token"]

        with client.websocket_connect(f"/api/v1/ws?token={token}") as ws:
            connected = ws.receive_json()
            assert connected["type"] == "connected"
            assert connected["userId"] == school["teacher"]["user"]["id"]

            client.post(
                "/api/v1/notifications/request",
                json={"studentId": school["student"]["id"], "message": "Early pick-up"},
                headers=bearer(school["receptionist"]),
            )

            event = ws.receive_json()
            assert event["type"] == "event"
            assert event["event"] == "notification:new"
            assert event["data"]["message"] == "Early pick-up"

            ws.send_json({"type": "ping"})
            assert ws.receive_json()["type"] == "pong"

    def test_websocket_rejects_bad_token(self, client: TestClient) -> None:
        with client.websocket_connect("/api/v1/ws") as ws:
            assert ws.receive_json()["type"] == "auth_required"
            ws.send_json({"type": "auth", "token": "garbage"})

            error = ws.receive_json()
            assert error["code"] == "AUTH_FAILED"


class TestStatistics:
    """Tests for the manager dashboard endpoints."""

    def test_requires_manager(self, client: TestClient, school: dict[str, Any]) -> None:
        response = client.get("/api/v1/statistics/overview", headers=bearer(school["teacher"]))

        assert response.status_code == 403

    def test_overview(self, client: TestClient, school: dict[str, Any]) -> None:
        response = client.get("/api/v1/statistics/overview", headers=bearer(school["manager"]))

        assert response.status_code == 200, response.text
        body = response.json()
        assert body["totalClasses"] == 1
        assert body["totalStudents"] == 1
        assert body["classUtilization"] == {"filled": 1, "available": 1, "percentage": 50.0}
        assert body["teacherStats"]["assigned"] == 1

    def test_absent_answer_shows_in_attendance(
        self, client: TestClient, school: dict[str, Any]
    ) -> None:
        created = client.post(
            "/api/v1/notifications/request",
            json={"studentId": school["student"]["id"]},
            headers=bearer(school["receptionist"]),
        )
        client.put(
            f"/api/v1/notifications/{created.json()['id']}/respond",
            json={"approved": True},
            headers=bearer(school["teacher"]),
        )

        response = client.get(
            "/api/v1/statistics/daily-attendance", headers=bearer(school["manager"])
        )

        assert response.status_code == 200, response.text
        body = response.json()
        assert body["overall"]["gone"] == 1
        assert body["classes"][0]["goneStudents"][0]["studentCode"] == "ST001"

    def test_attendance_for_quiet_day(self, client: TestClient, school: dict[str, Any]) -> None:
        response = client.get(
            "/api/v1/statistics/daily-attendance",
            params={"date": "2024-01-15"},
            headers=bearer(school["manager"]),
        )

        assert response.status_code == 200
        assert response.json()["date"] == "2024-01-15"
        assert response.json()["overall"]["present"] == 1


class TestRateLimiting:
    """Tests for the general per-client request limit."""

    def test_general_limit_returns_429(
        self,
        client: TestClient,
        school: dict[str, Any],
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setenv("RATE_LIMIT_REQUESTS_PER_MINUTE", "2")
        get_settings.cache_clear()
        monkeypatch.setattr(limiter, "enabled", True)
        limiter.reset()

        try:
            responses = [
                client.get("/api/v1/notifications/unread/count", headers=bearer(school["teacher"]))
                for _ in range(4)
            ]
        finally:
            limiter.reset()

        assert [r.status_code for r in responses] == [200, 200, 429, 429]
        assert responses[-1].json()["code"] == "rate_limited"
        assert responses[-1].headers["Retry-After"] == "60"

    def test_limit_is_per_user(
        self,
        client: TestClient,
        school: dict[str, Any],
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Test one user exhausting the limit does not block another."""
        monkeypatch.setenv("RATE_LIMIT_REQUESTS_PER_MINUTE", "1")
        get_settings.cache_clear()
        monkeypatch.setattr(limiter, "enabled", True)
        limiter.reset()

        try:
            url = "/api/v1/notifications/unread/count"
            first = client.get(url, headers=bearer(school["teacher"]))
            blocked = client.get(url, headers=bearer(school["teacher"]))
            other = client.get(url, headers=bearer(school["receptionist"]))
        finally:
            limiter.reset()

        assert first.status_code == 200
        assert blocked.status_code == 429
        assert other.status_code == 200
