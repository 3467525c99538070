from __future__ import annotations

import io
from dataclasses import replace

import pytest

from smart_attendance.database.health import StoreHealth
from smart_attendance.main import create_app


@pytest.fixture
def app(container, settings, people):
    return create_app(container, settings)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_header(container):
    def _header(user):
        return {"Authorization": f"Bearer {container.token_signer.issue(user)}"}

    return _header


def test_health(client):
    res = client.get("/health")
    assert res.status_code == 200
    assert res.get_json()["database"] == "Connected"
    assert res.get_json()["backend"] == "fake"


def test_token_required(client):
    res = client.get("/api/attendance", headers={"X-Request-ID": "abc123"})
    body = res.get_json()

    assert res.status_code == 401
    assert body["error"]["kind"] == "unauthenticated"
    assert body["request_id"] == "abc123"
    assert res.headers["X-Request-ID"] == "abc123"

    res = client.get("/api/attendance", headers={"Authorization": "Bearer garbage"})
    assert res.status_code == 401


def test_role_gate_over_http(client, people, auth_header):
    res = client.get("/api/reports/overall-stats", headers=auth_header(people.alice))
    assert res.status_code == 403
    assert res.get_json()["error"]["kind"] == "forbidden"

    res = client.get("/api/reports/overall-stats", headers=auth_header(people.admin))
    assert res.status_code == 200
    assert res.get_json()["total_students"] == 3


def test_signup_login_me(client):
    res = client.post(
        "/api/auth/signup",
        json={"name": "Dave", "email": "25pa1a0510@vishnu.edu.in", "password": "secret123"},
    )
    assert res.status_code == 201
    assert res.get_json()["user"]["role"] == "student"

    res = client.post("/api/auth/login", json={"email": "25pa1a0510@vishnu.edu.in", "password": "nope-nope"})
    assert res.status_code == 401

    res = client.post("/api/auth/login", json={"email": "25pa1a0510@vishnu.edu.in", "password": "secret123"})
    token = res.get_json()["token"]
    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.get_json()["email"] == "25pa1a0510@vishnu.edu.in"


def test_scanner_mark_needs_no_token(client, people):
    res = client.post("/api/attendance/mark", json={"uid": "TAG-ALICE", "timestamp": "2026-03-04T09:15:00"})
    body = res.get_json()
    assert res.status_code == 200
    assert body["recorded"] is True
    assert body["record"]["student_id"] == people.alice.user_id
    assert body["record"]["origin"] == "hardware"

    res = client.post("/api/attendance/mark", json={"uid": "TAG-NOBODY"})
    assert res.get_json() == {"ok": True, "recorded": False}


def test_manual_mark_and_history(client, people, auth_header):
    res = client.post(
        "/api/attendance/manual",
        json={"student_id": people.bob.user_id, "status": "maybe"},
        headers=auth_header(people.incharge),
    )
    assert res.status_code == 400
    assert res.get_json()["error"]["kind"] == "invalid_argument"

    res = client.post(
        "/api/attendance/manual",
        json={"student_id": people.bob.user_id, "status": "A", "date": "2026-03-03"},
        headers=auth_header(people.incharge),
    )
    assert res.status_code == 200

    res = client.get("/api/attendance?from=2026-03-01", headers=auth_header(people.bob))
    assert [r["status"] for r in res.get_json()] == ["A"]

    res = client.get("/api/reports/attendance-percent", headers=auth_header(people.bob))
    assert res.get_json()["percent"] == 0


def test_csv_upload(client, people, auth_header):
    payload = {"file": (io.BytesIO(b"uid,status\nTAG-ALICE,P\nTAG-GHOST,P\n"), "scans.csv")}
    res = client.post(
        "/api/hardware/upload-csv",
        data=payload,
        headers=auth_header(people.admin),
        content_type="multipart/form-data",
    )
    body = res.get_json()
    assert res.status_code == 200
    assert (body["applied"], body["skipped"]) == (1, 1)

    res = client.post("/api/hardware/upload-csv", headers=auth_header(people.admin))
    assert res.status_code == 400

    res = client.post("/api/hardware/upload-csv", headers=auth_header(people.alice))
    assert res.status_code == 403


def test_leave_flow_over_http(client, people, auth_header):
    res = client.post(
        "/api/permissions",
        json={
            "faculty_id": people.faculty.user_id,
            "reason": "Fever",
            "start_date": "2026-03-05",
            "end_date": "2026-03-06",
        },
        headers=auth_header(people.alice),
    )
    assert res.status_code == 201
    request_id = res.get_json()["id"]

    res = client.put(
        f"/api/permissions/{request_id}", json={"status": "approved"}, headers=auth_header(people.faculty)
    )
    assert res.get_json()["status"] == "approved"

    res = client.put(
        f"/api/permissions/{request_id}", json={"status": "rejected"}, headers=auth_header(people.faculty)
    )
    assert res.status_code == 409
    assert res.get_json()["error"]["kind"] == "conflict"


def test_unknown_route_is_json(client):
    res = client.get("/api/nowhere")
    assert res.status_code == 404
    assert res.get_json()["error"]["kind"] == "not_found"


def test_store_down_fails_fast(container, settings, people, auth_header):
    def refuse():
        raise ConnectionError("connection refused")

    down = replace(container, health=StoreHealth(refuse, backend="fake", retry_seconds=60))
    client = create_app(down, settings).test_client()

    res = client.post("/api/auth/login", json={"email": "admin@vishnu.edu.in", "password": "secret123"})
    assert res.status_code == 503
    assert res.get_json()["error"]["kind"] == "unavailable"

    res = client.get("/health")
    assert res.status_code == 503
    assert res.get_json()["database"] == "Disconnected"
