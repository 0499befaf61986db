from __future__ import annotations

import io

import pytest
from fastapi.testclient import TestClient
from PIL import Image

import medikeep.services.prescription_service as prescription_service
from medikeep.app import create_app
from medikeep.repositories.sql_repository import SQLRepository
from medikeep.services.session_service import issue_session

PRESCRIPTION = {
    "medicationName": "Amoxicillin",
    "doctorName": "Dr. Khan",
    "patientName": "A. Ali",
    "date": "2024-01-10",
    "dosage": "500mg",
    "instructions": "twice daily",
}


@pytest.fixture()
def client(db_env):
    with TestClient(create_app()) as test_client:
        yield test_client


def _auth_headers(email: str) -> dict[str, str]:
    user = SQLRepository().create_user(email, email.split("@")[0].title())
    return {"Authorization": f"Bearer {issue_session(user.id)}"}


@pytest.fixture()
def auth(db_env):
    return _auth_headers("alice@example.com")


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "database": True}


@pytest.mark.parametrize(
    "method,path",
    [
        ("get", "/api/prescriptions"),
        ("get", "/api/reminders"),
        ("get", "/api/profile"),
        ("delete", "/api/prescriptions/abc"),
    ],
)
def test_requests_without_token_are_rejected(client, method, path):
    response = getattr(client, method)(path)
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "UNAUTHORIZED"


def test_prescription_flow(client, auth, monkeypatch):
    outbox = []
    monkeypatch.setattr(
        prescription_service,
        "send_email",
        lambda subject, to, html, text=None: outbox.append((subject, to)),
    )

    created = client.post("/api/prescriptions", json=PRESCRIPTION, headers=auth)
    assert created.status_code == 201
    body = created.json()
    assert body["sideEffects"] == "None reported"
    assert body["date"] == "2024-01-10"
    record_id = body["id"]

    listed = client.get("/api/prescriptions", headers=auth).json()
    assert [p["id"] for p in listed] == [record_id]

    shared = client.post(
        f"/api/prescriptions/{record_id}/share",
        json={"recipientEmail": "x@example.com"},
        headers=auth,
    )
    assert shared.status_code == 200
    assert shared.json()["recipientEmail"] == "x@example.com"
    assert outbox == [("Prescription for Amoxicillin", "x@example.com")]

    assert client.delete(f"/api/prescriptions/{record_id}", headers=auth).status_code == 200
    missing = client.get(f"/api/prescriptions/{record_id}", headers=auth)
    assert missing.status_code == 404
    assert missing.json()["error"]["code"] == "NOT_FOUND"


def test_validation_errors_list_fields(client, auth):
    response = client.post("/api/prescriptions", json={"medicationName": "X"}, headers=auth)
    assert response.status_code == 422
    error = response.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert {f["field"] for f in error["fields"]} >= {"doctorName", "dosage"}


def test_records_are_invisible_to_other_users(client, auth):
    record_id = client.post("/api/prescriptions", json=PRESCRIPTION, headers=auth).json()["id"]
    intruder = _auth_headers("mallory@example.com")
    assert client.get("/api/prescriptions", headers=intruder).json() == []
    assert client.get(f"/api/prescriptions/{record_id}", headers=intruder).status_code == 404
    assert client.put(f"/api/prescriptions/{record_id}", json=PRESCRIPTION, headers=intruder).status_code == 404


def test_share_without_mail_server_is_bad_gateway(client, auth):
    record_id = client.post("/api/prescriptions", json=PRESCRIPTION, headers=auth).json()["id"]
    response = client.post(
        f"/api/prescriptions/{record_id}/share",
        json={"recipientEmail": "x@example.com"},
        headers=auth,
    )
    assert response.status_code == 502
    assert response.json()["error"]["code"] == "DELIVERY_ERROR"


def test_reminder_taken_flow(client, auth):
    created = client.post(
        "/api/reminders",
        json={"medication": "Metformin", "dosage": "1 tab", "time": "08:00", "date": "2024-02-01"},
        headers=auth,
    )
    assert created.status_code == 201
    reminder = created.json()
    assert reminder["status"] == "pending"
    assert reminder["takenAt"] is None

    taken = client.put(f"/api/reminders/{reminder['id']}/taken", headers=auth)
    assert taken.status_code == 200
    assert taken.json()["status"] == "taken"
    assert taken.json()["takenAt"]

    assert [r["id"] for r in client.get("/api/reminders?status=taken", headers=auth).json()] == [reminder["id"]]
    assert client.get("/api/reminders?status=pending", headers=auth).json() == []
    assert client.get("/api/reminders?status=bogus", headers=auth).status_code == 422


def test_profile_get_update_and_image(client, auth):
    profile = client.get("/api/profile", headers=auth).json()
    assert profile["name"] == "Alice"
    assert profile["email"] == "alice@example.com"
    assert profile["profileImage"] == "/default-profile.png"

    updated = client.put("/api/profile", json={"age": 34, "bloodGroup": "A+"}, headers=auth)
    assert updated.status_code == 200
    assert updated.json()["age"] == 34
    assert updated.json()["bloodGroup"] == "A+"

    buffer = io.BytesIO()
    Image.new("RGB", (40, 40), (10, 120, 10)).save(buffer, format="PNG")
    uploaded = client.post(
        "/api/profile/image",
        files={"profileImage": ("me.png", buffer.getvalue(), "image/png")},
        headers=auth,
    )
    assert uploaded.status_code == 200
    image_path = uploaded.json()["profileImage"]
    assert image_path.startswith("/uploads/profile-images/")
    assert uploaded.json()["profile"]["age"] == 34

    served = client.get(image_path)
    assert served.status_code == 200
    assert served.content[:3] == b"\xFF\xD8\xFF"


def test_profile_image_rejects_wrong_type(client, auth):
    client.get("/api/profile", headers=auth)
    response = client.post(
        "/api/profile/image",
        files={"profileImage": ("me.gif", b"GIF89a....", "image/gif")},
        headers=auth,
    )
    assert response.status_code == 422
    assert client.get("/api/profile", headers=auth).json()["profileImage"] == "/default-profile.png"


def test_share_is_rate_limited(client, auth, monkeypatch):
    monkeypatch.setattr(prescription_service, "send_email", lambda *args, **kwargs: None)
    monkeypatch.setenv("SHARE_RATE_LIMIT", "2")
    from medikeep.core import config as core_config

    core_config.get_settings.cache_clear()
    record_id = client.post("/api/prescriptions", json=PRESCRIPTION, headers=auth).json()["id"]
    statuses = [
        client.post(
            f"/api/prescriptions/{record_id}/share",
            json={"recipientEmail": "x@example.com"},
            headers=auth,
        ).status_code
        for _ in range(3)
    ]
    assert statuses == [200, 200, 429]


def test_malformed_json_uses_error_envelope(client, auth):
    response = client.post(
        "/api/prescriptions",
        content="{not json",
        headers={**auth, "Content-Type": "application/json"},
    )
    assert response.status_code == 422
    error = response.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert error["fields"]


@pytest.mark.parametrize("literal", ["Infinity", "NaN", "1e400", '"inf"'])
def test_non_finite_height_is_rejected_and_profile_stays_readable(client, auth, literal):
    response = client.put(
        "/api/profile",
        content='{"height": %s}' % literal,
        headers={**auth, "Content-Type": "application/json"},
    )
    assert response.status_code == 422
    assert response.json()["error"]["fields"][0]["field"] == "height"
    profile = client.get("/api/profile", headers=auth)
    assert profile.status_code == 200
    assert profile.json()["height"] is None
