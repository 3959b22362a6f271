"""
Tests for the check-in HTTP API.
"""
from datetime import timedelta
from unittest.mock import MagicMock

import pytest
from fastapi import status
from jose import jwt
from sqlalchemy.exc import OperationalError

from checkin_tracker import config
from checkin_tracker.auth.jwt_handler import create_access_token
from checkin_tracker.checkins.errors import StorageUnavailable
from checkin_tracker.checkins.lifecycle import CheckinLifecycleManager
from checkin_tracker.checkins.router import get_lifecycle
from checkin_tracker.utils.date_helper import today_utc


def _checkin_body(seed_data, **overrides):
    body = {"client_id": seed_data["abc_id"], "latitude": 28.6320, "longitude": 77.2170}
    body.update(overrides)
    return body


class TestAuth:

    def test_login_returns_token_with_minimal_claims(self, client, seed_data):
        response = client.post("/api/auth/login", json={"email": "Rahul@Example.com ", "password": "rahulpass"})

        assert response.status_code == status.HTTP_200_OK
        data = response.json()["data"]
        assert data["user"] == {
            "id": seed_data["rahul_id"], "name": "Rahul Field", "email": "rahul@example.com", "role": "employee",
        }
        claims = jwt.decode(data["token"], config.JWT_SECRET, algorithms=[config.ALGORITHM])
        assert set(claims) == {"sub", "user_id", "role", "name", "exp"}
        assert claims["user_id"] == seed_data["rahul_id"]

    def test_login_rejects_bad_password(self, client, seed_data):
        response = client.post("/api/auth/login", json={"email": "rahul@example.com", "password": "nope"})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json() == {
            "success": False, "error": "Unauthenticated", "message": "Invalid email or password.",
        }

    def test_me_uses_token_role(self, client, manager_headers, seed_data):
        response = client.get("/api/auth/me", headers=manager_headers)

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["data"] == {"id": seed_data["manager_id"], "name": "Amit Manager", "role": "manager"}

    def test_create_access_token_drops_extra_claims(self):
        token = create_access_token({"sub": "3", "user_id": 3, "role": "employee", "name": "X", "password_hash": "h"})
        claims = jwt.decode(token, config.JWT_SECRET, algorithms=[config.ALGORITHM])
        assert "password_hash" not in claims

    @pytest.mark.parametrize("headers", [
        {},
        {"Authorization": "Bearer not-a-jwt"},
        {"Authorization": "Token abc"},
    ])
    def test_missing_or_invalid_identity_is_401(self, client, seed_data, headers):
        response = client.get("/api/checkin/active", headers=headers)

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["error"] == "Unauthenticated"

    def test_expired_token_is_401(self, client, seed_data):
        token = create_access_token(
            {"sub": str(seed_data["rahul_id"]), "user_id": seed_data["rahul_id"], "role": "employee"},
            expires_minutes=-5,
        )
        response = client.put("/api/checkin/checkout", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == status.HTTP_401_UNAUTHORIZED


class TestCheckinFlow:

    def test_full_lifecycle(self, client, rahul_headers, seed_data):
        response = client.get("/api/checkin/active", headers=rahul_headers)
        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"success": True, "data": None}

        response = client.post("/api/checkin", json=_checkin_body(seed_data, notes="demo"), headers=rahul_headers)
        assert response.status_code == status.HTTP_201_CREATED
        created = response.json()["data"]
        assert created["status"] == "open"
        assert created["employee_id"] == seed_data["rahul_id"]
        assert created["client_name"] == "ABC Corp"
        assert created["checkout_time"] is None
        assert created["duration"] == "Active"
        # "YYYY-MM-DD HH:MM:SS", no offset marker
        assert len(created["checkin_time"]) == 19
        assert "T" not in created["checkin_time"] and "Z" not in created["checkin_time"]

        response = client.get("/api/checkin/active", headers=rahul_headers)
        active = response.json()["data"]
        assert active["id"] == created["id"]
        assert active["client_lat"] == pytest.approx(28.6315)
        assert active["client_lng"] == pytest.approx(77.2167)

        response = client.put("/api/checkin/checkout", headers=rahul_headers)
        assert response.status_code == status.HTTP_200_OK
        closed = response.json()["data"]
        assert closed["id"] == created["id"]
        assert closed["status"] == "closed"
        assert closed["checkout_time"] >= closed["checkin_time"]

        response = client.get("/api/checkin/active", headers=rahul_headers)
        assert response.json()["data"] is None

    def test_double_checkin_is_409(self, client, rahul_headers, seed_data):
        assert client.post("/api/checkin", json=_checkin_body(seed_data), headers=rahul_headers).status_code == 201

        response = client.post(
            "/api/checkin", json=_checkin_body(seed_data, client_id=seed_data["xyz_id"]), headers=rahul_headers
        )

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()["error"] == "AlreadyCheckedIn"

    def test_checkout_without_checkin_is_404(self, client, rahul_headers):
        response = client.put("/api/checkin/checkout", headers=rahul_headers)

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["error"] == "NoActiveCheckin"

    def test_employees_are_independent(self, client, rahul_headers, priya_headers, seed_data):
        assert client.post("/api/checkin", json=_checkin_body(seed_data), headers=rahul_headers).status_code == 201
        assert client.post("/api/checkin", json=_checkin_body(seed_data), headers=priya_headers).status_code == 201

        assert client.put("/api/checkin/checkout", headers=priya_headers).status_code == 200
        assert client.get("/api/checkin/active", headers=rahul_headers).json()["data"] is not None

    def test_distance_computed_when_omitted(self, client, rahul_headers, seed_data):
        response = client.post(
            "/api/checkin",
            json=_checkin_body(seed_data, latitude=28.6315, longitude=77.2167),
            headers=rahul_headers,
        )
        assert response.json()["data"]["distance_from_client"] == 0

    def test_client_supplied_distance_is_stored_verbatim(self, client, rahul_headers, seed_data):
        response = client.post(
            "/api/checkin", json=_checkin_body(seed_data, distance_from_client=640.25), headers=rahul_headers
        )
        assert response.json()["data"]["distance_from_client"] == 640.25

    @pytest.mark.parametrize("body", [
        {"latitude": 28.6, "longitude": 77.2},
        {"client_id": 1, "longitude": 77.2},
        {"client_id": 1, "latitude": "north", "longitude": 77.2},
        {"client_id": 1, "latitude": 128.6, "longitude": 77.2},
        {"client_id": "", "latitude": 28.6, "longitude": 77.2},
        {"client_id": "\N{SUPERSCRIPT TWO}", "latitude": 28.6, "longitude": 77.2},
        {"client_id": 9999, "latitude": 28.6, "longitude": 77.2},
    ])
    def test_invalid_body_is_400(self, client, rahul_headers, seed_data, body):
        response = client.post("/api/checkin", json=body, headers=rahul_headers)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"] == "InvalidInput"
        assert client.get("/api/checkin/active", headers=rahul_headers).json()["data"] is None

    def test_oversized_latitude_literal_is_400(self, client, rahul_headers, seed_data):
        raw = '{"client_id": %d, "latitude": 1%s, "longitude": 77.2}' % (seed_data["abc_id"], "0" * 400)

        response = client.post(
            "/api/checkin",
            content=raw,
            headers={**rahul_headers, "Content-Type": "application/json"},
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"] == "InvalidInput"
        assert client.get("/api/checkin/active", headers=rahul_headers).json()["data"] is None

    def test_clients_list(self, client, rahul_headers):
        response = client.get("/api/checkin/clients", headers=rahul_headers)

        assert response.status_code == status.HTTP_200_OK
        names = [c["name"] for c in response.json()["data"]]
        assert names == ["ABC Corp", "XYZ Ltd"]


class TestHistoryApi:

    def test_history_lists_own_records_newest_first(self, client, rahul_headers, priya_headers, seed_data):
        client.post("/api/checkin", json=_checkin_body(seed_data), headers=rahul_headers)
        client.put("/api/checkin/checkout", headers=rahul_headers)
        client.post("/api/checkin", json=_checkin_body(seed_data, client_id=seed_data["xyz_id"]), headers=rahul_headers)
        client.post("/api/checkin", json=_checkin_body(seed_data), headers=priya_headers)

        response = client.get("/api/checkin/history", headers=rahul_headers)

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert [r["client_name"] for r in body["data"]] == ["XYZ Ltd", "ABC Corp"]
        assert body["summary"]["total_checkins"] == 2
        assert body["summary"]["completed"] == 1
        assert body["summary"]["active"] == 1

    def test_history_filtered_to_today(self, client, rahul_headers, seed_data):
        client.post("/api/checkin", json=_checkin_body(seed_data), headers=rahul_headers)
        today = today_utc().isoformat()

        response = client.get(
            "/api/checkin/history", params={"start_date": today, "end_date": today}, headers=rahul_headers
        )

        assert len(response.json()["data"]) == 1

    def test_history_empty_range_has_zero_summary(self, client, rahul_headers, seed_data):
        client.post("/api/checkin", json=_checkin_body(seed_data), headers=rahul_headers)
        month_ago = today_utc() - timedelta(days=30)

        response = client.get(
            "/api/checkin/history",
            params={"start_date": month_ago.isoformat(), "end_date": (month_ago + timedelta(days=1)).isoformat()},
            headers=rahul_headers,
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {
            "success": True,
            "data": [],
            "summary": {"total_checkins": 0, "completed": 0, "active": 0, "total_minutes": 0},
        }

    @pytest.mark.parametrize("params", [
        {"start_date": "2026-01-20", "end_date": "2026-01-10"},
        {"start_date": "2026-01-10"},
        {"end_date": "2026-01-10"},
        {"start_date": "yesterday", "end_date": "2026-01-10"},
        {"start_date": "2026-01-10", "end_date": "2026-01-10' OR '1'='1"},
    ])
    def test_invalid_ranges_are_400(self, client, rahul_headers, params):
        response = client.get("/api/checkin/history", params=params, headers=rahul_headers)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"] == "InvalidInput"

    def test_future_range_is_400(self, client, rahul_headers):
        tomorrow = (today_utc() + timedelta(days=1)).isoformat()

        response = client.get(
            "/api/checkin/history", params={"start_date": tomorrow, "end_date": tomorrow}, headers=rahul_headers
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST


class TestStorageFailures:

    @pytest.fixture
    def broken_store(self, client):
        db = MagicMock()
        db.query.side_effect = OperationalError("SELECT checkins", {}, Exception("database is locked"))
        client.app.dependency_overrides[get_lifecycle] = lambda: CheckinLifecycleManager(db)
        yield db
        client.app.dependency_overrides.pop(get_lifecycle, None)

    @pytest.mark.parametrize("method,path", [
        ("put", "/api/checkin/checkout"),
        ("get", "/api/checkin/active"),
        ("get", "/api/checkin/history"),
    ])
    def test_storage_failure_is_500_without_raw_error(self, client, rahul_headers, broken_store, method, path):
        response = getattr(client, method)(path, headers=rahul_headers)

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.json() == {
            "success": False, "error": "StorageUnavailable", "message": StorageUnavailable.default_message,
        }
        assert "database is locked" not in response.text

    def test_checkin_storage_failure_is_500(self, client, rahul_headers, seed_data, broken_store):
        response = client.post("/api/checkin", json=_checkin_body(seed_data), headers=rahul_headers)

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.json()["error"] == "StorageUnavailable"
        assert "database is locked" not in response.text


def test_health(client):
    assert client.get("/api/health").json() == {"status": "ok"}
