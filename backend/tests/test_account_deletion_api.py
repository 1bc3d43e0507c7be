"""Tests for the account deletion endpoint."""

import logging
import sqlite3
from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import Engine, event
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from app.core.deps import get_db
from app.main import app

URL = "/api/v1/account-deletion"

CORS_HEADERS = {
    "access-control-allow-origin": "*",
    "access-control-allow-headers": "authorization, x-client-info, apikey, content-type",
}


def _assert_cors(response) -> None:
    for name, value in CORS_HEADERS.items():
        assert response.headers.get(name) == value


class TestAccountDeletionFlow:
    """End-to-end request, cancel and status checks."""

    def test_request_cancel_status_scenario(self, client: TestClient):
        """Request at T is scheduled for T+3d; cancel; status shows nothing pending."""
        t = datetime.now(UTC)

        response = client.post(URL, json={"action": "request_deletion", "user_id": "u1"})

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["message"] == "Account deletion scheduled"
        scheduled = datetime.fromisoformat(data["deletion_request"]["scheduled_deletion_at"])
        assert t + timedelta(days=3) <= scheduled <= t + timedelta(days=3, seconds=5)
        assert data["deletion_request"]["status"] == "pending"

        response = client.post(URL, json={"action": "cancel_deletion", "user_id": "u1"})

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["message"] == "Account deletion cancelled"
        assert data["deletion_request"]["status"] == "cancelled"
        assert data["deletion_request"]["cancelled_at"] is not None

        response = client.post(URL, json={"action": "get_status", "user_id": "u1"})

        assert response.status_code == 200
        assert response.json() == {"has_pending_request": False, "deletion_request": None}

    def test_status_for_unknown_user(self, client: TestClient):
        response = client.post(URL, json={"action": "get_status", "user_id": "stranger"})

        assert response.status_code == 200
        assert response.json() == {"has_pending_request": False, "deletion_request": None}

    def test_status_with_pending_request(self, client: TestClient):
        created = client.post(URL, json={"action": "request_deletion", "user_id": "u1"}).json()

        response = client.post(URL, json={"action": "get_status", "user_id": "u1"})

        data = response.json()
        assert data["has_pending_request"] is True
        assert data["deletion_request"]["id"] == created["deletion_request"]["id"]

    def test_duplicate_request_returns_existing(self, client: TestClient):
        created = client.post(URL, json={"action": "request_deletion", "user_id": "u1"}).json()

        response = client.post(URL, json={"action": "request_deletion", "user_id": "u1"})

        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "A deletion request is already pending"
        assert data["existing_request"]["id"] == created["deletion_request"]["id"]
        _assert_cors(response)

    def test_cancel_without_pending_request(self, client: TestClient):
        response = client.post(URL, json={"action": "cancel_deletion", "user_id": "u1"})

        assert response.status_code == 404
        assert response.json() == {"error": "No pending deletion request found"}
        _assert_cors(response)


class TestAccountDeletionValidation:
    """Input validation happens before any database access."""

    @pytest.fixture
    def untouched_db(self):
        db = MagicMock(spec=Session)
        app.dependency_overrides[get_db] = lambda: db
        yield db
        app.dependency_overrides.clear()

    @pytest.mark.parametrize(
        "body",
        [
            {"action": "request_deletion"},
            {"action": "cancel_deletion", "user_id": ""},
            {"action": "get_status", "user_id": None},
            {"action": "not_an_action"},
        ],
    )
    def test_missing_user_id(self, untouched_db, body):
        response = TestClient(app).post(URL, json=body)

        assert response.status_code == 400
        assert response.json() == {"error": "user_id is required"}
        untouched_db.execute.assert_not_called()
        _assert_cors(response)

    def test_unknown_action(self, untouched_db):
        response = TestClient(app).post(URL, json={"action": "purge", "user_id": "u1"})

        assert response.status_code == 400
        error = response.json()["error"]
        assert error.startswith("Invalid action")
        for action in ("request_deletion", "cancel_deletion", "get_status"):
            assert action in error
        untouched_db.execute.assert_not_called()

    def test_invalid_json(self, untouched_db):
        response = TestClient(app).post(
            URL, content=b"{not json", headers={"Content-Type": "application/json"}
        )

        assert response.status_code == 400
        assert "error" in response.json()
        untouched_db.execute.assert_not_called()

    def test_body_must_be_object(self, untouched_db):
        response = TestClient(app).post(URL, json=["request_deletion", "u1"])

        assert response.status_code == 400
        assert response.json() == {"error": "Request body must be a JSON object"}

    def test_non_string_user_id(self, untouched_db):
        response = TestClient(app).post(URL, json={"action": "get_status", "user_id": 42})

        assert response.status_code == 400
        untouched_db.execute.assert_not_called()

    @pytest.mark.parametrize(
        "kwargs, expected",
        [
            ({"content": b"{not json"}, "Account deletion action: None for user: None"),
            ({"json": ["get_status"]}, "Account deletion action: None for user: None"),
            (
                {"json": {"action": "get_status", "user_id": 42}},
                "Account deletion action: get_status for user: 42",
            ),
        ],
    )
    def test_malformed_body_is_logged(self, untouched_db, caplog, kwargs, expected):
        caplog.set_level(logging.INFO, logger="app.api.routes.account_deletion")

        response = TestClient(app).post(
            URL, headers={"Content-Type": "application/json"}, **kwargs
        )

        assert response.status_code == 400
        assert any(
            r.levelno == logging.WARNING and expected in r.getMessage()
            for r in caplog.records
        )


class TestAccountDeletionStorageErrors:
    """Unexpected database failures become 500 responses."""

    def test_storage_error_message_is_returned(self):
        db = MagicMock(spec=Session)
        db.execute.side_effect = OperationalError("SELECT", {}, Exception("connection refused"))
        app.dependency_overrides[get_db] = lambda: db
        try:
            response = TestClient(app).post(
                URL, json={"action": "request_deletion", "user_id": "u1"}
            )
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 500
        assert response.json() == {"error": "connection refused"}
        _assert_cors(response)

    def test_cancel_failure_after_commit_returns_driver_message(
        self, client: TestClient, db_engine: Engine
    ):
        client.post(URL, json={"action": "request_deletion", "user_id": "u1"})
        committed: list[bool] = []

        @event.listens_for(db_engine, "commit")
        def mark_committed(conn):
            committed.append(True)

        @event.listens_for(db_engine, "before_cursor_execute")
        def drop_connection(conn, cursor, statement, parameters, context, executemany):
            if committed and statement.lstrip().upper().startswith("SELECT"):
                raise sqlite3.OperationalError("server closed the connection")

        response = client.post(URL, json={"action": "cancel_deletion", "user_id": "u1"})

        assert response.status_code == 500
        assert response.json() == {"error": "server closed the connection"}
        _assert_cors(response)


class TestCORS:
    """Cross-origin access from the browser client."""

    def test_preflight_returns_empty_body(self, client: TestClient):
        response = client.options(
            URL,
            headers={
                "Origin": "https://app.example.com",
                "Access-Control-Request-Method": "POST",
            },
        )

        assert response.status_code == 200
        assert response.content == b""
        _assert_cors(response)

    def test_success_carries_cors_headers(self, client: TestClient):
        response = client.post(URL, json={"action": "get_status", "user_id": "u1"})

        assert response.status_code == 200
        _assert_cors(response)

    def test_request_id_is_echoed(self, client: TestClient):
        response = client.post(
            URL,
            json={"action": "get_status", "user_id": "u1"},
            headers={"X-Request-ID": "req-123"},
        )

        assert response.headers["X-Request-ID"] == "req-123"
