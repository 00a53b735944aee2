"""
Integration tests for the middleware stack on the real application.
Tests request ids, error bodies and what reaches the request log.
"""

import json
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from core.config import settings


def logged_events(mock_logger):
    """Every JSON record the logging middleware emitted, at any level."""
    events = []
    for method in (mock_logger.info, mock_logger.warning, mock_logger.error):
        for call in method.call_args_list:
            try:
                events.append(json.loads(call.args[0]))
            except (ValueError, IndexError):
                continue
    return events


@pytest.fixture
def body_logging_client(monkeypatch, client):
    """The application rebuilt with request body logging switched on."""
    from api.main import create_app

    monkeypatch.setattr(settings, "log_request_body", True)
    with TestClient(create_app(), raise_server_exceptions=False) as test_client:
        yield test_client


class TestRequestIds:
    def test_request_id_echoed(self, client):
        response = client.get("/api/v1/interviewers", headers={"X-Request-ID": "req-123"})

        assert response.headers["x-request-id"] == "req-123"

    def test_request_id_generated(self, client):
        response = client.get("/api/v1/interviewers")

        assert len(response.headers["x-request-id"]) == 36

    def test_request_id_on_error_response(self, client):
        response = client.get("/api/v1/auth/me", headers={"X-Request-ID": "req-456"})

        assert response.status_code == 401
        assert response.headers["x-request-id"] == "req-456"

    def test_health_checks_not_logged(self, client):
        with patch("core.middleware.logging.logger") as mock_logger:
            response = client.get("/health")

        assert response.headers["x-request-id"]
        assert logged_events(mock_logger) == []


class TestErrorBodies:
    def test_unknown_route(self, client):
        response = client.get("/api/v1/does-not-exist")

        assert response.status_code == 404
        error = response.json()["error"]
        assert error["code"] == "HTTP_EXCEPTION"
        assert error["path"] == "/api/v1/does-not-exist"
        assert error["method"] == "GET"

    def test_validation_error_lists_fields(self, client):
        response = client.post("/api/v1/access-requests", json={"name": "Jane Doe"})

        assert response.status_code == 422
        fields = {d["field"] for d in response.json()["error"]["details"]}
        assert {"body.location_lat", "body.location_lng", "body.device_id"} <= fields

    def test_database_failure_hides_details(self, client):
        from sqlalchemy.exc import OperationalError

        failure = OperationalError("SELECT * FROM users", {}, Exception("disk I/O error"))
        with patch("api.services.auth.get_user_by_email", side_effect=failure):
            response = client.post(
                "/api/v1/auth/sign-in",
                json={"email": "jane@example.com", "password": "whatever-pw"},
            )

        assert response.status_code == 500
        body = response.text
        assert "SELECT" not in body
        assert "disk I/O" not in body
        assert "Traceback" not in body


class TestRequestLog:
    def test_completed_request_logged(self, client):
        with patch("core.middleware.logging.logger") as mock_logger:
            client.get("/api/v1/interviewers", headers={"X-Request-ID": "req-789"})

        events = logged_events(mock_logger)
        started = next(e for e in events if e["event"] == "request_started")
        completed = next(e for e in events if e["event"] == "request_completed")
        assert started["request_id"] == completed["request_id"] == "req-789"
        assert completed["status_code"] == 200
        assert completed["duration_ms"] >= 0

    def test_authorization_header_masked(self, client, user_headers):
        with patch("core.middleware.logging.logger") as mock_logger:
            client.get("/api/v1/auth/me", headers=user_headers)

        started = next(e for e in logged_events(mock_logger) if e["event"] == "request_started")
        assert started["headers"]["authorization"] == "Bearer [REDACTED]"

    def test_device_id_query_masked(self, client):
        with patch("core.middleware.logging.logger") as mock_logger:
            client.get("/api/v1/access-requests/latest", params={"device_id": "device_secret1"})

        text = json.dumps(logged_events(mock_logger))
        assert "device_secret1" not in text
        assert "[REDACTED]" in text

    def test_password_never_logged(self, body_logging_client):
        with patch("core.middleware.logging.logger") as mock_logger:
            body_logging_client.post(
                "/api/v1/auth/sign-in",
                json={"email": "jane@example.com", "password": "hunter2-hunter2"},
            )

        text = json.dumps(logged_events(mock_logger))
        assert "hunter2-hunter2" not in text
        assert "jane@example.com" not in text
        assert "[EMAIL]" in text

    def test_location_never_logged(self, body_logging_client, access_request_payload):
        with patch("core.middleware.logging.logger") as mock_logger:
            response = body_logging_client.post(
                "/api/v1/access-requests", json=access_request_payload
            )

        assert response.status_code == 201
        started = next(e for e in logged_events(mock_logger) if e["event"] == "request_started")
        assert started["body"]["location_lat"] == "[LOCATION]"
        assert started["body"]["location_lng"] == "[LOCATION]"
        assert started["body"]["device_id"] == "[REDACTED]"
        assert started["body"]["name"] == "Jane Doe"
