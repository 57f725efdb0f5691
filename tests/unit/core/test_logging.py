"""
Tests for structured logging: masking helpers, the request logging
middleware and the JSON formatter.
"""

import json
import logging
import sys

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from core.middleware.logging import (
    StructuredFormatter,
    StructuredLoggingMiddleware,
    is_sensitive_field,
    mask_headers,
    mask_sensitive_data,
    setup_logging,
    should_log_request,
)


class TestSensitiveFieldDetection:
    """Test sensitive field name detection."""

    @pytest.mark.parametrize("field_name,expected", [
        ("password", True),
        ("user_password", True),
        ("access_token", True),
        ("apiKey", True),
        ("client_secret", True),
        ("Authorization", True),
        ("session_id", True),
        ("title", False),
        ("job_code", False),
        ("rejection_reason", False),
        ("email", False),
    ])
    def test_field_names(self, field_name, expected):
        assert is_sensitive_field(field_name) is expected


class TestMaskSensitiveData:
    """Test recursive masking."""

    def test_masks_keys_and_pii(self):
        data = {
            "title": "Backend Engineer",
            "password": "hunter2",
            "contact": "Reach me at jane@example.com or 555-123-4567",
            "stages": [{"stage_name": "Screen", "api_key": "k"}],
        }

        masked = mask_sensitive_data(data)

        assert masked["title"] == "Backend Engineer"
        assert masked["password"] == "[REDACTED]"
        assert masked["contact"] == "Reach me at [EMAIL] or [PHONE]"
        assert masked["stages"][0] == {"stage_name": "Screen", "api_key": "[REDACTED]"}
        assert data["password"] == "hunter2"

    def test_non_string_scalars_pass_through(self):
        assert mask_sensitive_data({"vacancy_count": 3, "negotiable": True}) == {
            "vacancy_count": 3,
            "negotiable": True,
        }

    def test_max_depth(self):
        nested = current = {}
        for _ in range(15):
            current["child"] = {}
            current = current["child"]

        masked = mask_sensitive_data(nested, max_depth=3)

        assert masked["child"]["child"]["child"]["child"] == "[MAX_DEPTH_EXCEEDED]"


class TestMaskHeaders:
    def test_authorization_keeps_scheme(self):
        masked = mask_headers({"authorization": "Bearer abc.def.ghi", "accept": "application/json"})

        assert masked == {"authorization": "Bearer [REDACTED]", "accept": "application/json"}

    def test_cookie_fully_masked(self):
        assert mask_headers({"cookie": "sid=1"}) == {"cookie": "[REDACTED]"}


@pytest.mark.parametrize("path,expected", [
    ("/health", False),
    ("/ready", False),
    ("/api/v1/jobs", True),
])
def test_should_log_request(path, expected):
    assert should_log_request(path) is expected


class TestStructuredLoggingMiddleware:
    """Test request logging."""

    @pytest.fixture
    def client(self):
        app = FastAPI()
        app.add_middleware(StructuredLoggingMiddleware, log_request_body=True)

        @app.post("/api/v1/jobs")
        async def create(payload: dict):
            return payload

        @app.get("/health")
        async def health():
            return {"status": "healthy"}

        return TestClient(app)

    def _events(self, caplog):
        return [
            json.loads(record.getMessage())
            for record in caplog.records
            if record.name == "core.middleware.logging"
        ]

    def test_logs_start_and_completion(self, client, caplog):
        caplog.set_level(logging.INFO, logger="core.middleware.logging")

        response = client.post(
            "/api/v1/jobs",
            json={"title": "Backend Engineer", "password": "hunter2"},
            headers={"Authorization": "Bearer secret-token", "X-Request-ID": "req-1"},
        )

        assert response.status_code == 200
        assert response.headers["x-request-id"] == "req-1"
        started, completed = self._events(caplog)
        assert started["event"] == "request_started"
        assert started["body"] == {"title": "Backend Engineer", "password": "[REDACTED]"}
        assert started["headers"]["authorization"] == "Bearer [REDACTED]"
        assert completed["event"] == "request_completed"
        assert completed["status_code"] == 200
        assert completed["request_id"] == "req-1"
        assert "secret-token" not in caplog.text
        assert "hunter2" not in caplog.text

    def test_generates_request_id(self, client):
        response = client.post("/api/v1/jobs", json={})

        assert response.headers["x-request-id"]

    def test_health_not_logged(self, client, caplog):
        caplog.set_level(logging.INFO, logger="core.middleware.logging")

        response = client.get("/health")

        assert response.status_code == 200
        assert "x-request-id" in response.headers
        assert self._events(caplog) == []


class TestStructuredFormatter:
    def test_json_line_with_extras(self):
        record = logging.LogRecord("api.services.jobs", logging.INFO, __file__, 1, "Job approved", None, None)
        record.job_id = "1234"

        data = json.loads(StructuredFormatter().format(record))

        assert data["level"] == "INFO"
        assert data["logger"] == "api.services.jobs"
        assert data["message"] == "Job approved"
        assert data["job_id"] == "1234"
        assert "user_id" not in data

    def test_exception_info(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = logging.LogRecord("x", logging.ERROR, __file__, 1, "failed", None, sys.exc_info())

        data = json.loads(StructuredFormatter().format(record))

        assert data["exception"]["type"] == "RuntimeError"
        assert data["exception"]["message"] == "boom"


def test_setup_logging_installs_single_handler():
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    try:
        setup_logging("DEBUG", json_logs=True)
        setup_logging("WARNING", json_logs=True)

        assert root.level == logging.WARNING
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, StructuredFormatter)
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)
