"""Tests that task endpoints require the shared task secret.

Verifies that endpoints protected by verify_task_auth return 401 without
credentials, and reach handler logic with a valid secret.
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from immova.api.factory import create_app
from immova.api.task_auth import TASK_SECRET_HEADER, verify_task_auth


@pytest.fixture
def worker_client():
    """Create a test client for the worker app."""
    app = create_app(role="worker")
    return TestClient(app)


def _request(headers: dict[str, str]) -> MagicMock:
    request = MagicMock()
    request.headers = headers
    return request


class TestVerifyTaskAuth:
    def test_valid_secret(self, monkeypatch):
        monkeypatch.setenv("INTERNAL_TASK_SECRET", "s3cret")
        assert verify_task_auth(_request({TASK_SECRET_HEADER: "s3cret"})) is True

    def test_wrong_secret(self, monkeypatch):
        monkeypatch.setenv("INTERNAL_TASK_SECRET", "s3cret")
        assert verify_task_auth(_request({TASK_SECRET_HEADER: "guess"})) is False

    def test_missing_header(self, monkeypatch):
        monkeypatch.setenv("INTERNAL_TASK_SECRET", "s3cret")
        assert verify_task_auth(_request({})) is False

    def test_fails_closed_without_configured_secret(self, monkeypatch):
        monkeypatch.delenv("INTERNAL_TASK_SECRET", raising=False)
        assert verify_task_auth(_request({TASK_SECRET_HEADER: ""})) is False
        assert verify_task_auth(_request({TASK_SECRET_HEADER: "anything"})) is False


class TestBookingCreatedTaskAuth:
    """Auth tests for POST /tasks/notifications/booking-created."""

    def test_no_auth_returns_401(self, worker_client, monkeypatch):
        monkeypatch.setenv("INTERNAL_TASK_SECRET", "s3cret")
        response = worker_client.post(
            "/tasks/notifications/booking-created",
            json={"event_id": 1},
        )
        assert response.status_code == 401
        assert response.json()["result"] is False

    def test_with_valid_auth_passes_auth(self, worker_client, monkeypatch):
        """With the secret, the request reaches handler logic (400 on empty body)."""
        monkeypatch.setenv("INTERNAL_TASK_SECRET", "s3cret")
        response = worker_client.post(
            "/tasks/notifications/booking-created",
            json={},
            headers={TASK_SECRET_HEADER: "s3cret"},
        )
        assert response.status_code == 400


class TestPublicAppHasNoTaskRoutes:
    def test_task_route_not_mounted(self, monkeypatch):
        monkeypatch.setenv("INTERNAL_TASK_SECRET", "s3cret")
        client = TestClient(create_app(role="public"))
        response = client.post(
            "/tasks/notifications/booking-created",
            json={"event_id": 1},
            headers={TASK_SECRET_HEADER: "s3cret"},
        )
        assert response.status_code == 404
