"""Tests for the booking-created notification worker route."""

from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import pytest
import requests
from fastapi.testclient import TestClient

from immova.api.factory import create_app
from immova.api.task_auth import TASK_SECRET_HEADER

MOD = "immova.api.routes.tasks_notifications"
URL = "/tasks/notifications/booking-created"
HEADERS = {TASK_SECRET_HEADER: "s3cret"}


def _event(**overrides):
    event = {
        "id": 12,
        "apartment_id": "touquet-pinede",
        "event_type": "BOOKING_CREATED",
        "aggregate_type": "booking",
        "aggregate_id": "bk-1",
        "payload": {
            "booking_id": "bk-1",
            "apartment_id": "touquet-pinede",
            "start_date": "2025-09-21",
            "end_date": "2025-09-26",
            "nights": 5,
            "price": "750",
            "total_price": "800",
            "accept_token": "a" * 64,
            "refuse_token": "b" * 64,
        },
        "correlation_id": "req-1",
        "created_at": datetime(2025, 9, 1, tzinfo=timezone.utc),
    }
    event.update(overrides)
    return event


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setenv("INTERNAL_TASK_SECRET", "s3cret")
    monkeypatch.setenv("NOTIFICATION_WEBHOOK_URL", "https://hooks.example.test/booking")
    return TestClient(create_app(role="worker"))


class TestBookingCreatedTask:
    def test_sends_event_to_webhook(self, client, mock_txn, mock_cur):
        with patch(f"{MOD}.txn", mock_txn), \
             patch(f"{MOD}.get_event", return_value=_event()) as get_event, \
             patch(f"{MOD}.requests.post") as post:
            response = client.post(URL, json={"event_id": 12}, headers=HEADERS)

        assert response.status_code == 200
        assert response.json() == {"ok": True, "status": "sent"}
        get_event.assert_called_once_with(mock_cur, 12)
        args, kwargs = post.call_args
        assert args[0] == "https://hooks.example.test/booking"
        assert kwargs["json"]["event_id"] == 12
        assert kwargs["json"]["event_type"] == "BOOKING_CREATED"
        assert kwargs["json"]["accept_token"] == "a" * 64
        assert kwargs["json"]["nights"] == 5

    def test_unknown_event_is_noop(self, client, mock_txn):
        with patch(f"{MOD}.txn", mock_txn), \
             patch(f"{MOD}.get_event", return_value=None), \
             patch(f"{MOD}.requests.post") as post:
            response = client.post(URL, json={"event_id": 99}, headers=HEADERS)

        assert response.json()["status"] == "noop"
        post.assert_not_called()

    def test_other_event_type_is_noop(self, client, mock_txn):
        with patch(f"{MOD}.txn", mock_txn), \
             patch(f"{MOD}.get_event", return_value=_event(event_type="PRICE_CHANGED")):
            response = client.post(URL, json={"event_id": 12}, headers=HEADERS)
        assert response.json()["status"] == "noop"

    def test_skipped_without_webhook_url(self, client, mock_txn, monkeypatch):
        monkeypatch.delenv("NOTIFICATION_WEBHOOK_URL")
        with patch(f"{MOD}.txn", mock_txn), \
             patch(f"{MOD}.get_event", return_value=_event()), \
             patch(f"{MOD}.requests.post") as post:
            response = client.post(URL, json={"event_id": 12}, headers=HEADERS)

        assert response.status_code == 200
        assert response.json()["status"] == "skipped"
        post.assert_not_called()

    def test_webhook_failure_returns_500(self, client, mock_txn):
        failing = MagicMock()
        failing.raise_for_status.side_effect = requests.HTTPError("502")
        with patch(f"{MOD}.txn", mock_txn), \
             patch(f"{MOD}.get_event", return_value=_event()), \
             patch(f"{MOD}.requests.post", return_value=failing):
            response = client.post(URL, json={"event_id": 12}, headers=HEADERS)

        assert response.status_code == 500
        assert response.json()["ok"] is False

    @pytest.mark.parametrize("body", [{}, {"event_id": "12"}, {"event_id": True}, [12]])
    def test_missing_event_id(self, client, body):
        with patch(f"{MOD}.txn") as txn:
            response = client.post(URL, json=body, headers=HEADERS)
        assert response.status_code == 400
        txn.assert_not_called()

    def test_invalid_json(self, client):
        response = client.post(
            URL,
            content=b"{not json",
            headers={**HEADERS, "Content-Type": "application/json"},
        )
        assert response.status_code == 400
        assert response.json()["error"] == "invalid json"
