"""Worker routes for host notification tasks."""

import os
from typing import Any

import requests
from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse

from immova.api.task_auth import verify_task_auth
from immova.infra.db import txn
from immova.infra.repositories.outbox_repository import BOOKING_CREATED, get_event
from immova.observability.correlation import get_correlation_id
from immova.observability.logging import get_logger
from immova.observability.redaction import safe_log_context

router = APIRouter(prefix="/tasks/notifications", tags=["tasks"])

logger = get_logger(__name__)


def _webhook_timeout() -> float:
    try:
        return float(os.environ.get("TASKS_HTTP_TIMEOUT", "30"))
    except ValueError:
        return 30.0


@router.post("/booking-created")
async def handle_booking_created(request: Request) -> JSONResponse:
    """Deliver a BOOKING_CREATED event to the notification webhook.

    Expected payload:
    - event_id: Outbox event id (required)

    Responses:
    - 200 "sent": webhook accepted the notification
    - 200 "skipped": NOTIFICATION_WEBHOOK_URL not configured
    - 200 "noop": event not found or not a BOOKING_CREATED event
    - 500: webhook failed (task may be retried)
    """
    correlation_id = get_correlation_id()

    if not verify_task_auth(request):
        raise HTTPException(status_code=401, detail="Unauthorized")

    try:
        payload: dict[str, Any] = await request.json()
    except ValueError:
        logger.warning(
            "invalid json body",
            extra={"extra_fields": safe_log_context(correlationId=correlation_id)},
        )
        return JSONResponse(status_code=400, content={"ok": False, "error": "invalid json"})

    event_id = payload.get("event_id") if isinstance(payload, dict) else None
    if not isinstance(event_id, int) or isinstance(event_id, bool):
        return JSONResponse(
            status_code=400,
            content={"ok": False, "error": "missing required fields"},
        )

    with txn() as cur:
        event = get_event(cur, event_id)

    if event is None or event["event_type"] != BOOKING_CREATED:
        logger.info(
            "booking-created task noop",
            extra={"extra_fields": safe_log_context(correlationId=correlation_id, event_id=event_id)},
        )
        return JSONResponse(status_code=200, content={"ok": True, "status": "noop"})

    webhook_url = os.environ.get("NOTIFICATION_WEBHOOK_URL", "")
    if not webhook_url:
        logger.warning(
            "NOTIFICATION_WEBHOOK_URL not configured, notification skipped",
            extra={"extra_fields": safe_log_context(event_id=event_id)},
        )
        return JSONResponse(status_code=200, content={"ok": True, "status": "skipped"})

    body = {
        "event_id": event["id"],
        "event_type": event["event_type"],
        "correlation_id": event["correlation_id"],
        **event["payload"],
    }
    try:
        response = requests.post(webhook_url, json=body, timeout=_webhook_timeout())
        response.raise_for_status()
    except requests.RequestException as e:
        logger.error(
            "notification webhook failed",
            extra={
                "extra_fields": safe_log_context(
                    correlationId=correlation_id,
                    event_id=event_id,
                    error=str(e),
                )
            },
        )
        return JSONResponse(status_code=500, content={"ok": False, "error": "webhook failed"})

    logger.info(
        "booking notification sent",
        extra={
            "extra_fields": safe_log_context(
                correlationId=correlation_id,
                event_id=event_id,
                booking_id=event["aggregate_id"],
            )
        },
    )
    return JSONResponse(status_code=200, content={"ok": True, "status": "sent"})
