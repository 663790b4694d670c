"""HTTP backend for tasks - sends tasks to the worker via HTTP POST.

Used where api and worker run as separate processes. The worker checks the
X-Internal-Task-Secret header (see immova.api.task_auth).
"""

import os

import requests

from immova.observability.correlation import CORRELATION_ID_HEADER
from immova.observability.logging import get_logger

logger = get_logger(__name__)


def _timeout() -> float:
    try:
        return float(os.environ.get("TASKS_HTTP_TIMEOUT", "30"))
    except ValueError:
        return 30.0


def enqueue_http(
    task_id: str,
    url_path: str,
    payload: dict,
    correlation_id: str | None = None,
) -> bool:
    """POST a task to the worker.

    Args:
        task_id: Unique task identifier (for logging/tracing).
        url_path: Worker endpoint path.
        payload: Task payload (must be PII-free).
        correlation_id: Optional correlation ID for tracing.

    Returns:
        True if the worker answered 2xx, False otherwise.
    """
    base_url = os.environ.get("WORKER_BASE_URL", "http://worker:8000").rstrip("/")
    secret = os.environ.get("INTERNAL_TASK_SECRET", "")

    url = f"{base_url}{url_path}"
    headers = {
        "Content-Type": "application/json",
        CORRELATION_ID_HEADER: correlation_id or "",
        "X-Task-Id": task_id,
    }
    if secret:
        headers["X-Internal-Task-Secret"] = secret

    try:
        response = requests.post(
            url,
            json=payload,
            headers=headers,
            timeout=_timeout(),
        )
        response.raise_for_status()
        logger.info(
            "HTTP task enqueued successfully",
            extra={"extra_fields": {"task_id": task_id, "url_path": url_path}},
        )
        return True
    except requests.RequestException as e:
        logger.error(
            "HTTP task enqueue failed",
            extra={"extra_fields": {"task_id": task_id, "url": url, "error": str(e)}},
        )
        return False
