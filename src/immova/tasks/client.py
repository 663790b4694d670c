"""Tasks client with idempotent enqueue.

Provides backends selectable via TASKS_BACKEND env var:
- inline (default): records tasks locally without delivering them (dev/tests)
- http: sends tasks to the worker via HTTP POST
"""

import os
from typing import Any


class TasksClient:
    """Tasks client with idempotent enqueue by task_id.

    Backend selection via TASKS_BACKEND env var (read at construction):
    - "inline" (default): registers the task for inspection, never delivers it
    - "http": POSTs the payload to WORKER_BASE_URL + url_path

    Tracks task_ids so the same task_id is only enqueued once per client.
    """

    def __init__(self, backend: str | None = None) -> None:
        self._executed_ids: set[str] = set()
        self._scheduled_tasks: list[dict[str, Any]] = []
        self._backend = backend or os.environ.get("TASKS_BACKEND", "inline")

    @property
    def backend(self) -> str:
        return self._backend

    def enqueue_http(
        self,
        task_id: str,
        url_path: str,
        payload: dict,
        correlation_id: str | None = None,
    ) -> bool:
        """Enqueue a task for the worker.

        Idempotent by task_id: a task_id already seen is a no-op.

        Args:
            task_id: Unique identifier for idempotency.
            url_path: Worker endpoint path (e.g., "/tasks/notifications/booking-created").
            payload: Task data (must not contain guest PII).
            correlation_id: Optional correlation ID for tracing.

        Returns:
            True if the task was accepted by the backend (or the task_id was
            new, for inline). False if the task_id was already seen or the
            HTTP delivery failed.

        Raises:
            ValueError: If TASKS_BACKEND is unknown.
        """
        if task_id in self._executed_ids:
            return False

        if self._backend == "inline":
            self._executed_ids.add(task_id)
            self._scheduled_tasks.append({
                "task_id": task_id,
                "url_path": url_path,
                "payload": payload,
                "correlation_id": correlation_id,
            })
            return True

        if self._backend == "http":
            from immova.tasks.http_backend import enqueue_http

            delivered = enqueue_http(task_id, url_path, payload, correlation_id)
            if delivered:
                self._executed_ids.add(task_id)
            return delivered

        raise ValueError(f"Unknown TASKS_BACKEND: {self._backend}")

    def was_executed(self, task_id: str) -> bool:
        return task_id in self._executed_ids

    def get_scheduled_tasks(self) -> list[dict]:
        """Tasks registered by the inline backend (useful for testing)."""
        return list(self._scheduled_tasks)

    def clear(self) -> None:
        """Clear seen task_ids and registered tasks (useful for testing)."""
        self._executed_ids.clear()
        self._scheduled_tasks.clear()


_tasks_client: TasksClient | None = None


def get_tasks_client() -> TasksClient:
    """Process-wide client, created on first use."""
    global _tasks_client
    if _tasks_client is None:
        _tasks_client = TasksClient()
    return _tasks_client


def reset_tasks_client(client: TasksClient | None = None) -> None:
    """Replace (or drop) the process-wide client. Used by tests."""
    global _tasks_client
    _tasks_client = client
