"""Authentication of worker task requests.

Tasks carry the shared INTERNAL_TASK_SECRET in the X-Internal-Task-Secret
header. Fail closed: with no secret configured, every task is rejected.
"""

from __future__ import annotations

import hmac
import os

from fastapi import Request

from immova.observability.logging import get_logger
from immova.observability.redaction import safe_log_context

logger = get_logger(__name__)

TASK_SECRET_HEADER = "X-Internal-Task-Secret"


def verify_task_auth(request: Request) -> bool:
    """Check the shared task secret.

    Args:
        request: FastAPI request object.

    Returns:
        True if authenticated, False otherwise.
    """
    expected = os.environ.get("INTERNAL_TASK_SECRET", "")
    if not expected:
        logger.error(
            "INTERNAL_TASK_SECRET not configured - fail closed",
            extra={"extra_fields": safe_log_context(reason="missing_secret_env")},
        )
        return False

    received = request.headers.get(TASK_SECRET_HEADER, "")
    if not received:
        logger.warning(
            "task auth failed: missing secret header",
            extra={"extra_fields": safe_log_context(reason="missing_header")},
        )
        return False

    if not hmac.compare_digest(received.encode(), expected.encode()):
        logger.warning(
            "task auth failed: secret mismatch",
            extra={"extra_fields": safe_log_context(reason="secret_mismatch")},
        )
        return False

    return True
