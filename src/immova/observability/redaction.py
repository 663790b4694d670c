"""Redaction helpers for safe logging.

Guest details travel with booking requests (phone, special requests, names of
children or pets). None of it may reach the logs verbatim.
"""

import re
from typing import Any

# International (+33 6 12 34 56 78) and national (06.12.34.56.78) phone numbers.
# At least 10 digits, so ISO dates (8 digits) survive.
_PHONE_PATTERN = re.compile(r"(?:\+?\d[\s.\-()]{0,2}){9,}\d")
_EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")
# One-click action tokens are 64 hex chars and act as bearer credentials
_TOKEN_PATTERN = re.compile(r"\b[0-9a-fA-F]{64}\b")

_REDACTED = "[REDACTED]"


def redact_string(value: str) -> str:
    """Redact PII and credentials from a string."""
    result = _TOKEN_PATTERN.sub(_REDACTED, value)
    result = _PHONE_PATTERN.sub(_REDACTED, result)
    result = _EMAIL_PATTERN.sub(_REDACTED, result)
    return result


def redact_value(value: Any) -> str:
    """Redact any value for safe logging. Returns string representation."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str):
        return redact_string(value)
    if isinstance(value, dict):
        # Structure only, never values
        return f"dict(keys={sorted(value.keys())})"
    if isinstance(value, (list, tuple, set)):
        return f"list(len={len(value)})"
    return f"<{type(value).__name__}>"


def summarize_guest_details(details: dict[str, Any] | None) -> dict[str, Any]:
    """Reduce guest details to counts and flags that are safe to log."""
    details = details or {}
    return {
        "adults": details.get("adults"),
        "children_count": len(details.get("children") or []),
        "pets_count": len(details.get("pets") or []),
        "has_special_requests": bool(details.get("special_requests")),
        "has_contact_phone": bool(details.get("contact_phone")),
        "include_cleaning": bool(details.get("include_cleaning")),
        "include_linen": bool(details.get("include_linen")),
    }


def safe_log_context(**kwargs: Any) -> dict[str, str]:
    """Build a context dict safe for logging. All values are redacted."""
    return {k: redact_value(v) for k, v in kwargs.items()}
