"""Exception handlers: every failure answers {"result": false, "error": ...}."""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from immova.domain.errors import BookingError, ConflictError
from immova.observability.logging import get_logger

logger = get_logger(__name__)


def _failure(status_code: int, error: str, **extras: Any) -> JSONResponse:
    content: dict[str, Any] = {"result": False, "error": error}
    content.update({k: v for k, v in extras.items() if v})
    return JSONResponse(status_code=status_code, content=jsonable_encoder(content))


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(BookingError)
    async def booking_error_handler(request: Request, exc: BookingError) -> JSONResponse:
        level = "error" if exc.status_code >= 500 else "info"
        getattr(logger, level)(
            "request failed",
            extra={
                "extra_fields": {
                    "path": request.url.path,
                    "error_type": type(exc).__name__,
                    "status_code": exc.status_code,
                }
            },
        )
        conflicts = exc.conflicts if isinstance(exc, ConflictError) else None
        return _failure(exc.status_code, exc.message, conflicts=conflicts, details=exc.details)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = exc.errors()
        first = errors[0] if errors else {}
        location = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = first.get("msg", "invalid request")
        return _failure(
            400,
            f"{location}: {message}" if location else message,
            errors=[{"loc": e.get("loc"), "msg": e.get("msg")} for e in errors],
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"result": False, "error": str(exc.detail)},
            headers=exc.headers,
        )
