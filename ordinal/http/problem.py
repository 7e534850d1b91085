"""Problem+JSON utilities and global exception handlers.

Defines the RFC7807 media type and handler callables that turn sequencing
errors, HTTP errors and validation failures into application/problem+json
responses.
"""

from __future__ import annotations

from typing import Any
import logging

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ordinal.logic.errors import (
    InvalidSequenceConfig,
    RecordNotFound,
    SequenceAdjustmentError,
    SequenceError,
)

PROBLEM_MEDIA_TYPE = "application/problem+json"

logger = logging.getLogger(__name__)

# Sequencing error -> (status, title, code)
SEQUENCE_ERROR_MAP: dict[type, tuple[int, str, str]] = {
    RecordNotFound: (404, "Not Found", "RECORD_NOT_FOUND"),
    SequenceAdjustmentError: (409, "Conflict", "SEQUENCE_ADJUSTMENT_FAILED"),
    InvalidSequenceConfig: (500, "Internal Server Error", "SEQUENCE_CONFIG_INVALID"),
}


def problem(status: int, title: str, detail: str | None = None, code: str | None = None, **extra: Any) -> JSONResponse:
    body: dict[str, Any] = {"type": "about:blank", "title": title, "status": status}
    if detail:
        body["detail"] = detail
    if code:
        body["code"] = code
    body.update(extra)
    return JSONResponse(body, status_code=status, media_type=PROBLEM_MEDIA_TYPE)


async def handle_sequence_error(request: Request, exc: SequenceError) -> JSONResponse:  # noqa: D401
    status, title, code = 500, "Internal Server Error", "SEQUENCE_ERROR"
    for exc_type, mapped in SEQUENCE_ERROR_MAP.items():
        if isinstance(exc, exc_type):
            status, title, code = mapped
            break
    if status >= 500:
        logger.error("sequence_error path=%s code=%s", request.url.path, code, exc_info=exc)
    else:
        logger.info("sequence_error path=%s code=%s detail=%s", request.url.path, code, exc)
    return problem(status, title, str(exc), code)


async def handle_http_exception(request: Request, exc: HTTPException) -> JSONResponse:  # noqa: D401
    status = int(exc.status_code or 500)
    if isinstance(exc.detail, dict):
        body = {"status": status, **exc.detail}
        return JSONResponse(body, status_code=status, media_type=PROBLEM_MEDIA_TYPE, headers=exc.headers)
    response = problem(status, "Error", str(exc.detail or ""))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:  # noqa: D401
    return problem(
        422,
        "Invalid Request",
        "Request validation failed",
        errors=[{k: v for k, v in e.items() if k != "ctx"} for e in exc.errors()],
    )


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:  # noqa: D401
    logger.error("unexpected_error path=%s", request.url.path, exc_info=exc)
    return problem(500, "Internal Server Error")


__all__ = [
    "PROBLEM_MEDIA_TYPE",
    "SEQUENCE_ERROR_MAP",
    "problem",
    "handle_sequence_error",
    "handle_http_exception",
    "handle_request_validation_error",
    "handle_unexpected_error",
]
