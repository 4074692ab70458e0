"""
Exception handlers mapping kernel errors onto HTTP responses.

Every error body has the same shape::

    {"success": false, "error": {"message": ..., "code": ..., "details": ...}}

``code`` comes from the exception's ``code`` class attribute; messages are
never parsed.
"""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from expense_kernel.exceptions import (
    ExpenseKernelError,
    ExpenseNotFoundError,
    IdempotencyError,
    InvalidAmountError,
    TransientStorageError,
)
from expense_kernel.logging_config import get_logger

logger = get_logger("api.errors")

VALIDATION_ERROR = "VALIDATION_ERROR"
INTERNAL_ERROR = "INTERNAL_ERROR"

# Seconds a client should wait before retrying a transient failure
RETRY_AFTER_SECONDS = 1

_STATUS_BY_ERROR: tuple[tuple[type[ExpenseKernelError], int], ...] = (
    (TransientStorageError, 503),
    (IdempotencyError, 400),
    (ExpenseNotFoundError, 404),
    (InvalidAmountError, 500),
)

_HTTP_CODES = {
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
}


def error_response(
    status_code: int,
    message: str,
    code: str,
    details: Any = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    error: dict[str, Any] = {"message": message, "code": code}
    if details is not None:
        error["details"] = details
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": error},
        headers=headers,
    )


def status_for(exc: ExpenseKernelError) -> int:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 500


_LOCATIONS = ("body", "query", "header", "path")


def validation_details(errors: Any) -> list[dict[str, str]]:
    """Flatten pydantic errors into ``{field, message}`` pairs."""
    details = []
    for err in errors:
        loc = [str(part) for part in err.get("loc", ()) if part not in _LOCATIONS]
        details.append({"field": ".".join(loc), "message": str(err.get("msg", ""))})
    return details


async def kernel_error_handler(request: Request, exc: ExpenseKernelError) -> JSONResponse:
    status_code = status_for(exc)
    headers = None
    if isinstance(exc, TransientStorageError):
        headers = {"Retry-After": str(RETRY_AFTER_SECONDS)}

    if status_code >= 500:
        logger.error(
            "request_failed",
            extra={"path": request.url.path, "error_code": exc.code},
            exc_info=exc,
        )
        # Amount errors keep their detail in the log only
        message = str(exc) if isinstance(exc, TransientStorageError) else "Internal server error"
    else:
        logger.info(
            "request_rejected",
            extra={"path": request.url.path, "error_code": exc.code},
        )
        message = str(exc)

    return error_response(status_code, message, exc.code, headers=headers)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = validation_details(exc.errors())
    logger.info(
        "request_validation_failed",
        extra={"path": request.url.path, "fields": [d["field"] for d in details]},
    )
    return error_response(400, "Validation failed", VALIDATION_ERROR, details=details)


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code = _HTTP_CODES.get(exc.status_code, "HTTP_ERROR")
    return error_response(
        exc.status_code,
        str(exc.detail),
        code,
        headers=getattr(exc, "headers", None),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "unhandled_exception",
        extra={"path": request.url.path},
        exc_info=exc,
    )
    return error_response(500, "Internal server error", INTERNAL_ERROR)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ExpenseKernelError, kernel_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
