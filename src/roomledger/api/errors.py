"""Maps billing errors to HTTP responses."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from roomledger.core.errors import (
    BillingError,
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    SignatureError,
    StateError,
    ValidationError,
)

logger = logging.getLogger(__name__)

STATUS_CODES: dict[type[BillingError], int] = {
    ValidationError: 400,
    NotFoundError: 404,
    ConflictError: 409,
    StateError: 409,
    SignatureError: 400,
    PermissionDeniedError: 403,
}


def status_for(error: BillingError) -> int:
    for error_type in type(error).__mro__:
        if error_type in STATUS_CODES:
            return STATUS_CODES[error_type]
    return 400


async def billing_error_handler(request: Request, exc: BillingError) -> JSONResponse:
    body = {"error": type(exc).__name__, "message": exc.message}
    if isinstance(exc, ConflictError) and exc.existing_id:
        body["existing_id"] = str(exc.existing_id)
    return JSONResponse(status_code=status_for(exc), content=body)


async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        f"Unhandled error on {request.method} {request.url.path}: {exc}",
        exc_info=exc,
    )
    return JSONResponse(
        status_code=500,
        content={"error": "InternalError", "message": "Internal server error"},
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BillingError, billing_error_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)
