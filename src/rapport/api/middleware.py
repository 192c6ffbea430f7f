"""API error handling middleware: consistent error responses.

Registers FastAPI exception handlers that convert rapport errors into
standardised ``{"error": {"code": "...", "message": "...", "details": ...}}``
JSON responses.

Status code mapping:
- ``InvalidArgumentError`` / request validation → 400 ``VALIDATION_ERROR``
- ``UnknownInteractionTypeError`` → 400 ``UNKNOWN_INTERACTION_TYPE``
- ``NotFoundError`` → 404
- ``ConstraintViolationError`` → 409
- ``StoreUnavailableError`` → 503
- Any other ``Exception`` → 500 ``INTERNAL_ERROR``
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from rapport.api.models import ErrorDetail, ErrorResponse
from rapport.errors import (
    ConstraintViolationError,
    InvalidArgumentError,
    NotFoundError,
    RapportError,
    StoreUnavailableError,
    UnknownInteractionTypeError,
)

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR: tuple[tuple[type[RapportError], int], ...] = (
    (InvalidArgumentError, 400),
    (NotFoundError, 404),
    (ConstraintViolationError, 409),
    (StoreUnavailableError, 503),
)


def status_for(exc: RapportError) -> int:
    """HTTP status for a rapport error; unmapped subclasses are 500."""
    for error_type, status in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status
    return 500


def _error_response(status: int, code: str, message: str, details: dict | None = None):
    body = ErrorResponse(error=ErrorDetail(code=code, message=message, details=details))
    return JSONResponse(status_code=status, content=body.model_dump())


async def _handle_rapport_error(request: Request, exc: RapportError) -> JSONResponse:
    """Render any rapport error with its taxonomy code."""
    status = status_for(exc)
    details: dict | None = None
    if isinstance(exc, UnknownInteractionTypeError):
        details = {"type_name": exc.type_name, "valid_types": list(exc.valid_types)}

    if status >= 500:
        logger.warning("%s on %s %s: %s", exc.code, request.method, request.url.path, exc)
    else:
        logger.info("%s on %s %s: %s", exc.code, request.method, request.url.path, exc)
    return _error_response(status, exc.code, exc.message, details)


async def _handle_request_validation(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Return 400 for malformed path parameters or request bodies."""
    errors = [
        {"loc": list(err["loc"]), "msg": err["msg"], "type": err["type"]}
        for err in exc.errors()
    ]
    logger.info("Request validation error on %s: %s", request.url.path, errors)
    return _error_response(400, "VALIDATION_ERROR", "Request validation failed", {"errors": errors})


class CatchAllErrorMiddleware(BaseHTTPMiddleware):
    """ASGI middleware that catches any unhandled exception and returns a 500.

    Sits above the Starlette exception handler layer so that exceptions not
    caught by ``add_exception_handler`` still get the standard error envelope.
    """

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except Exception:
            logger.error(
                "Unhandled exception on %s %s",
                request.method,
                request.url.path,
                exc_info=True,
            )
            return _error_response(500, "INTERNAL_ERROR", "Internal server error")


def register_error_handlers(app: FastAPI) -> None:
    """Attach all exception handlers to the FastAPI application.

    Call this from ``create_app()`` after constructing the ``FastAPI`` instance.
    """
    app.add_exception_handler(RapportError, _handle_rapport_error)  # type: ignore[arg-type]
    app.add_exception_handler(
        RequestValidationError,
        _handle_request_validation,  # type: ignore[arg-type]
    )
    app.add_middleware(CatchAllErrorMiddleware)
