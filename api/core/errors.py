"""
Error kinds raised by the CRUD layer and their HTTP mapping.

Handlers never translate failures themselves: they raise one of the kinds
below (or let a driver exception escape) and `install_error_handlers` turns
it into a JSON response at the app boundary.
"""

from __future__ import annotations

from typing import Any

import asyncpg
from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from .logging import get_logger

logger = get_logger(__name__)


class CrudError(Exception):
    """Base class for failures the CRUD layer knows how to describe."""


class RecordValidationError(CrudError):
    def __init__(self, errors: list[dict[str, Any]]):
        super().__init__(f"{len(errors)} validation error(s)")
        self.errors = errors


class RecordNotFound(CrudError):
    def __init__(self, record_id: str):
        super().__init__(f"Record {record_id!r} not found.")
        self.record_id = record_id


class InvalidIdentifier(CrudError):
    def __init__(self, record_id: str):
        super().__init__(f"Malformed record id: {record_id!r}.")
        self.record_id = record_id


def _validation_response(exc: RecordValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=jsonable_encoder({"errors": exc.errors}),
    )


def _message_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "message": message})


# Checked in order; the first matching kind wins.
ERROR_STATUS_TABLE: list[tuple[type[BaseException], int, str]] = [
    (RecordNotFound, status.HTTP_404_NOT_FOUND, "Not found"),
    (InvalidIdentifier, status.HTTP_400_BAD_REQUEST, "Invalid id"),
    (asyncpg.PostgresError, status.HTTP_503_SERVICE_UNAVAILABLE, "Service unavailable"),
    (OSError, status.HTTP_503_SERVICE_UNAVAILABLE, "Service unavailable"),
]


def response_for(exc: Exception) -> JSONResponse:
    """
    Map an exception to its JSON response using `ERROR_STATUS_TABLE`.

    Anything not listed is a 500.
    """
    if isinstance(exc, RecordValidationError):
        return _validation_response(exc)
    for kind, status_code, message in ERROR_STATUS_TABLE:
        if isinstance(exc, kind):
            return _message_response(status_code, message)
    return _message_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


async def _handle_crud_error(request: Request, exc: Exception) -> JSONResponse:
    logger.info(
        "request_rejected",
        method=request.method,
        path=request.url.path,
        error=type(exc).__name__,
        detail=str(exc),
    )
    return response_for(exc)


async def _handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "request_failed",
        method=request.method,
        path=request.url.path,
        error=type(exc).__name__,
        exc_info=exc,
    )
    return response_for(exc)


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(CrudError, _handle_crud_error)
    app.add_exception_handler(asyncpg.PostgresError, _handle_unexpected_error)
    app.add_exception_handler(OSError, _handle_unexpected_error)
    app.add_exception_handler(Exception, _handle_unexpected_error)
