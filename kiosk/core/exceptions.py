"""
Domain errors and global exception handlers.

The handlers keep stack traces away from clients and translate the
attendance errors into HTTP status codes.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

logger = logging.getLogger(__name__)


class AttendanceError(Exception):
    """Base class for every error raised by the attendance core."""


class InvalidInput(AttendanceError):
    """The scan cannot be evaluated: empty employee id or unusable timestamp."""


class CollaboratorUnavailable(AttendanceError):
    """A holiday, schedule or attendance store call failed.

    The original exception is kept as ``__cause__``.
    """

    def __init__(self, collaborator: str, reason: str = "") -> None:
        self.collaborator = collaborator
        self.reason = reason
        message = f"{collaborator} unavailable"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


async def _http_exception_handler(_request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "success": False},
    )


async def _invalid_input_handler(_request: Request, exc: InvalidInput) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={"detail": str(exc), "success": False},
    )


async def _collaborator_unavailable_handler(
    _request: Request, exc: CollaboratorUnavailable
) -> JSONResponse:
    logger.error("Collaborator failure: %s", exc, exc_info=exc.__cause__ is not None)
    return JSONResponse(
        status_code=503,
        content={"detail": f"{exc.collaborator} unavailable", "success": False},
    )


async def _integrity_error_handler(_request: Request, exc: IntegrityError) -> JSONResponse:
    logger.error("Database integrity error: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=409,
        content={"detail": "Database constraint violation", "success": False},
    )


async def _sqlalchemy_error_handler(_request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("Database error: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal database error", "success": False},
    )


async def _generic_exception_handler(_request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception: %s", exc)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "success": False},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach all exception handlers to the FastAPI app."""
    app.add_exception_handler(HTTPException, _http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(InvalidInput, _invalid_input_handler)  # type: ignore[arg-type]
    app.add_exception_handler(
        CollaboratorUnavailable, _collaborator_unavailable_handler  # type: ignore[arg-type]
    )
    app.add_exception_handler(IntegrityError, _integrity_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(SQLAlchemyError, _sqlalchemy_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _generic_exception_handler)
