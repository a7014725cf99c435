"""Application error hierarchy and the handlers that render it.

Every error leaves the API as ``{"message": ...}`` with the status code carried
by the exception class. Services raise these; endpoints let them propagate.
"""

from __future__ import annotations

import logging
import traceback
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from chirp.core.settings import settings

logger = logging.getLogger(__name__)


class ChirpError(Exception):
    """Base class for errors that map to a JSON error response."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None, *, status_code: int | None = None) -> None:
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class ValidationError(ChirpError):
    """Client input is malformed or violates a business rule."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class AuthError(ChirpError):
    """Missing, invalid or expired credentials."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Could not validate credentials"


class NotFoundError(ChirpError):
    """Entity does not exist, or the caller does not own it."""

    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class ConflictError(ChirpError):
    """A unique value is already taken (duplicate registration)."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Resource already exists"


class ExternalServiceError(ChirpError):
    """The media storage service failed or timed out."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "External service unavailable"


class InternalError(ChirpError):
    """Unexpected failure inside the application."""


def _error_response(status_code: int, message: str, **extra: Any) -> JSONResponse:
    content: dict[str, Any] = {"message": message}
    content.update(extra)
    return JSONResponse(status_code=status_code, content=content)


def _first_validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    location = [str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path", "form")]
    message = str(first.get("msg", "Invalid value"))
    if location:
        return f"{'.'.join(location)}: {message}"
    return message


def register_exception_handlers(app: FastAPI) -> None:
    """Attach handlers that convert every error into a ``{message}`` body."""

    @app.exception_handler(ChirpError)
    async def handle_chirp_error(request: Request, exc: ChirpError) -> JSONResponse:
        if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return _error_response(exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return _error_response(status.HTTP_400_BAD_REQUEST, _first_validation_message(exc))

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        return _error_response(exc.status_code, str(exc.detail))

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        if settings.debug:
            return _error_response(
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                InternalError.default_message,
                detail="".join(traceback.format_exception(exc)),
            )
        return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, InternalError.default_message)
