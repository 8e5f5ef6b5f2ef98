"""
Error types and the JSON error shape shared by every endpoint.

Services raise ``BookShareError`` subclasses; the handlers registered by
``setup_exception_handlers`` turn them (and FastAPI's own errors) into
``{"success": false, "message": ...}`` bodies.
"""

from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.exceptions import HTTPException

INTERNAL_ERROR_MESSAGE = "Internal server error"


class BookShareError(Exception):
    """Base exception for BookShare errors."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)


class ValidationFailed(BookShareError):
    status_code = status.HTTP_400_BAD_REQUEST


class Unauthorized(BookShareError):
    status_code = status.HTTP_401_UNAUTHORIZED


class Forbidden(BookShareError):
    status_code = status.HTTP_403_FORBIDDEN


class NotFound(BookShareError):
    status_code = status.HTTP_404_NOT_FOUND


class Conflict(BookShareError):
    """A state precondition does not hold (book taken, exchange closed...)."""

    status_code = status.HTTP_409_CONFLICT


def error_response(message: str, status_code: int) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": message},
    )


def _first_validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    location = [str(part) for part in first.get("loc", ()) if part != "body"]
    message = first.get("msg", "Invalid value")
    if message.startswith("Value error, "):
        message = message[len("Value error, "):]
    if location:
        return f"{'.'.join(location)}: {message}"
    return message


def setup_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers with FastAPI app."""

    @app.exception_handler(BookShareError)
    async def bookshare_error_handler(request: Request, exc: BookShareError):
        logger.info(
            "{} {} -> {} {}", request.method, request.url.path, exc.status_code, exc.message
        )
        return error_response(exc.message, exc.status_code)

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        return error_response(str(exc.detail), exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        message = _first_validation_message(exc)
        logger.info("Validation error on {}: {}", request.url.path, message)
        return error_response(message, status.HTTP_400_BAD_REQUEST)
