"""Domain error taxonomy and the FastAPI handlers that render it.

Services raise the ``DirectoryError`` subclasses below; the handlers turn
them (and a few framework/storage exceptions) into the standard
``{code, message, data}`` envelope.
"""

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from starlette.exceptions import HTTPException

logger = structlog.get_logger()


class DirectoryError(Exception):
    """Base class for errors surfaced to API callers."""

    code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(DirectoryError):
    """Malformed or out-of-range input."""

    code = status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class Unauthorized(DirectoryError):
    """Missing, invalid or expired credential."""

    code = status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Not authenticated"


class Forbidden(DirectoryError):
    """Authenticated but lacking the required role."""

    code = status_code = status.HTTP_403_FORBIDDEN
    default_message = "Permission denied"


class NotFound(DirectoryError):
    """Referenced entity does not exist."""

    code = status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found"


class Conflict(DirectoryError):
    """Uniqueness violation or a state that blocks the operation."""

    code = status_code = status.HTTP_409_CONFLICT
    default_message = "Resource already exists"


class Unavailable(DirectoryError):
    """Storage or cache timeout; the caller may retry."""

    code = status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "Service temporarily unavailable"


class Internal(DirectoryError):
    """Unexpected failure."""


def envelope_response(
    status_code: int,
    code: int,
    message: str,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Build an error envelope response."""
    return JSONResponse(
        status_code=status_code,
        content={"code": code, "message": message, "data": None},
        headers=headers,
    )


async def directory_error_handler(request: Request, exc: DirectoryError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthorized) else None
    if isinstance(exc, (Unavailable, Internal)):
        logger.warning("Request failed", error_type=type(exc).__name__, error=exc.message)
    return envelope_response(exc.status_code, exc.code, exc.message, headers)


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return envelope_response(exc.status_code, exc.status_code, message, exc.headers)


async def request_validation_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Collapse pydantic errors into a single readable message."""
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ()) if item != "body")
        parts.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    message = "; ".join(parts) or ValidationError.default_message
    return envelope_response(status.HTTP_400_BAD_REQUEST, ValidationError.code, message)


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    logger.info("Integrity violation", error=str(exc.orig))
    return envelope_response(Conflict.status_code, Conflict.code, Conflict.default_message)


async def storage_unavailable_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.warning("Storage unavailable", error_type=type(exc).__name__, error=str(exc))
    return envelope_response(Unavailable.status_code, Unavailable.code, Unavailable.default_message)


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Envelope for slowapi rejections, keeping its rate-limit headers."""
    response = envelope_response(
        status.HTTP_429_TOO_MANY_REQUESTS,
        status.HTTP_429_TOO_MANY_REQUESTS,
        f"Rate limit exceeded: {exc.detail}",
    )
    return request.app.state.limiter._inject_headers(response, request.state.view_rate_limit)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error", error_type=type(exc).__name__)
    return envelope_response(Internal.status_code, Internal.code, Internal.default_message)


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the envelope-producing handlers to the application."""
    app.add_exception_handler(DirectoryError, directory_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    # Pool exhaustion, lock waits and statement timeouts are retryable
    app.add_exception_handler(PoolTimeoutError, storage_unavailable_handler)
    app.add_exception_handler(OperationalError, storage_unavailable_handler)
    app.add_exception_handler(TimeoutError, storage_unavailable_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
